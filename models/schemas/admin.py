from marshmallow import EXCLUDE, Schema, fields, pre_load, validate


def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


class LoginSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.Email(
        required=True,
        validate=validate.Length(max=255, error="Email is too long"),
        error_messages={"required": "Email is required", "invalid": "Invalid email format"},
    )
    password = fields.String(
        required=True,
        load_only=True,
        validate=[
            validate.Length(min=1, error="Password is required"),
            validate.Length(max=100, error="Password is too long"),
        ],
        error_messages={"required": "Password is required"},
    )

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data)
            data["email"] = _norm_email(data["email"])
        return data


class AdminOutSchema(Schema):
    # password_hash is never dumped
    id = fields.String()
    email = fields.String()
    role = fields.String()
    level = fields.Integer()
    created_at = fields.DateTime()
    updated_at = fields.DateTime()
