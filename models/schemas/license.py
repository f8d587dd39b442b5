from marshmallow import EXCLUDE, Schema, fields, validate

from models.license import PLAN_TYPES
from models.schemas.common import MAX_BATCH_SIZE


class LicenseCreateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    plan_type = fields.String(
        required=True,
        data_key="planType",
        validate=validate.OneOf(PLAN_TYPES, error='Plan type must be "30d" or "90d"'),
        error_messages={"required": 'Plan type must be "30d" or "90d"'},
    )
    count = fields.Integer(
        required=True,
        strict=True,
        validate=[
            validate.Range(min=1, error="Count must be at least 1"),
            validate.Range(max=MAX_BATCH_SIZE, error=f"Count cannot exceed {MAX_BATCH_SIZE}"),
        ],
        error_messages={"required": "Count is required", "invalid": "Count must be an integer"},
    )


class LicenseCreatedSchema(Schema):
    id = fields.String()
    license_key = fields.String(data_key="licenseKey")
    plan_type = fields.String(data_key="planType")
    expires_at = fields.DateTime(data_key="expiresAt")
    created_at = fields.DateTime(data_key="createdAt")


class LicenseOutSchema(LicenseCreatedSchema):
    """Listing view: the license joined with the user consuming it."""
    user_id = fields.String(data_key="userId", allow_none=True)
    user_name = fields.Method("get_user_name", data_key="userName")
    user_email = fields.Method("get_user_email", data_key="userEmail")
    is_used = fields.Boolean(data_key="isUsed")

    def get_user_name(self, obj):
        user = getattr(obj, "user", None)
        return user.username if user else None

    def get_user_email(self, obj):
        user = getattr(obj, "user", None)
        return user.email if user else None
