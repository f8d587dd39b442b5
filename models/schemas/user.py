from marshmallow import Schema, fields


class UserOutSchema(Schema):
    id = fields.String(allow_none=False)
    username = fields.String(allow_none=True)
    email = fields.String(allow_none=True)
    plan = fields.Method("get_plan")
    license = fields.Method("get_license_key")
    license_expires_at = fields.Method("get_license_expires_at", data_key="licenseExpiresAt")
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")

    def get_plan(self, obj):
        lic = getattr(obj, "license", None)
        return lic.plan_type if lic else "None"

    def get_license_key(self, obj):
        lic = getattr(obj, "license", None)
        return lic.license_key if lic else None

    def get_license_expires_at(self, obj):
        lic = getattr(obj, "license", None)
        if lic is None or lic.expires_at is None:
            return None
        return lic.expires_at.isoformat()
