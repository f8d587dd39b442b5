from __future__ import annotations

from flask import Blueprint, request, jsonify, g, abort, current_app
from sqlalchemy.orm import joinedload

from models import storage
from models.base_model import utcnow
from models.license import License, PLAN_DURATIONS
from models.schemas.common import BatchDeleteSchema
from models.schemas.license import LicenseCreateSchema, LicenseCreatedSchema, LicenseOutSchema
from utils.audit import AuditAction, audit
from utils.decorators import admin_required, csrf_protected
from utils.license_keys import issue_unique_license_key
from .errors import error_response

bp = Blueprint("licenses", __name__)

license_create_schema = LicenseCreateSchema()
license_created_schema = LicenseCreatedSchema(many=True)
license_list_out_schema = LicenseOutSchema(many=True)
batch_delete_schema = BatchDeleteSchema()

IN_USE_MESSAGE = "Cannot delete license that is in use. Please release it first."


@bp.get("/licenses")
@admin_required()
def list_licenses():
    """
    List all licenses, newest first, with the user holding each one
    ---
    tags:
      - Licenses
    security:
      - Bearer: []
    responses:
      200: { description: OK }
      401: { description: Unauthorized }
    """
    session = storage.get_session()
    rows = (
        session.query(License)
        .options(joinedload(License.user))
        .order_by(License.created_at.desc())
        .all()
    )
    return jsonify({"success": True, "licenses": license_list_out_schema.dump(rows)}), 200


@bp.post("/licenses")
@csrf_protected()
def create_licenses():
    """
    Generate `count` new license keys for a plan
    ---
    tags:
      - Licenses
    security:
      - Bearer: []
      - CSRF: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [planType, count]
           properties:
             planType: { type: string, enum: ["30d", "90d"] }
             count: { type: integer, minimum: 1, maximum: 100 }
    responses:
      201: { description: Created }
      400: { description: Validation error }
      500: { description: Could not generate a unique key }
    """
    payload = request.get_json(silent=True) or {}
    data = license_create_schema.load(payload)
    plan_type, count = data["plan_type"], data["count"]

    session = storage.get_session()
    max_attempts = current_app.config["LICENSE_KEY_MAX_ATTEMPTS"]
    keys: list[str] = []
    reserved: set[str] = set()
    # every key is generated before anything is written, so a failure inserts nothing
    for position in range(1, count + 1):
        key = issue_unique_license_key(
            session, plan_type, reserved=reserved, max_attempts=max_attempts, position=position
        )
        keys.append(key)
        reserved.add(key)

    expires_at = utcnow() + PLAN_DURATIONS[plan_type]
    licenses = [License(license_key=key, plan_type=plan_type, expires_at=expires_at) for key in keys]
    for lic in licenses:
        storage.new(lic)
    storage.save()

    audit(
        AuditAction.LICENSE_CREATE,
        admin=g.current_admin,
        resource_type="license",
        details={"planType": plan_type, "count": count},
    )
    return jsonify(
        {
            "success": True,
            "count": len(licenses),
            "licenses": license_created_schema.dump(licenses),
        }
    ), 201


@bp.delete("/licenses")
@csrf_protected()
def batch_delete_licenses():
    """
    Delete several licenses. Fails as a whole when any of them is in use.
    ---
    tags:
      - Licenses
    security:
      - Bearer: []
      - CSRF: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [ids]
           properties:
             ids:
               type: array
               items: { type: string, format: uuid }
    responses:
      200: { description: Deleted }
      400: { description: Validation error or licenses in use }
      404: { description: None of the licenses exist }
    """
    payload = request.get_json(silent=True) or {}
    data = batch_delete_schema.load(payload)
    ids = list(dict.fromkeys(str(i) for i in data["ids"]))

    session = storage.get_session()
    licenses = session.query(License).filter(License.id.in_(ids)).all()
    if not licenses:
        abort(404, description="No licenses found")

    in_use = [lic.id for lic in licenses if lic.is_used]
    if in_use:
        return error_response(
            "LICENSE_IN_USE",
            f"Cannot delete {len(in_use)} license(s) that are in use. Please release them first.",
            400,
            inUseCount=len(in_use),
            skipped=in_use,
        )

    for lic in licenses:
        storage.delete(lic)
    storage.save()

    deleted_ids = [lic.id for lic in licenses]
    audit(
        AuditAction.LICENSE_BATCH_DELETE,
        admin=g.current_admin,
        resource_type="license",
        details={"ids": deleted_ids, "count": len(deleted_ids)},
    )
    return jsonify(
        {
            "success": True,
            "message": f"Successfully deleted {len(deleted_ids)} license(s)",
            "deletedCount": len(deleted_ids),
        }
    ), 200


@bp.delete("/licenses/<license_id>")
@csrf_protected()
def delete_license(license_id: str):
    """
    Delete one available license
    ---
    tags:
      - Licenses
    security:
      - Bearer: []
      - CSRF: []
    parameters:
      -  in: path
         name: license_id
         type: string
         required: true
    responses:
      200: { description: Deleted }
      400: { description: License is in use }
      404: { description: License not found }
    """
    lic = storage.get(License, license_id)
    if lic is None:
        abort(404, description="License not found")
    if lic.is_used:
        return error_response("LICENSE_IN_USE", IN_USE_MESSAGE, 400)

    storage.delete(lic)
    storage.save()

    audit(
        AuditAction.LICENSE_DELETE,
        admin=g.current_admin,
        resource_type="license",
        resource_id=license_id,
        details={"licenseKey": lic.license_key},
    )
    return jsonify({"success": True, "message": "License deleted successfully"}), 200
