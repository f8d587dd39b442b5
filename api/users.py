from __future__ import annotations

from flask import Blueprint, request, jsonify, g, abort
from sqlalchemy.orm import joinedload

from models import storage
from models.license import License
from models.user import User
from models.schemas.common import BatchDeleteSchema
from models.schemas.user import UserOutSchema
from utils.audit import AuditAction, audit, run_best_effort
from utils.decorators import admin_required, csrf_protected

bp = Blueprint("users", __name__)

user_list_out_schema = UserOutSchema(many=True)
batch_delete_schema = BatchDeleteSchema()


def release_license(license_id: str | None) -> None:
    """Make a license available again after its user is gone."""
    if not license_id:
        return
    session = storage.get_session()
    session.query(License).filter(License.id == license_id).update(
        {License.user_id: None}, synchronize_session=False
    )
    storage.save()


def _delete_users(users: list[User]) -> list[str | None]:
    """Delete the rows and return the license ids they were holding."""
    license_ids = [user.license_id for user in users]
    for user in users:
        storage.delete(user)
    storage.save()
    return license_ids


@bp.get("/users")
@admin_required()
def list_users():
    """
    List all users, newest first, with their plan and license
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200: { description: OK }
      401: { description: Unauthorized }
    """
    session = storage.get_session()
    rows = (
        session.query(User)
        .options(joinedload(User.license))
        .order_by(User.created_at.desc())
        .all()
    )
    return jsonify({"success": True, "users": user_list_out_schema.dump(rows)}), 200


@bp.delete("/users")
@csrf_protected()
def batch_delete_users():
    """
    Delete several users and release their licenses
    ---
    tags:
      - Users
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
      400: { description: Validation error }
      404: { description: None of the users exist }
    """
    payload = request.get_json(silent=True) or {}
    data = batch_delete_schema.load(payload)
    ids = list(dict.fromkeys(str(i) for i in data["ids"]))

    session = storage.get_session()
    users = session.query(User).filter(User.id.in_(ids)).all()
    if not users:
        abort(404, description="No users found")

    deleted_ids = [user.id for user in users]
    for license_id in _delete_users(users):
        run_best_effort("license_release", release_license, license_id)

    audit(
        AuditAction.USER_BATCH_DELETE,
        admin=g.current_admin,
        resource_type="user",
        details={"ids": deleted_ids, "count": len(deleted_ids)},
    )
    return jsonify(
        {
            "success": True,
            "message": f"Successfully deleted {len(deleted_ids)} user(s)",
            "deletedCount": len(deleted_ids),
        }
    ), 200


@bp.delete("/users/<user_id>")
@csrf_protected()
def delete_user(user_id: str):
    """
    Delete a user and release its license
    ---
    tags:
      - Users
    security:
      - Bearer: []
      - CSRF: []
    parameters:
      -  in: path
         name: user_id
         type: string
         required: true
    responses:
      200: { description: Deleted }
      404: { description: User not found }
    """
    user = storage.get(User, user_id)
    if user is None:
        abort(404, description="User not found")

    email = user.email
    (license_id,) = _delete_users([user])
    run_best_effort("license_release", release_license, license_id)

    audit(
        AuditAction.USER_DELETE,
        admin=g.current_admin,
        resource_type="user",
        resource_id=user_id,
        details={"email": email, "licenseId": license_id},
    )
    return jsonify({"success": True, "message": "User deleted successfully"}), 200
