from flask import Blueprint, g, jsonify

from utils.csrf import generate_csrf_token
from utils.decorators import admin_required

bp = Blueprint("csrf", __name__)


@bp.get("/csrf")
@admin_required()
def get_csrf_token():
    """
    Issue a CSRF token bound to the signed-in admin
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
        schema:
          type: object
          properties:
            success: { type: boolean }
            csrfToken: { type: string }
      401:
        description: Unauthorized
    """
    return jsonify({"success": True, "csrfToken": generate_csrf_token(g.current_admin["id"])}), 200
