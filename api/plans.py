from flask import Blueprint, jsonify
from sqlalchemy import func

from models import storage
from models.license import License, PLAN_TYPES
from utils.decorators import admin_required

bp = Blueprint("plans", __name__)


def available_counts() -> dict:
    """{plan_type: number of licenses with no user} for every known plan."""
    session = storage.get_session()
    rows = (
        session.query(License.plan_type, func.count(License.id))
        .filter(License.user_id.is_(None))
        .group_by(License.plan_type)
        .all()
    )
    counts = {plan: 0 for plan in PLAN_TYPES}
    for plan_type, count in rows:
        if plan_type in counts:
            counts[plan_type] = count
    return counts


@bp.get("/plans/available")
@admin_required()
def plans_available():
    """
    Plans that still have unassigned licenses
    ---
    tags:
      - Plans
    security:
      - Bearer: []
    responses:
      200:
        description: OK
        schema:
          type: object
          properties:
            success: { type: boolean }
            availablePlans:
              type: array
              items:
                type: object
                properties:
                  planType: { type: string }
                  availableCount: { type: integer }
            allPlanTypes:
              type: array
              items:
                type: object
                properties:
                  planType: { type: string }
                  availableCount: { type: integer }
      401: { description: Unauthorized }
    """
    counts = available_counts()
    all_plans = [{"planType": plan, "availableCount": counts[plan]} for plan in PLAN_TYPES]
    return jsonify(
        {
            "success": True,
            "availablePlans": [entry for entry in all_plans if entry["availableCount"] > 0],
            "allPlanTypes": all_plans,
        }
    ), 200
