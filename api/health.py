from flask import Blueprint
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from models import storage

bp = Blueprint("health", __name__)

VERSION = "1.0.0"


@bp.get("/health")
def health():
    """
    Health check
    ---
    tags:
      - Health
    responses:
      200:
        description: API is up
        schema:
          type: object
          properties:
            status:
              type: string
              example: ok
            version:
              type: string
              example: 1.0.0
            database:
              type: string
              example: ok
    """
    database = "ok"
    try:
        storage.get_session().execute(text("SELECT 1"))
    except SQLAlchemyError:
        storage.rollback()
        database = "unavailable"
    return {"status": "ok", "version": VERSION, "database": database}, 200
