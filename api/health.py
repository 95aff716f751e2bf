from flask import Blueprint

bp = Blueprint("health", __name__)

API_VERSION = "1.0.0"


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
            message:
              type: string
    """
    return {"status": "ok", "version": API_VERSION, "message": "Magic Stream API is running"}, 200
