from __future__ import annotations

from typing import Tuple

from flask import Blueprint, request, jsonify, abort, current_app
from sqlalchemy.orm.attributes import flag_modified

from api.extensions import get_storage
from models.user import User
from models.schemas.user import UserOutSchema, UserRolesSchema
from utils.decorators import roles_required

MAX_LIMIT = 100

bp = Blueprint("users", __name__)

user_out_schema = UserOutSchema()
user_list_out_schema = UserOutSchema(many=True)
user_roles_schema = UserRolesSchema()

# Sorting allowlist: API field -> SQLAlchemy column
SORT_COLUMNS = {
    "email": User.email,
    "created_at": User.created_at,
}


def parse_pagination() -> Tuple[int, int]:
    try:
        page = int(request.args.get("page", "1"))
        limit = int(request.args.get("limit", "20"))
        page = max(page, 1)
        limit = max(1, min(limit, MAX_LIMIT))
        return page, limit
    except ValueError:
        abort(400, description="page and limit must be integers")


def parse_sort(default="email"):
    sort = request.args.get("sort", default)
    desc = sort.startswith("-")
    key = sort[1:] if desc else sort
    col = SORT_COLUMNS.get(key)
    if col is None:
        abort(400, description=f"Unsupported sort field. Allowed: {', '.join(SORT_COLUMNS)}")
    return (col.desc() if desc else col.asc(),)


@bp.get("/users")
@roles_required(["admin"])
def list_users():
    """
    List all users - admin
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: query
        name: page
        type: integer
        default: 1
      - in: query
        name: limit
        type: integer
        default: 20
      - in: query
        name: sort
        type: string
        description: "email or created_at; prefix with '-' for desc"
        default: "email"
    responses:
      200: { description: OK }
      403: { description: Insufficient role }
    """
    session = get_storage().get_session()
    page, limit = parse_pagination()
    order_by = parse_sort()

    query = session.query(User)
    total = query.count()
    rows = query.order_by(*order_by).offset((page - 1) * limit).limit(limit).all()
    return jsonify(
        {
            "data": user_list_out_schema.dump(rows),
            "meta": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": (total + limit - 1) // limit,
            },
        }
    )


@bp.get("/users/<user_id>")
@roles_required(["admin"])
def get_user(user_id: str):
    """
    Get a single user by id - admin
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: path
        name: user_id
        type: string
        required: true
    responses:
      200: { description: OK }
      404: { description: Not found }
    """
    user = get_storage().get(User, user_id)
    if not user:
        abort(404, description="User not found")
    return jsonify({"data": user_out_schema.dump(user)})


@bp.put("/users/<user_id>/roles")
@roles_required(["admin"])
def set_roles(user_id: str):
    """
    Admin-only: replace the roles of a user.
    Body: { "roles": ["admin", "user"] }
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: path
         name: user_id
         type: string
         required: true
      -  in: body
         name: body
         schema:
           type: object
           properties:
             roles:
               type: array
               items: { type: string }
    responses:
      200: { description: OK }
      404: { description: Not found }
      422: { description: Validation error }
    """
    payload = request.get_json(silent=True) or {}
    roles = user_roles_schema.load(payload)["roles"]

    allowed = set(current_app.config.get("ALLOWED_ROLES", ["admin", "user"]))
    if any(r not in allowed for r in roles):
        abort(422, description=f"Roles must be a subset of {sorted(allowed)}")

    storage = get_storage()
    user = storage.get(User, user_id)
    if not user:
        abort(404, description="User not found")

    # keep order, drop duplicates
    user.roles = list(dict.fromkeys(roles))
    flag_modified(user, "roles")
    storage.new(user)
    storage.save()
    return jsonify({"data": user_out_schema.dump(user)}), 200
