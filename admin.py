# admin.py
# Every endpoint here requires an admin token.
import platform

from flask_smorest import Blueprint, abort
from flask_jwt_extended import jwt_required
from sqlalchemy.exc import SQLAlchemyError
from logger import logger
from schemas import UserSchema, RoleUpdateSchema, StatusUpdateSchema, RetentionQuerySchema
from services import services
from utils import require_roles, current_user_id, utcnow

blp = Blueprint(
    "Admin",
    "admin",
    url_prefix="/api/admin",
    description="Administration (admin role only)",
)

USERS_SCHEMA = UserSchema(many=True)

def _user_or_404(user_id):
    user = services().users.get(user_id)
    if not user:
        abort(404, message="User not found")
    return user

def _forbid_self(user_id, message):
    if user_id == current_user_id():
        abort(403, message=message)

# ----------------- System -----------------

@blp.route("/stats", methods=["GET"])
@jwt_required()
@require_roles("admin")
def system_stats():
    svc = services()
    by_type = svc.points.stats_by_type()
    return {
        "users": svc.users.stats(),
        "monitoring_points": {
            "total": sum(row["count"] for row in by_type),
            "active": sum(row["active_count"] for row in by_type),
            "by_type": by_type,
        },
        "records": svc.records.dashboard_stats(),
    }, 200

@blp.route("/health", methods=["GET"])
@jwt_required()
@require_roles("admin")
def system_health():
    svc = services()
    server = {
        "uptime_seconds": round((utcnow() - svc.started_at).total_seconds(), 1),
        "python_version": platform.python_version(),
    }
    try:
        svc.records.ping()
        tables = svc.records.table_counts()
    except SQLAlchemyError as e:
        svc.records.rollback()
        logger.opt(exception=e).error("Health check failed")
        return {
            "status": "unhealthy",
            "message": "System health check failed",
            "error": str(e),
            "server": server,
        }, 500
    return {
        "status": "healthy",
        "database": {"connected": True, "tables": tables},
        "server": server,
    }, 200

@blp.route("/records", methods=["DELETE"])
@jwt_required()
@require_roles("admin")
@blp.arguments(RetentionQuerySchema, location="query")
def purge_records(args):
    """Retention purge: delete readings recorded more than ``olderThanDays`` days ago."""
    deleted = services().records.delete_older_than(args["older_than_days"])
    logger.info(f"Retention purge removed {deleted} records older than {args['older_than_days']} days")
    return {"deleted_count": deleted}, 200

# ----------------- Users -----------------

@blp.route("/users", methods=["GET"])
@jwt_required()
@require_roles("admin")
def list_users():
    users = services().users.all()
    return {"users": USERS_SCHEMA.dump(users), "count": len(users)}, 200

@blp.route("/users/<int:user_id>", methods=["GET"])
@jwt_required()
@require_roles("admin")
@blp.response(200, UserSchema)
def get_user(user_id):
    return _user_or_404(user_id)

@blp.route("/users/<int:user_id>/role", methods=["PUT"])
@jwt_required()
@require_roles("admin")
@blp.arguments(RoleUpdateSchema)
@blp.response(200, UserSchema)
def update_user_role(body, user_id):
    _forbid_self(user_id, "You cannot change your own role")
    user = _user_or_404(user_id)
    logger.info(f"User {user_id} role -> {body['role']}")
    return services().users.update(user, role=body["role"])

@blp.route("/users/<int:user_id>/status", methods=["PUT"])
@jwt_required()
@require_roles("admin")
@blp.arguments(StatusUpdateSchema)
@blp.response(200, UserSchema)
def update_user_status(body, user_id):
    _forbid_self(user_id, "You cannot deactivate your own account")
    user = _user_or_404(user_id)
    services().users.update(user, is_active=body["is_active"])
    logger.info(f"User {user_id} {'activated' if user.is_active else 'deactivated'}")
    return user

@blp.route("/users/<int:user_id>", methods=["DELETE"])
@jwt_required()
@require_roles("admin")
def delete_user(user_id):
    _forbid_self(user_id, "You cannot delete your own account")
    user = _user_or_404(user_id)
    services().users.delete(user)
    logger.info(f"User {user_id} deleted")
    return {"message": "User deleted successfully"}, 200
