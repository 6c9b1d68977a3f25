# points.py
from flask_smorest import Blueprint, abort
from flask_jwt_extended import jwt_required
from logger import logger
from models import READING_FIELDS
from schemas import (
    MonitoringPointSchema,
    PointQuerySchema,
    PointDetailQuerySchema,
    PointCreateSchema,
    PointUpdateSchema,
)
from services import services
from utils import require_roles, current_user_id

blp = Blueprint(
    "MonitoringPoints",
    "monitoring_points",
    url_prefix="/api/monitoring-points",
    description="Monitoring point (GIS location) management",
)

LIST_SCHEMA = MonitoringPointSchema(many=True)
ITEM_SCHEMA = MonitoringPointSchema()

def _get_or_404(point_id):
    point = services().points.get(point_id)
    if not point:
        abort(404, message="Monitoring point not found")
    return point

# ----------------- Read -----------------

@blp.route("/stats/by-type", methods=["GET"])
@jwt_required()
def stats_by_type():
    return {"stats": services().points.stats_by_type()}, 200

@blp.route("", methods=["GET"])
@jwt_required()
@blp.arguments(PointQuerySchema, location="query")
def list_points(args):
    """List monitoring points, optionally filtered by type and status (newest first)."""
    points = services().points.find_all(type=args.get("type"), status=args.get("status"))
    return {"points": LIST_SCHEMA.dump(points), "count": len(points)}, 200

@blp.route("/<int:point_id>", methods=["GET"])
@jwt_required()
@blp.arguments(PointDetailQuerySchema, location="query")
def get_point(args, point_id):
    point = _get_or_404(point_id)
    data = ITEM_SCHEMA.dump(point)
    if args["include_latest"]:
        latest = services().points.latest_record(point_id)
        data["last_record_time"] = latest.recorded_at.isoformat() if latest else None
        for field in READING_FIELDS:
            data[field] = getattr(latest, field) if latest else None
    return data, 200

# ----------------- Create / Update / Delete -----------------

@blp.route("", methods=["POST"])
@jwt_required()
@require_roles("admin")
@blp.arguments(PointCreateSchema)
@blp.response(201, MonitoringPointSchema)
def create_point(body):
    point = services().points.create(created_by=current_user_id(), **body)
    logger.info(f"Monitoring point {point.id} created ({point.type})")
    return point

@blp.route("/<int:point_id>", methods=["PUT"])
@jwt_required()
@require_roles("admin")
@blp.arguments(PointUpdateSchema)
@blp.response(200, MonitoringPointSchema)
def update_point(body, point_id):
    point = _get_or_404(point_id)
    return services().points.update(point, **body)

@blp.route("/<int:point_id>", methods=["DELETE"])
@jwt_required()
@require_roles("admin")
def delete_point(point_id):
    point = _get_or_404(point_id)
    services().points.delete(point)
    logger.info(f"Monitoring point {point_id} deleted")
    return {"message": "Monitoring point deleted successfully"}, 200
