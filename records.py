# records.py
from flask_smorest import Blueprint, abort
from flask_jwt_extended import jwt_required
from schemas import (
    MonitoringRecordSchema,
    RecordCreateSchema,
    RecordQuerySchema,
    PointStatsQuerySchema,
    TimeSeriesQuerySchema,
)
from services import services

blp = Blueprint(
    "MonitoringRecords",
    "monitoring_records",
    url_prefix="/api/monitoring-records",
    description="Environmental readings (append-only)",
)

ITEM_SCHEMA = MonitoringRecordSchema()

# ----------------- Aggregates -----------------

@blp.route("/stats/dashboard", methods=["GET"])
@jwt_required()
def dashboard_stats():
    """Readings of the last 24 hours: stations reporting, record count, AQI / PM2.5 means."""
    return {"stats": services().records.dashboard_stats()}, 200

@blp.route("/stats/<int:point_id>", methods=["GET"])
@jwt_required()
@blp.arguments(PointStatsQuerySchema, location="query")
def point_stats(args, point_id):
    stats = services().records.stats_by_point(point_id, days=args["days"])
    return {"stats": stats, "days": args["days"]}, 200

@blp.route("/latest", methods=["GET"])
@jwt_required()
def latest_for_all():
    rows = services().records.latest_for_all_points()
    for row in rows:
        if row["recorded_at"] is not None:
            row["recorded_at"] = row["recorded_at"].isoformat()
    return {"records": rows, "count": len(rows)}, 200

@blp.route("/timeseries", methods=["GET"])
@jwt_required()
@blp.arguments(TimeSeriesQuerySchema, location="query")
def time_series(args):
    """Non-null values of one parameter for one point, oldest first."""
    points = services().records.time_series(
        point_id=args["monitoring_point_id"],
        parameter=args["parameter"],
        start=args["start_date"],
        end=args["end_date"],
    )
    timeseries = [{"recorded_at": p["recorded_at"].isoformat(), "value": p["value"]} for p in points]
    return {"timeseries": timeseries, "parameter": args["parameter"], "count": len(timeseries)}, 200

# ----------------- List / get / create -----------------

@blp.route("", methods=["GET"])
@jwt_required()
@blp.arguments(RecordQuerySchema, location="query")
def list_records(args):
    rows = services().records.find_all(
        point_id=args.get("monitoring_point_id"),
        start=args.get("start_date"),
        end=args.get("end_date"),
        limit=args["limit"],
        offset=args["offset"],
    )
    records = []
    for record, point_name, point_type in rows:
        data = ITEM_SCHEMA.dump(record)
        data["point_name"] = point_name
        data["point_type"] = point_type
        records.append(data)
    return {
        "records": records,
        "count": len(records),
        "pagination": {"limit": args["limit"], "offset": args["offset"]},
    }, 200

@blp.route("/<int:record_id>", methods=["GET"])
@jwt_required()
@blp.response(200, MonitoringRecordSchema)
def get_record(record_id):
    record = services().records.get(record_id)
    if not record:
        abort(404, message="Monitoring record not found")
    return record

@blp.route("", methods=["POST"])
@jwt_required()
@blp.arguments(RecordCreateSchema)
@blp.response(201, MonitoringRecordSchema)
def create_record(body):
    svc = services()
    if not svc.points.get(body["monitoring_point_id"]):
        abort(404, message="Monitoring point not found")
    return svc.records.create(**body)
