from collections.abc import Mapping
from marshmallow import Schema, fields, validate, pre_load, EXCLUDE
from dateutil import parser as dtparser

from models import POINT_TYPES, POINT_STATUSES, USER_ROLES, MESSAGE_ROLES, READING_FIELDS
from utils import ensure_aware_utc

class IsoDateTime(fields.Field):
    """ISO 8601 datetime (date-only allowed), normalized to UTC on load."""

    default_error_messages = {"invalid": "Not a valid ISO 8601 datetime."}

    def _deserialize(self, value, attr, data, **kwargs):
        try:
            return ensure_aware_utc(dtparser.isoparse(value))
        except (TypeError, ValueError):
            raise self.make_error("invalid")

    def _serialize(self, value, attr, obj, **kwargs):
        return value.isoformat() if value is not None else None

class RequestSchema(Schema):
    """Base for request bodies / query strings: camelCase keys in, unknown keys ignored."""

    class Meta:
        unknown = EXCLUDE

    @pre_load
    def strip_strings(self, data, **kwargs):
        if not isinstance(data, Mapping):
            return data
        return {k: (v.strip() if isinstance(v, str) else v) for k, v in data.items()}

# ----------------- Responses -----------------

class UserSchema(Schema):
    id = fields.Int(dump_only=True)
    email = fields.Email()
    full_name = fields.Str()
    role = fields.Str(validate=validate.OneOf(USER_ROLES))
    is_active = fields.Bool()
    created_at = fields.DateTime(dump_only=True)
    updated_at = fields.DateTime(dump_only=True)

class MonitoringPointSchema(Schema):
    id = fields.Int(dump_only=True)
    name = fields.Str()
    description = fields.Str(allow_none=True)
    latitude = fields.Float()
    longitude = fields.Float()
    type = fields.Str(validate=validate.OneOf(POINT_TYPES))
    status = fields.Str(validate=validate.OneOf(POINT_STATUSES))
    installed_date = fields.Date(allow_none=True)
    created_by = fields.Int(allow_none=True)
    created_at = fields.DateTime(dump_only=True)
    updated_at = fields.DateTime(dump_only=True)

class MonitoringRecordSchema(Schema):
    id = fields.Int(dump_only=True)
    monitoring_point_id = fields.Int()
    recorded_at = fields.DateTime()

    pm25 = fields.Float(allow_none=True)
    pm10 = fields.Float(allow_none=True)
    aqi = fields.Int(allow_none=True)
    temperature = fields.Float(allow_none=True)
    humidity = fields.Float(allow_none=True)
    ph = fields.Float(allow_none=True)
    dissolved_oxygen = fields.Float(allow_none=True)
    turbidity = fields.Float(allow_none=True)
    conductivity = fields.Float(allow_none=True)

    notes = fields.Str(allow_none=True)
    created_at = fields.DateTime(dump_only=True)

class ChatSessionSchema(Schema):
    id = fields.Int(dump_only=True)
    user_id = fields.Int()
    title = fields.Str()
    created_at = fields.DateTime(dump_only=True)
    updated_at = fields.DateTime(dump_only=True)

class ChatMessageSchema(Schema):
    id = fields.Int(dump_only=True)
    session_id = fields.Int()
    role = fields.Str(validate=validate.OneOf(MESSAGE_ROLES))
    content = fields.Str()
    created_at = fields.DateTime(dump_only=True)

# ----------------- Auth -----------------

class UserRegisterSchema(RequestSchema):
    email = fields.Email(required=True)
    password = fields.Str(required=True, load_only=True, validate=validate.Length(min=6))
    full_name = fields.Str(required=True, data_key="fullName", validate=validate.Length(min=1, max=255))
    role = fields.Str(load_default="user", validate=validate.OneOf(USER_ROLES))

class UserLoginSchema(RequestSchema):
    email = fields.Email(required=True)
    password = fields.Str(required=True, load_only=True, validate=validate.Length(min=1))

class ProfileUpdateSchema(RequestSchema):
    full_name = fields.Str(data_key="fullName", validate=validate.Length(min=1, max=255))
    current_password = fields.Str(data_key="currentPassword", load_only=True, validate=validate.Length(min=1))
    new_password = fields.Str(data_key="newPassword", load_only=True, validate=validate.Length(min=6))

# ----------------- Admin -----------------

class RoleUpdateSchema(RequestSchema):
    role = fields.Str(required=True, validate=validate.OneOf(USER_ROLES))

class StatusUpdateSchema(RequestSchema):
    is_active = fields.Bool(required=True, data_key="isActive")

class RetentionQuerySchema(RequestSchema):
    older_than_days = fields.Int(required=True, data_key="olderThanDays", validate=validate.Range(min=1))

# ----------------- Monitoring points -----------------

class PointQuerySchema(RequestSchema):
    type = fields.Str(validate=validate.OneOf(POINT_TYPES))
    status = fields.Str(validate=validate.OneOf(POINT_STATUSES))

class PointDetailQuerySchema(RequestSchema):
    include_latest = fields.Bool(data_key="includeLatest", load_default=False)

class PointCreateSchema(RequestSchema):
    name = fields.Str(required=True, validate=validate.Length(min=1, max=255))
    description = fields.Str(allow_none=True)
    latitude = fields.Float(required=True, validate=validate.Range(min=-90, max=90))
    longitude = fields.Float(required=True, validate=validate.Range(min=-180, max=180))
    type = fields.Str(required=True, validate=validate.OneOf(POINT_TYPES))
    status = fields.Str(load_default="active", validate=validate.OneOf(POINT_STATUSES))
    installed_date = fields.Date(data_key="installedDate", allow_none=True)

class PointUpdateSchema(RequestSchema):
    """PUT schema: every field optional, omitted fields keep their value."""
    name = fields.Str(validate=validate.Length(min=1, max=255))
    description = fields.Str(allow_none=True)
    latitude = fields.Float(validate=validate.Range(min=-90, max=90))
    longitude = fields.Float(validate=validate.Range(min=-180, max=180))
    type = fields.Str(validate=validate.OneOf(POINT_TYPES))
    status = fields.Str(validate=validate.OneOf(POINT_STATUSES))
    installed_date = fields.Date(data_key="installedDate", allow_none=True)

# ----------------- Monitoring records -----------------

class RecordCreateSchema(RequestSchema):
    monitoring_point_id = fields.Int(required=True, strict=True, data_key="monitoringPointId")
    recorded_at = IsoDateTime(data_key="recordedAt", allow_none=True)

    pm25 = fields.Float(allow_none=True, validate=validate.Range(min=0))
    pm10 = fields.Float(allow_none=True, validate=validate.Range(min=0))
    aqi = fields.Int(allow_none=True, strict=True, validate=validate.Range(min=0))
    temperature = fields.Float(allow_none=True)
    humidity = fields.Float(allow_none=True, validate=validate.Range(min=0, max=100))
    ph = fields.Float(allow_none=True, validate=validate.Range(min=0, max=14))
    dissolved_oxygen = fields.Float(data_key="dissolvedOxygen", allow_none=True, validate=validate.Range(min=0))
    turbidity = fields.Float(allow_none=True, validate=validate.Range(min=0))
    conductivity = fields.Float(allow_none=True, validate=validate.Range(min=0))

    notes = fields.Str(allow_none=True)

class RecordQuerySchema(RequestSchema):
    monitoring_point_id = fields.Int(data_key="monitoringPointId")
    start_date = IsoDateTime(data_key="startDate")
    end_date = IsoDateTime(data_key="endDate")
    limit = fields.Int(load_default=100, validate=validate.Range(min=1, max=1000))
    offset = fields.Int(load_default=0, validate=validate.Range(min=0))

class PointStatsQuerySchema(RequestSchema):
    days = fields.Int(load_default=7, validate=validate.Range(min=1, max=365))

class TimeSeriesQuerySchema(RequestSchema):
    monitoring_point_id = fields.Int(required=True, data_key="monitoringPointId")
    parameter = fields.Str(required=True, validate=validate.OneOf(READING_FIELDS))
    start_date = IsoDateTime(required=True, data_key="startDate")
    end_date = IsoDateTime(required=True, data_key="endDate")

# ----------------- Chat -----------------

class ChatMessageCreateSchema(RequestSchema):
    session_id = fields.Int(data_key="sessionId", allow_none=True, strict=True)
    message = fields.Str(required=True, validate=validate.Length(min=1, max=2000))

class ChatSessionCreateSchema(RequestSchema):
    title = fields.Str(allow_none=True, validate=validate.Length(max=255))

class ChatSessionUpdateSchema(RequestSchema):
    title = fields.Str(required=True, validate=validate.Length(min=1, max=255))

class ChatSearchQuerySchema(RequestSchema):
    q = fields.Str(required=True, validate=validate.Length(min=2))
