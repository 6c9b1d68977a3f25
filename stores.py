# stores.py
# Data accessors. Each store is built once with a session handle (Flask-SQLAlchemy's
# scoped session in the app, any SQLAlchemy session in scripts) and wraps the
# parameterized queries the blueprints and the chat service need.

from datetime import timedelta
from typing import Optional

from sqlalchemy import and_, case, func, select, text
from sqlalchemy.orm import aliased

from models import User, MonitoringPoint, MonitoringRecord, ChatSession, ChatMessage, READING_FIELDS
from utils import utcnow

# ----------------- Helpers -----------------

def _like_pattern(value: str) -> str:
    """Substring pattern with LIKE wildcards in the user's text escaped."""
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"

def _count_where(condition):
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

def _as_float(value):
    return float(value) if value is not None else None


class BaseStore:
    def __init__(self, session):
        self.session = session

    def commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()

    def ping(self):
        self.session.execute(text("SELECT 1"))


# ----------------- Users -----------------

class UserStore(BaseStore):

    def create(self, *, email, password_hash, full_name, role="user") -> User:
        user = User(email=email, password_hash=password_hash, full_name=full_name, role=role)
        self.session.add(user)
        self.commit()
        return user

    def get(self, user_id) -> Optional[User]:
        return self.session.get(User, user_id)

    def by_email(self, email) -> Optional[User]:
        return self.session.query(User).filter(User.email == email).first()

    def all(self):
        return self.session.query(User).order_by(User.created_at.desc(), User.id.desc()).all()

    def update(self, user: User, **fields) -> User:
        for k, v in fields.items():
            if v is not None:
                setattr(user, k, v)
        self.commit()
        return user

    def delete(self, user: User):
        # Points outlive their creator
        self.session.query(MonitoringPoint).filter(MonitoringPoint.created_by == user.id) \
            .update({MonitoringPoint.created_by: None}, synchronize_session=False)
        self.session.delete(user)
        self.commit()

    def stats(self) -> dict:
        total, admins, users, active = self.session.query(
            func.count(User.id),
            _count_where(User.role == "admin"),
            _count_where(User.role == "user"),
            _count_where(User.is_active.is_(True)),
        ).one()
        return {
            "total_users": total,
            "admin_count": admins,
            "user_count": users,
            "active_count": active,
        }


# ----------------- Monitoring points -----------------

class PointStore(BaseStore):

    def create(self, **fields) -> MonitoringPoint:
        point = MonitoringPoint(**fields)
        self.session.add(point)
        self.commit()
        return point

    def get(self, point_id) -> Optional[MonitoringPoint]:
        return self.session.get(MonitoringPoint, point_id)

    def find_all(self, type: Optional[str] = None, status: Optional[str] = None):
        q = self.session.query(MonitoringPoint)
        if type:
            q = q.filter(MonitoringPoint.type == type)
        if status:
            q = q.filter(MonitoringPoint.status == status)
        return q.order_by(MonitoringPoint.created_at.desc(), MonitoringPoint.id.desc()).all()

    def update(self, point: MonitoringPoint, **fields) -> MonitoringPoint:
        """Partial update: None leaves the column unchanged."""
        for k, v in fields.items():
            if v is not None:
                setattr(point, k, v)
        self.commit()
        return point

    def delete(self, point: MonitoringPoint):
        self.session.delete(point)
        self.commit()

    def latest_record(self, point_id) -> Optional[MonitoringRecord]:
        return (
            self.session.query(MonitoringRecord)
            .filter(MonitoringRecord.monitoring_point_id == point_id)
            .order_by(MonitoringRecord.recorded_at.desc(), MonitoringRecord.id.desc())
            .first()
        )

    def stats_by_type(self):
        rows = (
            self.session.query(
                MonitoringPoint.type,
                func.count(MonitoringPoint.id),
                _count_where(MonitoringPoint.status == "active"),
                _count_where(MonitoringPoint.status == "inactive"),
                _count_where(MonitoringPoint.status == "maintenance"),
            )
            .group_by(MonitoringPoint.type)
            .order_by(MonitoringPoint.type)
            .all()
        )
        return [
            {
                "type": t,
                "count": count,
                "active_count": active,
                "inactive_count": inactive,
                "maintenance_count": maintenance,
            }
            for t, count, active, inactive, maintenance in rows
        ]


# ----------------- Monitoring records -----------------

class RecordStore(BaseStore):

    def create(self, **fields) -> MonitoringRecord:
        if fields.get("recorded_at") is None:
            fields["recorded_at"] = utcnow()
        record = MonitoringRecord(**fields)
        self.session.add(record)
        self.commit()
        return record

    def get(self, record_id) -> Optional[MonitoringRecord]:
        return self.session.get(MonitoringRecord, record_id)

    def find_all(self, *, point_id=None, start=None, end=None, limit=100, offset=0):
        """Records newest first, each paired with its point's name and type."""
        q = (
            self.session.query(MonitoringRecord, MonitoringPoint.name, MonitoringPoint.type)
            .join(MonitoringPoint, MonitoringRecord.monitoring_point_id == MonitoringPoint.id)
        )
        if point_id is not None:
            q = q.filter(MonitoringRecord.monitoring_point_id == point_id)
        if start is not None:
            q = q.filter(MonitoringRecord.recorded_at >= start)
        if end is not None:
            q = q.filter(MonitoringRecord.recorded_at <= end)
        q = q.order_by(MonitoringRecord.recorded_at.desc(), MonitoringRecord.id.desc())
        return q.limit(limit).offset(offset).all()

    def latest_for_all_points(self):
        """
        One row per active point (ordered by point id) carrying that point's most
        recent reading. Points without any record still appear, with null readings.
        """
        ranked = select(
            MonitoringRecord,
            func.row_number().over(
                partition_by=MonitoringRecord.monitoring_point_id,
                order_by=(MonitoringRecord.recorded_at.desc(), MonitoringRecord.id.desc()),
            ).label("rn"),
        ).subquery()
        latest = aliased(MonitoringRecord, ranked)

        rows = (
            self.session.query(MonitoringPoint, latest)
            .outerjoin(latest, and_(latest.monitoring_point_id == MonitoringPoint.id, ranked.c.rn == 1))
            .filter(MonitoringPoint.status == "active")
            .order_by(MonitoringPoint.id)
            .all()
        )

        result = []
        for point, record in rows:
            row = {
                "monitoring_point_id": point.id,
                "point_name": point.name,
                "point_type": point.type,
                "latitude": point.latitude,
                "longitude": point.longitude,
                "status": point.status,
                "id": record.id if record else None,
                "recorded_at": record.recorded_at if record else None,
                "notes": record.notes if record else None,
            }
            for field in READING_FIELDS:
                row[field] = getattr(record, field) if record else None
            result.append(row)
        return result

    def stats_by_point(self, point_id, days=7) -> dict:
        R = MonitoringRecord
        since = utcnow() - timedelta(days=days)
        row = self.session.query(
            func.count(R.id).label("total_records"),
            func.avg(R.pm25).label("avg_pm25"), func.max(R.pm25).label("max_pm25"), func.min(R.pm25).label("min_pm25"),
            func.avg(R.pm10).label("avg_pm10"), func.max(R.pm10).label("max_pm10"), func.min(R.pm10).label("min_pm10"),
            func.avg(R.aqi).label("avg_aqi"), func.max(R.aqi).label("max_aqi"), func.min(R.aqi).label("min_aqi"),
            func.avg(R.temperature).label("avg_temperature"),
            func.avg(R.humidity).label("avg_humidity"),
            func.avg(R.ph).label("avg_ph"),
            func.avg(R.dissolved_oxygen).label("avg_dissolved_oxygen"),
            func.avg(R.turbidity).label("avg_turbidity"),
            func.avg(R.conductivity).label("avg_conductivity"),
        ).filter(R.monitoring_point_id == point_id, R.recorded_at >= since).one()

        stats = {key: _as_float(value) for key, value in row._mapping.items()}
        stats["total_records"] = row.total_records
        return stats

    def time_series(self, *, point_id, parameter, start, end):
        if parameter not in READING_FIELDS:
            raise ValueError(f"Invalid parameter '{parameter}'")
        column = getattr(MonitoringRecord, parameter)
        rows = (
            self.session.query(MonitoringRecord.recorded_at, column)
            .filter(
                MonitoringRecord.monitoring_point_id == point_id,
                MonitoringRecord.recorded_at >= start,
                MonitoringRecord.recorded_at <= end,
                column.isnot(None),
            )
            .order_by(MonitoringRecord.recorded_at.asc())
            .all()
        )
        return [{"recorded_at": recorded_at, "value": value} for recorded_at, value in rows]

    def _latest_readings(self):
        """Subquery: each point's most recent aqi / pm25, whatever its age."""
        R = MonitoringRecord
        ranked = select(
            R.monitoring_point_id,
            R.aqi,
            R.pm25,
            func.row_number().over(
                partition_by=R.monitoring_point_id,
                order_by=(R.recorded_at.desc(), R.id.desc()),
            ).label("rn"),
        ).subquery()
        return (
            select(ranked.c.monitoring_point_id, ranked.c.aqi, ranked.c.pm25)
            .where(ranked.c.rn == 1)
            .subquery()
        )

    def dashboard_stats(self) -> dict:
        """
        Stations and record counts come from the readings of the last 24 hours.
        The AQI / PM2.5 means and the good / unhealthy counts use each reporting
        point's latest reading, weighted by how many readings that point sent
        in the window.
        """
        R = MonitoringRecord
        latest = self._latest_readings()
        since = utcnow() - timedelta(hours=24)
        stations, total, avg_aqi, avg_pm25, good, unhealthy = (
            self.session.query(
                func.count(func.distinct(R.monitoring_point_id)),
                func.count(R.id),
                func.avg(latest.c.aqi),
                func.avg(latest.c.pm25),
                _count_where(latest.c.aqi <= 50),
                _count_where(latest.c.aqi > 100),
            )
            .select_from(R)
            .outerjoin(latest, latest.c.monitoring_point_id == R.monitoring_point_id)
            .filter(R.recorded_at >= since)
            .one()
        )
        return {
            "active_stations": stations,
            "total_records": total,
            "avg_aqi": _as_float(avg_aqi),
            "avg_pm25": _as_float(avg_pm25),
            "good_air_count": good,
            "unhealthy_air_count": unhealthy,
        }

    def delete_older_than(self, days) -> int:
        cutoff = utcnow() - timedelta(days=days)
        deleted = (
            self.session.query(MonitoringRecord)
            .filter(MonitoringRecord.recorded_at < cutoff)
            .delete(synchronize_session=False)
        )
        self.commit()
        return deleted

    def table_counts(self) -> dict:
        return {
            model.__tablename__: self.session.query(func.count(model.id)).scalar()
            for model in (User, MonitoringPoint, MonitoringRecord, ChatSession, ChatMessage)
        }


# ----------------- Chat sessions & messages -----------------

class ChatStore(BaseStore):

    def create_session(self, user_id, title="New Chat") -> ChatSession:
        chat = ChatSession(user_id=user_id, title=title)
        self.session.add(chat)
        self.commit()
        return chat

    def get_session(self, session_id, user_id) -> Optional[ChatSession]:
        return (
            self.session.query(ChatSession)
            .filter(ChatSession.id == session_id, ChatSession.user_id == user_id)
            .first()
        )

    def sessions_for_user(self, user_id):
        """(session, message_count, last_message_at) tuples, most recently active first."""
        return (
            self.session.query(
                ChatSession,
                func.count(ChatMessage.id),
                func.max(ChatMessage.created_at),
            )
            .outerjoin(ChatMessage, ChatMessage.session_id == ChatSession.id)
            .filter(ChatSession.user_id == user_id)
            .group_by(ChatSession.id)
            .order_by(ChatSession.updated_at.desc(), ChatSession.id.desc())
            .all()
        )

    def update_title(self, session_id, user_id, title) -> Optional[ChatSession]:
        chat = self.get_session(session_id, user_id)
        if chat is None:
            return None
        chat.title = title
        chat.updated_at = utcnow()
        self.commit()
        return chat

    def delete_session(self, session_id, user_id) -> bool:
        chat = self.get_session(session_id, user_id)
        if chat is None:
            return False
        self.session.delete(chat)
        self.commit()
        return True

    def create_message(self, session_id, role, content) -> ChatMessage:
        message = ChatMessage(session_id=session_id, role=role, content=content)
        self.session.add(message)
        chat = self.session.get(ChatSession, session_id)
        if chat is not None:
            chat.updated_at = utcnow()
        self.commit()
        return message

    def messages(self, session_id):
        return (
            self.session.query(ChatMessage)
            .filter(ChatMessage.session_id == session_id)
            .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
            .all()
        )

    def recent_messages(self, session_id, limit=10):
        """Last ``limit`` messages in chronological order."""
        newest_first = (
            self.session.query(ChatMessage)
            .filter(ChatMessage.session_id == session_id)
            .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
            .limit(limit)
            .all()
        )
        return list(reversed(newest_first))

    def stats(self, user_id) -> dict:
        sessions, messages, user_messages, assistant_messages = (
            self.session.query(
                func.count(func.distinct(ChatSession.id)),
                func.count(ChatMessage.id),
                _count_where(ChatMessage.role == "user"),
                _count_where(ChatMessage.role == "assistant"),
            )
            .select_from(ChatSession)
            .outerjoin(ChatMessage, ChatMessage.session_id == ChatSession.id)
            .filter(ChatSession.user_id == user_id)
            .one()
        )
        return {
            "total_sessions": sessions,
            "total_messages": messages,
            "user_messages": user_messages,
            "assistant_messages": assistant_messages,
        }

    def search(self, user_id, query_text, limit=50):
        """(message, session_title) pairs whose content contains ``query_text``, newest first."""
        return (
            self.session.query(ChatMessage, ChatSession.title)
            .join(ChatSession, ChatMessage.session_id == ChatSession.id)
            .filter(ChatSession.user_id == user_id, ChatMessage.content.ilike(_like_pattern(query_text), escape="\\"))
            .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
            .limit(limit)
            .all()
        )
