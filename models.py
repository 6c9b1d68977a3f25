from sqlalchemy import func
from db import db
from utils import utcnow

POINT_TYPES = ("air", "river", "marine")
POINT_STATUSES = ("active", "inactive", "maintenance")
USER_ROLES = ("admin", "user")
MESSAGE_ROLES = ("user", "assistant")

READING_FIELDS = ("pm25", "pm10", "aqi", "temperature", "humidity",
                  "ph", "dissolved_oxygen", "turbidity", "conductivity")

class User(db.Model):
    __tablename__ = "users"
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    full_name = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default="user")  # admin, user
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    chat_sessions = db.relationship("ChatSession", back_populates="user",
                                    cascade="all, delete-orphan")

class MonitoringPoint(db.Model):
    __tablename__ = "monitoring_points"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # Coordinates
    latitude = db.Column(db.Float, nullable=False)
    longitude = db.Column(db.Float, nullable=False)

    type = db.Column(db.String(20), nullable=False, index=True)  # air, river, marine
    status = db.Column(db.String(20), nullable=False, default="active", index=True)
    installed_date = db.Column(db.Date, nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    records = db.relationship("MonitoringRecord", back_populates="point",
                              cascade="all, delete-orphan")

class MonitoringRecord(db.Model):
    __tablename__ = "monitoring_records"
    id = db.Column(db.Integer, primary_key=True)
    monitoring_point_id = db.Column(
        db.Integer, db.ForeignKey("monitoring_points.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # When the reading was taken. Stored as UTC.
    recorded_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    # Air readings
    pm25 = db.Column(db.Float, nullable=True)
    pm10 = db.Column(db.Float, nullable=True)
    aqi = db.Column(db.Integer, nullable=True)
    humidity = db.Column(db.Float, nullable=True)

    # Shared by air and water points
    temperature = db.Column(db.Float, nullable=True)

    # Water readings (river / marine)
    ph = db.Column(db.Float, nullable=True)
    dissolved_oxygen = db.Column(db.Float, nullable=True)
    turbidity = db.Column(db.Float, nullable=True)
    conductivity = db.Column(db.Float, nullable=True)

    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())

    point = db.relationship("MonitoringPoint", back_populates="records")

class ChatSession(db.Model):
    __tablename__ = "chat_sessions"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False, default="New Chat")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    user = db.relationship("User", back_populates="chat_sessions")
    messages = db.relationship("ChatMessage", back_populates="session",
                               cascade="all, delete-orphan")

class ChatMessage(db.Model):
    __tablename__ = "chat_messages"
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey("chat_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    role = db.Column(db.String(20), nullable=False)  # user, assistant
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    session = db.relationship("ChatSession", back_populates="messages")
