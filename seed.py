"""
Seed the database with sample users, Malaysian monitoring points, 30 days of
3-hourly readings and one sample conversation. Runs in a single transaction and
does nothing when the admin account already exists.

    python seed.py
"""
import random
from datetime import date, datetime, timedelta, timezone

from werkzeug.security import generate_password_hash

from app import create_app, db
from logger import logger
from models import User, MonitoringPoint, MonitoringRecord, ChatSession, ChatMessage

ADMIN_EMAIL = "admin@envirowatch.com"
DAYS = 30
STEP_HOURS = 3

USERS = [
    (ADMIN_EMAIL, "Admin123!", "System Administrator", "admin"),
    ("john.doe@envirowatch.com", "User123!", "John Doe", "user"),
    ("jane.smith@envirowatch.com", "User123!", "Jane Smith", "user"),
]

POINTS = [
    ("Kuala Lumpur City Centre", "Air quality monitoring in KLCC area", 3.1578, 101.7118, "air", "active", date(2023, 1, 15)),
    ("Port Klang Marine Monitor", "Marine water quality monitoring", 3.0044, 101.3900, "marine", "active", date(2023, 2, 1)),
    ("Klang River Station 1", "River water quality - upstream", 3.0403, 101.4454, "river", "active", date(2023, 3, 10)),
    ("Klang River Station 2", "River water quality - midstream", 3.1412, 101.6869, "river", "active", date(2023, 3, 10)),
    ("Petaling Jaya Air Station", "Air quality in residential area", 3.1073, 101.6067, "air", "active", date(2023, 4, 5)),
    ("Putrajaya Lake Monitor", "Lake water quality monitoring", 2.9264, 101.6964, "marine", "active", date(2023, 5, 20)),
    ("Gombak River Station", "River water quality monitoring", 3.2599, 101.6519, "river", "maintenance", date(2023, 6, 1)),
    ("Shah Alam Air Station", "Air quality in industrial area", 3.0733, 101.5185, "air", "active", date(2023, 7, 15)),
]

SAMPLE_CONVERSATION = [
    ("user", "What is the current air quality in Kuala Lumpur?"),
    ("assistant", "Based on current monitoring data, the air quality in Kuala Lumpur is Moderate. "
                  "Sensitive groups should limit prolonged outdoor exertion."),
]


def air_reading(rng):
    return dict(
        pm25=rng.uniform(10, 60),
        pm10=rng.uniform(20, 100),
        aqi=rng.randint(20, 169),
        temperature=rng.uniform(25, 35),
        humidity=rng.uniform(60, 90),
    )


def water_reading(rng):
    return dict(
        ph=rng.uniform(6.5, 8.5),
        dissolved_oxygen=rng.uniform(5, 10),
        turbidity=rng.uniform(5, 25),
        conductivity=rng.uniform(200, 500),
        temperature=rng.uniform(26, 31),
    )


def reading_times(now):
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    for day in range(DAYS):
        for hour in range(0, 24, STEP_HOURS):
            yield day_start - timedelta(days=day) + timedelta(hours=hour)


def seed(session, rng=None):
    rng = rng or random.Random()
    if session.query(User).filter_by(email=ADMIN_EMAIL).first():
        logger.info("Database already seeded; nothing to do")
        return False

    try:
        users = [
            User(email=email, password_hash=generate_password_hash(password), full_name=name, role=role)
            for email, password, name, role in USERS
        ]
        session.add_all(users)
        session.flush()
        admin = users[0]

        points = [
            MonitoringPoint(name=name, description=desc, latitude=lat, longitude=lon, type=kind,
                            status=status, installed_date=installed, created_by=admin.id)
            for name, desc, lat, lon, kind, status, installed in POINTS
        ]
        session.add_all(points)
        session.flush()

        now = datetime.now(timezone.utc)
        for point in points:
            make_reading = air_reading if point.type == "air" else water_reading
            for recorded_at in reading_times(now):
                if recorded_at > now:
                    continue
                session.add(MonitoringRecord(monitoring_point_id=point.id, recorded_at=recorded_at,
                                             **make_reading(rng)))

        chat = ChatSession(user_id=admin.id, title="Air Quality in Kuala Lumpur")
        session.add(chat)
        session.flush()
        for role, content in SAMPLE_CONVERSATION:
            session.add(ChatMessage(session_id=chat.id, role=role, content=content))

        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Seeded {len(users)} users, {len(points)} monitoring points and one chat session")
    logger.info(f"Admin login: {ADMIN_EMAIL} / {USERS[0][1]}")
    return True


if __name__ == "__main__":
    app = create_app()
    with app.app_context():
        seed(db.session)
