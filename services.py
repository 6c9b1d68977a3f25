# services.py
# The objects the blueprints work with, built once per app around one session handle.

from dataclasses import dataclass, field
from datetime import datetime

from flask import current_app

from chatbot import ChatService
from stores import UserStore, PointStore, RecordStore, ChatStore
from utils import utcnow

EXTENSION_KEY = "envirowatch"

@dataclass
class Services:
    users: UserStore
    points: PointStore
    records: RecordStore
    chats: ChatStore
    chatbot: ChatService
    started_at: datetime = field(default_factory=utcnow)

def build_services(session, rng=None) -> Services:
    points = PointStore(session)
    records = RecordStore(session)
    return Services(
        users=UserStore(session),
        points=points,
        records=records,
        chats=ChatStore(session),
        chatbot=ChatService(points, records, rng=rng),
    )

def services() -> Services:
    """Services of the app handling the current request."""
    return current_app.extensions[EXTENSION_KEY]
