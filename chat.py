# chat.py
from flask_smorest import Blueprint, abort
from flask_jwt_extended import jwt_required
from schemas import (
    ChatSessionSchema,
    ChatMessageSchema,
    ChatMessageCreateSchema,
    ChatSessionCreateSchema,
    ChatSessionUpdateSchema,
    ChatSearchQuerySchema,
)
from services import services
from utils import current_user_id

blp = Blueprint(
    "Chat",
    "chat",
    url_prefix="/api/chat",
    description="Environmental assistant conversations",
)

DEFAULT_TITLE = "New Chat"
TITLE_LENGTH = 50
HISTORY_LIMIT = 10

SESSION_SCHEMA = ChatSessionSchema()
MESSAGE_SCHEMA = ChatMessageSchema()
MESSAGES_SCHEMA = ChatMessageSchema(many=True)

def title_from_message(message: str) -> str:
    if len(message) > TITLE_LENGTH:
        return message[:TITLE_LENGTH] + "..."
    return message

def _session_or_404(session_id, user_id):
    chat = services().chats.get_session(session_id, user_id)
    if not chat:
        abort(404, message="Chat session not found")
    return chat

# ----------------- Messages -----------------

@blp.route("/message", methods=["POST"])
@jwt_required()
@blp.arguments(ChatMessageCreateSchema)
def send_message(body):
    """
    Store the user's message, answer it, and store the answer.

    Without ``sessionId`` a new "New Chat" session is opened. A session still
    carrying the default title is renamed after the message (first 50 chars).
    Every step commits on its own; there is no enclosing transaction.
    """
    svc = services()
    user_id = current_user_id()
    message = body["message"]

    if body.get("session_id") is None:
        chat = svc.chats.create_session(user_id, DEFAULT_TITLE)
    else:
        chat = _session_or_404(body["session_id"], user_id)
    session_id, title = chat.id, chat.title

    user_message = svc.chats.create_message(session_id, "user", message)
    history = svc.chats.recent_messages(session_id, HISTORY_LIMIT)

    reply = svc.chatbot.generate_response(message, history)
    assistant_message = svc.chats.create_message(session_id, "assistant", reply)

    if title == DEFAULT_TITLE:
        svc.chats.update_title(session_id, user_id, title_from_message(message))

    return {
        "sessionId": session_id,
        "userMessage": MESSAGE_SCHEMA.dump(user_message),
        "assistantMessage": MESSAGE_SCHEMA.dump(assistant_message),
    }, 200

@blp.route("/search", methods=["GET"])
@jwt_required()
@blp.arguments(ChatSearchQuerySchema, location="query")
def search_messages(args):
    """Case-insensitive substring search over the caller's own messages (newest 50)."""
    results = []
    for message, session_title in services().chats.search(current_user_id(), args["q"]):
        data = MESSAGE_SCHEMA.dump(message)
        data["session_title"] = session_title
        results.append(data)
    return {"results": results, "count": len(results)}, 200

@blp.route("/stats", methods=["GET"])
@jwt_required()
def chat_stats():
    return {"stats": services().chats.stats(current_user_id())}, 200

# ----------------- Sessions -----------------

@blp.route("/sessions", methods=["GET"])
@jwt_required()
def list_sessions():
    sessions = []
    for chat, message_count, last_message_at in services().chats.sessions_for_user(current_user_id()):
        data = SESSION_SCHEMA.dump(chat)
        data["message_count"] = message_count
        data["last_message_at"] = last_message_at.isoformat() if last_message_at else None
        sessions.append(data)
    return {"sessions": sessions, "count": len(sessions)}, 200

@blp.route("/sessions", methods=["POST"])
@jwt_required()
@blp.arguments(ChatSessionCreateSchema)
@blp.response(201, ChatSessionSchema)
def create_session(body):
    return services().chats.create_session(current_user_id(), body.get("title") or DEFAULT_TITLE)

@blp.route("/sessions/<int:session_id>/messages", methods=["GET"])
@jwt_required()
def session_messages(session_id):
    chat = _session_or_404(session_id, current_user_id())
    messages = services().chats.messages(session_id)
    return {
        "session": SESSION_SCHEMA.dump(chat),
        "messages": MESSAGES_SCHEMA.dump(messages),
        "count": len(messages),
    }, 200

@blp.route("/sessions/<int:session_id>", methods=["PUT"])
@jwt_required()
@blp.arguments(ChatSessionUpdateSchema)
@blp.response(200, ChatSessionSchema)
def rename_session(body, session_id):
    chat = services().chats.update_title(session_id, current_user_id(), body["title"])
    if not chat:
        abort(404, message="Chat session not found")
    return chat

@blp.route("/sessions/<int:session_id>", methods=["DELETE"])
@jwt_required()
def delete_session(session_id):
    if not services().chats.delete_session(session_id, current_user_id()):
        abort(404, message="Chat session not found")
    return {"message": "Chat session deleted successfully"}, 200
