from flask_smorest import Blueprint, abort
from werkzeug.security import generate_password_hash, check_password_hash
from flask_jwt_extended import create_access_token, jwt_required
from logger import logger
from schemas import UserSchema, UserRegisterSchema, UserLoginSchema, ProfileUpdateSchema
from services import services
from utils import current_user_claims, current_user_id

blp = Blueprint("Auth", "auth", url_prefix="/api/auth", description="Authentication endpoints")

USER_SCHEMA = UserSchema()

def issue_token(user):
    claims = {"role": user.role, "email": user.email}
    return create_access_token(identity=str(user.id), additional_claims=claims)

@blp.route("/register", methods=["POST"])
@blp.doc(security=[])
@blp.arguments(UserRegisterSchema)
def register(body):
    """Create an account. The requested role is only honoured for admin callers."""
    users = services().users
    email = body["email"].lower()
    if users.by_email(email):
        abort(409, message="User with this email already exists")
    role = body["role"] if current_user_claims().get("role") == "admin" else "user"

    user = users.create(
        email=email,
        password_hash=generate_password_hash(body["password"]),
        full_name=body["full_name"],
        role=role,
    )
    logger.info(f"Registered user {user.id} ({user.role})")
    return {"user": USER_SCHEMA.dump(user), "token": issue_token(user)}, 201

@blp.route("/login", methods=["POST"])
@blp.doc(security=[])
@blp.arguments(UserLoginSchema)
def login(body):
    user = services().users.by_email(body["email"].lower())
    if not user or not check_password_hash(user.password_hash, body["password"]):
        abort(401, message="Invalid email or password")
    if not user.is_active:
        abort(403, message="Account is deactivated. Please contact administrator.")
    return {"user": USER_SCHEMA.dump(user), "token": issue_token(user)}, 200

@blp.route("/me", methods=["GET"])
@jwt_required()
@blp.response(200, UserSchema)
def me():
    user = services().users.get(current_user_id())
    if not user:
        abort(404, message="User not found")
    return user

@blp.route("/profile", methods=["PUT"])
@jwt_required()
@blp.arguments(ProfileUpdateSchema)
@blp.response(200, UserSchema)
def update_profile(body):
    users = services().users
    user = users.get(current_user_id())
    if not user:
        abort(404, message="User not found")

    password_hash = None
    if body.get("new_password"):
        if not body.get("current_password"):
            abort(400, message="Current password is required to set new password")
        if not check_password_hash(user.password_hash, body["current_password"]):
            abort(401, message="Current password is incorrect")
        password_hash = generate_password_hash(body["new_password"])

    return users.update(user, full_name=body.get("full_name"), password_hash=password_hash)
