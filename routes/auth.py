import secrets
from datetime import datetime, timedelta

from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.user import User
from models.password_reset_token import PasswordResetToken
from security.password import hash_password, verify_password, validate_password
from security.rbac import require_roles
from security.session import create_session, hash_token, revoke_session, revoke_all_sessions, token_from_request
from utils.audit import log_event
from utils.auth_context import login_required
from utils.payload import text_field
from utils.emailer import send_email
from utils.seed import get_role


auth_bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")

SELF_SERVICE_ROLES = ("CUSTOMER", "VENUE_OWNER")


def _is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


def user_json(user: User) -> dict:
    return {
        "id": user.id,
        "fullName": user.full_name,
        "email": user.email,
        "phoneNumber": user.phone_number,
        "roles": user.role_names,
        "isVerified": user.is_verified,
        "createdAt": user.created_at.isoformat(),
    }


@auth_bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    full_name = text_field(data, "fullName", "")
    email = text_field(data, "email", "").lower()
    password = data.get("password") or ""
    phone_number = text_field(data, "phoneNumber") or None
    role = (text_field(data, "role") or "CUSTOMER").upper()

    if not full_name:
        return jsonify(success=False, message="fullName is required"), 400
    if not _is_valid_email(email):
        return jsonify(success=False, message="Invalid email"), 400
    if role not in SELF_SERVICE_ROLES:
        return jsonify(success=False, message="Invalid role provided"), 400
    errors = validate_password(password)
    if errors:
        return jsonify(success=False, message="Password does not meet policy", error=errors), 400

    if User.query.filter_by(email=email).first():
        log_event("REGISTER_FAIL_EMAIL_EXISTS", metadata={"email": email})
        return jsonify(success=False, message="Email is already registered"), 409
    if phone_number and User.query.filter_by(phone_number=phone_number).first():
        return jsonify(success=False, message="Phone number is already registered"), 409

    user = User(
        full_name=full_name,
        email=email,
        password_hash=hash_password(password),
        phone_number=phone_number,
        is_verified=False,
    )
    db.session.add(user)
    db.session.flush()
    user.roles.append(get_role(role))
    db.session.commit()

    log_event("REGISTER_SUCCESS", user_id=user.id, metadata={"role": role})
    return jsonify(success=True, message="User registered successfully", data=user_json(user)), 201


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = text_field(data, "email", "").lower()
    password = data.get("password") or ""

    user = User.query.filter_by(email=email).first()
    if not user or not verify_password(password, user.password_hash):
        log_event("LOGIN_FAIL", user_id=user.id if user else None, metadata={"email": email})
        return jsonify(success=False, message="Invalid email or password"), 401

    raw_token = create_session(user.id)
    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "futsala_session")
    max_age = current_app.config.get("SESSION_LIFETIME_SECONDS", 8 * 60 * 60)

    resp = jsonify(
        success=True,
        message="Login successful",
        data={
            "user": user_json(user),
            "auth": {"accessToken": raw_token, "expiresIn": max_age},
        },
    )
    resp.set_cookie(
        cookie_name,
        raw_token,
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=max_age,
        path="/",
    )

    log_event("LOGIN_SUCCESS", user_id=user.id)
    return resp, 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(success=True, data=user_json(g.user)), 200


@auth_bp.post("/logout")
@login_required
def logout():
    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "futsala_session")
    revoke_session(token_from_request())
    log_event("LOGOUT", user_id=g.user.id)

    resp = jsonify(success=True, message="Logged out")
    resp.delete_cookie(cookie_name, path="/")
    return resp, 200


@auth_bp.post("/forgot-password")
def forgot_password():
    data = request.get_json(silent=True) or {}
    email = text_field(data, "email", "").lower()

    user = User.query.filter_by(email=email).first()
    if not user:
        return jsonify(success=False, message="User not found"), 404

    reset_token = secrets.token_hex(32)
    ttl = current_app.config.get("PASSWORD_RESET_TTL_SECONDS", 3600)
    db.session.add(PasswordResetToken(
        user_id=user.id,
        token_hash=hash_token(reset_token),
        expires_at=datetime.utcnow() + timedelta(seconds=ttl),
    ))
    db.session.commit()

    sent, err = send_email(
        user.email,
        "Password Reset Token",
        f"Your password reset token is: {reset_token}",
        html=f"<p>Your password reset token is:</p><b>{reset_token}</b>",
    )
    if not sent:
        log_event("PASSWORD_RESET_MAIL_FAIL", user_id=user.id, metadata={"error": err})
        return jsonify(success=False, message="Failed to send reset email"), 500

    log_event("PASSWORD_RESET_REQUESTED", user_id=user.id)
    return jsonify(success=True, message="Reset token sent to email"), 200


@auth_bp.post("/reset-password")
def reset_password():
    data = request.get_json(silent=True) or {}
    token = text_field(data, "token", "")
    new_password = data.get("password") or ""

    if not token:
        return jsonify(success=False, message="token is required"), 400

    row = PasswordResetToken.query.filter_by(token_hash=hash_token(token)).first()
    if not row or row.used_at is not None or row.expires_at <= datetime.utcnow():
        return jsonify(success=False, message="Invalid or expired reset token"), 400

    errors = validate_password(new_password)
    if errors:
        return jsonify(success=False, message="Password does not meet policy", error=errors), 400

    user = db.session.get(User, row.user_id)
    user.password_hash = hash_password(new_password)
    user.password_changed_at = datetime.utcnow()
    row.used_at = datetime.utcnow()
    db.session.commit()

    # Old sessions must not survive a reset
    revoke_all_sessions(user.id)
    log_event("PASSWORD_RESET_DONE", user_id=user.id)
    return jsonify(success=True, message="Password updated"), 200


@auth_bp.get("/users")
@require_roles("ADMIN")
def list_users():
    users = User.query.order_by(User.created_at.desc()).all()
    return jsonify(success=True, count=len(users), data=[user_json(u) for u in users]), 200
