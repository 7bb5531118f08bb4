"""Editor authentication: password check, session tokens, and FastAPI dependencies."""
import hashlib
import hmac
import os
import time

import bcrypt as _bcrypt
from fastapi import HTTPException, Request

COOKIE_SECRET = os.environ.get("COOKIE_SECRET", "")
EDITOR_PASSWORD_HASH = os.environ.get("EDITOR_PASSWORD_HASH", "")
SESSION_COOKIE = "session"
EDITOR_SUBJECT = "editor"


# ── Password hashing ──

def validate_password(password: str):
    """Validate password meets minimum requirements."""
    if len(password) < 8:
        raise ValueError("Password must be at least 8 characters")
    if len(password.encode("utf-8")) > 72:
        raise ValueError("Password is too long (max 72 bytes)")


def hash_password(password: str) -> str:
    validate_password(password)
    pw_bytes = password.encode("utf-8")
    return _bcrypt.hashpw(pw_bytes, _bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return _bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def authenticate_editor(password: str) -> bool:
    """Check a password against the configured editor hash. No hash configured means no editor."""
    if not EDITOR_PASSWORD_HASH:
        return False
    return verify_password(password, EDITOR_PASSWORD_HASH)


# ── Session tokens ──

def create_session_token(subject: str = EDITOR_SUBJECT) -> str:
    """Create an HMAC-signed session token: subject:timestamp:signature."""
    ts = str(int(time.time()))
    payload = f"{subject}:{ts}"
    sig = hmac.new(COOKIE_SECRET.encode(), payload.encode(), hashlib.sha256).hexdigest()
    return f"{payload}:{sig}"


def verify_session_token(token: str) -> str | None:
    """Verify session token. Returns the subject if valid, None otherwise."""
    if not token or not COOKIE_SECRET:
        return None
    parts = token.split(":")
    if len(parts) != 3:
        return None
    subject, ts, sig = parts
    payload = f"{subject}:{ts}"
    expected = hmac.new(COOKIE_SECRET.encode(), payload.encode(), hashlib.sha256).hexdigest()
    if not hmac.compare_digest(sig, expected):
        return None
    return subject


# ── FastAPI dependencies ──

def require_editor(request: Request) -> str:
    """FastAPI dependency: writes need a valid editor session. Raises 401 otherwise."""
    token = request.cookies.get(SESSION_COOKIE)
    subject = verify_session_token(token)
    if subject != EDITOR_SUBJECT:
        raise HTTPException(401, "Not authenticated")
    return subject


def is_editor(request: Request) -> bool:
    return verify_session_token(request.cookies.get(SESSION_COOKIE)) == EDITOR_SUBJECT
