"""
Operator session: one configured account, stateless signed tokens.

Token format: `<username>.<expires_unix>.<hex hmac-sha256>` keyed by
SESSION_SECRET. Accepted from the `token` cookie or an `Authorization: Bearer`
header.
"""
import hashlib
import hmac
import logging
import time
from typing import Optional

from fastapi import APIRouter, HTTPException, Request, Response, status

import config
from api.models import LoginRequest

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "token"

router = APIRouter()


def _sign(payload: str) -> str:
    return hmac.new(config.SESSION_SECRET.encode(), payload.encode(), hashlib.sha256).hexdigest()


def create_session_token(username: str, ttl_seconds: Optional[int] = None) -> str:
    if not config.SESSION_SECRET:
        raise config.ConfigError("SESSION_SECRET is not configured")
    ttl = config.SESSION_TTL_DAYS * 86400 if ttl_seconds is None else ttl_seconds
    payload = f"{username}.{int(time.time()) + ttl}"
    return f"{payload}.{_sign(payload)}"


def verify_session_token(token: Optional[str]) -> Optional[str]:
    """Username for a valid, unexpired token; None otherwise."""
    if not token or not config.SESSION_SECRET:
        return None
    try:
        username, expires, signature = token.rsplit(".", 2)
        expires_at = int(expires)
    except ValueError:
        return None
    if not hmac.compare_digest(_sign(f"{username}.{expires}"), signature):
        return None
    if expires_at < time.time():
        return None
    return username


def _bearer(auth_header: Optional[str]) -> Optional[str]:
    if not auth_header:
        return None
    parts = auth_header.strip().split(None, 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1].strip() or None


def require_session(request: Request) -> str:
    token = request.cookies.get(SESSION_COOKIE_NAME) or _bearer(request.headers.get("authorization"))
    username = verify_session_token(token)
    if username is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return username


def check_credentials(username: str, password: str) -> bool:
    if not config.ADMIN_PASSWORD:
        return False
    user_ok = hmac.compare_digest(username.encode(), config.ADMIN_USERNAME.encode())
    pass_ok = hmac.compare_digest(password.encode(), config.ADMIN_PASSWORD.encode())
    return user_ok and pass_ok


@router.post("/auth/login")
def login(req: LoginRequest, response: Response):
    if not check_credentials(req.username, req.password):
        logger.warning(f"Failed login for '{req.username}'")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token = create_session_token(req.username)
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=config.SESSION_TTL_DAYS * 86400,
        httponly=True,
        samesite="lax",
    )
    return {"success": True, "username": req.username, "token": token}


@router.post("/auth/logout")
def logout(response: Response):
    response.delete_cookie(SESSION_COOKIE_NAME)
    return {"success": True}
