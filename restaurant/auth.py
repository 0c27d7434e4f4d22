"""Staff login: bcrypt password hashes and a signed, expiring session cookie."""
from __future__ import annotations
import bcrypt
from itsdangerous import URLSafeTimedSerializer, BadSignature
from fastapi import Request, Response
from sqlmodel import Session, select

from .config import SECRET_KEY
from .models import User

serializer = URLSafeTimedSerializer(SECRET_KEY, salt="staff-session")

COOKIE_NAME = "restaurant_staff"
# one service day; the token is rejected after this even if the browser keeps the cookie
SESSION_MAX_AGE = 60 * 60 * 12

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")

def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))

def authenticate(session: Session, username: str, password: str) -> User | None:
    user = session.exec(select(User).where(User.username == username.strip().lower())).first()
    if not user or not verify_password(password, user.password_hash):
        return None
    return user

def set_login_cookie(response: Response, user: User) -> None:
    token = serializer.dumps({"uid": user.id})
    response.set_cookie(
        COOKIE_NAME,
        token,
        httponly=True,
        samesite="lax",
        secure=False,  # set True behind HTTPS
        max_age=SESSION_MAX_AGE,
    )

def clear_login_cookie(response: Response) -> None:
    response.delete_cookie(COOKIE_NAME)

def get_user_id_from_request(request: Request) -> int | None:
    token = request.cookies.get(COOKIE_NAME)
    if not token:
        return None
    try:
        # SignatureExpired is a BadSignature
        data = serializer.loads(token, max_age=SESSION_MAX_AGE)
        return int(data["uid"])
    except (BadSignature, KeyError, TypeError, ValueError):
        return None
