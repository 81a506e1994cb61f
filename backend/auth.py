"""Email/password sign-in and bearer-token sessions for the data service."""
import hashlib
import hmac
import logging
import secrets
from datetime import timezone
from typing import Optional

from fastapi import Header, HTTPException
from sqlmodel import Session, select

import config
from models import AuthSession, UserProfile, utcnow

logger = logging.getLogger("name_picker.auth")

PBKDF2_ITERATIONS = 100_000


def hash_password(password: str, salt: str = None) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), PBKDF2_ITERATIONS)
    return f"{salt}${digest.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    salt, _, expected = password_hash.partition("$")
    if not expected:
        return False
    candidate = hash_password(password, salt).partition("$")[2]
    return hmac.compare_digest(candidate, expected)


def sign_in(session: Session, email: str, password: str) -> Optional[AuthSession]:
    """Return a new session for valid credentials, None otherwise."""
    profile = session.exec(
        select(UserProfile).where(UserProfile.email == email.strip().lower())
    ).first()
    if not profile or not verify_password(password, profile.password_hash):
        logger.info("Rejected sign-in for %s", email)
        return None
    auth_session = AuthSession(token=secrets.token_urlsafe(32), user_id=profile.id)
    session.add(auth_session)
    session.commit()
    session.refresh(auth_session)
    return auth_session


def sign_out(session: Session, token: str) -> None:
    auth_session = session.get(AuthSession, token)
    if auth_session:
        session.delete(auth_session)
        session.commit()


def lookup(session: Session, token: str) -> Optional[AuthSession]:
    """The live session for ``token``; expired sessions are deleted and treated as unknown."""
    if not token:
        return None
    auth_session = session.get(AuthSession, token)
    if not auth_session:
        return None
    created_at = auth_session.created_at
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    if utcnow() - created_at > config.SESSION_MAX_AGE:
        logger.info("Session for user %s expired", auth_session.user_id)
        session.delete(auth_session)
        session.commit()
        return None
    return auth_session


def bearer_token(authorization: Optional[str] = Header(default=None)) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")
    return authorization[7:].strip()


def require_api_key(apikey: Optional[str] = Header(default=None)):
    expected = config.server_api_key()
    if expected and not (apikey and hmac.compare_digest(apikey, expected)):
        raise HTTPException(status_code=401, detail="Invalid API key")
