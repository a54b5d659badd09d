"""Identity provider: accounts, password checks, tokens and auth-state events."""
import logging
import secrets
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from werkzeug.security import check_password_hash, generate_password_hash

from hellenika.models.base import SessionLocal
from hellenika.models.models import AuthToken, User

logger = logging.getLogger(__name__)


class AuthEvent(Enum):
    """Auth-state change notifications."""
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"


class IdentityError(Exception):
    """Error reported by the identity provider."""


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: str


@dataclass(frozen=True)
class AuthSession:
    token: str
    user: AuthUser


AuthListener = Callable[[AuthEvent, Optional[AuthSession]], None]


class IdentityClient:
    """Per-client view of the identity provider.

    Holds the client's current token and its auth-state listeners; accounts
    and tokens live in the database and are shared by every client.
    """

    def __init__(self, session_factory: sessionmaker = SessionLocal, token: Optional[str] = None):
        self.session_factory = session_factory
        self.token = token
        self._listeners: List[AuthListener] = []

    def on_auth_state_change(self, callback: AuthListener) -> Callable[[], None]:
        """Subscribe to auth-state changes. Returns the unsubscribe function."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self, event: AuthEvent, session: Optional[AuthSession]) -> None:
        for listener in list(self._listeners):
            listener(event, session)

    def _issue_token(self, db: Session, user: User) -> AuthSession:
        token = secrets.token_urlsafe(32)
        db.add(AuthToken(token=token, user_id=user.id))
        db.commit()
        self.token = token
        return AuthSession(token=token, user=AuthUser(id=user.id, email=user.email))

    def get_session(self) -> Optional[AuthSession]:
        """The session for the current token, if it is still valid."""
        if not self.token:
            return None
        db = self.session_factory()
        try:
            record = db.query(AuthToken).filter(AuthToken.token == self.token).first()
            if not record:
                self.token = None
                return None
            return AuthSession(
                token=record.token,
                user=AuthUser(id=record.user.id, email=record.user.email),
            )
        finally:
            db.close()

    def get_user(self) -> Optional[AuthUser]:
        session = self.get_session()
        return session.user if session else None

    def sign_up(self, email: str, password: str) -> AuthSession:
        """Create an account and sign it in."""
        db = self.session_factory()
        try:
            if db.query(User).filter(User.email == email).first():
                raise IdentityError("User already registered")
            user = User(email=email, password_hash=generate_password_hash(password))
            db.add(user)
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                raise IdentityError("User already registered") from e
            db.refresh(user)
            session = self._issue_token(db, user)
            logger.info(f"Account {user.id} created")
        finally:
            db.close()

        self._notify(AuthEvent.SIGNED_IN, session)
        return session

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        """Check the password and issue a new token."""
        db = self.session_factory()
        try:
            user = db.query(User).filter(User.email == email).first()
            if not user or not check_password_hash(user.password_hash, password):
                raise IdentityError("Invalid login credentials")
            session = self._issue_token(db, user)
            logger.info(f"Account {user.id} signed in")
        finally:
            db.close()

        self._notify(AuthEvent.SIGNED_IN, session)
        return session

    def sign_out(self) -> None:
        """Revoke the current token."""
        if self.token:
            db = self.session_factory()
            try:
                db.query(AuthToken).filter(AuthToken.token == self.token).delete()
                db.commit()
            finally:
                db.close()
        self.token = None
        self._notify(AuthEvent.SIGNED_OUT, None)
