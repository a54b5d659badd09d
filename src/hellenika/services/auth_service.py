"""Auth context: the signed-in user, profile and remember-me state for one client."""
import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from hellenika import monitoring
from hellenika.config import settings
from hellenika.errors import CredentialError, RateLimitError
from hellenika.forms import SignInForm, SignUpForm, parse_form
from hellenika.models.base import SessionLocal
from hellenika.models.models import Profile
from hellenika.security import RateLimiter
from hellenika.services.identity_service import (
    AuthEvent,
    AuthSession,
    AuthUser,
    IdentityClient,
    IdentityError,
)

logger = logging.getLogger(__name__)

REMEMBER_KEY = "hellenika_remember"
USERNAME_KEY = "hellenika_username"

NAME_TAKEN = "This name is already taken. Please choose another."
INVALID_CREDENTIALS = "Invalid name or password. Please try again."
PROFILE_FAILED = "Account created but profile setup failed. Please try signing in."


def username_to_email(username: str) -> str:
    """Synthetic address used as the identity provider's login."""
    return f"{username.lower().strip()}@{settings.auth.email_domain}"


class RememberMeStore:
    """Two persisted key/value pairs: the remember flag and the remembered name."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load(self) -> dict:
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read remember-me file {self.path}: {e}")
            return {}

    def remember(self, username: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps({REMEMBER_KEY: "true", USERNAME_KEY: username}),
            encoding="utf-8",
        )

    def forget(self) -> None:
        self.path.unlink(missing_ok=True)

    def remembered_username(self) -> Optional[str]:
        """The remembered name, if the remember flag is set."""
        data = self._load()
        if data.get(REMEMBER_KEY) == "true":
            return data.get(USERNAME_KEY)
        return None


class AuthContext:
    """Signed-in state threaded through the services of one client."""

    def __init__(
        self,
        client: IdentityClient,
        remember_store: RememberMeStore,
        rate_limiter: Optional[RateLimiter] = None,
        session_factory: sessionmaker = SessionLocal,
    ):
        self.client = client
        self.remember_store = remember_store
        self.rate_limiter = rate_limiter or RateLimiter()
        self.session_factory = session_factory
        self.session: Optional[AuthSession] = None
        self.user: Optional[AuthUser] = None
        self.profile: Optional[Profile] = None
        self.loading = True
        self._unsubscribe = client.on_auth_state_change(self._handle_auth_state_change)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def username(self) -> Optional[str]:
        return self.profile.username if self.profile else None

    def current_user(self) -> Optional[AuthUser]:
        return self.user

    def initialize(self) -> None:
        """Pick up an existing session."""
        session = self.client.get_session()
        self.session = session
        self.user = session.user if session else None
        if self.user:
            self._fetch_profile(self.user.id)
        self.loading = False

    def close(self) -> None:
        self._unsubscribe()

    def _handle_auth_state_change(self, event: AuthEvent, session: Optional[AuthSession]) -> None:
        logger.debug(f"Auth state changed: {event.value}")
        self.session = session
        self.user = session.user if session else None
        if self.user:
            # Deferred to the next loop turn; the provider is still inside its own call
            self._defer(self._fetch_profile, self.user.id)
        else:
            self.profile = None
        self.loading = False

    def _defer(self, callback, *args) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            callback(*args)
            return
        loop.call_soon(callback, *args)

    def _fetch_profile(self, user_id: str) -> None:
        if self.user is None or self.user.id != user_id:
            return
        db = self.session_factory()
        try:
            profile = db.query(Profile).filter(Profile.user_id == user_id).first()
            if profile:
                db.expunge(profile)
                self.profile = profile
        except SQLAlchemyError as e:
            logger.error(f"Error fetching profile for {user_id}: {e}")
        finally:
            db.close()

    def check_username_available(self, username: str) -> bool:
        db = self.session_factory()
        try:
            existing = (
                db.query(Profile.id)
                .filter(Profile.username == username.lower().strip())
                .first()
            )
            return existing is None
        except SQLAlchemyError as e:
            logger.error(f"Error checking username availability: {e}")
            return False
        finally:
            db.close()

    def _update_remember_me(self, username: str, remember_me: bool) -> None:
        if remember_me:
            self.remember_store.remember(username)
        else:
            self.remember_store.forget()

    async def sign_up(self, username: str, password: str, remember_me: bool = False) -> None:
        """Create an account and its profile.

        Raises:
            ValidationError: malformed fields.
            CredentialError: the name is taken or the profile could not be created.
        """
        form = parse_form(
            SignUpForm,
            {"username": username, "password": password, "remember_me": remember_me},
        )
        name = form.username.lower()

        if not self.check_username_available(name):
            raise CredentialError(NAME_TAKEN)

        try:
            session = self.client.sign_up(username_to_email(name), form.password)
        except IdentityError as e:
            if "already registered" in str(e):
                raise CredentialError(NAME_TAKEN) from e
            raise CredentialError(str(e)) from e

        db = self.session_factory()
        try:
            db.add(Profile(user_id=session.user.id, username=name))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Profile creation error for {session.user.id}: {e}")
            monitoring.db_errors.labels(operation_type="create_profile").inc()
            raise CredentialError(PROFILE_FAILED) from e
        finally:
            db.close()

        monitoring.sign_ups.inc()
        self._update_remember_me(name, form.remember_me)

    async def sign_in(self, username: str, password: str, remember_me: bool = False) -> None:
        """Sign in with a display name and password.

        Raises:
            ValidationError: missing fields.
            RateLimitError: too many attempts in the window; the provider is not called.
            CredentialError: unknown name or wrong password.
        """
        form = parse_form(
            SignInForm,
            {"username": username, "password": password, "remember_me": remember_me},
        )
        name = form.username.lower()

        try:
            self.rate_limiter.check()
        except RateLimitError:
            monitoring.sign_in_attempts.labels(outcome="rate_limited").inc()
            raise

        try:
            self.client.sign_in_with_password(username_to_email(name), form.password)
        except IdentityError as e:
            monitoring.sign_in_attempts.labels(outcome="rejected").inc()
            raise CredentialError(INVALID_CREDENTIALS) from e

        monitoring.sign_in_attempts.labels(outcome="success").inc()
        self._update_remember_me(name, form.remember_me)

    async def sign_out(self) -> None:
        self.remember_store.forget()
        self.client.sign_out()
        self.profile = None
