"""Test configuration."""
import os
import tempfile
from typing import Generator

import pytest
from faker import Faker

# Set test environment before any imports
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["DATA_DIR"] = tempfile.mkdtemp(prefix="hellenika-test-")

# Import after environment setup
from sqlalchemy.orm import Session  # noqa: E402

from hellenika.config import ensure_directories  # noqa: E402
from hellenika.models.base import SessionLocal, drop_db, init_db  # noqa: E402
from hellenika.services.auth_service import AuthContext, RememberMeStore  # noqa: E402
from hellenika.services.catalog_service import CatalogService  # noqa: E402
from hellenika.services.identity_service import IdentityClient  # noqa: E402

fake = Faker()


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Set up test environment before each test."""
    ensure_directories()
    yield


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Fresh database with the seeded catalog."""
    init_db()
    db = SessionLocal()
    try:
        CatalogService(db).seed_catalog()
        yield db
    finally:
        db.close()
        drop_db()


@pytest.fixture
def remember_store(tmp_path) -> RememberMeStore:
    return RememberMeStore(tmp_path / "remember.json")


@pytest.fixture
def auth(db: Session, remember_store: RememberMeStore) -> Generator[AuthContext, None, None]:
    """Auth context with nobody signed in."""
    auth = AuthContext(IdentityClient(), remember_store)
    auth.initialize()
    yield auth
    auth.close()


def make_username() -> str:
    return f"learner_{fake.random_int(min=1000, max=9999)}"


@pytest.fixture
def user_auth(db: Session, remember_store: RememberMeStore) -> Generator[AuthContext, None, None]:
    """Auth context of a learner who has signed up and is signed in."""
    from hellenika.models.models import Profile
    from hellenika.services.auth_service import username_to_email

    username = make_username()
    client = IdentityClient()
    session = client.sign_up(username_to_email(username), fake.password(length=10))
    db.add(Profile(user_id=session.user.id, username=username))
    db.commit()

    auth = AuthContext(client, remember_store)
    auth.initialize()
    yield auth
    auth.close()
