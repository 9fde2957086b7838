"""Shared test fixtures.

Every test gets a throwaway SQLite database built from the ORM metadata.
Redis is never initialized, so rate limiting and dashboard caching are
bypassed.
"""

from __future__ import annotations

import itertools
import os
import tempfile
from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path

import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

TEST_PASSWORD = "SecureP4ss"
ADMIN_EMAIL = "admin@example.com"


def _ensure_test_keys() -> None:
    """Generate an RSA key pair for JWT signing and point settings at it."""
    if os.environ.get("ACADEMY_JWT_PRIVATE_KEY_PATH") and Path(os.environ["ACADEMY_JWT_PRIVATE_KEY_PATH"]).exists():
        return

    tmpdir = Path(tempfile.mkdtemp(prefix="academy_test_keys_"))
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_path = tmpdir / "jwt_private.pem"
    public_path = tmpdir / "jwt_public.pem"
    private_path.write_bytes(
        key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    public_path.write_bytes(
        key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
    )
    os.environ["ACADEMY_JWT_PRIVATE_KEY_PATH"] = str(private_path)
    os.environ["ACADEMY_JWT_PUBLIC_KEY_PATH"] = str(public_path)


_ensure_test_keys()
os.environ["ACADEMY_BOOTSTRAP_ADMIN_EMAILS"] = f'["{ADMIN_EMAIL}"]'
os.environ["ACADEMY_LOG_FORMAT"] = "console"

from academy.auth.jwt import create_access_token, reset_keys  # noqa: E402
from academy.auth.password import hash_password  # noqa: E402
from academy.config import get_settings  # noqa: E402
from academy.database import close_db, get_engine, init_db  # noqa: E402
from academy.db.base import Base  # noqa: E402
from academy.db.models import Profile, utcnow  # noqa: E402
from academy.main import create_app  # noqa: E402
from academy.redis_client import close_redis, init_redis  # noqa: E402

get_settings.cache_clear()
reset_keys()


@pytest.fixture(scope="session")
def password_hash() -> str:
    """One argon2 hash shared by every fixture-made profile."""
    return hash_password(TEST_PASSWORD)


@pytest_asyncio.fixture
async def database(tmp_path: Path) -> AsyncGenerator[None, None]:
    """Fresh SQLite database with all tables."""
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'academy.db'}")
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest_asyncio.fixture
async def client(database: None) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client bound to the app."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for service tests and assertions."""
    async with AsyncSession(get_engine(), expire_on_commit=False) as session:
        yield session


@pytest_asyncio.fixture
async def make_profile(
    db_session: AsyncSession, password_hash: str
) -> Callable[..., Awaitable[Profile]]:
    """Factory inserting a committed profile (password is TEST_PASSWORD)."""
    counter = itertools.count(1)

    async def _make(
        role: str = "student",
        name: str | None = None,
        email: str | None = None,
        unique_id: str | None = None,
        total_points: int = 0,
        phone: str | None = None,
    ) -> Profile:
        n = next(counter)
        profile = Profile(
            email=email or f"{role}{n}@example.com",
            password_hash=password_hash,
            name=name or f"{role.title()} {n}",
            role=role,
            unique_id=unique_id or (f"STU{n:05d}" if role == "student" else None),
            total_points=total_points,
            phone=phone,
            created_at=utcnow(),
        )
        db_session.add(profile)
        await db_session.commit()
        return profile

    return _make


def _auth_headers(profile: Profile) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(profile.id, profile.role)}"}


@pytest.fixture
def auth_headers() -> Callable[[Profile], dict[str, str]]:
    """Build a bearer header for a profile."""
    return _auth_headers


@pytest_asyncio.fixture
async def admin(make_profile) -> Profile:
    return await make_profile(role="admin", name="Ada Admin", email=ADMIN_EMAIL)


@pytest_asyncio.fixture
async def student(make_profile) -> Profile:
    return await make_profile(name="Sam Student", unique_id="SAM00001")


@pytest_asyncio.fixture
async def unreachable_redis() -> AsyncGenerator[None, None]:
    """Redis initialized against a port nothing listens on."""
    await init_redis("redis://127.0.0.1:1/0")
    yield
    await close_redis()
