"""Shared fixtures: in-memory database, a professor with a small catalog, API client."""

import os

os.environ.setdefault("BCRYPT_ROUNDS", "4")

from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401  (registers every table on Base.metadata)
from app.core.database import Base, get_db
from app.core.security import create_access_token, hash_password
from app.models import Course, Student, Subject, User


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; emit BEGIN ourselves
    @event.listens_for(engine.sync_engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def owner(db):
    user = User(
        name="Prof. Helena Souza",
        email="helena@example.edu",
        password_hash=hash_password("password123"),
        is_active=True,
    )
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def course(db, owner):
    course = Course(
        owner_id=owner.id,
        name="Ciência da Computação",
        code="CC",
        total_semesters=8,
        start_date=date(2020, 2, 1),
    )
    db.add(course)
    await db.commit()
    return course


@pytest_asyncio.fixture
async def subject(db, owner, course):
    subject = Subject(
        owner_id=owner.id,
        name="Cálculo I",
        code="MAT01",
        course_id=course.id,
        semester=1,
        year=2024,
    )
    db.add(subject)
    await db.commit()
    return subject


@pytest_asyncio.fixture
async def students(db, course):
    records = [
        Student(
            name="Ana Lima",
            registration_id="S1",
            course_id=course.id,
            gender="Feminino",
            ethnicity="Parda",
            average_income=Decimal("1500.00"),
        ),
        Student(
            name="Bruno Costa",
            registration_id="S2",
            course_id=course.id,
            gender="Masculino",
            ethnicity=None,
            average_income=None,
        ),
    ]
    db.add_all(records)
    await db.commit()
    return records


@pytest.fixture
def auth_headers(owner):
    token = create_access_token(owner.id, owner.email)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def client(session_factory):
    from app.main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
