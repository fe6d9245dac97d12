# tests/conftest.py
import asyncio
import os
import sys
import tempfile
import uuid

# Settings are read at import time, so the environment must be in place first.
os.environ["SECRET_KEY"] = "test-secret-key-for-rollcall-with-enough-bytes"
os.environ["ALGORITHM"] = "HS256"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["RATE_LIMITER_REDIS_URL"] = "memory://"
os.environ["APPLY_SCHEMA_ON_STARTUP"] = "false"
os.environ["LOG_DIR"] = os.path.join(tempfile.gettempdir(), "rollcall-test-logs")

import pytest
import pytest_asyncio

from app.rollcall.models.db_models import Principal, ROLE_DOCTOR, ROLE_STUDENT
from tests.fakes import InMemoryStore

# asyncpg needs the selector loop on Windows.
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


@pytest.fixture
def doctor() -> Principal:
    """The instructor who owns the test course."""
    return Principal(id=uuid.uuid4(), role=ROLE_DOCTOR)

@pytest.fixture
def other_doctor() -> Principal:
    """An instructor with no rights over the test course."""
    return Principal(id=uuid.uuid4(), role=ROLE_DOCTOR)

@pytest.fixture
def student() -> Principal:
    return Principal(id=uuid.uuid4(), role=ROLE_STUDENT)

@pytest.fixture
def outsider_student() -> Principal:
    """A student who is not enrolled in the test course."""
    return Principal(id=uuid.uuid4(), role=ROLE_STUDENT)

@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()

@pytest_asyncio.fixture
async def course(store, doctor, student):
    """A course owned by `doctor` with `student` enrolled."""
    course = await store.add_course(doctor.id, "Distributed Systems")
    await store.add_enrollments(course.id, [student.id])
    return course
