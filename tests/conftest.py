"""Pytest fixtures and configuration for rytetime tests."""

import time
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from rytetime.cache.memory import MemoryTaskCache
from rytetime.channels.base import ChannelDispatcher
from rytetime.channels.registry import DispatcherRegistry
from rytetime.database.database import Base
from rytetime.database import models  # noqa: F401
from rytetime.database.models import UserDB
from rytetime.database.repository import TaskRepository
from rytetime.engine.notification_worker import NotificationWorker
from rytetime.engine.task_service import TaskService
from rytetime.models.task import NotificationType, Reminder, Task
from rytetime.models.user import User
from rytetime.queue.memory import MemoryNotificationQueue


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

# Fixed due instant used across tests: 2025-03-09T10:00:00Z
DUE_INSTANT = datetime(2025, 3, 9, 10, 0, tzinfo=timezone.utc)


class RecordingDispatcher(ChannelDispatcher):
    """Dispatcher that records calls instead of delivering."""

    def __init__(self, notify_type: NotificationType, result: bool = True,
                 error: Optional[Exception] = None, delay_sec: float = 0.0):
        self.notify_type = notify_type
        self.result = result
        self.error = error
        self.delay_sec = delay_sec
        self.calls: List[Tuple[str, str, Optional[str]]] = []

    def send(self, reminder: Reminder, task: Task, user: Optional[User]) -> bool:
        self.calls.append((reminder.id, task.id, user.id if user else None))
        if self.delay_sec:
            time.sleep(self.delay_sec)
        if self.error is not None:
            raise self.error
        return self.result

    @property
    def sent_reminder_ids(self) -> List[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def test_user_id():
    """Test user ID for multi-user testing."""
    return "test-user-123"


@pytest.fixture
def other_user_id():
    return "other-user-456"


@pytest.fixture(scope="function")
def db_session(test_user_id, other_user_id):
    """In-memory SQLite session, fresh per test, with two seeded users."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragmas(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    now = datetime.utcnow()
    session.add(UserDB(
        id=test_user_id,
        email="test@example.com",
        name="Test User",
        phone="+15555550100",
        push_token="device-token-1",
        timezone="America/New_York",
        created_at=now,
        updated_at=now,
    ))
    session.add(UserDB(
        id=other_user_id,
        email="other@example.com",
        name="Other User",
        created_at=now,
        updated_at=now,
    ))
    session.commit()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def task_repository(db_session: Session):
    """Create a TaskRepository instance for testing."""
    return TaskRepository(db_session)


@pytest.fixture
def memory_cache():
    return MemoryTaskCache(max_size=100)


@pytest.fixture
def memory_queue():
    return MemoryNotificationQueue()


@pytest.fixture
def task_service(db_session, memory_cache, memory_queue):
    return TaskService(db_session, memory_cache, memory_queue)


@pytest.fixture
def dispatchers():
    """One recording dispatcher per notification type."""
    return {notify_type: RecordingDispatcher(notify_type) for notify_type in NotificationType}


@pytest.fixture
def dispatcher_registry(dispatchers):
    registry = DispatcherRegistry()
    for notify_type, dispatcher in dispatchers.items():
        registry.register(notify_type, dispatcher)
    return registry


@pytest.fixture
def worker(db_session, memory_queue, dispatcher_registry, memory_cache):
    return NotificationWorker(db_session, memory_queue, dispatcher_registry, memory_cache, dispatch_timeout_sec=2)


@pytest.fixture
def sample_task_base(test_user_id):
    """Base task data for creating test tasks.

    Returns a dict with default task attributes that can be overridden.
    """
    now = datetime.now(timezone.utc)
    return {
        "id": str(uuid.uuid4()),
        "user_id": test_user_id,
        "title": "Test Task",
        "description": "Test description",
        "priority": "medium",
        "tags": [],
        "recurrence_rule": None,
        "origin_datetime": DUE_INSTANT,
        "origin_timezone": "America/New_York",
        "local_datetime": datetime(2025, 3, 9, 6, 0),
        "local_timezone": "America/New_York",
        "created_at": now,
        "updated_at": now,
    }


@pytest.fixture
def sample_task(sample_task_base):
    """Create a sample Task object for testing."""
    return Task(**sample_task_base)


@pytest.fixture
def test_user(db_session, test_user_id):
    """The seeded test user as a pydantic model."""
    return db_session.query(UserDB).filter(UserDB.id == test_user_id).first().to_pydantic()


@pytest.fixture
def test_client(db_session: Session, test_user, memory_cache, memory_queue, dispatcher_registry):
    """FastAPI test client with database, auth, cache, queue and channel dependencies overridden."""
    from rytetime.api.app import app, get_cache, get_queue, get_dispatchers
    from rytetime.database.database import get_db
    from rytetime.auth.dependencies import get_current_user

    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close the session here, let the fixture handle it

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: test_user
    app.dependency_overrides[get_cache] = lambda: memory_cache
    app.dependency_overrides[get_queue] = lambda: memory_queue
    app.dependency_overrides[get_dispatchers] = lambda: dispatcher_registry

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
