"""
Shared fixtures: in-memory database, fake collaborators and sample inspections.
"""

import numpy as np
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.database import InspectionRepository, init_database
from src.errors import CameraUnavailable, PermissionDenied, StorageError
from src.integrations.order_lookup import placeholder_order
from src.orchestration.session import new_inspection
from src.schemas.models import StoredObject
from src.storage.remote import ObjectStorage


# ============================================================================
# DATABASE
# ============================================================================

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    assert init_database(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def repository(engine):
    factory = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    return InspectionRepository(session_factory=factory)


@pytest.fixture
def draft_dir(tmp_path):
    path = tmp_path / "drafts"
    path.mkdir()
    return path


@pytest.fixture
def temp_dir(tmp_path):
    return tmp_path


# ============================================================================
# FAKE COLLABORATORS
# ============================================================================

class FakeStorage(ObjectStorage):
    """Records uploads; fails the first `failures` attempts."""

    name = "fake"

    def __init__(self, failures: int = 0, **kwargs):
        self.sleeps = []
        kwargs.setdefault("max_retries", 3)
        kwargs.setdefault("retry_base_seconds", 1.0)
        super().__init__(sleep=self.sleeps.append, **kwargs)
        self.failures = failures
        self.attempts = 0
        self.uploads = []

    def _put(self, data, file_name, mime_type):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise ConnectionError("storage unreachable")
        self.uploads.append((file_name, mime_type, data))
        object_id = f"obj-{len(self.uploads)}"
        return StoredObject(id=object_id, view_link=f"https://storage.test/{object_id}")

    def health_check(self):
        return True, "fake"


class AlwaysFailingStorage(FakeStorage):
    def upload(self, data, file_name, mime_type):
        self.attempts += 1
        raise StorageError(details="simulated outage")


class FakeMailer:
    def __init__(self, results=None):
        self.results = results if results is not None else {"representative": True, "customer": True}
        self.report_calls = []
        self.phase_calls = []

    def send_inspection_report(self, inspection, pdf_link, language="en"):
        self.report_calls.append((inspection.order_number, pdf_link, language))
        return dict(self.results)

    def send_phase_notification(self, inspection, phase):
        self.phase_calls.append((inspection.order_number, phase))
        return True


class FakeRenderer:
    def __init__(self, error=None):
        self.calls = 0
        self.error = error

    def render(self, inspection, media):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return b"%PDF-1.4 fake report"


class FakeStream:
    def __init__(self):
        self.active = True
        self.release_count = 0

    def read_frame(self):
        return np.full((48, 64, 3), 127, dtype=np.uint8)

    @property
    def frame_size(self):
        return 64, 48

    def release(self):
        self.release_count += 1
        self.active = False


class FakeCamera:
    def __init__(self, error=None):
        self.error = error
        self.streams = []

    def open(self, prefer_rear=True, audio=False):
        if self.error is not None:
            raise self.error
        stream = FakeStream()
        self.streams.append(stream)
        return stream


class FakeRecorder:
    def __init__(self, data=b"\x00" * 1024):
        self.data = data
        self.started = False
        self.discarded = False

    def start(self, stream):
        self.started = True

    def stop(self):
        return self.data

    def discard(self):
        self.discarded = True


class FakeTimer:
    def __init__(self, callback):
        self.callback = callback
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def camera():
    return FakeCamera()


@pytest.fixture
def denied_camera():
    return FakeCamera(error=PermissionDenied())


@pytest.fixture
def missing_camera():
    return FakeCamera(error=CameraUnavailable())


# ============================================================================
# SAMPLE DATA
# ============================================================================

@pytest.fixture
def order():
    return placeholder_order("RN100200300")


@pytest.fixture
def inspection(order):
    return new_inspection(order)


@pytest.fixture
def stored_inspection(repository, inspection):
    record = repository.create_inspection(inspection.to_record_fields())
    inspection.id = record.id
    return inspection


class FakeOrderLookup:
    def __init__(self, order=None, error=None):
        self.order = order
        self.error = error
        self.calls = []

    def get_order(self, order_number):
        self.calls.append(order_number)
        if self.error is not None:
            raise self.error
        return self.order or placeholder_order(order_number)


@pytest.fixture
def order_lookup():
    return FakeOrderLookup()


@pytest.fixture
def make_storage():
    return FakeStorage


@pytest.fixture
def failing_storage():
    return AlwaysFailingStorage()


@pytest.fixture
def make_recorder():
    return FakeRecorder


@pytest.fixture
def make_renderer():
    return FakeRenderer


@pytest.fixture
def make_mailer():
    return FakeMailer


@pytest.fixture
def make_camera():
    return FakeCamera


@pytest.fixture
def make_timer():
    return FakeTimer
