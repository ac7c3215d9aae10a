import os
import tempfile

# Settings are read at import time; point them somewhere harmless first
os.environ["UPLOADS_DIR"] = tempfile.mkdtemp(prefix="campus-uploads-")
os.environ.pop("GCS_BUCKET_NAME", None)
os.environ.pop("FIREBASE_CREDENTIALS", None)

from contextlib import contextmanager  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.dependencies.services import get_report_service  # noqa: E402
from app.main import app  # noqa: E402
from app.repositories.report_repository import ReportRepository  # noqa: E402
from app.services.photo_lifecycle import PhotoLifecycleManager  # noqa: E402
from app.services.report_service import ReportService  # noqa: E402
from app.storage.cloud import CloudStorageBackend  # noqa: E402
from fakes import FakeBucket, FakeCollection, RecordingLocalBackend  # noqa: E402


@pytest.fixture
def collection():
    return FakeCollection()


@pytest.fixture
def repository(collection):
    return ReportRepository(collection, timeout=2)


@pytest.fixture
def uploads_dir(tmp_path):
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def local_backend(uploads_dir):
    return RecordingLocalBackend(uploads_dir)


@pytest.fixture
def bucket():
    return FakeBucket()


@pytest.fixture
def cloud_backend(bucket):
    return CloudStorageBackend(bucket)


@pytest.fixture
def local_service(repository, local_backend):
    return ReportService(repository, PhotoLifecycleManager(local_backend))


@pytest.fixture
def cloud_service(repository, cloud_backend, local_backend):
    return ReportService(repository, PhotoLifecycleManager(cloud_backend, legacy_backends=[local_backend]))


@pytest.fixture
def client_factory():
    """Open a TestClient whose routes use the given ReportService."""

    @contextmanager
    def make_client(service):
        app.dependency_overrides[get_report_service] = lambda: service
        try:
            with TestClient(app) as c:
                yield c
        finally:
            app.dependency_overrides.clear()

    return make_client


@pytest.fixture
def client(client_factory, local_service):
    with client_factory(local_service) as c:
        yield c


@pytest.fixture
def cloud_client(client_factory, cloud_service):
    with client_factory(cloud_service) as c:
        yield c
