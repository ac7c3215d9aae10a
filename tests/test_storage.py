from datetime import datetime, timezone

import pytest
import requests
from google.api_core import exceptions as gcloud_exceptions
from google.auth import exceptions as auth_exceptions

from app.errors import PhotoStorageError, StorageUnavailableError
from app.storage.base import folder_for_type, generate_filename
from app.storage.cloud import CloudStorageBackend, object_key_from_url
from app.storage.local import LocalStorageBackend
from fakes import JPEG_BYTES, FakeBucket, stored_files


@pytest.mark.parametrize(
    "report_type, folder",
    [
        ("Road", "road"),
        ("Accessible Ramp", "accessible_ramp"),
        ("Street Light", "street_light"),
        ("Other", "other"),
        ("", "other"),
        (None, "other"),
        ("Fallen tree", "other"),
        ("street light", "other"),
        ("ROAD", "other"),
    ],
)
def test_folder_for_type(report_type, folder):
    assert folder_for_type(report_type) == folder
    assert folder_for_type(report_type) == folder_for_type(report_type)


def test_generate_filename_uses_timestamp_to_the_second():
    now = datetime(2024, 3, 5, 14, 7, 9, 123456, tzinfo=timezone.utc)
    assert generate_filename("pothole.jpg", now=now) == "2024-03-05T14-07-09_pothole.jpg"


def test_generate_filename_strips_client_directories():
    now = datetime(2024, 3, 5, 14, 7, 9, tzinfo=timezone.utc)
    assert generate_filename("C:\\Users\\me\\lamp.png", now=now) == "2024-03-05T14-07-09_lamp.png"
    assert generate_filename("../../etc/passwd", now=now) == "2024-03-05T14-07-09_passwd"


def test_generate_filename_default_extension():
    now = datetime(2024, 3, 5, 14, 7, 9, tzinfo=timezone.utc)
    assert generate_filename("photo", now=now, default_ext=".jpg") == "2024-03-05T14-07-09_photo.jpg"
    assert generate_filename("photo", now=now) == "2024-03-05T14-07-09_photo"


class TestLocalStorage:
    def test_store_writes_under_type_folder(self, uploads_dir):
        backend = LocalStorageBackend(uploads_dir)
        reference = backend.store(JPEG_BYTES, "lamp.jpg", "image/jpeg", "Street Light")

        assert reference.startswith("/uploads/street_light/")
        assert reference.endswith("_lamp.jpg")
        assert backend.path_for(reference).read_bytes() == JPEG_BYTES

    def test_custom_type_goes_to_other(self, uploads_dir):
        backend = LocalStorageBackend(uploads_dir)
        reference = backend.store(JPEG_BYTES, "tree.jpg", "image/jpeg", "Fallen tree")
        assert reference.startswith("/uploads/other/")

    def test_delete_removes_file(self, uploads_dir):
        backend = LocalStorageBackend(uploads_dir)
        reference = backend.store(JPEG_BYTES, "lamp.jpg", "image/jpeg", "Road")

        outcome = backend.delete(reference)

        assert outcome.deleted and not outcome.failed
        assert stored_files(uploads_dir) == []

    def test_delete_missing_file_is_not_an_error(self, uploads_dir):
        outcome = LocalStorageBackend(uploads_dir).delete("/uploads/road/gone.jpg")
        assert not outcome.deleted
        assert not outcome.failed

    def test_refuses_paths_outside_uploads(self, uploads_dir, tmp_path):
        secret = tmp_path / "secret.txt"
        secret.write_text("keep me")
        backend = LocalStorageBackend(uploads_dir)

        outcome = backend.delete("/uploads/../secret.txt")

        assert outcome.failed
        assert secret.exists()

    def test_owns_only_upload_paths(self, uploads_dir):
        backend = LocalStorageBackend(uploads_dir)
        assert backend.owns("/uploads/road/a.jpg")
        assert not backend.owns("https://storage.googleapis.com/b/uploads/road/a.jpg")
        assert not backend.owns("")

    def test_relocate_moves_file_keeping_name(self, uploads_dir):
        backend = LocalStorageBackend(uploads_dir)
        reference = backend.store(JPEG_BYTES, "lamp.jpg", "image/jpeg", "Road")
        filename = reference.rsplit("/", 1)[1]

        new_reference = backend.relocate(reference, "Other")

        assert new_reference == f"/uploads/other/{filename}"
        assert stored_files(uploads_dir) == [f"other/{filename}"]

    def test_relocate_falls_back_to_copy(self, uploads_dir, monkeypatch):
        backend = LocalStorageBackend(uploads_dir)
        reference = backend.store(JPEG_BYTES, "lamp.jpg", "image/jpeg", "Road")
        filename = reference.rsplit("/", 1)[1]

        def cross_device(src, dst):
            raise OSError(18, "Invalid cross-device link")

        monkeypatch.setattr("app.storage.local.os.replace", cross_device)
        new_reference = backend.relocate(reference, "Accessible Ramp")

        assert new_reference == f"/uploads/accessible_ramp/{filename}"
        assert stored_files(uploads_dir) == [f"accessible_ramp/{filename}"]
        assert backend.path_for(new_reference).read_bytes() == JPEG_BYTES

    def test_relocate_raises_when_copy_fails(self, uploads_dir, monkeypatch):
        backend = LocalStorageBackend(uploads_dir)
        reference = backend.store(JPEG_BYTES, "lamp.jpg", "image/jpeg", "Road")

        def fail(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr("app.storage.local.os.replace", fail)
        monkeypatch.setattr("app.storage.local.shutil.copy2", fail)

        with pytest.raises(PhotoStorageError):
            backend.relocate(reference, "Other")
        assert backend.path_for(reference).exists()

    def test_relocate_missing_original_returns_none(self, uploads_dir):
        backend = LocalStorageBackend(uploads_dir)
        assert backend.relocate("/uploads/road/gone.jpg", "Other") is None
        assert stored_files(uploads_dir) == []

    def test_legacy_capitalised_other_folder_still_works(self, uploads_dir):
        backend = LocalStorageBackend(uploads_dir)
        legacy = uploads_dir / "Other" / "2023-01-01T00-00-00_tree.jpg"
        legacy.parent.mkdir()
        legacy.write_bytes(JPEG_BYTES)
        reference = "/uploads/Other/2023-01-01T00-00-00_tree.jpg"

        assert backend.owns(reference)
        assert backend.path_for(reference) == legacy.resolve()

        moved = backend.relocate(reference, "Road")
        assert moved == "/uploads/road/2023-01-01T00-00-00_tree.jpg"
        assert backend.delete(moved).deleted
        assert stored_files(uploads_dir) == []


class TestCloudStorage:
    def test_store_returns_signed_url(self):
        bucket = FakeBucket()
        backend = CloudStorageBackend(bucket)

        url = backend.store(JPEG_BYTES, "lamp.jpg", "image/jpeg", "Street Light")

        [key] = bucket.objects
        assert key.startswith("uploads/street_light/") and key.endswith("_lamp.jpg")
        assert bucket.objects[key] == (JPEG_BYTES, "image/jpeg")
        assert url.startswith(f"https://storage.googleapis.com/campus-uploads/{key}?")

    def test_store_falls_back_to_public_url_when_signing_fails(self):
        bucket = FakeBucket(can_sign=False)
        backend = CloudStorageBackend(bucket)

        url = backend.store(JPEG_BYTES, "lamp", "image/jpeg", "Fallen tree")

        [key] = bucket.objects
        assert key.startswith("uploads/other/") and key.endswith("_lamp.jpg")
        assert url == f"https://storage.googleapis.com/campus-uploads/{key}"

    @pytest.mark.parametrize(
        "error",
        [
            requests.exceptions.ReadTimeout("timed out"),
            requests.exceptions.ConnectionError("Connection reset by peer"),
            auth_exceptions.TransportError("metadata server unreachable"),
            gcloud_exceptions.ServiceUnavailable("backend error"),
            gcloud_exceptions.DeadlineExceeded("deadline exceeded"),
        ],
    )
    def test_store_outage_is_retryable(self, error):
        bucket = FakeBucket(upload_error=error)
        backend = CloudStorageBackend(bucket)

        with pytest.raises(StorageUnavailableError):
            backend.store(JPEG_BYTES, "lamp.jpg", "image/jpeg", "Road")
        assert bucket.objects == {}

    def test_store_rejected_upload_is_storage_error(self):
        backend = CloudStorageBackend(FakeBucket(upload_error=gcloud_exceptions.Forbidden("no write access")))

        with pytest.raises(PhotoStorageError):
            backend.store(JPEG_BYTES, "lamp.jpg", "image/jpeg", "Road")

    @pytest.mark.parametrize(
        "url, key",
        [
            (
                "https://storage.googleapis.com/campus-uploads/uploads/road/a.jpg?GoogleAccessId=x&Signature=y",
                "uploads/road/a.jpg",
            ),
            ("https://storage.googleapis.com/campus-uploads/uploads/other/my%20photo.jpg", "uploads/other/my photo.jpg"),
            (
                "https://storage.googleapis.com/download/storage/v1/b/campus-uploads/o/uploads%2Froad%2Fa.jpg?alt=media",
                "uploads/road/a.jpg",
            ),
            ("https://example.com/uploads/road/a.jpg", None),
            ("/uploads/road/a.jpg", None),
        ],
    )
    def test_object_key_from_url(self, url, key):
        assert object_key_from_url(url) == key

    def test_delete_signed_url(self):
        bucket = FakeBucket()
        backend = CloudStorageBackend(bucket)
        url = backend.store(JPEG_BYTES, "lamp.jpg", "image/jpeg", "Road")

        outcome = backend.delete(url)

        assert outcome.deleted
        assert bucket.objects == {}

    def test_delete_failures_are_reported_not_raised(self):
        backend = CloudStorageBackend(FakeBucket())

        missing = backend.delete("https://storage.googleapis.com/campus-uploads/uploads/road/gone.jpg")
        garbage = backend.delete("https://storage.googleapis.com/")

        assert not missing.deleted and not missing.failed
        assert garbage.failed

    def test_never_relocates(self):
        backend = CloudStorageBackend(FakeBucket())
        assert backend.relocate("https://storage.googleapis.com/b/uploads/road/a.jpg", "Other") is None
