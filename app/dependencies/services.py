import logging
from functools import lru_cache

from app.config.database import reports_collection
from app.config.firebase_init import initialize_firebase
from app.config.settings import settings
from app.repositories.report_repository import ReportRepository
from app.services.photo_lifecycle import PhotoLifecycleManager
from app.services.report_service import ReportService
from app.storage.base import StorageBackend
from app.storage.cloud import CloudStorageBackend
from app.storage.local import LocalStorageBackend
from app.utils.geo import CampusBoundary

logger = logging.getLogger(__name__)


@lru_cache
def get_local_storage() -> LocalStorageBackend:
    backend = LocalStorageBackend(settings.uploads_dir)
    backend.ensure_directories()
    return backend


@lru_cache
def get_storage_backend() -> StorageBackend:
    if settings.use_cloud_storage:
        bucket = initialize_firebase(settings)
        logger.info(f"Photo storage: Google Cloud Storage bucket {settings.gcs_bucket_name}")
        return CloudStorageBackend(bucket, timeout=settings.storage_timeout_seconds)
    logger.info(f"Photo storage: local directory {settings.uploads_dir}")
    return get_local_storage()


@lru_cache
def get_photo_manager() -> PhotoLifecycleManager:
    backend = get_storage_backend()
    # Local photos from before a switch to the bucket can still be deleted
    legacy = [get_local_storage()] if backend.name != "local" else []
    return PhotoLifecycleManager(backend, legacy_backends=legacy)


def get_report_repository() -> ReportRepository:
    return ReportRepository(reports_collection, timeout=settings.db_timeout_seconds)


def get_report_service() -> ReportService:
    return ReportService(get_report_repository(), get_photo_manager())


@lru_cache
def get_campus_boundary() -> CampusBoundary:
    return CampusBoundary.from_file(settings.campus_boundary_file)
