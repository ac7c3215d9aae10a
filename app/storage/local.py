import logging
import os
import shutil
from pathlib import Path
from typing import Optional

from app.config.settings import OTHER_FOLDER, STANDARD_TYPES, UPLOADS_URL_PREFIX
from app.errors import PhotoStorageError
from app.storage.base import DeleteOutcome, StorageBackend, folder_for_type, generate_filename

logger = logging.getLogger(__name__)


class LocalStorageBackend(StorageBackend):
    """Photos on disk under `<uploads_dir>/<folder>/`, served at `/uploads/...`."""

    name = "local"
    replaces_previous = True

    def __init__(self, uploads_dir, url_prefix: str = UPLOADS_URL_PREFIX):
        self.uploads_dir = Path(uploads_dir).resolve()
        self.url_prefix = "/" + url_prefix.strip("/")

    def ensure_directories(self):
        folders = [folder_for_type(t) for t in STANDARD_TYPES] + [OTHER_FOLDER]
        for folder in folders:
            path = self.uploads_dir / folder
            if not path.exists():
                logger.info(f"Creating uploads directory: {path}")
            path.mkdir(parents=True, exist_ok=True)

    def reference_for(self, path: Path) -> str:
        relative = path.resolve().relative_to(self.uploads_dir).as_posix()
        return f"{self.url_prefix}/{relative}"

    def path_for(self, reference: str) -> Optional[Path]:
        """Resolve a reference to a file inside the uploads dir, or None."""
        if not self.owns(reference):
            return None
        relative = reference[len(self.url_prefix):].lstrip("/")
        if not relative:
            return None
        path = (self.uploads_dir / relative).resolve()
        if path == self.uploads_dir or self.uploads_dir not in path.parents:
            logger.warning(f"Refusing photo reference outside the uploads directory: {reference}")
            return None
        return path

    def owns(self, reference: str) -> bool:
        return bool(reference) and reference.startswith(self.url_prefix + "/")

    def store(self, data, filename, content_type, report_type):
        folder = folder_for_type(report_type)
        target_dir = self.uploads_dir / folder
        target = target_dir / generate_filename(filename)
        logger.info(f"Storing file for type {report_type!r} in directory: {folder}")
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            logger.error(f"Error writing photo {target}: {str(e)}")
            raise PhotoStorageError(f"Could not write photo to local storage: {str(e)}")
        reference = self.reference_for(target)
        logger.info(f"Saved photo path locally: {reference}")
        return reference

    def delete(self, reference):
        path = self.path_for(reference)
        if path is None:
            return DeleteOutcome(reference, deleted=False, error="Not a local upload path")
        try:
            path.unlink()
            logger.info(f"Deleted file: {path}")
            return DeleteOutcome(reference, deleted=True)
        except FileNotFoundError:
            return DeleteOutcome(reference, deleted=False)
        except OSError as e:
            logger.error(f"Error deleting file {path}: {str(e)}")
            return DeleteOutcome(reference, deleted=False, error=str(e))

    def relocate(self, reference, report_type):
        source = self.path_for(reference)
        if source is None or not source.is_file():
            logger.warning(f"Photo {reference} not found on disk, keeping reference unchanged")
            return None

        target_dir = self.uploads_dir / folder_for_type(report_type)
        target = target_dir / source.name
        if target == source:
            return reference

        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            os.replace(source, target)
            logger.info(f"Moved photo {source} -> {target}")
        except OSError as e:
            # e.g. uploads folders on different filesystems
            logger.warning(f"Move failed ({str(e)}), copying {source} -> {target} instead")
            try:
                shutil.copy2(source, target)
            except OSError as copy_error:
                raise PhotoStorageError(f"Could not relocate photo {reference}: {str(copy_error)}")
            try:
                source.unlink()
            except OSError as unlink_error:
                logger.error(f"Copied photo but could not remove original {source}: {str(unlink_error)}")
        return self.reference_for(target)
