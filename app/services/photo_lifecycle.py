"""Keeps a report's `photo` reference consistent with the stored file.

Every decision returns a `PhotoOutcome`. Failing to write a new photo raises
`PhotoStorageError`. Best-effort steps (removing a replaced or deleted photo,
moving a photo after a type change) only log and collect their failures in
`PhotoOutcome.cleanup_errors`; the report operation still goes ahead.

Nothing that the stored record still points at is removed here. A replaced
photo is handed back as `PhotoOutcome.superseded` and only removed by
`finalize` once the new reference is saved; if saving fails, `revert` undoes
the file step so the old reference resolves again.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from app.errors import PhotoStorageError
from app.storage.base import StorageBackend, folder_for_type

logger = logging.getLogger(__name__)

# Actions reported in PhotoOutcome.action
NONE = "none"
STORED = "stored"
REPLACED = "replaced"
RELOCATED = "relocated"
UNCHANGED = "unchanged"
DELETED = "deleted"


@dataclass
class PhotoUpload:
    data: bytes
    filename: str
    content_type: str


@dataclass
class PhotoOutcome:
    photo: Optional[str]
    action: str = NONE
    # Reference and type before this decision, for `revert`
    previous: Optional[str] = None
    previous_type: Optional[str] = None
    # Old photo to remove once the record holds `photo`
    superseded: Optional[str] = None
    cleanup_errors: List[str] = field(default_factory=list)

    @property
    def cleanup_failed(self) -> bool:
        return bool(self.cleanup_errors)


class PhotoLifecycleManager:
    """Decides what happens to a report's photo on create, update and delete.

    `backend` is the active store: new photos always go there. `legacy_backends`
    are only consulted to delete or recognise references written by a store
    that is no longer active (e.g. local paths left over after a move to the
    cloud bucket).
    """

    def __init__(self, backend: StorageBackend, legacy_backends: Sequence[StorageBackend] = ()):
        self.backend = backend
        self.legacy_backends = list(legacy_backends)

    def backend_for(self, reference: Optional[str]) -> Optional[StorageBackend]:
        if not reference:
            return None
        for backend in [self.backend] + self.legacy_backends:
            if backend.owns(reference):
                return backend
        return None

    def on_create(self, report_type: Optional[str], upload: Optional[PhotoUpload]) -> PhotoOutcome:
        if upload is None:
            return PhotoOutcome(photo=None)
        reference = self.backend.store(upload.data, upload.filename, upload.content_type, report_type)
        return PhotoOutcome(photo=reference, action=STORED)

    def on_update(
        self,
        current_photo: Optional[str],
        old_type: Optional[str],
        new_type: Optional[str],
        upload: Optional[PhotoUpload] = None,
    ) -> PhotoOutcome:
        if upload is not None:
            return self._replace(current_photo, new_type, upload)

        if not current_photo:
            return PhotoOutcome(photo=current_photo)

        if old_type == new_type or folder_for_type(old_type) == folder_for_type(new_type):
            return PhotoOutcome(photo=current_photo, action=UNCHANGED)

        if not self.backend.owns(current_photo):
            # Cloud keys are never rewritten and foreign references are left alone
            return PhotoOutcome(photo=current_photo, action=UNCHANGED)

        try:
            new_reference = self.backend.relocate(current_photo, new_type)
        except PhotoStorageError as e:
            logger.error(f"Photo relocation failed, keeping {current_photo}: {e.details}")
            return PhotoOutcome(photo=current_photo, action=UNCHANGED, cleanup_errors=[e.details])
        if new_reference is None:
            return PhotoOutcome(photo=current_photo, action=UNCHANGED)
        logger.info(f"Relocated photo for type change {old_type!r} -> {new_type!r}: {new_reference}")
        return PhotoOutcome(
            photo=new_reference, action=RELOCATED, previous=current_photo, previous_type=old_type
        )

    def on_delete(self, current_photo: Optional[str]) -> PhotoOutcome:
        """Remove the photo of a report whose record is already gone."""
        if not current_photo:
            return PhotoOutcome(photo=None)
        outcome = PhotoOutcome(photo=None, action=DELETED)
        self._cleanup(current_photo, outcome)
        return outcome

    def finalize(self, outcome: PhotoOutcome) -> PhotoOutcome:
        """Remove the superseded photo once the record holds `outcome.photo`."""
        if outcome.superseded:
            self._cleanup(outcome.superseded, outcome)
            outcome.superseded = None
        return outcome

    def revert(self, outcome: PhotoOutcome) -> PhotoOutcome:
        """Undo the file step of `outcome` after the record could not be saved."""
        if outcome.action in (STORED, REPLACED) and outcome.photo:
            self._cleanup(outcome.photo, outcome)
        elif outcome.action == RELOCATED and outcome.photo != outcome.previous:
            try:
                restored = self.backend.relocate(outcome.photo, outcome.previous_type)
            except PhotoStorageError as e:
                logger.error(f"Could not move photo back to {outcome.previous}: {e.details}")
                outcome.cleanup_errors.append(e.details)
                return outcome
            if restored != outcome.previous:
                message = f"Photo {outcome.photo} moved back to {restored}, record still has {outcome.previous}"
                logger.error(message)
                outcome.cleanup_errors.append(message)
        outcome.superseded = None
        return outcome

    def _replace(self, current_photo, new_type, upload) -> PhotoOutcome:
        reference = self.backend.store(upload.data, upload.filename, upload.content_type, new_type)
        outcome = PhotoOutcome(
            photo=reference, action=REPLACED if current_photo else STORED, previous=current_photo
        )
        if (
            current_photo
            and current_photo != reference
            and self.backend.replaces_previous
            and self.backend.owns(current_photo)
        ):
            outcome.superseded = current_photo
        return outcome

    def _cleanup(self, reference: str, outcome: PhotoOutcome):
        backend = self.backend_for(reference)
        if backend is None:
            message = f"No storage backend recognises photo reference {reference}"
            logger.warning(message)
            outcome.cleanup_errors.append(message)
            return
        result = backend.delete(reference)
        if result.failed:
            logger.error(f"Could not delete photo {reference}: {result.error}")
            outcome.cleanup_errors.append(result.error)
