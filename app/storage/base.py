import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from app.config.settings import OTHER_FOLDER, STANDARD_TYPES


def folder_for_type(report_type: Optional[str]) -> str:
    """Map a report type to the folder its photo lives in.

    The match is case-sensitive: "Street Light" -> "street_light", while
    "street light", "" or any custom text -> "other".
    """
    if report_type in STANDARD_TYPES:
        return report_type.lower().replace(" ", "_")
    return OTHER_FOLDER


def generate_filename(original_filename: str, now: Optional[datetime] = None, default_ext: str = "") -> str:
    """`<UTC timestamp to the second, colons as dashes>_<base name><ext>`.

    Two uploads with the same name in the same second get the same filename.
    """
    now = now or datetime.now(timezone.utc)
    date_str = now.strftime("%Y-%m-%dT%H-%M-%S")
    # Browsers may send a full client path; keep only the last component
    name = os.path.basename((original_filename or "").replace("\\", "/"))
    base, ext = os.path.splitext(name)
    return f"{date_str}_{base}{ext or default_ext}"


@dataclass
class DeleteOutcome:
    reference: str
    deleted: bool
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class StorageBackend(ABC):
    """A place photos can be written to and removed from."""

    name = "base"
    # Whether storing a replacement should remove the previous photo
    replaces_previous = False

    @abstractmethod
    def store(self, data: bytes, filename: str, content_type: str, report_type: Optional[str]) -> str:
        """Write the photo and return the reference persisted on the report."""

    @abstractmethod
    def delete(self, reference: str) -> DeleteOutcome:
        """Best-effort removal. Never raises."""

    @abstractmethod
    def owns(self, reference: str) -> bool:
        """Whether a reference has this backend's shape."""

    def relocate(self, reference: str, report_type: Optional[str]) -> Optional[str]:
        """Move a stored photo to the folder of `report_type`.

        Returns the new reference, or None when the backend does not move
        photos or the original is gone.
        """
        return None
