import logging
import math
from datetime import datetime, timezone
from typing import List, Optional

from fastapi.concurrency import run_in_threadpool

from app.config.settings import DEFAULT_STATUS, MAX_PHOTO_BYTES, URGENCY_LEVELS
from app.errors import ReportValidationError
from app.models.report import Report
from app.repositories.report_repository import ReportRepository
from app.services.photo_lifecycle import RELOCATED, REPLACED, STORED, PhotoLifecycleManager, PhotoOutcome, PhotoUpload

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ["lat", "lng", "type", "time", "status", "description", "urgency"]


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def parse_coordinate(name: str, value) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ReportValidationError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(number):
        raise ReportValidationError(f"{name} must be a finite number")
    return number


def parse_time(value) -> datetime:
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise ReportValidationError(f"time must be an ISO-8601 timestamp, got {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_urgency(value) -> str:
    if value not in URGENCY_LEVELS:
        raise ReportValidationError(f"urgency must be one of {URGENCY_LEVELS}")
    return value


NOT_AN_IMAGE = "Only image files are allowed!"
PHOTO_TOO_LARGE = "The photo is too large. Please select an image under 5MB."


def is_image(content_type: Optional[str]) -> bool:
    return (content_type or "").startswith("image/")


def validate_photo(upload: Optional[PhotoUpload]):
    if upload is None:
        return
    if not is_image(upload.content_type):
        raise ReportValidationError(NOT_AN_IMAGE)
    if len(upload.data) > MAX_PHOTO_BYTES:
        raise ReportValidationError(PHOTO_TOO_LARGE)


class ReportService:
    """Validates report input and keeps records and stored photos in step."""

    def __init__(self, repository: ReportRepository, photos: PhotoLifecycleManager):
        self.repository = repository
        self.photos = photos

    async def list_reports(self) -> List[Report]:
        return await self.repository.list()

    async def get_report(self, report_id: str) -> Report:
        return await self.repository.get(report_id)

    def build_new_report(self, form: dict) -> dict:
        missing = [name for name in ("lat", "lng", "type", "urgency") if _blank(form.get(name))]
        if missing:
            raise ReportValidationError(f"Missing required fields: {', '.join(missing)}")

        return {
            "lat": parse_coordinate("lat", form["lat"]),
            "lng": parse_coordinate("lng", form["lng"]),
            "type": form["type"].strip(),
            "time": parse_time(form["time"]) if not _blank(form.get("time")) else datetime.now(timezone.utc),
            "status": form["status"] if not _blank(form.get("status")) else DEFAULT_STATUS,
            "description": form.get("description") or "",
            "urgency": parse_urgency(form["urgency"]),
        }

    def build_changes(self, form: dict) -> dict:
        """Fields present and non-empty in `form`, coerced. Everything else keeps its value."""
        changes = {}
        for name in EDITABLE_FIELDS:
            value = form.get(name)
            if _blank(value):
                continue
            if name in ("lat", "lng"):
                changes[name] = parse_coordinate(name, value)
            elif name == "time":
                changes[name] = parse_time(value)
            elif name == "urgency":
                changes[name] = parse_urgency(value)
            elif name == "type":
                changes[name] = value.strip()
            else:
                changes[name] = value
        return changes

    async def create_report(self, form: dict, upload: Optional[PhotoUpload] = None) -> Report:
        data = self.build_new_report(form)
        validate_photo(upload)

        outcome = await run_in_threadpool(self.photos.on_create, data["type"], upload)
        data["photo"] = outcome.photo
        try:
            return await self.repository.create(data)
        except Exception:
            await self._revert_photo(outcome, "new report")
            raise

    async def update_report(self, report_id: str, form: dict, upload: Optional[PhotoUpload] = None) -> Report:
        changes = self.build_changes(form)
        validate_photo(upload)

        existing = await self.repository.get(report_id)
        new_type = changes.get("type", existing.type)

        outcome = await run_in_threadpool(self.photos.on_update, existing.photo, existing.type, new_type, upload)
        if outcome.photo != existing.photo:
            changes["photo"] = outcome.photo

        logger.info(f"Updating report {report_id} with: {changes}")
        try:
            report = await self.repository.update(report_id, changes)
        except Exception:
            await self._revert_photo(outcome, f"report {report_id}")
            raise

        await run_in_threadpool(self.photos.finalize, outcome)
        if outcome.cleanup_failed:
            logger.warning(f"Report {report_id} updated with photo cleanup errors: {outcome.cleanup_errors}")
        return report

    async def delete_report(self, report_id: str):
        report = await self.repository.get(report_id)
        await self.repository.delete(report_id)
        outcome = await run_in_threadpool(self.photos.on_delete, report.photo)
        if outcome.cleanup_failed:
            logger.warning(f"Photo for report {report_id} could not be removed: {outcome.cleanup_errors}")
        return outcome

    async def _revert_photo(self, outcome: PhotoOutcome, label: str):
        if outcome.action not in (STORED, REPLACED, RELOCATED):
            return
        logger.warning(f"Saving {label} failed, undoing photo {outcome.action}: {outcome.photo}")
        await run_in_threadpool(self.photos.revert, outcome)
        if outcome.cleanup_failed:
            logger.error(f"Photo for {label} could not be restored: {outcome.cleanup_errors}")
