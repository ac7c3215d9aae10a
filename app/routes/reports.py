import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse

from app.config.settings import MAX_PHOTO_BYTES
from app.dependencies.services import get_report_service
from app.errors import ReportError, ReportValidationError
from app.schemas.report import MessageOut, ReportOut
from app.services.photo_lifecycle import PhotoUpload
from app.services.report_service import NOT_AN_IMAGE, PHOTO_TOO_LARGE, ReportService, is_image

logger = logging.getLogger(__name__)

router = APIRouter()


async def read_upload(photo: Optional[UploadFile]) -> Optional[PhotoUpload]:
    # Browsers send an empty part when no file was picked
    if photo is None or not photo.filename:
        return None
    # Never buffer more than one byte past the limit
    if not is_image(photo.content_type):
        raise ReportValidationError(NOT_AN_IMAGE)
    if photo.size is not None and photo.size > MAX_PHOTO_BYTES:
        raise ReportValidationError(PHOTO_TOO_LARGE)
    data = await photo.read(MAX_PHOTO_BYTES + 1)
    if len(data) > MAX_PHOTO_BYTES:
        raise ReportValidationError(PHOTO_TOO_LARGE)
    logger.info(f"Uploaded file: {photo.filename}, {len(data)} bytes, type: {photo.content_type}")
    return PhotoUpload(data=data, filename=photo.filename, content_type=photo.content_type or "")


def server_error(message: str, e: Exception) -> JSONResponse:
    logger.exception(f"{message}: {str(e)}")
    return JSONResponse(status_code=500, content={"error": message, "details": str(e)})


@router.get("/reports", response_model=List[ReportOut])
async def get_reports(service: ReportService = Depends(get_report_service)):
    try:
        reports = await service.list_reports()
        return [ReportOut.from_report(r) for r in reports]
    except ReportError:
        raise
    except Exception as e:
        return server_error("Error fetching reports", e)


@router.get("/reports/{report_id}", response_model=ReportOut)
async def get_report(report_id: str, service: ReportService = Depends(get_report_service)):
    try:
        return ReportOut.from_report(await service.get_report(report_id))
    except ReportError:
        raise
    except Exception as e:
        return server_error("Error fetching report", e)


@router.post("/reports", response_model=ReportOut, status_code=201)
async def create_report(
    lat: Optional[str] = Form(None),
    lng: Optional[str] = Form(None),
    type: Optional[str] = Form(None),
    time: Optional[str] = Form(None),
    status: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    urgency: Optional[str] = Form(None),
    photo: Optional[UploadFile] = File(None),
    service: ReportService = Depends(get_report_service),
):
    logger.info("Received POST request for new report")
    form = {
        "lat": lat,
        "lng": lng,
        "type": type,
        "time": time,
        "status": status,
        "description": description,
        "urgency": urgency,
    }
    try:
        upload = await read_upload(photo)
        report = await service.create_report(form, upload)
        return ReportOut.from_report(report)
    except ReportError:
        raise
    except Exception as e:
        return server_error("Error saving report", e)


@router.put("/reports/{report_id}", response_model=ReportOut)
async def update_report(
    report_id: str,
    lat: Optional[str] = Form(None),
    lng: Optional[str] = Form(None),
    type: Optional[str] = Form(None),
    time: Optional[str] = Form(None),
    status: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    urgency: Optional[str] = Form(None),
    photo: Optional[UploadFile] = File(None),
    service: ReportService = Depends(get_report_service),
):
    logger.info(f"Received PUT request for report {report_id}")
    form = {
        "lat": lat,
        "lng": lng,
        "type": type,
        "time": time,
        "status": status,
        "description": description,
        "urgency": urgency,
    }
    try:
        upload = await read_upload(photo)
        report = await service.update_report(report_id, form, upload)
        return ReportOut.from_report(report)
    except ReportError:
        raise
    except Exception as e:
        return server_error("Error updating report", e)


@router.delete("/reports/{report_id}", response_model=MessageOut)
async def delete_report(report_id: str, service: ReportService = Depends(get_report_service)):
    try:
        await service.delete_report(report_id)
        return {"message": "Report deleted successfully"}
    except ReportError:
        raise
    except Exception as e:
        return server_error("Error deleting report", e)
