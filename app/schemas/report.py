from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.report import Report


class ReportOut(BaseModel):
    # The map client keys reports on "_id"
    id: str = Field(alias="_id")
    lat: float
    lng: float
    type: str
    time: datetime
    status: str
    description: str = ""
    urgency: Optional[str] = None
    photo: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_report(cls, report: Report) -> "ReportOut":
        return cls.model_validate({"_id": report.id, **report.model_dump(exclude={"id"})})


class MessageOut(BaseModel):
    message: str
