from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from app.config.settings import DEFAULT_STATUS


class Report(BaseModel):
    id: str
    lat: float
    lng: float
    type: str
    time: datetime
    status: str = DEFAULT_STATUS  # Defect classification chosen in the client, e.g. "Dim lighting"
    description: str = ""
    urgency: Optional[str] = None  # "Low", "Medium", "High"
    photo: Optional[str] = None  # "/uploads/<folder>/<file>" or a cloud storage URL

    @classmethod
    def from_document(cls, document: dict) -> "Report":
        data = {k: v for k, v in document.items() if k != "_id"}
        data["id"] = str(document["_id"])
        return cls(**data)
