# app/config/settings.py
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Types with their own upload folder; anything else goes to "other"
STANDARD_TYPES = ["Road", "Accessible Ramp", "Street Light"]
# Earlier deployments wrote custom types to "Other/". New uploads use "other";
# existing "/uploads/Other/..." references keep resolving where they are.
OTHER_FOLDER = "other"

URGENCY_LEVELS = ["Low", "Medium", "High"]
DEFAULT_STATUS = "Pending"

MAX_PHOTO_BYTES = 5 * 1024 * 1024  # 5MB
UPLOADS_URL_PREFIX = "/uploads"

# Signed read URLs stay valid for ~10 years
SIGNED_URL_DAYS = 365 * 10


@dataclass(frozen=True)
class Settings:
    mongodb_uri: str = "mongodb://localhost:27017/campus_report"
    mongodb_db: str = "campus_report"
    gcs_bucket_name: Optional[str] = None
    firebase_credentials: Optional[str] = None
    uploads_dir: Path = BASE_DIR / "uploads"
    port: int = 3002
    db_timeout_seconds: float = 25.0
    storage_timeout_seconds: float = 30.0
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    campus_boundary_file: Path = BASE_DIR / "app" / "data" / "campus_boundary.geojson"

    @property
    def use_cloud_storage(self) -> bool:
        return bool(self.gcs_bucket_name)


def load_settings() -> Settings:
    origins = os.getenv("CORS_ORIGINS", "*")
    return Settings(
        mongodb_uri=os.getenv("MONGODB_URI", "mongodb://localhost:27017/campus_report"),
        mongodb_db=os.getenv("MONGODB_DB", "campus_report"),
        gcs_bucket_name=os.getenv("GCS_BUCKET_NAME") or None,
        firebase_credentials=os.getenv("FIREBASE_CREDENTIALS") or None,
        uploads_dir=Path(os.getenv("UPLOADS_DIR", str(BASE_DIR / "uploads"))),
        port=int(os.getenv("PORT", 3002)),
        db_timeout_seconds=float(os.getenv("DB_TIMEOUT_SECONDS", 25)),
        storage_timeout_seconds=float(os.getenv("STORAGE_TIMEOUT_SECONDS", 30)),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        campus_boundary_file=Path(
            os.getenv("CAMPUS_BOUNDARY_FILE", str(BASE_DIR / "app" / "data" / "campus_boundary.geojson"))
        ),
    )


settings = load_settings()
