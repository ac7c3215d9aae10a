import base64
import json
import logging

import firebase_admin
from firebase_admin import credentials, storage

from app.config.settings import Settings

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ["type", "project_id", "private_key_id", "private_key", "client_email", "client_id"]


def initialize_firebase(settings: Settings):
    """Initialize the Firebase Admin SDK once and return the upload bucket."""
    if not firebase_admin._apps:
        try:
            if settings.firebase_credentials:
                logger.info("Decoding FIREBASE_CREDENTIALS...")
                decoded_credentials = base64.b64decode(settings.firebase_credentials).decode("utf-8")
                cred_data = json.loads(decoded_credentials)
                if not all(field in cred_data for field in REQUIRED_FIELDS):
                    raise ValueError("Incomplete or invalid Firebase credentials")
                cred = credentials.Certificate(cred_data)
            else:
                logger.info("FIREBASE_CREDENTIALS not set, using application default credentials")
                cred = credentials.ApplicationDefault()
            firebase_admin.initialize_app(cred, {"storageBucket": settings.gcs_bucket_name})
            logger.info("Firebase Admin SDK initialized")
        except Exception as e:
            logger.error(f"Error initializing Firebase Admin SDK: {str(e)}")
            raise Exception(f"Error initializing Firebase Admin SDK: {str(e)}")

    bucket = storage.bucket(settings.gcs_bucket_name)
    logger.info(f"Connected to Google Cloud Storage bucket: {bucket.name}")
    return bucket
