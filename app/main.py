import logging
import os
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.config.settings import UPLOADS_URL_PREFIX, settings
from app.dependencies.services import get_local_storage, get_storage_backend
from app.errors import register_error_handlers
from app.routes import campus, reports

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Campus Safety Reports",
    description="API for campus safety issue reports with photos stored on disk or in Google Cloud Storage.",
    version="1.0.0",
)


# Middleware to time each request
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} in {process_time:.2f}s")
    response.headers["X-Process-Time"] = str(process_time)
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Local photos stay reachable even after switching to cloud storage
app.mount(
    UPLOADS_URL_PREFIX,
    StaticFiles(directory=str(get_local_storage().uploads_dir)),
    name="uploads",
)

app.include_router(reports.router, tags=["Reports"])
app.include_router(campus.router, tags=["Campus"])


@app.get("/")
async def root():
    return {"message": "Campus safety report API", "storage": get_storage_backend().name}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)
