import logging
import os

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from school_office.api import (attendance, auth, calendar, dashboard, exams, programs, schedules, slots, students,
                               subjects, teachers)
from school_office.config import settings
from school_office.database import init_db

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="School Office API")


@app.on_event("startup")
def on_startup():
    init_db()
    logger.info("School Office API ready (uploads in %s)", settings.upload_dir)


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Server Error"})


# The front-end is served from a different origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

os.makedirs(settings.upload_dir, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")

app.include_router(auth.router, prefix="/api")
app.include_router(students.router, prefix="/api")
app.include_router(teachers.router, prefix="/api")
app.include_router(programs.router, prefix="/api")
app.include_router(subjects.router, prefix="/api")
app.include_router(schedules.router, prefix="/api")
app.include_router(attendance.router, prefix="/api")
app.include_router(exams.router, prefix="/api")
app.include_router(slots.router, prefix="/api")
app.include_router(calendar.router, prefix="/api")
app.include_router(dashboard.router, prefix="/api")


@app.get("/health")
async def health_check():
    return {"status": "ok", "version": "0.1.0"}


if __name__ == "__main__":
    uvicorn.run("school_office.main:app", host=settings.host, port=settings.port, reload=True)
