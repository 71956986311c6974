# inkhall/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from inkhall import models  # noqa
from inkhall.api.v1.endpoints import (
    attendance,
    auth,
    courses,
    health,
    packages,
    payments,
    statistics,
    users,
)
from inkhall.core.config import settings
from inkhall.core.exceptions import register_exception_handlers
from inkhall.core.logging_config import setup_logging
from inkhall.db.init_db import init_db

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.PROJECT_NAME)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)


@app.on_event("startup")
def on_startup():
    init_db()
    logger.info("%s started", settings.PROJECT_NAME)


api = settings.API_V1_PREFIX
app.include_router(auth.router, prefix=f"{api}/auth", tags=["auth"])
app.include_router(users.router, prefix=f"{api}/users", tags=["users"])
app.include_router(courses.router, prefix=f"{api}/courses", tags=["courses"])
app.include_router(packages.router, prefix=f"{api}/packages", tags=["packages"])
app.include_router(attendance.router, prefix=f"{api}/attendance", tags=["attendance"])
app.include_router(payments.router, prefix=f"{api}/payments", tags=["payments"])
app.include_router(statistics.router, prefix=f"{api}/statistics", tags=["statistics"])
app.include_router(health.router, prefix=f"{api}/health", tags=["health"])


@app.get("/health")
def health_check():
    return {"status": "ok", "service": settings.PROJECT_NAME}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("inkhall.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
