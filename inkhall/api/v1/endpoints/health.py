# inkhall/api/v1/endpoints/health.py
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from inkhall.db.session import get_db

router = APIRouter()


@router.get("/live")
def liveness_probe():
    return {"status": "ok"}


@router.get("/db")
def db_health(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"status": "ok"}
