from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from .. import schemas
from ..dependencies import get_db

router = APIRouter(prefix="/healthcheck", tags=["Healthcheck"])


@router.get("", response_model=schemas.ApiResponse[dict])
def healthcheck(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return schemas.ApiResponse.ok({"status": "OK"}, "Service is healthy")
