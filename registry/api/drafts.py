"""
api/drafts.py
Server-side draft of the multi-row entry form.
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from registry.core.config import settings
from registry.core.database import get_db
from registry.core.security import get_current_user
from registry.models.user_model import User
from registry.services.drafts import clear_draft, count_filled, load_draft, save_draft, submit_draft

router = APIRouter(prefix=f"{settings.API_PREFIX}/drafts", tags=["Drafts"])


class DraftRows(BaseModel):
    rows: List[Dict[str, Any]]


def _view(rows: list) -> dict:
    return {"rows": rows, "filled": count_filled(rows)}


@router.get("")
def get_draft(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _view(load_draft(db, user.id))


@router.put("")
def put_draft(body: DraftRows, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _view(save_draft(db, user.id, body.rows))


@router.delete("")
def delete_draft(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _view(clear_draft(db, user.id))


@router.post("/submit")
def submit(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    try:
        result = submit_draft(db, user.id)
    except SQLAlchemyError:
        raise HTTPException(status_code=500, detail="Failed to submit draft")
    return {
        "succeeded": result.succeeded,
        "failed": result.failed,
        "errors": result.errors,
        "created": result.created,
        "draft": _view(load_draft(db, user.id)),
    }
