"""
api/settings.py
Signatory settings printed on certificates and ID cards.
"""
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from registry.core.config import settings
from registry.core.database import get_db
from registry.core.security import get_current_user
from registry.models.settings_model import SystemSettings, parse_settings_payload
from registry.models.user_model import User
from registry.services import certificate_store
from registry.services.signature_service import crop_signature
from registry.utils.helpers import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix=f"{settings.API_PREFIX}/settings", tags=["Settings"])


@router.get("")
def get_settings(db: Session = Depends(get_db)):
    return certificate_store.get_settings(db)


@router.post("")
def update_settings(
    payload: Any = Body(...),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        new_settings = parse_settings_payload(payload)
    except ValueError as e:
        # SettingsKeyError lands here too; its message lists the offending keys
        raise HTTPException(status_code=400, detail=str(e))

    try:
        certificate_store.save_settings(db, new_settings)
    except SQLAlchemyError:
        raise HTTPException(status_code=500, detail="Failed to update system settings")

    logger.info(f"User {user.id} updated system settings")
    return {"message": "System settings updated successfully"}


@router.post("/signature")
def upload_signature(
    file: UploadFile = File(...),
    x: Optional[float] = Form(None),
    y: Optional[float] = Form(None),
    width: Optional[float] = Form(None),
    height: Optional[float] = Form(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """
    Crop an uploaded signature scan to the 3:1 card slot and store it as off1_sig.

    The crop box is optional; without one the centre of the image is used.
    """
    box = (x, y, width, height)
    if any(v is None for v in box) and any(v is not None for v in box):
        raise HTTPException(status_code=400, detail="Crop area needs x, y, width and height together.")

    try:
        data_url = crop_signature(file.file.read(), None if box[0] is None else box)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        certificate_store.save_settings(db, SystemSettings(off1_sig=data_url))
    except SQLAlchemyError:
        raise HTTPException(status_code=500, detail="Failed to update system settings")

    logger.info(f"User {user.id} replaced the officer signature")
    return {"off1_sig": data_url}
