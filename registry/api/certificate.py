"""
api/certificate.py
FastAPI router for certificate records, batch listings and PDF downloads.
"""
import unicodedata
from enum import Enum
from typing import Any, List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Body, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from registry.core.config import settings
from registry.core.database import get_db
from registry.core.security import get_current_user
from registry.models.certificate_model import Certificate
from registry.models.user_model import User
from registry.services import certificate_store
from registry.services.batches import (
    count_unique_training_dates,
    filter_certificates,
    find_batch,
    group_into_batches,
    paginate,
    sort_batches,
)
from registry.services.csv_service import parse_csv
from registry.services.pdf_generator import (
    batch_filename,
    certificate_filename,
    render_batch_certificates_pdf,
    render_batch_id_cards_pdf,
    render_certificate_pdf,
)
from registry.services.validation import sanitize_certificate_data, validate_certificate_data
from registry.utils.helpers import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix=f"{settings.API_PREFIX}/certificates", tags=["Certificates"])


class DocumentType(str, Enum):
    CERT = "cert"
    ID = "id"


class BatchDocumentRequest(BaseModel):
    """Select a batch either by record ids or by its training date and type."""
    ids: Optional[List[int]] = None
    training_date: Optional[str] = None
    training_type: Optional[str] = None


def _parse_id(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid certificate ID")


def _get_or_404(db: Session, raw_id: str) -> Certificate:
    certificate = certificate_store.get_certificate(db, _parse_id(raw_id))
    if certificate is None:
        raise HTTPException(status_code=404, detail="Certificate not found")
    return certificate


def _validated(payload: Any) -> dict:
    validation = validate_certificate_data(payload)
    if not validation.valid:
        raise HTTPException(
            status_code=400,
            detail={"message": "Validation failed", "errors": validation.errors},
        )
    return sanitize_certificate_data(payload)


def content_disposition(filename: str) -> str:
    """
    Attachment header safe for any filename.

    Header values must be latin-1, so the plain `filename` carries an ASCII
    rendering (accents stripped, other characters replaced with "-") and
    `filename*` carries the exact UTF-8 name.
    """
    decomposed = unicodedata.normalize("NFKD", filename)
    fallback = "".join(
        ch if ord(ch) < 128 else "-"
        for ch in decomposed
        if not unicodedata.combining(ch)
    )
    fallback = fallback.replace('"', "").replace("\\", "")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


def _pdf_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": content_disposition(filename)},
    )


# ── Records ────────────────────────────────────────────────────────────────────

@router.get("")
def list_certificates(db: Session = Depends(get_db)):
    """All certificates, newest first."""
    return [c.to_dict() for c in certificate_store.list_certificates(db)]


@router.get("/date/{date}")
def certificates_by_date(date: str, db: Session = Depends(get_db)):
    if not date.strip():
        raise HTTPException(status_code=400, detail="Date parameter is required")
    return [c.to_dict() for c in certificate_store.certificates_by_date(db, date)]


@router.post("", status_code=201)
def create_certificate(payload: Any = Body(...), db: Session = Depends(get_db)):
    data = _validated(payload)
    return certificate_store.create_certificate(db, data).to_dict()


@router.put("/{certificate_id}")
def update_certificate(certificate_id: str, payload: Any = Body(...), db: Session = Depends(get_db)):
    certificate = _get_or_404(db, certificate_id)
    data = _validated(payload)
    try:
        return certificate_store.update_certificate(db, certificate, data).to_dict()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Update of certificate {certificate_id} failed: {e}", exc_info=True)
        detail = str(e) if settings.EXPOSE_UPDATE_ERRORS else "Failed to update certificate"
        raise HTTPException(status_code=500, detail=detail)


@router.delete("/{certificate_id}")
def delete_certificate(
    certificate_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    certificate = _get_or_404(db, certificate_id)
    certificate_store.delete_certificate(db, certificate)
    logger.info(f"User {user.id} deleted certificate {certificate_id}")
    return {"message": "Certificate deleted successfully"}


@router.post("/import")
def import_certificates(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Bulk-create records from a CSV upload; each row is validated on its own."""
    if not (file.filename or "").lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="Must be a CSV file.")

    try:
        rows = parse_csv(file.file.read())
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if not rows:
        raise HTTPException(status_code=400, detail="CSV contains no rows.")

    created, failed = [], []
    for line, row in enumerate(rows, start=2):  # line 1 is the header
        validation = validate_certificate_data(row)
        if not validation.valid:
            failed.append({"row": line, "errors": validation.errors})
            continue
        created.append(certificate_store.create_certificate(db, sanitize_certificate_data(row)).to_dict())

    logger.info(f"User {user.id} imported {len(created)} certificate(s), {len(failed)} row(s) rejected")
    return {"created": created, "failed": failed}


# ── Batches ────────────────────────────────────────────────────────────────────

@router.get("/batches")
def list_batches(
    search: str = "",
    page: int = Query(1, ge=1),
    per_page: int = Query(settings.BATCHES_PER_PAGE, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """Registry view: records grouped by training date and type, oldest batch first."""
    records = [c.to_dict() for c in certificate_store.list_certificates(db)]
    batches = sort_batches(group_into_batches(filter_certificates(records, search)).values())
    listing = paginate(batches, page, per_page)
    return {
        "batches": [batch.to_dict() for batch in listing.items],
        "page": listing.page,
        "total_pages": listing.total_pages,
        "total_items": listing.total_items,
        "start_index": listing.start_index,
        "end_index": listing.end_index,
        "total_records": len(records),
        "unique_training_dates": count_unique_training_dates(records),
    }


# ── Documents ──────────────────────────────────────────────────────────────────

@router.get("/{certificate_id}/pdf")
def download_certificate(certificate_id: str, db: Session = Depends(get_db)):
    record = _get_or_404(db, certificate_id).to_dict()
    officers = certificate_store.get_system_settings(db)
    return _pdf_response(render_certificate_pdf(record, officers), certificate_filename(record))


@router.post("/batch/pdf")
def download_batch(
    body: BatchDocumentRequest,
    doc_type: DocumentType = Query(DocumentType.CERT, alias="type"),
    db: Session = Depends(get_db),
):
    """Certificates (one page each) or ID card sheets for a whole batch."""
    if body.ids is not None:
        records = [c.to_dict() for c in certificate_store.get_certificates_by_ids(db, body.ids)]
        batches = list(group_into_batches(records).values())
        display_date = batches[0].display_date if batches else "NO DATE"
    else:
        all_records = [c.to_dict() for c in certificate_store.list_certificates(db)]
        batch = find_batch(reversed(all_records), body.training_date, body.training_type)
        records = batch.certificates if batch else []
        display_date = batch.display_date if batch else "NO DATE"

    if not records:
        raise HTTPException(status_code=404, detail="Batch not found")

    officers = certificate_store.get_system_settings(db)
    if doc_type == DocumentType.ID:
        content = render_batch_id_cards_pdf(records, officers)
    else:
        content = render_batch_certificates_pdf(records, officers)
    logger.info(f"Batch {doc_type.value} PDF generated for {len(records)} record(s) ({display_date})")
    return _pdf_response(content, batch_filename(doc_type.value, display_date))
