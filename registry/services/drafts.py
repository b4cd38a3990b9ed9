"""
services/drafts.py
In-progress multi-row entry forms, kept per user until submitted.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from registry.models.certificate_model import CERTIFICATE_FIELDS
from registry.models.draft_model import Draft
from registry.services import certificate_store
from registry.services.validation import sanitize_certificate_data, validate_certificate_data
from registry.utils.helpers import generate_temp_id, get_logger, is_blank, utcnow

logger = get_logger(__name__)


def blank_row() -> Dict[str, Any]:
    row = {name: "" for name in CERTIFICATE_FIELDS}
    row["temp_id"] = generate_temp_id()
    return row


def _clean_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    cleaned = {name: "" if row.get(name) is None else row.get(name) for name in CERTIFICATE_FIELDS}
    cleaned["temp_id"] = row.get("temp_id") or generate_temp_id()
    return cleaned


def count_filled(rows: Sequence[Mapping[str, Any]]) -> int:
    """Rows with at least one non-blank field."""
    return sum(1 for row in rows if any(not is_blank(str(row.get(name) or "")) for name in CERTIFICATE_FIELDS))


@dataclass
class SubmitResult:
    succeeded: int = 0
    failed: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)
    created: List[Dict[str, Any]] = field(default_factory=list)


def load_draft(db: Session, user_id: int) -> List[Dict[str, Any]]:
    """Saved rows, or a single blank row when nothing usable is stored."""
    draft = db.get(Draft, user_id)
    if draft is None:
        return [blank_row()]
    if not isinstance(draft.rows, list):
        logger.error(f"Draft for user {user_id} is not a list of rows; starting over")
        return [blank_row()]
    return [_clean_row(row) for row in draft.rows if isinstance(row, Mapping)] or [blank_row()]


def _stage_rows(db: Session, user_id: int, rows: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    cleaned = [_clean_row(row) for row in rows] or [blank_row()]
    draft = db.get(Draft, user_id)
    if draft is None:
        db.add(Draft(user_id=user_id, rows=cleaned))
    else:
        draft.rows = cleaned
        draft.updated_at = utcnow()
    return cleaned


def _stage_clear(db: Session, user_id: int) -> None:
    draft = db.get(Draft, user_id)
    if draft is not None:
        db.delete(draft)


def save_draft(db: Session, user_id: int, rows: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    cleaned = _stage_rows(db, user_id, rows)
    db.commit()
    return cleaned


def clear_draft(db: Session, user_id: int) -> List[Dict[str, Any]]:
    _stage_clear(db, user_id)
    db.commit()
    logger.info(f"Draft cleared for user {user_id}")
    return [blank_row()]


def submit_draft(db: Session, user_id: int) -> SubmitResult:
    """
    Create a record for every row with a participant name.

    Rows are validated one by one, but the new records and the draft update
    commit together: after a database error nothing is saved and the draft
    is unchanged. Once at least one row is saved the draft keeps only the
    rows that failed validation, or is cleared if none did.

    Raises:
        SQLAlchemyError: After rolling the whole submit back
    """
    result = SubmitResult()
    rejected, added = [], []
    rows = [row for row in load_draft(db, user_id) if not is_blank(str(row.get("participant_name") or ""))]
    try:
        for row in rows:
            validation = validate_certificate_data(row)
            if not validation.valid:
                result.failed += 1
                result.errors.append({"temp_id": row["temp_id"], "errors": validation.errors})
                rejected.append(row)
                continue
            added.append(certificate_store.add_certificate(db, sanitize_certificate_data(row)))

        if added:
            if rejected:
                _stage_rows(db, user_id, rejected)
            else:
                _stage_clear(db, user_id)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error(f"Draft submit for user {user_id} rolled back", exc_info=True)
        raise

    result.succeeded = len(added)
    result.created = [certificate.to_dict() for certificate in added]
    logger.info(f"Draft submit for user {user_id}: {result.succeeded} saved, {result.failed} failed")
    return result
