"""
services/certificate_store.py
Persistence for certificate records and system settings.
"""
from datetime import date
from typing import Dict, List, Optional, Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from registry.models.certificate_model import Certificate
from registry.models.settings_model import SystemSetting, SystemSettings
from registry.utils.helpers import get_logger, utcnow

logger = get_logger(__name__)


# ── Certificates ──────────────────────────────────────────────────────────────

def list_certificates(db: Session) -> List[Certificate]:
    """All records, newest first."""
    return list(db.scalars(select(Certificate).order_by(Certificate.id.desc())))


def _parse_iso_date(value: str) -> Optional[date]:
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def certificates_by_date(db: Session, value: str) -> List[Certificate]:
    """
    Records whose training_date contains `value`, plus, when `value` is an
    ISO date, records created on that calendar day. Oldest first.
    """
    value = value.strip()
    conditions = [Certificate.training_date.like(f"%{value}%")]
    created_on = _parse_iso_date(value)
    if created_on is not None:
        conditions.append(func.date(Certificate.created_at) == created_on)
    stmt = select(Certificate).where(or_(*conditions)).order_by(Certificate.id.asc())
    return list(db.scalars(stmt))


def get_certificate(db: Session, certificate_id: int) -> Optional[Certificate]:
    return db.get(Certificate, certificate_id)


def get_certificates_by_ids(db: Session, ids: Sequence[int]) -> List[Certificate]:
    if not ids:
        return []
    stmt = select(Certificate).where(Certificate.id.in_(ids)).order_by(Certificate.id.asc())
    return list(db.scalars(stmt))


def add_certificate(db: Session, data: dict) -> Certificate:
    """Stage a sanitized record in the current transaction; the caller commits."""
    certificate = Certificate()
    certificate.apply(data)
    db.add(certificate)
    db.flush()
    return certificate


def create_certificate(db: Session, data: dict) -> Certificate:
    """Insert a sanitized record and return it with its server-assigned fields."""
    certificate = add_certificate(db, data)
    db.commit()
    db.refresh(certificate)
    logger.info(f"Certificate {certificate.id} created for '{certificate.participant_name}'")
    return certificate


def update_certificate(db: Session, certificate: Certificate, data: dict) -> Certificate:
    certificate.apply(data)
    certificate.updated_at = utcnow()
    db.commit()
    db.refresh(certificate)
    logger.info(f"Certificate {certificate.id} updated")
    return certificate


def delete_certificate(db: Session, certificate: Certificate) -> None:
    certificate_id = certificate.id
    db.delete(certificate)
    db.commit()
    logger.info(f"Certificate {certificate_id} deleted")


# ── System settings ───────────────────────────────────────────────────────────

def get_settings(db: Session) -> Dict[str, str]:
    """Stored officer settings (keys prefixed 'off') as a flat mapping."""
    rows = db.scalars(select(SystemSetting).where(SystemSetting.setting_key.like("off%")))
    return {row.setting_key: row.setting_value for row in rows}


def get_system_settings(db: Session) -> SystemSettings:
    stored = get_settings(db)
    return SystemSettings(**{key: value for key, value in stored.items() if key in SystemSettings.model_fields})


def save_settings(db: Session, new_settings: SystemSettings) -> None:
    """
    Upsert every field that was explicitly provided, all or nothing.

    Raises:
        SQLAlchemyError: After rolling the whole update back
    """
    values = new_settings.model_dump(exclude_unset=True)
    try:
        for key, value in values.items():
            row = db.get(SystemSetting, key)
            if row is None:
                db.add(SystemSetting(setting_key=key, setting_value=value or ""))
            else:
                row.setting_value = value or ""
                row.updated_at = utcnow()
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error("Settings update rolled back", exc_info=True)
        raise
    logger.info(f"System settings updated: {', '.join(values)}")
