"""
services/certificate_fields.py
Derived values printed on certificates and ID cards: acronyms, certificate
codes and registration numbers. Everything here is a pure function of the record.
"""
from typing import Any, Mapping, Optional

from registry.core.config import settings
from registry.models.certificate_model import ParticipantType, TrainingType
from registry.services.date_parsing import parse_final_date_components

TRAINING_ACRONYMS = {
    TrainingType.BLS.value: "BLS",
    TrainingType.BLS_SFA.value: "BLS-SFA",
    TrainingType.BLS_TOT.value: "BLS-TOT",
    TrainingType.SFA_TOT.value: "SFA-TOT",
}
PARTICIPANT_ACRONYMS = {
    ParticipantType.LAY_RESCUER.value: "LR",
    ParticipantType.HEALTHCARE_PROVIDER.value: "HCP",
}
FALLBACK_TRAINING_ACRONYM = "TRNG"
FALLBACK_PARTICIPANT_ACRONYM = "PART"

HCP_REG_PREFIX = "BLSHCP"
LAY_REG_PREFIX = "BLSLR"

# Placeholders printed where a record leaves a field empty
DEFAULT_PARTICIPANT_NAME = "PARTICIPANT NAME"
DEFAULT_TRAINING_TYPE = "Training Program"
DEFAULT_VENUE = "Training Venue"
DEFAULT_FACILITY = "Training Facility"
DEFAULT_PARTICIPANT_TYPE = ParticipantType.LAY_RESCUER.value


def training_acronym(training_type: Optional[str]) -> str:
    return TRAINING_ACRONYMS.get(training_type or "", FALLBACK_TRAINING_ACRONYM)


def participant_acronym(participant_type: Optional[str]) -> str:
    return PARTICIPANT_ACRONYMS.get(participant_type or "", FALLBACK_PARTICIPANT_ACRONYM)


def record_id(record: Mapping[str, Any], fallback: str) -> str:
    value = record.get("id") or record.get("_id")
    return str(value) if value else fallback


def certificate_code(record: Mapping[str, Any]) -> str:
    """
    Footer code of a certificate, e.g. DOHCHD-1-BLS-HCP-2026-42.

    The participant type defaults to Lay Rescuer, the same value the
    certificate prints when the record has none.
    """
    training_type = record.get("training_type") or DEFAULT_TRAINING_TYPE
    participant_type = record.get("participant_type") or DEFAULT_PARTICIPANT_TYPE
    year = parse_final_date_components(record.get("training_date") or "").year
    return "-".join([
        settings.CERT_CODE_PREFIX,
        training_acronym(training_type),
        participant_acronym(participant_type),
        year,
        record_id(record, "000000"),
    ])


def is_healthcare_provider(participant_type: Optional[str]) -> bool:
    return "healthcare" in (participant_type or "").lower()


def registration_number(record: Mapping[str, Any], short_year: str) -> str:
    """ID card number, e.g. BLSHCP-26-DOHROI-42 or BLSLR-26-DOHROI-42."""
    prefix = HCP_REG_PREFIX if is_healthcare_provider(record.get("participant_type")) else LAY_REG_PREFIX
    return f"{prefix}-{short_year}-{settings.REG_NO_ISSUER}-{record_id(record, '000')}"
