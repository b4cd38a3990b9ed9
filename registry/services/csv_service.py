"""
services/csv_service.py
Parses uploaded CSV files of trainee rows for bulk import.
"""
import io
from typing import Dict, List

import pandas as pd

from registry.models.certificate_model import CERTIFICATE_FIELDS
from registry.utils.helpers import get_logger

logger = get_logger(__name__)

# Spreadsheet headers people actually use, mapped onto record fields
COLUMN_ALIASES = {
    "name": "participant_name",
    "participant": "participant_name",
    "training": "training_type",
    "type": "training_type",
    "date": "training_date",
    "participant_category": "participant_type",
    "category": "participant_type",
}


def _normalize_column(column: str) -> str:
    key = "_".join(str(column).strip().lower().split())
    return COLUMN_ALIASES.get(key, key)


def parse_csv(file_bytes: bytes) -> List[Dict[str, str]]:
    """
    Parse a CSV file into raw record mappings, one per non-empty row.

    Headers are matched case-insensitively ("Participant Name" and
    "participant_name" are the same column). Unknown columns are dropped
    and every value is returned as text for the regular validation path.

    Raises:
        ValueError: If the file cannot be read or has no participant name column
    """
    try:
        df = pd.read_csv(io.BytesIO(file_bytes), dtype=str, keep_default_na=False, skipinitialspace=True)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        logger.error(f"CSV parsing failed: {e}")
        raise ValueError(f"Failed to parse CSV: {e}")

    df.columns = [_normalize_column(col) for col in df.columns]
    if "participant_name" not in df.columns:
        raise ValueError("CSV must contain a 'Participant Name' column.")

    columns = [col for col in CERTIFICATE_FIELDS if col in df.columns]
    df = df[columns].apply(lambda col: col.str.strip())

    # Drop rows where every cell is blank (trailing lines from spreadsheet exports)
    df = df[(df != "").any(axis=1)]

    rows = df.to_dict(orient="records")
    logger.info(f"Parsed {len(rows)} rows from CSV.")
    return rows
