"""
services/batches.py
Groups flat certificate records into training batches (same date + training type)
for the registry listing and for bulk document generation.
"""
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from registry.core.config import settings
from registry.services.date_parsing import sortable_date
from registry.utils.helpers import collapse_whitespace

NO_DATE_KEY = "NODATE"
NO_DATE_DISPLAY = "NO DATE"
UNSPECIFIED = "UNSPECIFIED"

SEARCH_FIELDS = ("participant_name", "training_date", "venue", "facility")


@dataclass
class Batch:
    key: str
    display_date: str
    training_type: str
    certificates: List[Mapping[str, Any]] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.certificates)

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "display_date": self.display_date,
            "training_type": self.training_type,
            "count": self.size,
            "certificates": list(self.certificates),
        }


@dataclass
class Page:
    items: list
    page: int
    total_pages: int
    total_items: int
    start_index: int
    end_index: int


def _normalize_key_part(value: str) -> str:
    return re.sub(r"\s+", "", value.upper())


def _display(value: str) -> str:
    return collapse_whitespace(value).upper()


def batch_key(record: Mapping[str, Any]) -> str:
    """'January 21-23, 2026' + BLS title -> 'JANUARY21-23,2026_BASICLIFESUPPORTTRAINING'."""
    date_part = _normalize_key_part(record.get("training_date") or NO_DATE_KEY)
    type_part = _normalize_key_part(record.get("training_type") or UNSPECIFIED)
    return f"{date_part}_{type_part}"


def filter_certificates(records: Iterable[Mapping[str, Any]], search: str = "") -> List[Mapping[str, Any]]:
    """Case-insensitive substring match over name, date, venue and facility."""
    needle = (search or "").lower()
    return [
        record for record in records
        if not needle or any(needle in (record.get(name) or "").lower() for name in SEARCH_FIELDS)
    ]


def group_into_batches(records: Iterable[Mapping[str, Any]]) -> Dict[str, Batch]:
    """Batch key -> Batch, in first-seen order; members keep their input order."""
    groups: Dict[str, Batch] = {}
    for record in records:
        key = batch_key(record)
        batch = groups.get(key)
        if batch is None:
            batch = groups[key] = Batch(
                key=key,
                display_date=_display(record.get("training_date") or NO_DATE_DISPLAY),
                training_type=_display(record.get("training_type") or UNSPECIFIED),
            )
        batch.certificates.append(record)
    return groups


def sort_batches(batches: Iterable[Batch]) -> List[Batch]:
    """Oldest training first; undated batches lead. Ties keep their order."""
    return sorted(batches, key=lambda batch: sortable_date(batch.display_date))


def paginate(items: Sequence, page: int = 1, per_page: int = settings.BATCHES_PER_PAGE) -> Page:
    total = len(items)
    total_pages = max(1, -(-total // per_page))
    page = min(max(page, 1), total_pages)
    start = (page - 1) * per_page
    end = start + per_page
    return Page(
        items=list(items[start:end]),
        page=page,
        total_pages=total_pages,
        total_items=total,
        start_index=start,
        end_index=min(end, total),
    )


def count_unique_training_dates(records: Iterable[Mapping[str, Any]]) -> int:
    return len({record.get("training_date") for record in records if record.get("training_date")})


def find_batch(records: Iterable[Mapping[str, Any]], training_date: str | None, training_type: str | None) -> Batch | None:
    """The batch a (date, type) pair falls into, or None when it has no members."""
    key = batch_key({"training_date": training_date, "training_type": training_type})
    return group_into_batches(records).get(key)
