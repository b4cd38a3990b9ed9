"""
services/pdf_generator.py
Renders certificates and dual-sided ID cards as PDF bytes with ReportLab.
- One A4-landscape page per certificate
- ID cards in a 2x4 grid on A4 portrait: all front pages, then all back pages
- Invalid input degrades to an error or empty-state page instead of raising
"""
import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence, Union

from reportlab.lib.colors import HexColor, white
from reportlab.lib.pagesizes import A4, LETTER, landscape
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from registry.core.config import settings as app_settings
from registry.models.settings_model import SystemSettings
from registry.services import certificate_fields as fields
from registry.services.date_parsing import ordinal, parse_final_date_components, process_dates, title_case
from registry.services.font_service import (
    certificate_name_size,
    fit_font_size,
    id_card_name_size,
    signatory_name_size,
)
from registry.services.signature_service import signature_image
from registry.utils.helpers import chunked, get_logger, underscore_spaces

logger = get_logger(__name__)

CREATOR = "Training Registry System"
SIDEBAR_GREEN = HexColor("#7FB77E")
BADGE_ORANGE = HexColor("#FF3B00")
ERROR_RED = HexColor("#dc2626")
MUTED_GRAY = HexColor("#6b7280")
LIGHT_GRAY = HexColor("#9ca3af")

# ── ID card grid (points) ──────────────────────────────────────────────────────
CARD_WIDTH = 260
CARD_HEIGHT = 165
CARD_PADDING = 12
GRID_LEFT = 30
GRID_TOP = 30
GRID_COLUMNS = 2
GRID_COL_GAP = 15
GRID_ROW_GAP = 25

FRONT = "front"
BACK = "back"

SettingsLike = Union[SystemSettings, Mapping[str, Any], None]


@dataclass
class RenderCheck:
    is_valid: bool
    code: str
    error: Optional[str] = None
    details: Optional[str] = None
    warnings: List[str] = field(default_factory=list)


@dataclass
class IDCardPage:
    side: str
    records: List[Mapping[str, Any]]


# ── Validation ─────────────────────────────────────────────────────────────────

def validate_certificate_for_render(data: Any) -> RenderCheck:
    """Check a single record before rendering; the code names the first failure."""
    if data is None:
        return RenderCheck(
            False, "NO_DATA", "No certificate data provided",
            "The certificate record is missing. Please select a record to print.",
        )
    if not isinstance(data, Mapping):
        return RenderCheck(
            False, "INVALID_TYPE", "Invalid data format",
            f"Expected an object, but received: {'array' if isinstance(data, (list, tuple)) else type(data).__name__}",
        )
    if not (data.get("_id") or data.get("id")):
        return RenderCheck(
            False, "MISSING_ID", "Missing required field: ID",
            'Certificate data must include either an "_id" or "id" field.',
        )
    if not str(data.get("participant_name") or "").strip():
        return RenderCheck(
            False, "MISSING_NAME", "Missing required field: Participant Name",
            'Certificate data must include a non-empty "participant_name" field.',
        )

    warnings = [name for name in ("training_type", "training_date", "venue") if not data.get(name)]
    if warnings:
        logger.warning(
            f"Certificate for '{str(data['participant_name']).strip()}' is missing optional fields: {', '.join(warnings)}"
        )
    return RenderCheck(True, "VALID", warnings=warnings)


def is_renderable(record: Any) -> bool:
    """Minimum fields for a batch member: an id and a non-blank name."""
    return (
        isinstance(record, Mapping)
        and bool(record.get("_id") or record.get("id"))
        and bool(str(record.get("participant_name") or "").strip())
    )


def _valid_records(records: Sequence[Any], label: str) -> List[Mapping[str, Any]]:
    valid = [record for record in records if is_renderable(record)]
    skipped = len(records) - len(valid)
    if skipped:
        logger.warning(f"{label}: filtered out {skipped} invalid record(s), rendering {len(valid)}")
    return valid


def _officers(settings: SettingsLike) -> SystemSettings:
    if settings is None:
        return SystemSettings()
    if isinstance(settings, SystemSettings):
        return settings
    return SystemSettings(**{k: v for k, v in settings.items() if k in SystemSettings.model_fields})


# ── Filenames ──────────────────────────────────────────────────────────────────

def certificate_filename(record: Mapping[str, Any]) -> str:
    return f"{underscore_spaces(record.get('participant_name') or 'certificate')}_Cert.pdf"


def batch_filename(kind: str, display_date: str) -> str:
    return f"BATCH_{kind.upper()}_{underscore_spaces(display_date)}.pdf"


# ── Drawing primitives ─────────────────────────────────────────────────────────

def _new_canvas(buffer: io.BytesIO, pagesize, title: str, author: str, subject: str, keywords: str):
    pdf = canvas.Canvas(buffer, pagesize=pagesize)
    pdf.setTitle(title)
    pdf.setAuthor(author)
    pdf.setSubject(subject)
    pdf.setCreator(CREATOR)
    pdf.setKeywords(keywords)
    return pdf


def _draw_logo(pdf, path: Path, x: float, y: float, size: float) -> None:
    """Logos are optional assets; a missing file leaves the slot empty."""
    if not path.exists():
        return
    pdf.drawImage(ImageReader(str(path)), x, y, width=size, height=size, preserveAspectRatio=True, mask="auto")


def _centered_lines(pdf, text: str, font: str, size: float, center_x: float, y: float,
                    max_width: float, leading: float) -> float:
    """Draw wrapped, centred text from baseline `y` downwards; returns the next baseline."""
    pdf.setFont(font, size)
    for line in simpleSplit(text, font, size, max_width):
        pdf.drawCentredString(center_x, y, line)
        y -= leading
    return y


def _centered_runs(pdf, runs: Sequence[tuple], center_x: float, y: float) -> None:
    """Draw (text, font, size) runs on one centred baseline."""
    total = sum(stringWidth(text, font, size) for text, font, size in runs)
    x = center_x - total / 2
    for text, font, size in runs:
        pdf.setFont(font, size)
        pdf.drawString(x, y, text)
        x += stringWidth(text, font, size)


# ── Status pages ───────────────────────────────────────────────────────────────

def draw_error_page(pdf, check: RenderCheck) -> None:
    width, height = LETTER
    pdf.setPageSize(LETTER)
    center = width / 2
    box_w, box_h = 500, 260
    box_x, box_y = center - box_w / 2, height / 2 - box_h / 2

    pdf.setFillColor(HexColor("#fef2f2"))
    pdf.setStrokeColor(ERROR_RED)
    pdf.setLineWidth(2)
    pdf.roundRect(box_x, box_y, box_w, box_h, 8, stroke=1, fill=1)

    y = box_y + box_h - 50
    pdf.setFillColor(ERROR_RED)
    pdf.setFont("Helvetica-Bold", 20)
    pdf.drawCentredString(center, y, "Certificate Generation Failed")

    pdf.setFillColor(MUTED_GRAY)
    y = _centered_lines(pdf, check.error or "", "Helvetica", 12, center, y - 32, box_w - 60, 19)
    if check.details:
        pdf.setFillColor(LIGHT_GRAY)
        y = _centered_lines(pdf, check.details, "Courier", 10, center, y - 8, box_w - 60, 14)
    pdf.setFont("Courier", 9)
    pdf.drawCentredString(center, y - 10, f"Error code: {check.code}")

    pdf.setFont("Helvetica-Oblique", 9)
    pdf.drawCentredString(center, box_y + 20, "Please verify the certificate data and try again.")
    pdf.showPage()


def draw_empty_state_page(pdf, title: str, message: str) -> None:
    width, height = LETTER
    pdf.setPageSize(LETTER)
    pdf.setFillColor(HexColor("#333333"))
    pdf.setFont("Helvetica-Bold", 24)
    pdf.drawCentredString(width / 2, height / 2 + 20, title)
    pdf.setFillColor(HexColor("#666666"))
    _centered_lines(pdf, message, "Helvetica", 14, width / 2, height / 2 - 15, 400, 20)
    pdf.showPage()


# ── Certificate ────────────────────────────────────────────────────────────────

def draw_certificate_page(pdf, record: Mapping[str, Any], officers: SystemSettings) -> None:
    """One landscape certificate; the third officer signs in the sidebar."""
    pagesize = landscape(A4)
    pdf.setPageSize(pagesize)
    width, height = pagesize
    main_width = width * 0.715
    center = main_width / 2
    text_width = main_width - 40

    date_text = record.get("training_date") or ""
    name = str(record.get("participant_name") or fields.DEFAULT_PARTICIPANT_NAME)
    training_type = record.get("training_type") or fields.DEFAULT_TRAINING_TYPE
    venue = record.get("venue") or fields.DEFAULT_VENUE
    facility = record.get("facility") or fields.DEFAULT_FACILITY
    parts = parse_final_date_components(date_text)

    pdf.setFillColor(SIDEBAR_GREEN)
    pdf.rect(main_width, 0, width - main_width, height, stroke=0, fill=1)
    pdf.setFillColor(HexColor("#000000"))

    # Logos
    logo_size, logo_gap = 90, 5
    logos = [app_settings.DOH_LOGO_PATH, app_settings.RESCUE_LOGO_PATH, app_settings.PILIPINAS_LOGO_PATH]
    row_width = len(logos) * logo_size + (len(logos) - 1) * logo_gap
    logo_y = height - 15 - logo_size
    for i, path in enumerate(logos):
        _draw_logo(pdf, path, center - row_width / 2 + i * (logo_size + logo_gap), logo_y, logo_size)

    y = logo_y - 16
    pdf.setFont("Helvetica", 9)
    pdf.drawCentredString(center, y, "Republic of the Philippines")
    pdf.drawCentredString(center, y - 10, "DEPARTMENT OF HEALTH")
    pdf.setFont("Helvetica-Bold", 9)
    pdf.drawCentredString(center, y - 20, "ILOCOS CENTER FOR HEALTH DEVELOPMENT")

    y -= 44
    pdf.setFont("Helvetica-Bold", 12)
    pdf.drawCentredString(center, y, "awards this")
    y -= 46
    pdf.setFont("Helvetica-Bold", 45)
    pdf.drawCentredString(center, y, "Certificate of Completion")
    y -= 22
    pdf.setFont("Helvetica", 12)
    pdf.drawCentredString(center, y, "to")

    # Recipient, underlined
    name_size = certificate_name_size(name)
    y -= 14 + name_size
    display_name = name.upper()
    pdf.setFont("Helvetica-Bold", name_size)
    pdf.drawCentredString(center, y, display_name)
    underline = stringWidth(display_name, "Helvetica-Bold", name_size)
    pdf.setLineWidth(2.5)
    pdf.line(center - underline / 2, y - 5, center + underline / 2, y - 5)

    y -= 34
    y = _centered_lines(pdf, "for having successfully completed the requirements of the",
                        "Times-Italic", 17, center, y, text_width - 100, 24)
    course_size = fit_font_size(training_type, "Helvetica-Bold", text_width - 50, 22, 14)
    y = _centered_lines(pdf, training_type, "Helvetica-Bold", course_size, center, y - 8, text_width - 50,
                        course_size * 1.2)
    y = _centered_lines(pdf, f"held from {title_case(date_text)} at the {facility}, {venue}.",
                        "Times-Italic", 17, center, y - 4, text_width - 100, 24)

    _centered_runs(pdf, [
        (f"Issued this {ordinal(parts.day)} day of ", "Times-Italic", 17),
        (f"{parts.month or 'Month'} {parts.year}", "Times-BoldItalic", 17),
        (f" in {venue}.", "Times-Italic", 17),
    ], center, max(y - 18, 60))

    pdf.setFont("Helvetica", 9)
    pdf.drawString(20, 20, fields.certificate_code(record))

    # Signatory sidebar
    sidebar_center = main_width + (width - main_width) / 2
    signer = officers.off3_name.upper() if officers.off3_name else "REGIONAL OVERSIGHT"
    signer_size = signatory_name_size(officers.off3_name)
    pdf.setFillColor(HexColor("#000000"))
    _centered_lines(pdf, signer, "Helvetica-Bold", signer_size, sidebar_center, height / 2 + 8,
                    width - main_width - 20, signer_size + 2)
    pdf.setFont("Helvetica", 10)
    pdf.drawCentredString(sidebar_center, height / 2 - 10, officers.off3_pos or "Director IV")
    pdf.showPage()


def render_certificate_pdf(record: Any, settings: SettingsLike = None, document_title: Optional[str] = None) -> bytes:
    """Single certificate document, or an error page when the record cannot be rendered."""
    officers = _officers(settings)
    check = validate_certificate_for_render(record)
    if not check.is_valid:
        logger.error(f"Certificate validation failed [{check.code}]: {check.error}")

    name = str(record.get("participant_name")).strip() if check.is_valid else ""
    training_type = (record.get("training_type") if check.is_valid else None) or ""
    buffer = io.BytesIO()
    pdf = _new_canvas(
        buffer,
        landscape(A4),
        title=document_title or (f"Training Certificate - {name}" if name else "Training Certificate"),
        author=officers.off1_name or CREATOR,
        subject=training_type or "Training Certificate",
        keywords=f"training, certificate, {training_type}",
    )
    if check.is_valid:
        draw_certificate_page(pdf, record, officers)
    else:
        draw_error_page(pdf, check)
    pdf.save()
    return buffer.getvalue()


def render_batch_certificates_pdf(
    records: Sequence[Any],
    settings: SettingsLike = None,
    document_title: Optional[str] = None,
) -> bytes:
    """One certificate page per valid record; an empty-state page when none are valid."""
    officers = _officers(settings)
    valid = _valid_records(records, "Batch certificates")
    invalid_count = len(records) - len(valid)

    if document_title:
        title = document_title
    elif not valid:
        title = "Empty Certificate Batch"
    elif len(valid) == 1:
        title = f"Certificate - {valid[0]['participant_name']}"
    else:
        title = f"Batch Certificates - {len(valid)} Participants"

    buffer = io.BytesIO()
    pdf = _new_canvas(buffer, landscape(A4), title=title, author=officers.off1_name or CREATOR,
                      subject="Training Certificates", keywords="training, certificate, batch")
    if not valid:
        message = (
            f"All {invalid_count} certificate(s) were invalid and could not be rendered. Please check your data."
            if invalid_count else "No certificates were provided to generate."
        )
        draw_empty_state_page(pdf, "No Certificates Found", message)
    for record in valid:
        draw_certificate_page(pdf, record, officers)
    pdf.save()
    logger.info(f"Rendered {len(valid)} certificate page(s)")
    return buffer.getvalue()


# ── ID cards ───────────────────────────────────────────────────────────────────

def plan_id_card_pages(records: Sequence[Any], per_page: int = app_settings.ID_CARDS_PER_PAGE) -> List[IDCardPage]:
    """Every front page first, then the back pages in the same chunk order."""
    chunks = chunked(_valid_records(records, "Batch ID cards"), per_page)
    return [IDCardPage(FRONT, chunk) for chunk in chunks] + [IDCardPage(BACK, chunk) for chunk in chunks]


def _card_origin(index: int, page_height: float) -> tuple:
    """Bottom-left corner and top edge of the card in grid slot `index`."""
    col, row = index % GRID_COLUMNS, index // GRID_COLUMNS
    x = GRID_LEFT + col * (CARD_WIDTH + GRID_COL_GAP)
    top = page_height - GRID_TOP - row * (CARD_HEIGHT + GRID_ROW_GAP)
    return x, top - CARD_HEIGHT, top


def draw_id_card_front(pdf, x: float, y: float, top: float, record: Mapping[str, Any]) -> None:
    dates = process_dates(record.get("training_date"))
    reg_no = fields.registration_number(record, dates.short_year)
    inner_left, inner_right = x + CARD_PADDING, x + CARD_WIDTH - CARD_PADDING

    pdf.setStrokeColor(HexColor("#000000"))
    pdf.setLineWidth(1.2)
    pdf.rect(x, y, CARD_WIDTH, CARD_HEIGHT, stroke=1, fill=0)

    # Header
    logo = 42
    header_top = top - CARD_PADDING
    _draw_logo(pdf, app_settings.DOH_LOGO_PATH, inner_left, header_top - logo, logo)
    _draw_logo(pdf, app_settings.RESCUE_LOGO_PATH, inner_right - logo, header_top - logo, logo)
    center = x + CARD_WIDTH / 2
    pdf.setFillColor(HexColor("#000000"))
    pdf.setFont("Helvetica", 7.5)
    pdf.drawCentredString(center, header_top - 12, "Republic of the Philippines")
    pdf.setFont("Helvetica-Bold", 8.5)
    pdf.drawCentredString(center, header_top - 22, "DEPARTMENT OF HEALTH")
    pdf.setFont("Helvetica", 7.5)
    pdf.drawCentredString(center, header_top - 31, "Health Emergency Management Staff")

    # Photo box and registration number
    body_top = header_top - logo - 6
    photo_w, photo_h = 80, 75
    pdf.setLineWidth(1)
    pdf.rect(inner_left, body_top - photo_h, photo_w, photo_h, stroke=1, fill=0)
    pdf.setFont("Helvetica", 8)
    pdf.drawCentredString(inner_left + photo_w / 2, body_top - photo_h / 2 - 3, "PICTURE")
    pdf.setFont("Helvetica-Bold", 8.5 if stringWidth(reg_no, "Helvetica-Bold", 8.5) <= 120 else 7)
    pdf.drawString(inner_left, body_top - photo_h - 11, reg_no)

    # Info area
    info_left = inner_left + photo_w + 10
    info_width = inner_right - info_left
    info_center = info_left + info_width / 2
    pdf.setFont("Helvetica", 8.5)
    pdf.drawString(info_left, body_top - 8, "This certifies that:")

    name = (record.get("participant_name") or fields.DEFAULT_PARTICIPANT_NAME).upper()
    name_size = id_card_name_size(name)
    name_y = body_top - 14 - name_size
    _centered_lines(pdf, name, "Helvetica-Bold", name_size, info_center, name_y, info_width, name_size * 1.1)

    pdf.setFont("Helvetica", 8.5)
    pdf.drawCentredString(info_center, body_top - 46, "is a DOH-HEMS Basic Life Support")

    badge_h = 18
    badge_y = body_top - 72
    pdf.setFillColor(BADGE_ORANGE)
    pdf.rect(info_left, badge_y, info_width, badge_h, stroke=0, fill=1)
    pdf.setFillColor(white)
    pdf.setFont("Helvetica-Bold", 11)
    badge = (record.get("participant_type") or "Lay Rescuer").upper()
    pdf.drawCentredString(info_center, badge_y + 5, badge)
    pdf.setFillColor(HexColor("#000000"))


def draw_id_card_back(pdf, x: float, y: float, top: float, record: Mapping[str, Any],
                      officers: SystemSettings, signature: Optional[ImageReader]) -> None:
    dates = process_dates(record.get("training_date"))
    reg_no = fields.registration_number(record, dates.short_year)
    inner_left = x + CARD_PADDING
    inner_width = CARD_WIDTH - 2 * CARD_PADDING
    center = x + CARD_WIDTH / 2

    logo = 42
    header_top = top - CARD_PADDING
    _draw_logo(pdf, app_settings.RESCUE_LOGO_PATH, inner_left, header_top - logo, logo)
    info_left = inner_left + logo + 10
    pdf.setFillColor(HexColor("#000000"))
    label = "Registration No.: "
    pdf.setFont("Helvetica", 7)
    pdf.drawString(info_left, header_top - 10, label)
    pdf.setFont("Helvetica-Bold", 7)
    pdf.drawString(info_left + stringWidth(label, "Helvetica", 7), header_top - 10, reg_no)
    pdf.setFont("Helvetica", 7)
    pdf.drawString(info_left, header_top - 19, f"Date Registered: {dates.registered}")
    pdf.drawString(info_left, header_top - 28, f"Date Renewal: {dates.renewal}")

    # Cardholder signature line
    line_left = inner_left + 52
    line_width = inner_width * 0.7
    line_y = header_top - logo - 8
    pdf.setLineWidth(1)
    pdf.line(line_left, line_y, line_left + line_width, line_y)
    pdf.setFont("Helvetica", 5.5)
    pdf.drawCentredString(line_left + line_width / 2, line_y - 7, "Cardholder's Signature")

    # Officers, bottom up: off3, off2, off1
    blocks = [
        (officers.off3_name, officers.off3_pos),
        (officers.off2_name, officers.off2_pos),
        (officers.off1_name, officers.off1_pos),
    ]
    for i, (name, position) in enumerate(blocks):
        base = y + 7 + i * 22
        pdf.setFont("Helvetica-Bold", 7)
        pdf.drawCentredString(center, base + 7, name or "")
        pdf.setFont("Helvetica", 6)
        pdf.drawCentredString(center, base, position or "")

    if signature is not None:
        sig_w, sig_h = 60, 35
        off1_base = y + 7 + 2 * 22
        pdf.drawImage(signature, center - sig_w / 2, off1_base - 3, width=sig_w, height=sig_h,
                      preserveAspectRatio=True, mask="auto")


def render_batch_id_cards_pdf(records: Sequence[Any], settings: SettingsLike = None) -> bytes:
    """Front and back ID card sheets for every valid record, eight per sheet."""
    officers = _officers(settings)
    pages = plan_id_card_pages(records)
    signature = signature_image(officers.off1_sig)

    buffer = io.BytesIO()
    pdf = _new_canvas(buffer, A4, title="Batch ID Cards", author="DOH-HEMS",
                      subject="Training ID Cards", keywords="training, id card, batch")
    if not pages:
        message = (
            f"All {len(records)} record(s) were invalid and could not be rendered. Please check your data."
            if records else "No participants were provided to generate."
        )
        draw_empty_state_page(pdf, "No ID Cards Found", message)

    _, page_height = A4
    for page in pages:
        pdf.setPageSize(A4)
        for index, record in enumerate(page.records):
            x, y, top = _card_origin(index, page_height)
            if page.side == FRONT:
                draw_id_card_front(pdf, x, y, top, record)
            else:
                draw_id_card_back(pdf, x, y, top, record, officers, signature)
        pdf.showPage()
    pdf.save()
    logger.info(f"Rendered {len(pages)} ID card page(s)")
    return buffer.getvalue()
