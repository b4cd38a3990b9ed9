import io
from datetime import datetime
from urllib.parse import quote

from pypdf import PdfReader
from sqlalchemy.exc import OperationalError

from registry.api.certificate import content_disposition
from registry.core.config import settings
from registry.services import certificate_store
from tests.factories import make_record

BASE = "/api/auth/certificates"
RECORD_FIELDS = ("participant_name", "training_type", "training_date", "venue",
                 "facility", "participant_type", "age", "position")


def _create(client, **overrides):
    res = client.post(BASE, json=make_record(**overrides))
    assert res.status_code == 201, res.text
    return res.json()


# ── Create / read ─────────────────────────────────────────────────────────────

def test_create_returns_server_fields(client):
    created = _create(client)
    assert isinstance(created["id"], int)
    assert created["created_at"]
    assert created["updated_at"]
    for name in RECORD_FIELDS:
        assert created[name] == make_record()[name]


def test_create_rejects_blank_name(client):
    res = client.post(BASE, json=make_record(participant_name=""))
    assert res.status_code == 400
    detail = res.json()["detail"]
    assert detail["message"] == "Validation failed"
    assert "participant_name is required" in detail["errors"]
    assert client.get(BASE).json() == []


def test_create_rejects_unknown_training_type(client):
    res = client.post(BASE, json=make_record(training_type="Scuba Diving"))
    assert res.status_code == 400
    assert res.json()["detail"]["errors"][0].startswith("training_type must be one of:")


def test_create_ignores_unknown_fields_and_trims(client):
    created = _create(client, participant_name="  Maria Clara ", id=555, is_admin=True, training_type="BLS+SFA")
    assert created["id"] != 555
    assert created["participant_name"] == "Maria Clara"
    assert created["training_type"] == "Basic Life Support and Standard First Aid Training"
    assert "is_admin" not in created


def test_list_is_newest_first(client):
    first = _create(client, participant_name="First")
    second = _create(client, participant_name="Second")
    ids = [row["id"] for row in client.get(BASE).json()]
    assert ids == [second["id"], first["id"]]


def test_filter_by_training_date_text(client):
    _create(client, participant_name="January Batch")
    _create(client, participant_name="March Batch", training_date="March 3-5, 2026")

    rows = client.get(f"{BASE}/date/March").json()
    assert [row["participant_name"] for row in rows] == ["March Batch"]


def test_filter_by_creation_day(client):
    _create(client, training_date="no fixed date")
    today = datetime.utcnow().date().isoformat()
    assert len(client.get(f"{BASE}/date/{today}").json()) == 1


# ── Update ────────────────────────────────────────────────────────────────────

def test_update_is_full_replace_and_idempotent(client):
    created = _create(client)
    payload = make_record(participant_name="Juan D. Cruz", venue="Laoag", position=None)

    first = client.put(f"{BASE}/{created['id']}", json=payload)
    second = client.put(f"{BASE}/{created['id']}", json=payload)
    assert first.status_code == second.status_code == 200

    a, b = first.json(), second.json()
    assert a["participant_name"] == "Juan D. Cruz"
    assert a["venue"] == "Laoag"
    assert a["position"] is None
    for name in RECORD_FIELDS:
        assert a[name] == b[name]
    assert a["created_at"] == created["created_at"]


def test_update_validation_failure_leaves_record(client):
    created = _create(client)
    res = client.put(f"{BASE}/{created['id']}", json=make_record(age=300))
    assert res.status_code == 400
    assert "age must be a valid number between 0 and 120" in res.json()["detail"]["errors"]
    assert client.get(BASE).json()[0]["age"] == 34


def test_update_bad_and_missing_ids(client):
    res = client.put(f"{BASE}/abc", json=make_record())
    assert res.status_code == 400
    assert res.json()["detail"] == "Invalid certificate ID"

    res = client.put(f"{BASE}/9999", json=make_record())
    assert res.status_code == 404
    assert res.json()["detail"] == "Certificate not found"


def _locked_database(*args, **kwargs):
    raise OperationalError("UPDATE certificates", {}, Exception("database is locked"))


def test_update_database_error_is_generic_by_default(client, monkeypatch):
    created = _create(client)
    monkeypatch.setattr(certificate_store, "update_certificate", _locked_database)

    res = client.put(f"{BASE}/{created['id']}", json=make_record(venue="Laoag"))
    assert res.status_code == 500
    assert res.json()["detail"] == "Failed to update certificate"


def test_update_database_error_exposed_when_enabled(client, monkeypatch):
    created = _create(client)
    monkeypatch.setattr(certificate_store, "update_certificate", _locked_database)
    monkeypatch.setattr(settings, "EXPOSE_UPDATE_ERRORS", True)

    res = client.put(f"{BASE}/{created['id']}", json=make_record(venue="Laoag"))
    assert res.status_code == 500
    assert "database is locked" in res.json()["detail"]


# ── Delete ────────────────────────────────────────────────────────────────────

def test_delete_requires_identity(client):
    created = _create(client)
    res = client.delete(f"{BASE}/{created['id']}")
    assert res.status_code == 401
    assert len(client.get(BASE).json()) == 1


def test_delete(auth_client):
    created = _create(auth_client)
    res = auth_client.delete(f"{BASE}/{created['id']}")
    assert res.status_code == 200
    assert res.json()["message"] == "Certificate deleted successfully"
    assert auth_client.get(BASE).json() == []

    assert auth_client.delete(f"{BASE}/{created['id']}").status_code == 404


# ── Batches ───────────────────────────────────────────────────────────────────

def test_batches_listing(client):
    _create(client, participant_name="A")
    _create(client, participant_name="B", training_date="JANUARY 21-23,  2026")
    _create(client, participant_name="C", training_date="December 1-2, 2025")
    _create(client, participant_name="D", training_type="Standard First Aid Training of trainers")

    body = client.get(f"{BASE}/batches").json()
    assert body["total_records"] == 4
    assert body["unique_training_dates"] == 3
    assert body["total_items"] == 3
    assert body["page"] == 1
    assert body["batches"][0]["display_date"] == "DECEMBER 1-2, 2025"
    counts = sorted(batch["count"] for batch in body["batches"])
    assert counts == [1, 1, 2]


def test_batches_search_and_paging(client):
    for i in range(3):
        _create(client, participant_name=f"Person {i}", training_date=f"March {i + 1}, 2026")

    body = client.get(f"{BASE}/batches", params={"per_page": 2, "page": 2}).json()
    assert body["total_pages"] == 2
    assert len(body["batches"]) == 1

    body = client.get(f"{BASE}/batches", params={"search": "person 1"}).json()
    assert body["total_items"] == 1
    assert body["batches"][0]["certificates"][0]["participant_name"] == "Person 1"


# ── Documents ─────────────────────────────────────────────────────────────────

def test_single_certificate_pdf(client):
    created = _create(client)
    res = client.get(f"{BASE}/{created['id']}/pdf")
    assert res.status_code == 200
    assert res.headers["content-type"] == "application/pdf"
    assert 'filename="Juan_Dela_Cruz_Cert.pdf"' in res.headers["content-disposition"]
    assert len(PdfReader(io.BytesIO(res.content)).pages) == 1


def test_single_certificate_pdf_missing(client):
    assert client.get(f"{BASE}/404/pdf").status_code == 404


def test_batch_certificates_by_date_and_type(client):
    for name in ("A", "B", "C"):
        _create(client, participant_name=name)
    _create(client, participant_name="Other", training_date="March 3-5, 2026")

    res = client.post(f"{BASE}/batch/pdf", json={
        "training_date": "JANUARY 21-23, 2026",
        "training_type": "BASIC LIFE SUPPORT TRAINING",
    })
    assert res.status_code == 200
    assert 'filename="BATCH_CERT_JANUARY_21-23,_2026.pdf"' in res.headers["content-disposition"]
    assert len(PdfReader(io.BytesIO(res.content)).pages) == 3


def test_batch_id_cards_by_ids(client):
    ids = [_create(client, participant_name=f"P{i}")["id"] for i in range(10)]
    res = client.post(f"{BASE}/batch/pdf", params={"type": "id"}, json={"ids": ids})
    assert res.status_code == 200
    assert 'filename="BATCH_ID_JANUARY_21-23,_2026.pdf"' in res.headers["content-disposition"]
    # 10 cards: two front sheets then two back sheets
    assert len(PdfReader(io.BytesIO(res.content)).pages) == 4


def test_batch_pdf_unknown_batch(client):
    res = client.post(f"{BASE}/batch/pdf", json={"training_date": "June 1, 2030", "training_type": None})
    assert res.status_code == 404
    assert res.json()["detail"] == "Batch not found"


def test_batch_pdf_rejects_unknown_document_type(client):
    created = _create(client)
    res = client.post(f"{BASE}/batch/pdf", params={"type": "poster"}, json={"ids": [created["id"]]})
    assert res.status_code == 422


def test_batch_pdf_empty_id_selection(client):
    _create(client, training_date=None, training_type=None)
    res = client.post(f"{BASE}/batch/pdf", json={"ids": []})
    assert res.status_code == 404
    assert res.json()["detail"] == "Batch not found"


def test_certificate_pdf_with_non_latin_name(client):
    created = _create(client, participant_name="Nguyễn Văn An")
    res = client.get(f"{BASE}/{created['id']}/pdf")
    assert res.status_code == 200
    disposition = res.headers["content-disposition"]
    assert 'filename="Nguyen_Van_An_Cert.pdf"' in disposition
    assert f"filename*=UTF-8''{quote('Nguyễn_Văn_An_Cert.pdf', safe='')}" in disposition


def test_batch_pdf_with_en_dash_date(client):
    _create(client, participant_name="A", training_date="Enero 21–23, 2026")
    res = client.post(f"{BASE}/batch/pdf", json={
        "training_date": "Enero 21–23, 2026",
        "training_type": "Basic Life Support Training",
    })
    assert res.status_code == 200
    disposition = res.headers["content-disposition"]
    assert 'filename="BATCH_CERT_ENERO_21-23,_2026.pdf"' in disposition
    assert quote("BATCH_CERT_ENERO_21–23,_2026.pdf", safe="") in disposition


def test_content_disposition_strips_quotes():
    header = content_disposition('Juan "JD" Cruz.pdf')
    assert header.startswith('attachment; filename="Juan JD Cruz.pdf";')
    assert "%22JD%22" in header


# ── CSV import ────────────────────────────────────────────────────────────────

CSV = (
    "Participant Name,Training Type,Training Date,Venue,Facility,Participant Type,Age,Position\n"
    "Maria Clara,BLS,\"January 21-23, 2026\",Vigan,Provincial Hospital,Lay Rescuer,27,Clerk\n"
    ",BLS,\"January 21-23, 2026\",Vigan,Provincial Hospital,Lay Rescuer,30,Clerk\n"
    "Jose Rizal,BLS,\"January 21-23, 2026\",Vigan,Provincial Hospital,Doctor,abc,Surgeon\n"
    ",,,,,,,\n"
)


def test_csv_import(auth_client):
    res = auth_client.post(
        f"{BASE}/import",
        files={"file": ("trainees.csv", CSV.encode("utf-8"), "text/csv")},
    )
    assert res.status_code == 200
    body = res.json()

    assert [row["participant_name"] for row in body["created"]] == ["Maria Clara"]
    assert body["created"][0]["training_type"] == "Basic Life Support Training"
    assert body["created"][0]["age"] == 27

    assert [failure["row"] for failure in body["failed"]] == [3, 4]
    assert body["failed"][0]["errors"] == ["participant_name is required"]
    assert len(body["failed"][1]["errors"]) == 2


def test_csv_import_requires_identity(client):
    res = client.post(f"{BASE}/import", files={"file": ("trainees.csv", CSV.encode("utf-8"), "text/csv")})
    assert res.status_code == 401


def test_csv_import_rejects_other_files(auth_client):
    res = auth_client.post(f"{BASE}/import", files={"file": ("trainees.txt", b"hello", "text/plain")})
    assert res.status_code == 400
    assert res.json()["detail"] == "Must be a CSV file."


def test_csv_import_needs_name_column(auth_client):
    res = auth_client.post(f"{BASE}/import", files={"file": ("x.csv", b"venue,age\nVigan,3\n", "text/csv")})
    assert res.status_code == 422
    assert "Participant Name" in res.json()["detail"]
