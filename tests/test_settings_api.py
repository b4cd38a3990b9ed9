import base64
import io

import pytest
from PIL import Image
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from registry.models.settings_model import SystemSetting, SystemSettings
from registry.services import certificate_store

BASE = "/api/auth/settings"


def _png(width=900, height=300):
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), "white").save(buffer, format="PNG")
    return buffer.getvalue()


def test_settings_start_empty(client):
    assert client.get(BASE).json() == {}


def test_update_and_read_back(auth_client):
    res = auth_client.post(BASE, json={"off1_name": "Dr. Ana Reyes", "off1_pos": "Regional Director"})
    assert res.status_code == 200
    assert res.json()["message"] == "System settings updated successfully"

    res = auth_client.post(BASE, json={"off1_pos": "OIC Director", "off3_name": "Dr. Ben Cruz"})
    assert res.status_code == 200

    assert auth_client.get(BASE).json() == {
        "off1_name": "Dr. Ana Reyes",
        "off1_pos": "OIC Director",
        "off3_name": "Dr. Ben Cruz",
    }


def test_unknown_key_rejects_whole_update(auth_client):
    res = auth_client.post(BASE, json={"off1_name": "Dr. Ana Reyes", "off9_name": "Nobody"})
    assert res.status_code == 400
    assert "off9_name" in res.json()["detail"]
    assert auth_client.get(BASE).json() == {}


def test_empty_and_malformed_payloads(auth_client):
    res = auth_client.post(BASE, json={})
    assert res.status_code == 400
    assert res.json()["detail"] == "No settings provided"

    res = auth_client.post(BASE, json=["off1_name"])
    assert res.status_code == 400
    assert res.json()["detail"] == "Invalid settings data"

    res = auth_client.post(BASE, json={"off1_name": 42})
    assert res.status_code == 400
    assert "off1_name" in res.json()["detail"]


def test_update_requires_identity(client):
    res = client.post(BASE, json={"off1_name": "Dr. Ana Reyes"})
    assert res.status_code == 401


def test_unset_officer_fields_stay_empty(db_session):
    certificate_store.save_settings(db_session, SystemSettings(off2_name="Officer Two"))
    settings = certificate_store.get_system_settings(db_session)
    assert settings.off2_name == "Officer Two"
    assert settings.off1_name is None


@pytest.fixture
def off2_write_fails(monkeypatch):
    """Make inserting the off2_name row fail after earlier keys were staged."""
    real_add = Session.add

    def add(self, instance, *args, **kwargs):
        if isinstance(instance, SystemSetting) and instance.setting_key == "off2_name":
            raise OperationalError("INSERT INTO system_settings", {}, Exception("disk I/O error"))
        return real_add(self, instance, *args, **kwargs)

    monkeypatch.setattr(Session, "add", add)


def test_failed_upsert_rolls_back_every_key(db_session, off2_write_fails):
    certificate_store.save_settings(db_session, SystemSettings(off1_name="Old Name"))

    with pytest.raises(OperationalError):
        certificate_store.save_settings(
            db_session, SystemSettings(off1_name="New Name", off1_pos="Director", off2_name="Officer Two")
        )

    assert certificate_store.get_settings(db_session) == {"off1_name": "Old Name"}


def test_failed_update_returns_500_and_keeps_settings(auth_client, off2_write_fails):
    auth_client.post(BASE, json={"off1_name": "Old Name"})

    res = auth_client.post(BASE, json={"off1_name": "New Name", "off2_name": "Officer Two"})
    assert res.status_code == 500
    assert res.json()["detail"] == "Failed to update system settings"
    assert auth_client.get(BASE).json() == {"off1_name": "Old Name"}


def test_signature_upload_stores_cropped_png(auth_client):
    res = auth_client.post(
        f"{BASE}/signature",
        files={"file": ("sig.png", _png(), "image/png")},
        data={"x": "0", "y": "0", "width": "600", "height": "200"},
    )
    assert res.status_code == 200
    data_url = res.json()["off1_sig"]
    assert data_url.startswith("data:image/png;base64,")

    stored = auth_client.get(BASE).json()["off1_sig"]
    assert stored == data_url
    image = Image.open(io.BytesIO(base64.b64decode(stored.split(",", 1)[1])))
    assert image.size == (400, 133)


def test_signature_upload_default_crop(auth_client):
    res = auth_client.post(f"{BASE}/signature", files={"file": ("sig.png", _png(), "image/png")})
    assert res.status_code == 200


def test_signature_upload_partial_box(auth_client):
    res = auth_client.post(
        f"{BASE}/signature",
        files={"file": ("sig.png", _png(), "image/png")},
        data={"x": "10"},
    )
    assert res.status_code == 400


def test_signature_upload_out_of_bounds(auth_client):
    res = auth_client.post(
        f"{BASE}/signature",
        files={"file": ("sig.png", _png(100, 100), "image/png")},
        data={"x": "50", "y": "50", "width": "300", "height": "100"},
    )
    assert res.status_code == 400
    assert "outside" in res.json()["detail"]


def test_signature_upload_not_an_image(auth_client):
    res = auth_client.post(f"{BASE}/signature", files={"file": ("sig.png", b"nope", "image/png")})
    assert res.status_code == 400
