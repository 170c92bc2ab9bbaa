import base64
import io
import json
import zipfile

import pdfplumber
import pytest
from PIL import Image, ImageDraw
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from app.portal import create_app
from app.portal.db import session_scope
from app.portal.models import AuditEvent, Base
from app.portal.modules.pdf_forms.coordinates import ALL_TEMPLATES, BCIF_TEMPLATE, PDF_TEMPLATES, FieldCoord
from app.portal.modules.pdf_forms.mappings import MappingError, MappingStore, coordinates_from_mapping

PLAN_TEMPLATE = PDF_TEMPLATES["FIBERBIZ_100"]
CSRF_TOKEN = "test-csrf-token"


def _signature_png():
    img = Image.new("RGBA", (300, 100), (255, 255, 255, 0))
    ImageDraw.Draw(img).line([(10, 80), (150, 20), (290, 70)], fill=(0, 0, 0, 255), width=4)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


SIGNATURE_PNG = _signature_png()
SIGNATURE_DATA_URL = "data:image/png;base64," + base64.b64encode(SIGNATURE_PNG).decode("ascii")


@pytest.fixture()
def application_form():
    """Factory for a complete, valid sole-proprietorship form body."""

    def _make(**overrides):
        data = {
            "plan_type": "FIBERBIZ_100",
            "org_type": "SOLE_PROP",
            "business_name": "Acme Trading",
            "trade_name": "Acme",
            "business_address": "12 Rizal Ave, Makati",
            "billing_address": "PO Box 55, Makati",
            "company_tin": "123-456-789-000",
            "industry_type": "Retail",
            "date_of_registration": "2019-04-01",
            "employees_count": "12",
            "signatory_name": "Maria Santos",
            "signatory_designation": "Owner",
            "signatory_contact": "09171234567",
            "signatory_email": "maria@acme.example",
            "signatory_id_type": "Passport",
            "signatory_id_number": "P1234567",
            "digital_signature": SIGNATURE_DATA_URL,
        }
        data.update(overrides)
        return data

    return _make


def _uploads(*fields, ext="pdf"):
    return {f: (io.BytesIO(f"%PDF-1.4 {f}".encode()), f"{f}.{ext}") for f in fields}


@pytest.fixture()
def template_dir(tmp_path):
    d = tmp_path / "templates"
    d.mkdir()
    for name in ALL_TEMPLATES:
        c = canvas.Canvas(str(d / name), pagesize=letter)
        c.drawString(40, 760, "Blank form page 1")
        c.showPage()
        c.save()
    return d


@pytest.fixture()
def client(tmp_path, monkeypatch, template_dir):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("UPLOAD_DIRECTORY_PATH", str(tmp_path / "uploads"))
    monkeypatch.setenv("PDF_TEMPLATE_DIR", str(template_dir))
    monkeypatch.setenv("PDF_MAPPINGS_PATH", str(tmp_path / "pdf_mappings.json"))

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    c = app.test_client()
    with c.session_transaction() as sess:
        sess["csrf_token"] = CSRF_TOKEN
    return c


def _save(client, payload):
    return client.post("/admin/mapping", json=payload, headers={"X-CSRF-Token": CSRF_TOKEN})


def test_get_without_mapping_file(client):
    r = client.get("/admin/mapping")
    assert r.status_code == 200
    assert r.json == {}

    r = client.get("/admin/mapping", query_string={"formName": BCIF_TEMPLATE})
    assert r.status_code == 200
    assert r.json == []


def test_save_and_read_back(client, tmp_path):
    fields = [
        {"fieldKey": "business_name", "x": 120, "y": 640, "page": 0},
        {"fieldKey": "signature", "x": 90, "y": 110, "page": 1},
    ]
    r = _save(client, {"formName": BCIF_TEMPLATE, "fields": fields})
    assert r.status_code == 200
    assert r.json == {"success": True, "message": "Mappings saved"}

    on_disk = json.loads((tmp_path / "pdf_mappings.json").read_text(encoding="utf-8"))
    assert on_disk == {BCIF_TEMPLATE: fields}

    r = client.get("/admin/mapping", query_string={"formName": BCIF_TEMPLATE})
    assert r.json == fields

    with session_scope(client.application) as s:
        ev = s.query(AuditEvent).filter(AuditEvent.action == "pdf_mapping.save").one()
        assert ev.entity_id == BCIF_TEMPLATE


def test_save_keeps_other_templates(client):
    _save(client, {"formName": BCIF_TEMPLATE, "fields": [{"fieldKey": "org_type", "x": 1, "y": 2}]})
    _save(client, {"formName": PLAN_TEMPLATE, "fields": []})
    _save(client, {"formName": BCIF_TEMPLATE, "fields": [{"fieldKey": "org_type", "x": 5, "y": 6}]})

    r = client.get("/admin/mapping")
    assert r.json == {
        BCIF_TEMPLATE: [{"fieldKey": "org_type", "x": 5, "y": 6}],
        PLAN_TEMPLATE: [],
    }


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"formName": BCIF_TEMPLATE},
        {"fields": []},
        {"formName": "", "fields": []},
        {"formName": BCIF_TEMPLATE, "fields": {"fieldKey": "x"}},
        ["not", "an", "object"],
    ],
)
def test_save_rejects_invalid_payload(client, tmp_path, payload):
    r = _save(client, payload)
    assert r.status_code == 400
    assert r.get_data(as_text=True) == "Invalid payload"
    assert not (tmp_path / "pdf_mappings.json").exists()


def test_save_requires_csrf_header(client):
    r = client.post("/admin/mapping", json={"formName": BCIF_TEMPLATE, "fields": []})
    assert r.status_code == 400


def test_corrupt_mapping_file_is_a_server_error(client, tmp_path):
    (tmp_path / "pdf_mappings.json").write_text("[1, 2", encoding="utf-8")
    r = client.get("/admin/mapping")
    assert r.status_code == 500

    # Saving replaces the unreadable file
    assert _save(client, {"formName": BCIF_TEMPLATE, "fields": []}).status_code == 200
    assert client.get("/admin/mapping").json == {BCIF_TEMPLATE: []}


def test_editor_page(client):
    r = client.get("/admin/mapping/editor", query_string={"formName": BCIF_TEMPLATE})
    assert r.status_code == 200
    html = r.get_data(as_text=True)
    assert "business_name" in html
    assert "chk_tax_vat" in html

    assert client.get("/admin/mapping/editor").status_code == 200
    assert client.get("/admin/mapping/editor", query_string={"formName": "other.pdf"}).status_code == 404


def test_template_file_served(client):
    r = client.get(f"/admin/mapping/templates/{PLAN_TEMPLATE}")
    assert r.status_code == 200
    assert r.mimetype == "application/pdf"
    assert r.data.startswith(b"%PDF")

    assert client.get("/admin/mapping/templates/secrets.pdf").status_code == 404


def test_saved_mapping_used_for_download(client, application_form):
    _save(
        client,
        {"formName": PLAN_TEMPLATE, "fields": [{"fieldKey": "business_name", "x": 321, "y": 500, "page": 0}]},
    )
    r = client.post(
        "/apply",
        data=application_form() | _uploads("bio_page_id", "specimen_sigs", "mayors_permit", "dti_registration"),
        content_type="multipart/form-data",
        headers={"Accept": "application/json", "X-CSRF-Token": CSRF_TOKEN},
    )
    application_id = r.json["applicationId"]

    r = client.get(f"/admin/applications/{application_id}/download")
    assert r.status_code == 200
    with zipfile.ZipFile(io.BytesIO(r.data)) as zf:
        pdf_bytes = zf.read(f"Application-{application_id}.pdf")
    with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
        acme = [w for w in pdf.pages[0].extract_words() if w["text"] == "Acme"]
    assert [round(w["x0"]) for w in acme] == [321]


class TestMappingStore:
    def test_load_missing_file(self, tmp_path):
        assert MappingStore(path=tmp_path / "missing.json").load() == {}

    def test_load_rejects_non_object(self, tmp_path):
        p = tmp_path / "m.json"
        p.write_text("[]", encoding="utf-8")
        with pytest.raises(MappingError):
            MappingStore(path=p).load()

    def test_save_is_pretty_printed_and_leaves_no_temp_file(self, tmp_path):
        p = tmp_path / "nested" / "m.json"
        MappingStore(path=p).save("a.pdf", [{"fieldKey": "business_name", "x": 1, "y": 2}])
        assert p.read_text(encoding="utf-8").startswith('{\n  "a.pdf"')
        assert [f.name for f in p.parent.iterdir()] == ["m.json"]

    def test_save_does_not_touch_a_shared_temp_path(self, tmp_path):
        p = tmp_path / "m.json"
        stale = tmp_path / "m.json.tmp"
        stale.write_text("another writer", encoding="utf-8")

        MappingStore(path=p).save("a.pdf", [])
        MappingStore(path=p).save("b.pdf", [])

        assert stale.read_text(encoding="utf-8") == "another writer"
        assert json.loads(p.read_text(encoding="utf-8")) == {"a.pdf": [], "b.pdf": []}
        assert sorted(f.name for f in tmp_path.iterdir()) == ["m.json", "m.json.tmp"]

    def test_failed_replace_keeps_old_file_and_removes_temp(self, tmp_path, monkeypatch):
        p = tmp_path / "m.json"
        MappingStore(path=p).save("a.pdf", [])

        def _fail(src, dst):
            raise OSError("read-only file system")

        monkeypatch.setattr("app.portal.modules.pdf_forms.mappings.os.replace", _fail)
        with pytest.raises(OSError):
            MappingStore(path=p).save("b.pdf", [])

        assert json.loads(p.read_text(encoding="utf-8")) == {"a.pdf": []}
        assert [f.name for f in tmp_path.iterdir()] == ["m.json"]


def test_coordinates_from_mapping_skips_malformed_entries():
    coords = coordinates_from_mapping(
        [
            {"fieldKey": "business_name", "x": "120", "y": 640.5},
            {"fieldKey": "business_name", "x": 120, "y": 100, "page": 1},
            {"fieldKey": "org_type", "x": "left", "y": 1},
            {"x": 1, "y": 2},
            {"fieldKey": "billing_address", "y": 2},
            "garbage",
        ]
    )
    assert coords == [
        ("business_name", FieldCoord(120.0, 640.5, 0)),
        ("business_name", FieldCoord(120.0, 100.0, 1)),
    ]
