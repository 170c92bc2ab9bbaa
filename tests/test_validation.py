"""
Unit tests for intake validation.

Tests cover:
- Enum and required-text checks
- Per-organization required documents (including the corporation either/or rule)
- Upload extension checks
- Signature decoding
"""

import base64
import io

import pytest
from PIL import Image, ImageDraw

from app.portal.modules.applications.service import (
    CORP_AUTHORITY_ERROR,
    UploadedDocument,
    ValidationError,
    decode_signature,
    normalize_form,
    validate_application_payload,
)


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


def _docs(*fields, ext=".pdf"):
    return {
        f: UploadedDocument(field_name=f, filename=f"{f}{ext}", content_type="application/pdf", data=b"%PDF-1.4")
        for f in fields
    }


COMMON = ("bio_page_id", "specimen_sigs")


class TestValidateApplicationPayload:
    def test_valid_sole_proprietorship(self, application_form):
        payload = normalize_form(application_form())
        errors = validate_application_payload(payload, _docs(*COMMON, "mayors_permit", "dti_registration"))
        assert errors == {}

    def test_invalid_plan_and_org(self, application_form):
        payload = normalize_form(application_form(plan_type="GIGABIZ_1000", org_type="LLC"))
        errors = validate_application_payload(payload, _docs(*COMMON))
        assert errors["plan_type"] == "Select a valid plan"
        assert errors["org_type"] == "Select a valid organization type"

    def test_required_text_fields(self, application_form):
        payload = normalize_form(application_form(business_name="   ", signatory_id_number=""))
        errors = validate_application_payload(payload, _docs(*COMMON, "mayors_permit", "dti_registration"))
        assert errors == {
            "business_name": "Business Name is required",
            "signatory_id_number": "ID Number is required",
        }

    @pytest.mark.parametrize("email", ["", "maria", "maria@", "maria@acme", "ma ria@acme.example"])
    def test_invalid_email(self, application_form, email):
        payload = normalize_form(application_form(signatory_email=email))
        errors = validate_application_payload(payload, _docs(*COMMON, "mayors_permit", "dti_registration"))
        assert errors == {"signatory_email": "Invalid email address"}

    def test_unknown_tax_profile(self, application_form):
        payload = normalize_form(application_form(tax_profile="EXEMPT"))
        errors = validate_application_payload(payload, _docs(*COMMON, "mayors_permit", "dti_registration"))
        assert "tax_profile" in errors

    def test_missing_signature(self, application_form):
        payload = normalize_form(application_form(digital_signature=""))
        errors = validate_application_payload(payload, _docs(*COMMON, "mayors_permit", "dti_registration"))
        assert errors == {"digital_signature": "Digital signature is required"}

    def test_common_documents_required_for_every_org(self, application_form):
        payload = normalize_form(application_form())
        errors = validate_application_payload(payload, _docs("mayors_permit", "dti_registration"))
        assert errors == {"bio_page_id": "File is required", "specimen_sigs": "File is required"}

    @pytest.mark.parametrize(
        "org_type,required",
        [
            ("SOLE_PROP", {"mayors_permit", "dti_registration"}),
            ("PARTNERSHIP", {"sec_registration", "articles_of_partnership", "partners_resolution"}),
            ("COOP", {"cda_registration", "board_resolution"}),
        ],
    )
    def test_org_specific_documents(self, application_form, org_type, required):
        payload = normalize_form(application_form(org_type=org_type))
        errors = validate_application_payload(payload, _docs(*COMMON))
        assert set(errors) == required
        assert all(msg == "File is required" for msg in errors.values())

        assert validate_application_payload(payload, _docs(*COMMON, *required)) == {}

    def test_corporation_needs_certificate_or_resolution(self, application_form):
        payload = normalize_form(application_form(org_type="CORP"))
        errors = validate_application_payload(payload, _docs(*COMMON, "sec_registration"))
        assert errors == {"board_resolution": CORP_AUTHORITY_ERROR}

    @pytest.mark.parametrize("authority", ["sec_certificate", "board_resolution"])
    def test_corporation_either_document_suffices(self, application_form, authority):
        payload = normalize_form(application_form(org_type="CORP"))
        assert validate_application_payload(payload, _docs(*COMMON, "sec_registration", authority)) == {}

    def test_corporation_requires_sec_registration(self, application_form):
        payload = normalize_form(application_form(org_type="CORP"))
        errors = validate_application_payload(payload, _docs(*COMMON, "sec_certificate"))
        assert errors == {"sec_registration": "File is required"}

    def test_rejects_unsupported_extension(self, application_form):
        docs = _docs(*COMMON, "dti_registration")
        docs.update(_docs("mayors_permit", ext=".exe"))
        payload = normalize_form(application_form())
        errors = validate_application_payload(payload, docs)
        assert errors == {"mayors_permit": "Only PDF, PNG and JPEG files are accepted"}

    def test_image_uploads_accepted(self, application_form):
        docs = _docs(*COMMON, ext=".JPG")
        docs.update(_docs("mayors_permit", "dti_registration", ext=".png"))
        payload = normalize_form(application_form())
        assert validate_application_payload(payload, docs) == {}


class TestUploadedDocument:
    def test_extension_lowercased(self):
        up = UploadedDocument(field_name="dti_registration", filename="DTI Cert.PDF", content_type="application/pdf", data=b"x")
        assert up.extension == ".pdf"

    @pytest.mark.parametrize("filename", ["登録証明書.pdf", "_.pdf", "Ñandú.PDF"])
    def test_extension_survives_unsafe_stem(self, filename):
        up = UploadedDocument(field_name="dti_registration", filename=filename, content_type="application/pdf", data=b"x")
        assert up.extension == ".pdf"

    @pytest.mark.parametrize("filename", ["scan.p-f", "scan.pdf ", "scan.pdf\n", "scan.ｐｄｆ"])
    def test_unusual_extension_defaults_to_bin(self, filename):
        up = UploadedDocument(field_name="dti_registration", filename=filename, content_type="application/pdf", data=b"x")
        assert up.extension == ".bin"

    def test_missing_extension_defaults_to_bin(self):
        up = UploadedDocument(field_name="dti_registration", filename="scan", content_type="application/octet-stream", data=b"x")
        assert up.extension == ".bin"

    def test_non_ascii_filename_passes_validation(self, application_form):
        docs = _docs(*COMMON, "mayors_permit")
        docs["dti_registration"] = UploadedDocument(
            field_name="dti_registration", filename="登録証明書.pdf", content_type="application/pdf", data=b"%PDF-1.4"
        )
        assert validate_application_payload(normalize_form(application_form()), docs) == {}


class TestDecodeSignature:
    def test_strips_data_url_prefix(self):
        assert decode_signature(SIGNATURE_DATA_URL) == SIGNATURE_PNG

    def test_accepts_bare_base64(self):
        assert decode_signature(base64.b64encode(SIGNATURE_PNG).decode()) == SIGNATURE_PNG

    def test_rejects_invalid_base64(self):
        with pytest.raises(ValidationError) as exc:
            decode_signature("data:image/png;base64,not*base64!")
        assert "digital_signature" in exc.value.errors

    def test_rejects_empty(self):
        with pytest.raises(ValidationError) as exc:
            decode_signature("data:image/png;base64,")
        assert exc.value.errors == {"digital_signature": "Digital signature is required"}


def test_normalize_form_strips_and_fills_missing():
    payload = normalize_form({"business_name": "  Acme  ", "plan_type": None})
    assert payload["business_name"] == "Acme"
    assert payload["plan_type"] == ""
    assert payload["trade_name"] == ""
