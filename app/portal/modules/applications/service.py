"""
Application intake: validation, file persistence and the submission transaction.

Files are written before the database transaction. If anything fails after the
first write, every file saved for the submission is deleted again so no orphaned
uploads are left behind.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import logging
import os
import re
import time
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from app.portal.audit import record_event
from app.portal.constants import (
    ALLOWED_UPLOAD_EXTENSIONS,
    COMMON_DOC_FIELDS,
    DEFAULT_BUSINESS_OWNERSHIP,
    DEFAULT_TAX_PROFILE,
    DOC_TYPE_MAP,
    ORG_TYPES,
    PLAN_TYPES,
    REQUIRED_DOC_FIELDS,
    TAX_PROFILES,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.portal.storage import Storage

logger = logging.getLogger(__name__)

_DATA_URL_PREFIX = re.compile(r"^data:image/\w+;base64,")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_SAFE_EXTENSION_RE = re.compile(r"\.[A-Za-z0-9]+")

REQUIRED_TEXT_FIELDS = {
    "business_name": "Business Name is required",
    "business_address": "Business Address is required",
    "billing_address": "Billing Address is required",
    "signatory_name": "Signatory Name is required",
    "signatory_designation": "Designation is required",
    "signatory_contact": "Contact Number is required",
    "signatory_id_type": "ID Type is required",
    "signatory_id_number": "ID Number is required",
}

OPTIONAL_TEXT_FIELDS = (
    "trade_name",
    "business_ownership",
    "tax_profile",
    "company_tin",
    "industry_type",
    "date_of_registration",
    "employees_count",
)

CORP_AUTHORITY_ERROR = "Either Secretary's Certificate or Board Resolution is required"


class ValidationError(ValueError):
    def __init__(self, errors: dict[str, str]):
        self.errors = errors
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))


def file_extension(filename: str) -> str:
    """Lowercased extension of the name as uploaded; "" when absent or not plain alphanumerics."""
    ext = os.path.splitext(filename or "")[1].lower()
    return ext if _SAFE_EXTENSION_RE.fullmatch(ext) else ""


@dataclass(frozen=True)
class UploadedDocument:
    field_name: str
    filename: str
    content_type: str
    data: bytes

    @property
    def extension(self) -> str:
        return file_extension(self.filename) or ".bin"


@dataclass
class SubmissionResult:
    success: bool
    application_id: str | None = None
    error: str | None = None
    errors: dict[str, str] = field(default_factory=dict)


def normalize_form(form: Mapping[str, Any]) -> dict[str, str]:
    """Strip every known text field; missing fields become empty strings."""
    keys = ["plan_type", "org_type", "digital_signature", "signatory_email"]
    keys += list(REQUIRED_TEXT_FIELDS) + list(OPTIONAL_TEXT_FIELDS)
    return {k: str(form.get(k) or "").strip() for k in keys}


def collect_uploads(files: Mapping[str, Any]) -> dict[str, UploadedDocument]:
    """
    Read uploaded files into memory. Inputs left empty by the browser arrive as
    a FileStorage with no filename (or zero bytes) and are treated as absent.
    """
    out: dict[str, UploadedDocument] = {}
    for name, f in files.items():
        if f is None or not getattr(f, "filename", None):
            continue
        data = f.read()
        if not data:
            continue
        out[name] = UploadedDocument(
            field_name=name,
            filename=f.filename,
            content_type=(getattr(f, "mimetype", None) or "application/octet-stream").strip(),
            data=data,
        )
    return out


def decode_signature(data: str) -> bytes:
    """Decode the signature pad output (a PNG data URL or bare base64)."""
    raw = _DATA_URL_PREFIX.sub("", (data or "").strip())
    if not raw:
        raise ValidationError({"digital_signature": "Digital signature is required"})
    try:
        decoded = base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError({"digital_signature": "Digital signature is not valid base64 image data"}) from e
    if not decoded:
        raise ValidationError({"digital_signature": "Digital signature is required"})
    return decoded


def validate_application_payload(payload: Mapping[str, str], uploads: Mapping[str, UploadedDocument]) -> dict[str, str]:
    """Validate an intake submission. Returns field -> message; empty when valid."""
    errors: dict[str, str] = {}

    plan_type = payload.get("plan_type") or ""
    org_type = payload.get("org_type") or ""
    if plan_type not in PLAN_TYPES:
        errors["plan_type"] = "Select a valid plan"
    if org_type not in ORG_TYPES:
        errors["org_type"] = "Select a valid organization type"

    for key, message in REQUIRED_TEXT_FIELDS.items():
        if not payload.get(key):
            errors[key] = message

    email = payload.get("signatory_email") or ""
    if not _EMAIL_RE.match(email):
        errors["signatory_email"] = "Invalid email address"

    tax_profile = payload.get("tax_profile") or ""
    if tax_profile and tax_profile not in TAX_PROFILES:
        errors["tax_profile"] = f"Tax profile must be one of: {', '.join(TAX_PROFILES)}"

    try:
        decode_signature(payload.get("digital_signature") or "")
    except ValidationError as e:
        errors.update(e.errors)

    required_docs = list(COMMON_DOC_FIELDS) + list(REQUIRED_DOC_FIELDS.get(org_type, ()))
    for doc_field in required_docs:
        if doc_field not in uploads:
            errors[doc_field] = "File is required"
    if org_type == "CORP" and "sec_certificate" not in uploads and "board_resolution" not in uploads:
        errors["board_resolution"] = CORP_AUTHORITY_ERROR

    for doc_field, up in uploads.items():
        if doc_field in DOC_TYPE_MAP and up.extension not in ALLOWED_UPLOAD_EXTENSIONS:
            errors[doc_field] = "Only PDF, PNG and JPEG files are accepted"

    return errors


def _discard_files(storage: "Storage", keys: list[str]) -> None:
    for key in keys:
        try:
            storage.delete(key)
        except Exception:
            logger.exception("Rollback: failed to delete stored file %s", key)


def submit_application(
    s: "Session",
    storage: "Storage",
    form: Mapping[str, Any],
    files: Mapping[str, Any],
) -> SubmissionResult:
    """
    Validate, store the signature and documents, then create the application,
    its signatory and attachments in one transaction.
    """
    from app.portal.modules.applications.models import Application, Attachment, Signatory

    application_id = str(uuid.uuid4())
    saved_keys: list[str] = []

    try:
        payload = normalize_form(form)
        uploads = collect_uploads(files)
        errors = validate_application_payload(payload, uploads)
        if errors:
            logger.info("Submission rejected: invalid fields %s", sorted(errors))
            return SubmissionResult(success=False, error="Please correct the highlighted fields.", errors=errors)

        ts = int(time.time() * 1000)

        signature_png = decode_signature(payload["digital_signature"])
        signature_key = f"signatures/{application_id}_SIGNATURE_{ts}.png"
        storage.put_bytes(signature_key, signature_png, content_type="image/png")
        saved_keys.append(signature_key)

        attachments: list[Attachment] = []
        for field_name, up in uploads.items():
            doc_type = DOC_TYPE_MAP.get(field_name)
            if not doc_type:
                logger.warning("Unknown document field: %s, skipping.", field_name)
                continue
            key = f"documents/{application_id}_{doc_type}_{ts}{up.extension}"
            storage.put_bytes(key, up.data, content_type=up.content_type)
            saved_keys.append(key)
            attachments.append(
                Attachment(
                    doc_type=doc_type,
                    storage_key=key,
                    original_filename=up.filename,
                    content_type=up.content_type,
                    sha256=hashlib.sha256(up.data).hexdigest(),
                    size_bytes=len(up.data),
                )
            )

        application = Application(
            id=application_id,
            plan_type=payload["plan_type"],
            org_type=payload["org_type"],
            business_name=payload["business_name"],
            trade_name=payload["trade_name"],
            business_address=payload["business_address"],
            billing_address=payload["billing_address"],
            business_ownership=payload["business_ownership"] or DEFAULT_BUSINESS_OWNERSHIP,
            tax_profile=payload["tax_profile"] or DEFAULT_TAX_PROFILE,
            company_tin=payload["company_tin"],
            industry_type=payload["industry_type"],
            date_of_registration=payload["date_of_registration"],
            employees_count=payload["employees_count"],
        )
        application.signatories.append(
            Signatory(
                name=payload["signatory_name"],
                designation=payload["signatory_designation"],
                contact_number=payload["signatory_contact"],
                email=payload["signatory_email"],
                id_type=payload["signatory_id_type"],
                id_number=payload["signatory_id_number"],
                signature_storage_key=signature_key,
            )
        )
        application.attachments.extend(attachments)
        s.add(application)

        record_event(
            s,
            action="application.submit",
            entity_type="Application",
            entity_id=application_id,
            metadata={
                "plan_type": application.plan_type,
                "org_type": application.org_type,
                "documents": sorted(a.doc_type for a in attachments),
            },
        )
        s.commit()
    except Exception as e:
        logger.exception("Submission failed, rolling back %s stored file(s)", len(saved_keys))
        s.rollback()
        _discard_files(storage, saved_keys)
        return SubmissionResult(success=False, error=str(e) or e.__class__.__name__)

    logger.info("Application %s submitted (%s, %s)", application_id, payload["plan_type"], payload["org_type"])
    return SubmissionResult(success=True, application_id=application_id)
