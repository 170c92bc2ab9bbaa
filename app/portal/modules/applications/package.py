from __future__ import annotations

import io
import logging
import os
import zipfile
from typing import TYPE_CHECKING

from werkzeug.utils import secure_filename

from app.portal.modules.applications.service import file_extension
from app.portal.modules.pdf_forms.filler import generate_application_pdf, generate_bcif_pdf
from app.portal.storage import StorageError

if TYPE_CHECKING:
    from app.portal.modules.applications.models import Application
    from app.portal.storage import Storage

logger = logging.getLogger(__name__)


def package_filename(application: "Application") -> str:
    return f"Application-{application.id}.zip"


def _read_signature(storage: "Storage", key: str | None) -> bytes | None:
    if not key:
        return None
    try:
        return storage.read_bytes(key)
    except (StorageError, OSError):
        logger.exception("Signature file unavailable (%s); generating PDFs without it", key)
        return None


def attachment_archive_name(doc_type: str, original_filename: str, used: set[str]) -> str:
    stem, ext = os.path.splitext(original_filename or "")
    if not file_extension(original_filename):
        ext = ""
    prefix = f"attachments/{doc_type}_{secure_filename(stem) or 'document'}"
    name = f"{prefix}{ext}"
    n = 2
    while name in used:
        name = f"{prefix}-{n}{ext}"
        n += 1
    used.add(name)
    return name


def build_application_package(
    application: "Application",
    storage: "Storage",
    *,
    template_dir: str,
    mappings: dict | None = None,
    calibration_grid: bool = False,
) -> bytes:
    """
    Build the download package: the filled plan application form, the filled
    BCIF and every stored attachment, zipped.
    """
    signatory = application.primary_signatory
    signature_png = _read_signature(storage, signatory.signature_storage_key if signatory else None)

    pdf_kwargs = {
        "template_dir": template_dir,
        "signature_png": signature_png,
        "mappings": mappings,
        "calibration_grid": calibration_grid,
    }
    application_pdf = generate_application_pdf(application, signatory, **pdf_kwargs)
    bcif_pdf = generate_bcif_pdf(application, signatory, **pdf_kwargs)

    buf = io.BytesIO()
    used: set[str] = set()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(f"Application-{application.id}.pdf", application_pdf)
        zf.writestr(f"BCIF-{application.id}.pdf", bcif_pdf)
        for att in application.attachments:
            try:
                data = storage.read_bytes(att.storage_key)
            except (StorageError, OSError):
                logger.exception("Attachment %s missing from storage (%s); skipped", att.id, att.storage_key)
                continue
            zf.writestr(attachment_archive_name(att.doc_type, att.original_filename, used), data)
    return buf.getvalue()
