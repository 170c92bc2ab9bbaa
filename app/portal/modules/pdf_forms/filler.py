"""
Fill the static application/BCIF templates.

Values are drawn with reportlab onto a transparent overlay page which is merged
onto the template page with PyPDF2. Any AcroForm widgets a template carries are
flattened: their current values are drawn as static text and the widgets are
dropped, so the delivered PDF cannot be edited.
"""
from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from PyPDF2 import PdfReader, PdfWriter
from PyPDF2.generic import ArrayObject, NameObject
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from app.portal.modules.pdf_forms.coordinates import FieldCoord, FormLayout, bcif_layout, plan_layout
from app.portal.modules.pdf_forms.mappings import coordinates_from_mapping

if TYPE_CHECKING:
    from app.portal.modules.applications.models import Application, Signatory

logger = logging.getLogger(__name__)

GRID_STEP = 25
CHECK_MARK = "4"  # ZapfDingbats heavy check mark


class PdfTemplateError(RuntimeError):
    pass


def field_values(application: "Application", signatory: "Signatory | None") -> dict[str, str]:
    values = {
        "business_name": application.business_name,
        "trade_name": application.trade_name,
        "business_address": application.business_address,
        "billing_address": application.billing_address,
        "business_ownership": application.business_ownership,
        "tax_profile": application.tax_profile,
        "company_tin": application.company_tin,
        "industry_type": application.industry_type,
        "date_of_registration": application.date_of_registration,
        "employees_count": application.employees_count,
        "org_type": application.org_type,
        "plan_type": application.plan_type,
    }
    if signatory is not None:
        values.update(
            {
                "signatory_name": signatory.name,
                "signatory_designation": signatory.designation,
                "signatory_contact": signatory.contact_number,
                "signatory_email": signatory.email,
                "signatory_id_type": signatory.id_type,
                "signatory_id_number": signatory.id_number,
            }
        )
    return {k: (v or "") for k, v in values.items()}


def checkbox_states(application: "Application") -> dict[str, bool]:
    industry = (application.industry_type or "").lower()
    return {
        "chk_ownership_sole": application.org_type == "SOLE_PROP",
        "chk_ownership_partner": application.org_type == "PARTNERSHIP",
        "chk_ownership_corp": application.org_type == "CORP",
        "chk_tax_vat": application.tax_profile == "VAT_REGISTERED",
        "chk_tax_nonvat": application.tax_profile == "NON_VAT",
        "chk_industry_retail": "retail" in industry,
        "chk_industry_service": "service" in industry,
    }


def _draw_calibration_grid(c: canvas.Canvas, width: float, height: float) -> None:
    c.setLineWidth(0.5)
    c.setFont("Helvetica", 8)
    for x in range(0, int(width), GRID_STEP):
        c.setStrokeColorRGB(1, 0, 0, alpha=0.3)
        c.line(x, 0, x, height)
        c.setFillColorRGB(1, 0, 0)
        c.drawString(x + 2, 10, str(x))
        c.drawString(x + 2, height - 10, str(x))
    for y in range(0, int(height), GRID_STEP):
        c.setStrokeColorRGB(0, 0, 1, alpha=0.3)
        c.line(0, y, width, y)
        c.setFillColorRGB(0, 0, 1)
        c.drawString(10, y + 2, str(y))
        c.drawString(width - 20, y + 2, str(y))


def _widget_value(annot) -> tuple[str | None, str | None]:
    """Return (field type, value) for a widget, looking through to its parent field."""
    ft = annot.get("/FT")
    value = annot.get("/V")
    parent = annot.get("/Parent")
    if parent is not None:
        parent = parent.get_object()
        ft = ft or parent.get("/FT")
        value = value if value is not None else parent.get("/V")
    return (str(ft) if ft is not None else None, str(value) if value is not None else None)


def _flatten_widgets(c: canvas.Canvas, page, font_size: float) -> bool:
    """Draw widget values onto the overlay and remove the widgets from the page."""
    if "/Annots" not in page:
        return False
    drew = False
    kept = []
    for annot_ref in page["/Annots"].get_object():
        annot = annot_ref.get_object()
        if annot.get("/Subtype") != "/Widget":
            kept.append(annot_ref)
            continue
        ft, value = _widget_value(annot)
        rect = [float(v) for v in annot.get("/Rect", [0, 0, 0, 0])]
        if ft == "/Tx" and value:
            c.setFillColorRGB(0, 0, 0)
            c.setFont("Helvetica", font_size)
            c.drawString(rect[0] + 2, rect[1] + max((rect[3] - rect[1] - font_size) / 2, 1), value)
            drew = True
        elif ft == "/Btn" and value and value != "/Off":
            c.setFillColorRGB(0, 0, 0)
            c.setFont("ZapfDingbats", font_size)
            c.drawString(rect[0] + 1, rect[1] + 1, CHECK_MARK)
            drew = True
    if kept:
        page[NameObject("/Annots")] = ArrayObject(kept)
    else:
        del page["/Annots"]
    return drew


def _draw_signature(c: canvas.Canvas, signature_png: bytes, coord: FieldCoord, box: tuple[float, float]) -> bool:
    try:
        img = ImageReader(io.BytesIO(signature_png))
        iw, ih = img.getSize()
        scale = min(box[0] / iw, box[1] / ih)
        c.drawImage(img, coord.x, coord.y, width=iw * scale, height=ih * scale, mask="auto")
        return True
    except Exception:
        logger.exception("Failed to embed signature image")
        return False


def fill_pdf(
    template_bytes: bytes,
    layout: FormLayout,
    values: dict[str, str],
    *,
    checkboxes: dict[str, bool] | None = None,
    signature_png: bytes | None = None,
    calibration_grid: bool = False,
) -> bytes:
    """Draw values at the layout's coordinates onto the template and return the flattened PDF."""
    checkboxes = checkboxes or {}
    try:
        reader = PdfReader(io.BytesIO(template_bytes))
        pages = list(reader.pages)
    except Exception as e:
        raise PdfTemplateError(f"Cannot read PDF template {layout.template_name}: {e}") from e

    for key, coord in layout.coordinates:
        if coord.page >= len(pages) or coord.page < 0:
            logger.warning("%s: field %s targets page %s but template has %s page(s)", layout.template_name, key, coord.page, len(pages))

    writer = PdfWriter()
    for index, page in enumerate(pages):
        width = float(page.mediabox.width)
        height = float(page.mediabox.height)
        buf = io.BytesIO()
        c = canvas.Canvas(buf, pagesize=(width, height))

        drew = False
        if calibration_grid:
            _draw_calibration_grid(c, width, height)
            drew = True
        if _flatten_widgets(c, page, layout.font_size):
            drew = True

        for key, coord in layout.coordinates:
            if coord.page != index:
                continue
            if key == "signature":
                if signature_png and _draw_signature(c, signature_png, coord, layout.signature_box):
                    drew = True
                continue
            if key.startswith("chk_"):
                if checkboxes.get(key):
                    c.setFillColorRGB(0, 0, 0)
                    c.setFont("ZapfDingbats", layout.font_size)
                    c.drawString(coord.x, coord.y, CHECK_MARK)
                    drew = True
                continue
            text = values.get(key)
            if not text:
                continue
            c.setFillColorRGB(0, 0, 0)
            c.setFont("Helvetica", layout.font_size)
            c.drawString(coord.x, coord.y, text)
            drew = True

        c.showPage()
        c.save()
        if drew:
            buf.seek(0)
            page.merge_page(PdfReader(buf).pages[0])
        writer.add_page(page)

    out = io.BytesIO()
    writer.write(out)
    return out.getvalue()


def _load_template(template_dir: str | Path, template_name: str) -> bytes:
    path = Path(template_dir) / template_name
    try:
        return path.read_bytes()
    except FileNotFoundError as e:
        raise PdfTemplateError(f"PDF template not found: {path}") from e


def _apply_mapping(layout: FormLayout, mappings: dict | None) -> FormLayout:
    entries = (mappings or {}).get(layout.template_name)
    if not entries:
        return layout
    coords = coordinates_from_mapping(entries)
    if not coords:
        return layout
    logger.debug("Using saved mapping for %s (%s placements)", layout.template_name, len(coords))
    return layout.with_coordinates(coords)


def generate_application_pdf(
    application: "Application",
    signatory: "Signatory | None",
    *,
    template_dir: str | Path,
    signature_png: bytes | None = None,
    mappings: dict | None = None,
    calibration_grid: bool = False,
) -> bytes:
    """Fill the plan-specific application form."""
    layout = _apply_mapping(plan_layout(application.plan_type), mappings)
    template = _load_template(template_dir, layout.template_name)
    return fill_pdf(
        template,
        layout,
        field_values(application, signatory),
        checkboxes=checkbox_states(application),
        signature_png=signature_png,
        calibration_grid=calibration_grid,
    )


def generate_bcif_pdf(
    application: "Application",
    signatory: "Signatory | None",
    *,
    template_dir: str | Path,
    signature_png: bytes | None = None,
    mappings: dict | None = None,
    calibration_grid: bool = False,
) -> bytes:
    """Fill the Business Customer Information Form."""
    layout = _apply_mapping(bcif_layout(), mappings)
    template = _load_template(template_dir, layout.template_name)
    return fill_pdf(
        template,
        layout,
        field_values(application, signatory),
        checkboxes=checkbox_states(application),
        signature_png=signature_png,
        calibration_grid=calibration_grid,
    )
