"""
Static templates and field placement for the application and BCIF PDFs.

The templates carry no interactive form fields, so every value is drawn at a
fixed point. Coordinates use the PDF origin (bottom-left), in points.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldCoord:
    x: float
    y: float
    page: int = 0


@dataclass(frozen=True)
class FormLayout:
    template_name: str
    coordinates: tuple[tuple[str, FieldCoord], ...]
    font_size: float
    signature_box: tuple[float, float]  # max width, max height

    def with_coordinates(self, coordinates: list[tuple[str, FieldCoord]]) -> "FormLayout":
        return FormLayout(
            template_name=self.template_name,
            coordinates=tuple(coordinates),
            font_size=self.font_size,
            signature_box=self.signature_box,
        )


PDF_TEMPLATES = {
    "FIBERBIZ_100": "SME-FiberBiz-2024-01_100Mbps-3.pdf",
    "FIBERBIZ_300": "SME-FiberBiz-2024-01_300Mbps-2.pdf",
    "AFFORDABOOST_500": "Affordaboost-500-Mbps-App-Form-2.pdf",
}

BCIF_TEMPLATE = "BCIF-WITH-CORP-SUBS-DEC_PLDT-SMART-ePLDT-ver11.3-withTPA_22Jan2026.pdf"

# Placeholders until calibrated against the printed forms (see /admin/mapping/editor).
_PLAN_FORM_COORDINATES = {
    "business_name": FieldCoord(100, 650),
    "business_address": FieldCoord(100, 630),
    "billing_address": FieldCoord(100, 610),
    "signatory_name": FieldCoord(100, 300),
    "signatory_designation": FieldCoord(100, 280),
    "signatory_contact": FieldCoord(100, 260),
    "signatory_email": FieldCoord(100, 240),
    "signature": FieldCoord(100, 320),
}

FIELD_COORDINATES = {
    "FIBERBIZ_100": dict(_PLAN_FORM_COORDINATES),
    "FIBERBIZ_300": dict(_PLAN_FORM_COORDINATES),
    "AFFORDABOOST_500": dict(_PLAN_FORM_COORDINATES),
}

BCIF_COORDINATES = {
    "business_name": FieldCoord(200, 650),
    "business_address": FieldCoord(200, 600),
    "billing_address": FieldCoord(200, 550),
    "business_ownership": FieldCoord(200, 500),
    "tax_profile": FieldCoord(200, 475),
    "company_tin": FieldCoord(200, 450),
    "industry_type": FieldCoord(200, 425),
    "date_of_registration": FieldCoord(200, 400),
    "employees_count": FieldCoord(400, 400),
    "org_type": FieldCoord(200, 375),
    # Signatory / finance / bill recipient block
    "signatory_name": FieldCoord(100, 300),
    "signatory_designation": FieldCoord(250, 300),
    "signatory_contact": FieldCoord(350, 300),
    "signatory_email": FieldCoord(450, 300),
    "signatory_id_type": FieldCoord(100, 250),
    "signatory_id_number": FieldCoord(250, 250),
    "signature": FieldCoord(100, 100),
}

# Field inventory offered by the mapping editor.
MAPPABLE_FIELDS = (
    "business_name",
    "business_address",
    "billing_address",
    "business_ownership",
    "tax_profile",
    "company_tin",
    "industry_type",
    "date_of_registration",
    "employees_count",
    "org_type",
    "signatory_name",
    "signatory_designation",
    "signatory_contact",
    "signatory_email",
    "signatory_id_type",
    "signatory_id_number",
    "signature",
    "chk_ownership_sole",
    "chk_ownership_partner",
    "chk_ownership_corp",
    "chk_tax_vat",
    "chk_tax_nonvat",
    "chk_industry_retail",
    "chk_industry_service",
)

ALL_TEMPLATES = (BCIF_TEMPLATE,) + tuple(PDF_TEMPLATES.values())


def plan_layout(plan_type: str) -> FormLayout:
    from app.portal.modules.pdf_forms.filler import PdfTemplateError

    template_name = PDF_TEMPLATES.get(plan_type)
    if not template_name:
        raise PdfTemplateError(f"No PDF template configured for plan: {plan_type}")
    coords = FIELD_COORDINATES.get(plan_type) or FIELD_COORDINATES["FIBERBIZ_100"]
    return FormLayout(
        template_name=template_name,
        coordinates=tuple(coords.items()),
        font_size=10,
        signature_box=(150, 50),
    )


def bcif_layout() -> FormLayout:
    return FormLayout(
        template_name=BCIF_TEMPLATE,
        coordinates=tuple(BCIF_COORDINATES.items()),
        font_size=8,
        signature_box=(100, 40),
    )
