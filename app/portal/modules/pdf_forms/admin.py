from __future__ import annotations

from flask import Blueprint, abort, current_app, jsonify, render_template, request, send_from_directory

from app.portal.audit import record_event
from app.portal.db import db_session
from app.portal.modules.pdf_forms.coordinates import (
    ALL_TEMPLATES,
    BCIF_COORDINATES,
    BCIF_TEMPLATE,
    FIELD_COORDINATES,
    MAPPABLE_FIELDS,
    PDF_TEMPLATES,
)
from app.portal.modules.pdf_forms.mappings import MappingError, mapping_store_from_config

bp = Blueprint("pdf_forms", __name__)


def _builtin_mapping(form_name: str) -> list[dict]:
    if form_name == BCIF_TEMPLATE:
        coords = BCIF_COORDINATES
    else:
        plan = next((p for p, t in PDF_TEMPLATES.items() if t == form_name), None)
        coords = FIELD_COORDINATES.get(plan or "", {})
    return [{"fieldKey": k, "x": c.x, "y": c.y, "page": c.page} for k, c in coords.items()]


@bp.get("/mapping")
def mapping_get():
    form_name = (request.args.get("formName") or "").strip()
    store = mapping_store_from_config(current_app.config)
    try:
        mappings = store.load()
    except MappingError:
        current_app.logger.exception("Error reading mapping")
        return "Internal Server Error", 500
    if form_name:
        return jsonify(mappings.get(form_name) or [])
    return jsonify(mappings)


@bp.post("/mapping")
def mapping_post():
    body = request.get_json(silent=True) or {}
    form_name = body.get("formName") if isinstance(body, dict) else None
    fields = body.get("fields") if isinstance(body, dict) else None
    if not form_name or not isinstance(form_name, str) or not isinstance(fields, list):
        return "Invalid payload", 400

    store = mapping_store_from_config(current_app.config)
    try:
        store.save(form_name, fields)
    except OSError:
        current_app.logger.exception("Error saving mapping")
        return "Internal Server Error", 500

    s = db_session()
    record_event(
        s,
        action="pdf_mapping.save",
        entity_type="PdfTemplate",
        entity_id=form_name,
        metadata={"field_count": len(fields)},
    )
    s.commit()
    current_app.logger.info("Saved %s mapping entries for %s", len(fields), form_name)
    return jsonify({"success": True, "message": "Mappings saved"})


@bp.get("/mapping/editor")
def mapping_editor():
    form_name = (request.args.get("formName") or "").strip()
    if form_name and form_name not in ALL_TEMPLATES:
        abort(404)

    saved: list[dict] = []
    if form_name:
        try:
            saved = mapping_store_from_config(current_app.config).get(form_name)
        except MappingError:
            current_app.logger.exception("Error reading mapping")
    return render_template(
        "admin/pdf_forms/editor.html",
        templates=ALL_TEMPLATES,
        form_name=form_name,
        fields=MAPPABLE_FIELDS,
        saved=saved,
        builtin=_builtin_mapping(form_name) if form_name else [],
    )


@bp.get("/mapping/templates/<path:template_name>")
def template_file(template_name: str):
    if template_name not in ALL_TEMPLATES:
        abort(404)
    return send_from_directory(current_app.config["PDF_TEMPLATE_DIR"], template_name, mimetype="application/pdf")
