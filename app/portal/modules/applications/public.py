from __future__ import annotations

from flask import Blueprint, current_app, jsonify, redirect, render_template, request, url_for

from app.portal.constants import (
    COMMON_DOC_FIELDS,
    DOC_LABELS,
    ORG_DOC_FIELDS,
    ORG_LABELS,
    ORG_TYPES,
    PLAN_LABELS,
    PLAN_TYPES,
    TAX_PROFILES,
)
from app.portal.db import db_session
from app.portal.modules.applications.service import submit_application
from app.portal.storage import storage_from_config

bp = Blueprint("applications", __name__)


def _wants_json() -> bool:
    return request.accept_mimetypes.best == "application/json"


def _render_form(form: dict | None = None, errors: dict | None = None, status: int = 200):
    form = form or {"plan_type": "FIBERBIZ_100", "org_type": "SOLE_PROP"}
    return (
        render_template(
            "public/apply.html",
            form=form,
            errors=errors or {},
            plan_types=PLAN_TYPES,
            plan_labels=PLAN_LABELS,
            org_types=ORG_TYPES,
            org_labels=ORG_LABELS,
            tax_profiles=TAX_PROFILES,
            common_doc_fields=COMMON_DOC_FIELDS,
            org_doc_fields=ORG_DOC_FIELDS,
            doc_labels=DOC_LABELS,
        ),
        status,
    )


@bp.get("/apply")
def apply_get():
    return _render_form()


@bp.post("/apply")
def apply_post():
    s = db_session()
    storage = storage_from_config(current_app.config)
    result = submit_application(s, storage, request.form, request.files)

    if _wants_json():
        if result.success:
            return jsonify({"success": True, "applicationId": result.application_id})
        status = 400 if result.errors else 500
        return jsonify({"success": False, "error": result.error, "errors": result.errors}), status

    if result.success:
        return redirect(url_for("applications.submitted", application_id=result.application_id))

    # Never echo the signature back into the page; the applicant signs again.
    form = {k: v for k, v in request.form.items() if k not in ("digital_signature", "csrf_token")}
    if result.errors:
        return _render_form(form, result.errors, 400)
    return _render_form(form, {"__all__": f"Submission failed: {result.error}"}, 500)


@bp.get("/apply/submitted/<application_id>")
def submitted(application_id: str):
    return render_template("public/submitted.html", application_id=application_id)
