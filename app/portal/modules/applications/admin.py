from __future__ import annotations

import io

from flask import Blueprint, abort, current_app, render_template, send_file
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.portal.audit import record_event
from app.portal.constants import ORG_LABELS, PLAN_LABELS
from app.portal.db import db_session
from app.portal.modules.applications.models import Application
from app.portal.modules.applications.package import build_application_package, package_filename
from app.portal.modules.pdf_forms.mappings import MappingError, mapping_store_from_config
from app.portal.storage import storage_from_config

bp = Blueprint("applications_admin", __name__)


def _get_application_or_404(s: Session, application_id: str) -> Application:
    a = s.get(Application, application_id)
    if not a:
        abort(404)
    return a


@bp.get("/")
@bp.get("/applications")
def list_applications():
    s = db_session()
    applications: list[Application] = []
    try:
        applications = s.query(Application).order_by(Application.created_at.desc()).all()
    except SQLAlchemyError:
        current_app.logger.exception("Database unavailable while listing applications")
        s.rollback()
    return render_template(
        "admin/applications/list.html",
        applications=applications,
        plan_labels=PLAN_LABELS,
        org_labels=ORG_LABELS,
    )


@bp.get("/applications/<application_id>")
def application_detail(application_id: str):
    s = db_session()
    a = _get_application_or_404(s, application_id)
    return render_template(
        "admin/applications/detail.html",
        application=a,
        signatory=a.primary_signatory,
        plan_labels=PLAN_LABELS,
        org_labels=ORG_LABELS,
    )


@bp.get("/applications/<application_id>/download")
def download_package(application_id: str):
    s = db_session()
    a = _get_application_or_404(s, application_id)

    cfg = current_app.config
    try:
        mappings = mapping_store_from_config(cfg).load()
    except MappingError:
        current_app.logger.exception("Ignoring unreadable PDF mapping file")
        mappings = {}

    data = build_application_package(
        a,
        storage_from_config(cfg),
        template_dir=cfg["PDF_TEMPLATE_DIR"],
        mappings=mappings,
        calibration_grid=bool(cfg.get("PDF_CALIBRATION_GRID")),
    )

    record_event(
        s,
        action="application.download",
        entity_type="Application",
        entity_id=a.id,
        metadata={"attachments": len(a.attachments), "size_bytes": len(data)},
    )
    s.commit()

    return send_file(
        io.BytesIO(data),
        mimetype="application/zip",
        as_attachment=True,
        download_name=package_filename(a),
        max_age=0,
    )
