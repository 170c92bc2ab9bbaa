import logging
import os
import uuid

from flask import Flask, g, render_template, request
from dotenv import load_dotenv
from sqlalchemy import inspect as sa_inspect

from app.portal.config import load_config
from app.portal.db import init_db, teardown_db_session
from app.portal.routes import bp as routes_bp
from app.portal.modules.applications.public import bp as applications_bp
from app.portal.modules.applications.admin import bp as applications_admin_bp
from app.portal.modules.pdf_forms.admin import bp as pdf_forms_bp
from app.portal.modules.pdf_forms.filler import PdfTemplateError

logger = logging.getLogger(__name__)

_EXPECTED_TABLES = ("applications", "signatories", "attachments", "audit_events")


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())

    from app.portal.security import ensure_csrf_token, validate_csrf

    @app.context_processor
    def _inject_csrf() -> dict:
        return {"csrf_token": ensure_csrf_token()}

    @app.template_filter("dateformat")
    def _dateformat_filter(value, format: str = "%Y-%m-%d %H:%M") -> str:
        if value is None:
            return "—"
        if hasattr(value, "strftime"):
            return value.strftime(format)
        return str(value)

    @app.before_request
    def _request_id_and_csrf():
        if not getattr(g, "request_id", None):
            g.request_id = uuid.uuid4().hex
        if request.path.startswith(("/static/", "/health", "/healthz")):
            return None
        ensure_csrf_token()
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            if not validate_csrf(request):
                app.logger.warning("CSRF check failed path=%s request_id=%s", request.path, g.request_id)
                return render_template("errors/400.html", message="CSRF token missing or invalid."), 400
        return None

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)

    def _dispose_engine_on_fork() -> None:
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                    app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    # Storage health check (fail loudly on misconfiguration)
    if app.config.get("STORAGE_BACKEND") == "s3":
        missing_s3 = [
            key
            for key in ("S3_ENDPOINT", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY")
            if not app.config.get(key)
        ]
        if missing_s3:
            app.logger.error("STORAGE CONFIG ERROR: Missing required S3 env vars: %s", ", ".join(missing_s3))
    else:
        upload_root = app.config.get("UPLOAD_DIRECTORY_PATH")
        if upload_root:
            os.makedirs(os.path.join(upload_root, "signatures"), exist_ok=True)
            os.makedirs(os.path.join(upload_root, "documents"), exist_ok=True)

    if not os.path.isdir(app.config["PDF_TEMPLATE_DIR"]):
        app.logger.error("PDF_TEMPLATE_DIR does not exist: %s", app.config["PDF_TEMPLATE_DIR"])

    app.register_blueprint(routes_bp)
    app.register_blueprint(applications_bp)
    app.register_blueprint(applications_admin_bp, url_prefix="/admin")
    app.register_blueprint(pdf_forms_bp, url_prefix="/admin")

    app.teardown_appcontext(teardown_db_session)

    # Schema health (lean): surface a missing migration early instead of on first submit.
    try:
        insp = sa_inspect(app.extensions["sqlalchemy_engine"])
        missing = [t for t in _EXPECTED_TABLES if not insp.has_table(t)]
        if missing:
            app.logger.error("DB schema out of date; run `alembic upgrade head`. Missing: %s", ", ".join(missing))
    except Exception as e:
        app.logger.exception("Schema health check failed: %s", e)

    @app.errorhandler(PdfTemplateError)
    def _err_pdf_template(e):  # type: ignore[no-redef]
        app.logger.error("PDF generation failed (request_id=%s): %s", getattr(g, "request_id", None), e)
        return render_template("errors/500.html", message=str(e)), 500

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        return render_template("errors/404.html"), 404

    @app.errorhandler(413)
    def _err_413(e):  # type: ignore[no-redef]
        limit_mb = (app.config.get("MAX_CONTENT_LENGTH") or 0) // (1024 * 1024)
        return render_template("errors/400.html", message=f"Upload too large. Maximum total size is {limit_mb}MB."), 413

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return render_template("errors/500.html"), 500

    logger.info("create_app() complete; app ready to serve")

    return app
