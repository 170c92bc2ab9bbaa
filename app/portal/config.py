import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    storage_backend: str
    upload_directory_path: str
    s3_endpoint: str
    s3_region: str
    s3_bucket: str
    s3_access_key_id: str
    s3_secret_access_key: str

    pdf_template_dir: str
    pdf_mappings_path: str
    pdf_calibration_grid: bool


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_bool(name: str, default: bool = False) -> bool:
    raw = _getenv(name)
    if not raw:
        return default
    return raw.lower() in ("1", "true", "yes", "on")


def load_settings() -> Settings:
    cwd = os.getcwd()
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///portal.db"),
        storage_backend=_getenv("STORAGE_BACKEND", "local"),
        upload_directory_path=_getenv("UPLOAD_DIRECTORY_PATH", os.path.join(cwd, "uploads")),
        s3_endpoint=_getenv("S3_ENDPOINT", ""),
        s3_region=_getenv("S3_REGION", "nyc3"),
        s3_bucket=_getenv("S3_BUCKET", ""),
        s3_access_key_id=_getenv("S3_ACCESS_KEY_ID", ""),
        s3_secret_access_key=_getenv("S3_SECRET_ACCESS_KEY", ""),
        pdf_template_dir=_getenv("PDF_TEMPLATE_DIR", cwd),
        pdf_mappings_path=_getenv("PDF_MAPPINGS_PATH", os.path.join(cwd, "pdf_mappings.json")),
        pdf_calibration_grid=_getenv_bool("PDF_CALIBRATION_GRID", False),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "STORAGE_BACKEND": s.storage_backend,
        "UPLOAD_DIRECTORY_PATH": s.upload_directory_path,
        "S3_ENDPOINT": s.s3_endpoint,
        "S3_REGION": s.s3_region,
        "S3_BUCKET": s.s3_bucket,
        "S3_ACCESS_KEY_ID": s.s3_access_key_id,
        "S3_SECRET_ACCESS_KEY": s.s3_secret_access_key,
        "PDF_TEMPLATE_DIR": s.pdf_template_dir,
        "PDF_MAPPINGS_PATH": s.pdf_mappings_path,
        "PDF_CALIBRATION_GRID": s.pdf_calibration_grid,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
        # file upload limits (25MB across all documents of one application)
        "MAX_CONTENT_LENGTH": 25 * 1024 * 1024,
    }
