"""
Release-phase helper.

- Fail fast if DATABASE_URL is missing (avoid silently using SQLite in prod).
- Run alembic migrations.
- Warn about PDF templates missing from PDF_TEMPLATE_DIR.

Usage:
  python scripts/release.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _require_env(name: str) -> str:
    v = (os.environ.get(name) or "").strip()
    if not v:
        raise RuntimeError(f"Missing required environment variable {name}.")
    return v


def check_templates(template_dir: str) -> list[str]:
    from app.portal.modules.pdf_forms.coordinates import ALL_TEMPLATES

    return [name for name in ALL_TEMPLATES if not (Path(template_dir) / name).is_file()]


def run_release() -> None:
    db_url = _require_env("DATABASE_URL")
    env = (os.environ.get("ENV") or "").strip().lower()
    if env in ("prod", "production") and db_url.startswith("sqlite"):
        raise RuntimeError("Refusing to run release on sqlite DATABASE_URL in production. Set DATABASE_URL to Postgres.")

    print("=== Intake portal release start ===", flush=True)
    print(f"ENV={env or '(unset)'}", flush=True)
    print("Running Alembic migrations...", flush=True)

    from alembic import command
    from alembic.config import Config

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    command.upgrade(cfg, "head")
    print("Migrations complete.", flush=True)

    template_dir = (os.environ.get("PDF_TEMPLATE_DIR") or os.getcwd()).strip()
    missing = check_templates(template_dir)
    if missing:
        print(f"WARNING: PDF templates missing from {template_dir}: {', '.join(missing)}", flush=True)
    print("=== Intake portal release done ===", flush=True)


def main() -> None:
    run_release()


if __name__ == "__main__":
    main()
