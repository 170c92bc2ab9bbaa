#!/usr/bin/env python3
"""
Print the AcroForm field names of each plan application template.

The plan templates are expected to carry no interactive fields (values are drawn
at fixed coordinates instead); run this after receiving a new template revision.

Usage:
  python scripts/list_pdf_fields.py [--template-dir DIR] [--include-bcif]
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from PyPDF2 import PdfReader  # noqa: E402

from app.portal.modules.pdf_forms.coordinates import BCIF_TEMPLATE, PDF_TEMPLATES  # noqa: E402


def list_fields(path: Path) -> list[str]:
    reader = PdfReader(str(path))
    return sorted((reader.get_fields() or {}).keys())


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--template-dir", default=os.environ.get("PDF_TEMPLATE_DIR") or os.getcwd())
    parser.add_argument("--include-bcif", action="store_true")
    args = parser.parse_args(argv)

    names = list(PDF_TEMPLATES.values())
    if args.include_bcif:
        names.append(BCIF_TEMPLATE)

    for name in names:
        print(f"File: {name}")
        try:
            print(list_fields(Path(args.template_dir) / name))
        except Exception as e:
            print(f"No form or error: {e}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
