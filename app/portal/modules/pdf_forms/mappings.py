"""
Saved coordinate mappings, one list of markers per PDF template file:

    {"<template file>": [{"fieldKey": "business_name", "x": 120, "y": 640, "page": 0}, ...]}

A saved mapping replaces the built-in coordinate table for that template.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from app.portal.modules.pdf_forms.coordinates import FieldCoord

logger = logging.getLogger(__name__)


class MappingError(ValueError):
    pass


@dataclass(frozen=True)
class MappingStore:
    path: Path

    def load(self) -> dict[str, list[dict[str, Any]]]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise MappingError(f"Mapping file {self.path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise MappingError(f"Mapping file {self.path} must contain a JSON object.")
        return data

    def get(self, form_name: str) -> list[dict[str, Any]]:
        return self.load().get(form_name) or []

    def save(self, form_name: str, fields: list[dict[str, Any]]) -> None:
        """Overwrite the mapping for one template, leaving the others untouched."""
        if not form_name or not isinstance(fields, list):
            raise MappingError("Invalid payload")
        try:
            existing = self.load()
        except MappingError:
            logger.warning("Replacing unreadable mapping file %s", self.path)
            existing = {}
        existing[form_name] = fields

        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Unique temp file per save; concurrent saves each replace the file whole.
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=self.path.parent, prefix=f"{self.path.name}.", suffix=".tmp", delete=False
        ) as tmp:
            json.dump(existing, tmp, indent=2)
        try:
            os.replace(tmp.name, self.path)
        except OSError:
            Path(tmp.name).unlink(missing_ok=True)
            raise


def mapping_store_from_config(config: dict) -> MappingStore:
    path = (config.get("PDF_MAPPINGS_PATH") or "").strip() or os.path.join(os.getcwd(), "pdf_mappings.json")
    return MappingStore(path=Path(path))


def coordinates_from_mapping(entries: list[dict[str, Any]]) -> list[tuple[str, FieldCoord]]:
    """
    Convert saved markers into placements. The same field may be placed more than
    once (e.g. business name repeated on two pages). Malformed markers are skipped.
    """
    out: list[tuple[str, FieldCoord]] = []
    for entry in entries:
        if not isinstance(entry, dict):
            logger.warning("Skipping malformed mapping entry: %r", entry)
            continue
        key = entry.get("fieldKey")
        try:
            coord = FieldCoord(x=float(entry["x"]), y=float(entry["y"]), page=int(entry.get("page") or 0))
        except (KeyError, TypeError, ValueError):
            logger.warning("Skipping malformed mapping entry: %r", entry)
            continue
        if not key or not isinstance(key, str):
            logger.warning("Skipping mapping entry without fieldKey: %r", entry)
            continue
        out.append((key, coord))
    return out
