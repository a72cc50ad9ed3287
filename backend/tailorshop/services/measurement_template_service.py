# Overview: Per-garment measurement form templates.

"""
Measurement templates

One template per garment_type. fields is an ordered list of

    {"name": <measurement column>, "label": <form label>, "enabled": bool}

Names must be measurement columns and may appear once. A template created
without fields starts with every measurement column enabled.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import MeasurementTemplate, MEASUREMENT_FIELDS
from . import read_cache
from .concurrency import lock_for_update, run_with_retry


class MeasurementTemplateError(ValueError):
    pass


def default_fields() -> list[dict]:
    return [
        {"name": name, "label": name.replace("_", " ").title(), "enabled": True}
        for name in MEASUREMENT_FIELDS
    ]


def _clean_garment_type(raw: Any) -> str:
    garment_type = str(raw or "").strip().lower()
    if not garment_type:
        raise MeasurementTemplateError("garment_type is required")
    if len(garment_type) > 64:
        raise MeasurementTemplateError("garment_type exceeds max length 64")
    return garment_type


def _clean_fields(raw: Any) -> list[dict]:
    if not isinstance(raw, list):
        raise MeasurementTemplateError("fields must be a list")
    seen: set[str] = set()
    clean = []
    for position, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise MeasurementTemplateError(f"fields[{position}] must be an object")
        name = entry.get("name")
        if name not in MEASUREMENT_FIELDS:
            raise MeasurementTemplateError(f"fields[{position}]: unknown measurement '{name}'")
        if name in seen:
            raise MeasurementTemplateError(f"fields[{position}]: duplicate measurement '{name}'")
        seen.add(name)
        label = str(entry.get("label") or "").strip() or name.replace("_", " ").title()
        enabled = entry.get("enabled", True)
        if not isinstance(enabled, bool):
            raise MeasurementTemplateError(f"fields[{position}]: enabled must be a boolean")
        clean.append({"name": name, "label": label, "enabled": enabled})
    return clean


def list_templates(*, active_only: bool = False) -> list[dict]:
    def _load():
        q = db.session.query(MeasurementTemplate)
        if active_only:
            q = q.filter(MeasurementTemplate.is_active.is_(True))
        return [t.to_dict() for t in q.order_by(MeasurementTemplate.garment_type.asc()).all()]

    return read_cache.cached(read_cache.SETTINGS, ("measurement_templates", active_only), _load)


def get_template(garment_type: str) -> MeasurementTemplate | None:
    return db.session.query(MeasurementTemplate).filter_by(garment_type=_clean_garment_type(garment_type)).first()


def enabled_fields(garment_type: str) -> list[str]:
    """Field names the form should show. Every field when no active template exists."""
    template = get_template(garment_type)
    if template is None or not template.is_active:
        return list(MEASUREMENT_FIELDS)
    return [f["name"] for f in template.fields if f.get("enabled")]


def upsert_template(garment_type: str, data: dict) -> MeasurementTemplate:
    """Create or update the template for one garment type."""
    garment_type = _clean_garment_type(garment_type)
    unknown = set(data) - {"fields", "is_active", "garment_type"}
    if unknown:
        raise MeasurementTemplateError(f"Field not allowed: {', '.join(sorted(unknown))}")
    if "garment_type" in data and _clean_garment_type(data["garment_type"]) != garment_type:
        raise MeasurementTemplateError("garment_type cannot be changed")
    fields = _clean_fields(data["fields"]) if "fields" in data else None
    is_active = data.get("is_active")
    if is_active is not None and not isinstance(is_active, bool):
        raise MeasurementTemplateError("is_active must be a boolean")

    def _op():
        template = lock_for_update(
            db.session.query(MeasurementTemplate).filter_by(garment_type=garment_type)
        ).first()
        if template is None:
            template = MeasurementTemplate(garment_type=garment_type, fields=default_fields(), is_active=True)
            db.session.add(template)
        if fields is not None:
            template.fields = fields
        if is_active is not None:
            template.is_active = is_active
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise MeasurementTemplateError(f"Template for '{garment_type}' already exists")
        return template

    template = run_with_retry(_op)
    read_cache.invalidate(read_cache.SETTINGS)
    return template


def delete_template(garment_type: str) -> None:
    garment_type = _clean_garment_type(garment_type)

    def _op():
        template = db.session.query(MeasurementTemplate).filter_by(garment_type=garment_type).first()
        if template is None:
            raise MeasurementTemplateError("Measurement template not found")
        db.session.delete(template)
        db.session.commit()

    run_with_retry(_op)
    read_cache.invalidate(read_cache.SETTINGS)
