# Overview: Display settings for order statuses and VIP tiers, plus free-form app settings.

"""
Typed display configuration.

Two kinds of status settings share one contract:

    order_status -> OrderStatusSetting, code must be an order status
    vip_status   -> VipStatusSetting,  code must be a VIP tier

code is the identifier stored on orders and customers and never changes
once written. label, color, sort_order and is_active are display metadata.
"""

from __future__ import annotations

import re
from typing import Any

from ..extensions import db
from ..models import OrderStatusSetting, VipStatusSetting, AppSetting, ORDER_STATUSES, VIP_TIERS
from . import read_cache
from .concurrency import run_with_retry


KIND_ORDER_STATUS = "order_status"
KIND_VIP_STATUS = "vip_status"

COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

INVOICE_TEMPLATE_KEY = "invoice_template"

_KINDS = {
    KIND_ORDER_STATUS: (OrderStatusSetting, ORDER_STATUSES),
    KIND_VIP_STATUS: (VipStatusSetting, VIP_TIERS),
}

DEFAULT_ORDER_STATUSES = [
    ("draft", "Draft", "#6b7280"),
    ("pending", "Pending", "#f59e0b"),
    ("deposit_paid", "Deposit Paid", "#3b82f6"),
    ("materials_ordered", "Materials Ordered", "#6366f1"),
    ("in_production", "In Production", "#8b5cf6"),
    ("ready_for_fitting", "Ready for Fitting", "#06b6d4"),
    ("ready_for_pickup", "Ready for Pickup", "#10b981"),
    ("completed", "Completed", "#22c55e"),
    ("cancelled", "Cancelled", "#ef4444"),
]

DEFAULT_VIP_STATUSES = [
    ("regular", "Regular", "#6b7280"),
    ("silver", "Silver", "#9ca3af"),
    ("gold", "Gold", "#f59e0b"),
    ("platinum", "Platinum", "#8b5cf6"),
]

DEFAULT_INVOICE_TEMPLATE = {
    "company_name": "",
    "company_address": "",
    "company_phone": "",
    "company_email": "",
    "logo_url": None,
    "footer_text": "Thank you for your business!",
    "show_measurements": False,
}


class SettingsError(ValueError):
    pass


def _model_for(kind: str):
    try:
        return _KINDS[kind]
    except KeyError:
        raise SettingsError(f"Unknown settings kind '{kind}'. Must be one of: {', '.join(_KINDS)}")


def ensure_defaults_seeded() -> int:
    """Insert missing default rows. Existing rows are left untouched. Returns rows added."""
    def _op():
        added = 0
        for kind, defaults in ((KIND_ORDER_STATUS, DEFAULT_ORDER_STATUSES), (KIND_VIP_STATUS, DEFAULT_VIP_STATUSES)):
            model, _ = _KINDS[kind]
            existing = {row.code for row in db.session.query(model.code).all()}
            for position, (code, label, color) in enumerate(defaults):
                if code in existing:
                    continue
                row = model(code=code, label=label, color=color, sort_order=position, is_active=True)
                if model is OrderStatusSetting:
                    row.is_system = True
                db.session.add(row)
                added += 1
        if db.session.query(AppSetting.key).filter_by(key=INVOICE_TEMPLATE_KEY).first() is None:
            db.session.add(AppSetting(key=INVOICE_TEMPLATE_KEY, value=dict(DEFAULT_INVOICE_TEMPLATE)))
            added += 1
        db.session.commit()
        return added

    added = run_with_retry(_op)
    if added:
        read_cache.invalidate(read_cache.SETTINGS)
    return added


def list_settings(kind: str, *, active_only: bool = False) -> list[dict]:
    model, _ = _model_for(kind)

    def _load():
        q = db.session.query(model)
        if active_only:
            q = q.filter(model.is_active.is_(True))
        return [row.to_dict() for row in q.order_by(model.sort_order.asc(), model.id.asc()).all()]

    return read_cache.cached(read_cache.SETTINGS, (kind, active_only), _load)


def get_setting(kind: str, code: str):
    model, _ = _model_for(kind)
    return db.session.query(model).filter_by(code=code).first()


def _clean(data: dict) -> dict:
    allowed = {"label", "color", "sort_order", "is_active"}
    unknown = set(data) - allowed - {"code"}
    if unknown:
        raise SettingsError(f"Field not allowed: {', '.join(sorted(unknown))}")

    clean: dict[str, Any] = {}
    if "label" in data:
        label = str(data["label"] or "").strip()
        if not label:
            raise SettingsError("label cannot be blank")
        if len(label) > 64:
            raise SettingsError("label exceeds max length 64")
        clean["label"] = label
    if "color" in data:
        color = str(data["color"] or "").strip()
        if not COLOR_RE.match(color):
            raise SettingsError("color must be a hex value like #aabbcc")
        clean["color"] = color
    if "sort_order" in data:
        value = data["sort_order"]
        if isinstance(value, bool) or not isinstance(value, int):
            raise SettingsError("sort_order must be an integer")
        clean["sort_order"] = value
    if "is_active" in data:
        if not isinstance(data["is_active"], bool):
            raise SettingsError("is_active must be a boolean")
        clean["is_active"] = data["is_active"]
    return clean


def upsert_setting(kind: str, code: str, data: dict):
    """Create or update the display row for one code."""
    model, codes = _model_for(kind)
    if code not in codes:
        raise SettingsError(f"Invalid {kind} code '{code}'. Must be one of: {', '.join(codes)}")
    if "code" in data and data["code"] != code:
        raise SettingsError("code cannot be changed")
    clean = _clean(data)

    def _op():
        row = db.session.query(model).filter_by(code=code).first()
        if row is None:
            if "label" not in clean:
                raise SettingsError("label is required")
            row = model(code=code)
            if model is OrderStatusSetting:
                row.is_system = False
            db.session.add(row)
        for key, value in clean.items():
            setattr(row, key, value)
        db.session.commit()
        return row

    row = run_with_retry(_op)
    read_cache.invalidate(read_cache.SETTINGS)
    return row


def delete_setting(kind: str, code: str) -> None:
    model, _ = _model_for(kind)

    def _op():
        row = db.session.query(model).filter_by(code=code).first()
        if row is None:
            raise SettingsError("Setting not found")
        if getattr(row, "is_system", False):
            raise SettingsError("System statuses cannot be deleted; deactivate them instead")
        db.session.delete(row)
        db.session.commit()

    run_with_retry(_op)
    read_cache.invalidate(read_cache.SETTINGS)


def reorder_settings(kind: str, codes: list[str]) -> list[dict]:
    """Rewrite sort_order to follow the given code order. Unlisted rows go last."""
    model, _ = _model_for(kind)
    if not isinstance(codes, list) or len(set(codes)) != len(codes):
        raise SettingsError("codes must be a list without duplicates")

    def _op():
        rows = {row.code: row for row in db.session.query(model).all()}
        missing = [c for c in codes if c not in rows]
        if missing:
            raise SettingsError(f"Unknown codes: {', '.join(missing)}")
        ordered = [rows[c] for c in codes]
        rest = sorted(
            (row for code, row in rows.items() if code not in codes),
            key=lambda r: (r.sort_order, r.id),
        )
        for position, row in enumerate(ordered + rest):
            row.sort_order = position
        db.session.commit()

    run_with_retry(_op)
    read_cache.invalidate(read_cache.SETTINGS)
    return list_settings(kind)


def get_app_setting(key: str, default: Any = None) -> Any:
    row = db.session.query(AppSetting).filter_by(key=key).first()
    return row.value if row is not None else default


def set_app_setting(key: str, value: Any) -> AppSetting:
    key = (key or "").strip()
    if not key:
        raise SettingsError("key is required")
    if len(key) > 128:
        raise SettingsError("key exceeds max length 128")

    def _op():
        row = db.session.query(AppSetting).filter_by(key=key).first()
        if row is None:
            row = AppSetting(key=key)
            db.session.add(row)
        row.value = value
        db.session.commit()
        return row

    row = run_with_retry(_op)
    read_cache.invalidate(read_cache.SETTINGS)
    return row


def get_invoice_template() -> dict:
    template = dict(DEFAULT_INVOICE_TEMPLATE)
    stored = get_app_setting(INVOICE_TEMPLATE_KEY)
    if isinstance(stored, dict):
        template.update(stored)
    return template
