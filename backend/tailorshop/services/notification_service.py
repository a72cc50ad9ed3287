# Overview: Outbound WhatsApp template messages for order and measurement events.

"""
Status-transition notifier.

Every message is one TemplateKind. A kind knows its remote template name,
how many body parameters it sends and which builder fills them in, so a
send never has to ask the proxy what a template looks like.

Sending is best-effort: callers invoke the notify_* helpers after their
transaction has committed, and every failure is logged and dropped. The
one retry happens when the Graph API rejects a message with code 132000
and states the expected parameter count; the message is resent once with
the parameter list trimmed to that length.
"""

from __future__ import annotations

import enum
import logging
import re
from typing import Any, Callable

import httpx
from flask import current_app

from ..extensions import db
from ..models import Order, Measurement
from tailorshop.time_utils import to_iso_date


logger = logging.getLogger(__name__)

CLIENT_EXTENSION_KEY = "tailorshop.whatsapp_client"

PLACEHOLDER = "-"
PARAM_MISMATCH_CODE = 132000
_EXPECTED_PARAMS_RE = re.compile(r"expected number of params \((\d+)\)", re.IGNORECASE)
_TEMPLATE_VAR_RE = re.compile(r"\{\{\s*(\d+)\s*\}\}")


class NotificationError(ValueError):
    """Raised when a message cannot be built for its template."""
    pass


# Measurement template slots, in template order. Some fields fill two slots.
MEASUREMENT_TEMPLATE_FIELDS = (
    "full_length",
    "blouse_length",
    "shoulder",
    "bust",
    "bust",
    "waist_round",
    "yoke_length",
    "yoke_round",
    "slit_length",
    "slit_width",
    "stomach_length",
    "stomach_round",
    "bust_point_length",
    "bust_distance",
    "fc",
    "bc",
    "sleeve_round",
    "sleeve_round",
    "bicep_round",
    "armhole",
    "shoulder_balance",
    "front_neck_depth",
    "back_neck_depth",
    "collar_round",
    "bottom_length",
    "skirt_length",
    "waist_round",
    "hip_round",
    "seat_round",
    "thigh_round",
    "knee_round",
    "ankle_round",
)


def _text(value: Any) -> str:
    if value is None:
        return PLACEHOLDER
    if isinstance(value, float):
        value = f"{value:g}"
    value = str(value).strip()
    return value or PLACEHOLDER


def _customer_name(order: Order) -> Any:
    return order.customer.name if order.customer else None


def _work_initiation_params(order: Order) -> list[str]:
    return [
        _text(_customer_name(order)),
        _text(order.order_number),
        _text(to_iso_date(order.due_date)),
    ]


def _ready_for_pickup_params(order: Order) -> list[str]:
    store = order.store
    location = None
    if store is not None:
        location = store.address or store.name
    return [
        _text(_customer_name(order)),
        _text(order.order_number),
        _text(location),
        _text(current_app.config["WA_LOCATION_TEXT"]),
    ]


def _feedback_params(order: Order) -> list[str]:
    return [
        _text(_customer_name(order)),
        _text(current_app.config["WA_FEEDBACK_LINK"]),
    ]


def _order_confirmation_params(order: Order) -> list[str]:
    items = "; ".join(f"{item.description} x {item.quantity}" for item in order.items)
    created = order.created_at.date() if order.created_at else None
    paid = "Paid" if order.total_cents > 0 and order.remaining_balance_cents == 0 else "Pending"
    return [
        _text(_customer_name(order)),
        _text(order.order_number),
        _text(to_iso_date(created)),
        _text(items),
        _text(to_iso_date(order.due_date)),
        paid,
    ]


def _measurement_values(measurement: Measurement) -> list[str]:
    return [_text(getattr(measurement, field)) for field in MEASUREMENT_TEMPLATE_FIELDS]


def _measurement_confirmation_params(measurement: Measurement) -> list[str]:
    order = measurement.order
    name = _customer_name(order) if order is not None else None
    return [_text(name)] + _measurement_values(measurement)


class TemplateKind(enum.Enum):
    ORDER_CONFIRMATION = "order_confirmation"
    MEASUREMENT_CONFIRMATION = "wa_order_confirmation_with_measure"
    WORK_INITIATION = "wa_work_initiation"
    READY_FOR_PICKUP = "wa_order_ready"
    FEEDBACK_REQUEST = "feedback"

    @property
    def template_name(self) -> str:
        return self.value

    @property
    def param_count(self) -> int:
        return _PARAM_COUNTS[self]

    def build_params(self, subject) -> list[str]:
        params = _BUILDERS[self](subject)
        if len(params) != self.param_count:
            raise NotificationError(f"{self.name} built {len(params)} params, declares {self.param_count}")
        return params


_BUILDERS: dict[TemplateKind, Callable[[Any], list[str]]] = {
    TemplateKind.ORDER_CONFIRMATION: _order_confirmation_params,
    TemplateKind.MEASUREMENT_CONFIRMATION: _measurement_confirmation_params,
    TemplateKind.WORK_INITIATION: _work_initiation_params,
    TemplateKind.READY_FOR_PICKUP: _ready_for_pickup_params,
    TemplateKind.FEEDBACK_REQUEST: _feedback_params,
}

_PARAM_COUNTS = {
    TemplateKind.ORDER_CONFIRMATION: 6,
    TemplateKind.MEASUREMENT_CONFIRMATION: 1 + len(MEASUREMENT_TEMPLATE_FIELDS),
    TemplateKind.WORK_INITIATION: 3,
    TemplateKind.READY_FOR_PICKUP: 4,
    TemplateKind.FEEDBACK_REQUEST: 2,
}

# Order status -> message sent when an order enters it
STATUS_TEMPLATES = {
    "in_production": TemplateKind.WORK_INITIATION,
    "ready_for_pickup": TemplateKind.READY_FOR_PICKUP,
    "completed": TemplateKind.FEEDBACK_REQUEST,
}


def format_to_e164(raw: str | None, default_country_code: str = "") -> str | None:
    """
    Normalize a phone number for WhatsApp.

    "+..." keeps its digits, 11+ digits get a "+", 10 digits get the default
    country code (when one is configured). Anything else returns None.
    """
    s = (raw or "").strip()
    if not s:
        return None
    digits = re.sub(r"\D", "", s)
    if not digits:
        return None
    if s.startswith("+") or len(digits) >= 11:
        return f"+{digits}"
    if len(digits) == 10:
        cc = re.sub(r"\D", "", default_country_code or "")
        return f"+{cc}{digits}" if cc else None
    return None


class WhatsAppClient:
    """Thin httpx wrapper around the messaging proxy."""

    def __init__(self, base_url: str, *, timeout: float = 5.0, transport: httpx.BaseTransport | None = None):
        self._http = httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout, transport=transport)

    def send_template(self, to: str, template: str, language: str, params: list[str]) -> httpx.Response:
        payload = {
            "to": to,
            "template": template,
            "language": language,
            "components": [
                {"type": "body", "parameters": [{"type": "text", "text": p} for p in params]},
            ],
        }
        return self._http.post("/api/whatsapp/send", json=payload)

    def get_template(self, name: str, language: str | None = None) -> httpx.Response:
        query = {"language": language} if language else None
        return self._http.get(f"/api/whatsapp/templates/{name}", params=query)

    def close(self) -> None:
        self._http.close()


def get_client() -> WhatsAppClient:
    client = current_app.extensions.get(CLIENT_EXTENSION_KEY)
    if client is None:
        client = WhatsAppClient(
            current_app.config["WA_PROXY_URL"],
            timeout=current_app.config["WA_TIMEOUT_SECONDS"],
        )
        current_app.extensions[CLIENT_EXTENSION_KEY] = client
    return client


def _json_or_none(response: httpx.Response):
    try:
        return response.json()
    except ValueError:
        return None


def expected_param_count(body: Any) -> int | None:
    """Expected parameter count from a 132000 error body, else None."""
    if not isinstance(body, dict):
        return None
    error = body.get("error") if isinstance(body.get("error"), dict) else {}
    code = error.get("code", body.get("code"))
    if code != PARAM_MISMATCH_CODE:
        return None
    error_data = error.get("error_data") if isinstance(error.get("error_data"), dict) else {}
    details = error_data.get("details") or error.get("details") or ""
    if not isinstance(details, str):
        return None
    match = _EXPECTED_PARAMS_RE.search(details)
    return int(match.group(1)) if match else None


def send_template(kind: TemplateKind, to: str, params: list[str]) -> bool:
    """Send one template message. Returns True when the proxy accepted it."""
    if current_app.config.get("WA_DISABLED"):
        logger.info("WhatsApp disabled, skipping %s", kind.template_name)
        return False

    client = get_client()
    language = current_app.config["WA_LANGUAGE"]
    try:
        logger.info("Sending %s to %s (%d params)", kind.template_name, to, len(params))
        resp = client.send_template(to, kind.template_name, language, params)
        if resp.is_success:
            return True

        body = _json_or_none(resp)
        logger.warning("%s send failed: status=%s body=%s", kind.template_name, resp.status_code, body or resp.text)

        expected = expected_param_count(body)
        if expected and expected < len(params):
            logger.info("Retrying %s with %d params", kind.template_name, expected)
            retry = client.send_template(to, kind.template_name, language, params[:expected])
            if retry.is_success:
                return True
            logger.warning("%s retry failed: status=%s", kind.template_name, retry.status_code)
        return False
    except httpx.HTTPError as exc:
        logger.error("WhatsApp proxy unreachable for %s: %s", kind.template_name, exc)
        return False


def _recipient(customer) -> str | None:
    if customer is None:
        return None
    raw = customer.whatsapp or customer.phone
    return format_to_e164(raw, current_app.config.get("WA_DEFAULT_COUNTRY_CODE", ""))


def _notify_order(kind: TemplateKind, order: Order) -> bool:
    to = _recipient(order.customer)
    if not to:
        logger.info("No usable phone for order %s, skipping %s", order.id, kind.template_name)
        return False
    return send_template(kind, to, kind.build_params(order))


def notify_status_change(order_id: int, old_status: str, new_status: str) -> bool:
    """Send the message tied to new_status, if any. Call after commit."""
    kind = STATUS_TEMPLATES.get(new_status)
    if kind is None or old_status == new_status:
        return False
    try:
        order = db.session.query(Order).filter_by(id=order_id).first()
        if not order:
            return False
        return _notify_order(kind, order)
    except Exception:
        logger.exception("Status notification failed for order %s", order_id)
        return False


def notify_order_created(order_id: int) -> bool:
    try:
        order = db.session.query(Order).filter_by(id=order_id).first()
        if not order or not order.items:
            return False
        return _notify_order(TemplateKind.ORDER_CONFIRMATION, order)
    except Exception:
        logger.exception("Order confirmation failed for order %s", order_id)
        return False


def notify_measurement_created(measurement_id: int) -> bool:
    """Measurement confirmation; skipped when the row has no values at all."""
    try:
        measurement = db.session.query(Measurement).filter_by(id=measurement_id).first()
        if not measurement or measurement.order is None:
            return False
        if all(v == PLACEHOLDER for v in _measurement_values(measurement)):
            logger.info("Measurement %s has no values, skipping confirmation", measurement_id)
            return False
        to = _recipient(measurement.order.customer)
        if not to:
            return False
        kind = TemplateKind.MEASUREMENT_CONFIRMATION
        return send_template(kind, to, kind.build_params(measurement))
    except Exception:
        logger.exception("Measurement confirmation failed for measurement %s", measurement_id)
        return False


def _remote_param_count(body: Any) -> int | None:
    entries = body.get("data") if isinstance(body, dict) else None
    if not entries:
        return None
    for component in entries[0].get("components") or []:
        if str(component.get("type", "")).upper() == "BODY":
            return len(set(_TEMPLATE_VAR_RE.findall(component.get("text") or "")))
    return 0


def check_templates(language: str | None = None) -> list[dict]:
    """Compare each kind's parameter count with the remote template body."""
    client = get_client()
    results = []
    for kind in TemplateKind:
        row = {"template": kind.template_name, "declared": kind.param_count, "remote": None, "ok": False, "error": None}
        try:
            resp = client.get_template(kind.template_name, language)
            if not resp.is_success:
                row["error"] = f"HTTP {resp.status_code}"
            else:
                remote = _remote_param_count(_json_or_none(resp))
                if remote is None:
                    row["error"] = "template not found"
                else:
                    row["remote"] = remote
                    row["ok"] = remote == kind.param_count
        except httpx.HTTPError as exc:
            row["error"] = str(exc)
        results.append(row)
    return results
