# Overview: Service catalog CRUD (stitching, alterations, embroidery).

from __future__ import annotations

from ..extensions import db
from ..models import Category, OrderItem, Service, SERVICE_UNITS
from ..validation import ModelValidationPolicy, validate_payload, enforce_money_fields, enforce_non_negative
from . import read_cache
from .concurrency import lock_for_update, run_with_retry


class CatalogError(ValueError):
    """Raised when service catalog operations fail."""
    pass


SERVICE_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "description", "price_cents", "unit", "duration_minutes",
        "category_id", "taxable", "active",
    },
    required_on_create={"name", "price_cents"},
    choices={"unit": SERVICE_UNITS},
)


def _invalidate() -> None:
    read_cache.invalidate(read_cache.SERVICES)


def _check_patch(patch: dict) -> None:
    enforce_money_fields(patch, "price_cents")
    enforce_non_negative(patch, "duration_minutes")
    category_id = patch.get("category_id")
    if category_id is not None and not db.session.query(Category.id).filter_by(id=category_id).first():
        raise CatalogError("Category not found")


def create_service(data: dict) -> Service:
    patch = validate_payload(model=Service, payload=data, policy=SERVICE_POLICY, partial=False)

    def _op():
        _check_patch(patch)
        service = Service(**patch)
        db.session.add(service)
        db.session.commit()
        return service

    service = run_with_retry(_op)
    _invalidate()
    return service


def update_service(service_id: int, data: dict) -> Service:
    patch = validate_payload(model=Service, payload=data, policy=SERVICE_POLICY, partial=True)

    def _op():
        service = lock_for_update(db.session.query(Service).filter_by(id=service_id)).first()
        if not service:
            raise CatalogError("Service not found")
        _check_patch(patch)
        for key, value in patch.items():
            setattr(service, key, value)
        db.session.commit()
        return service

    service = run_with_retry(_op)
    _invalidate()
    return service


def get_service(service_id: int) -> Service | None:
    return db.session.query(Service).filter_by(id=service_id).first()


def list_services(*, active_only: bool = False, category_id: int | None = None) -> list[dict]:
    def _load():
        q = db.session.query(Service)
        if active_only:
            q = q.filter(Service.active.is_(True))
        if category_id is not None:
            q = q.filter(Service.category_id == category_id)
        return [s.to_dict() for s in q.order_by(Service.name.asc(), Service.id.asc()).all()]

    return read_cache.cached(read_cache.SERVICES, ("list", active_only, category_id), _load)


def set_active(service_id: int, active: bool) -> Service:
    return update_service(service_id, {"active": active})


def delete_service(service_id: int) -> None:
    """Remove the service; order lines keep their copied description and price."""
    def _op():
        service = lock_for_update(db.session.query(Service).filter_by(id=service_id)).first()
        if not service:
            raise CatalogError("Service not found")
        db.session.query(OrderItem).filter(OrderItem.service_id == service_id).update(
            {OrderItem.service_id: None}, synchronize_session=False
        )
        db.session.delete(service)
        db.session.commit()

    run_with_retry(_op)
    _invalidate()
    read_cache.invalidate(read_cache.ORDERS)
