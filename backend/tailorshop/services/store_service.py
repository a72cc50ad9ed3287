from __future__ import annotations

from ..extensions import db
from ..models import Store, Order, Employee, InventoryItem, Customer, TimeEntry, FittingAppointment, STATUS_ACTIVE, STATUS_INACTIVE, STATUS_DELETED
from ..validation import ModelValidationPolicy, validate_payload
from . import read_cache
from .concurrency import lock_for_update, run_with_retry
from .lifecycle_service import ensure_record_transition


class StoreError(ValueError):
    """Raised when store operations fail."""
    pass


STORE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "address", "city", "phone", "email", "opening_hours"},
    required_on_create={"name", "address", "city"},
)


def _invalidate() -> None:
    read_cache.invalidate(read_cache.STORES, read_cache.EMPLOYEES, read_cache.INVENTORY, read_cache.ORDERS)


def create_store(data: dict) -> Store:
    patch = validate_payload(model=Store, payload=data, policy=STORE_POLICY, partial=False)

    def _op():
        store = Store(status=STATUS_ACTIVE, **patch)
        db.session.add(store)
        db.session.commit()
        return store

    store = run_with_retry(_op)
    _invalidate()
    return store


def update_store(store_id: int, data: dict) -> Store:
    patch = validate_payload(model=Store, payload=data, policy=STORE_POLICY, partial=True)

    def _op():
        store = lock_for_update(db.session.query(Store).filter_by(id=store_id)).first()
        if not store:
            raise StoreError("Store not found")
        for key, value in patch.items():
            setattr(store, key, value)
        db.session.commit()
        return store

    store = run_with_retry(_op)
    _invalidate()
    return store


def get_store(store_id: int) -> Store | None:
    return db.session.query(Store).filter_by(id=store_id).first()


def list_stores(*, include_inactive: bool = False) -> list[dict]:
    def _load():
        q = db.session.query(Store)
        if not include_inactive:
            q = q.filter(Store.status == STATUS_ACTIVE)
        return [s.to_dict() for s in q.order_by(Store.name.asc()).all()]

    return read_cache.cached(read_cache.STORES, ("list", include_inactive), _load)


def _set_status(store_id: int, status: str) -> Store:
    def _op():
        store = lock_for_update(db.session.query(Store).filter_by(id=store_id)).first()
        if not store:
            raise StoreError("Store not found")
        ensure_record_transition(store.status, status, label="Store")
        store.status = status
        db.session.commit()
        return store

    store = run_with_retry(_op)
    _invalidate()
    return store


def deactivate_store(store_id: int) -> Store:
    return _set_status(store_id, STATUS_INACTIVE)


def reactivate_store(store_id: int) -> Store:
    return _set_status(store_id, STATUS_ACTIVE)


def delete_store(store_id: int) -> None:
    """
    Remove a store for good.

    Refused while orders still point at the store (deactivate it instead).
    Employees, inventory, customers and shifts lose their store reference.
    """
    def _op():
        store = lock_for_update(db.session.query(Store).filter_by(id=store_id)).first()
        if not store:
            raise StoreError("Store not found")
        ensure_record_transition(store.status, STATUS_DELETED, label="Store")

        has_orders = db.session.query(Order.id).filter(Order.store_id == store_id).first()
        if has_orders:
            raise StoreError("Store has orders; deactivate it instead of deleting")

        db.session.query(Employee).filter(Employee.store_id == store_id).update(
            {Employee.store_id: None}, synchronize_session=False
        )
        db.session.query(InventoryItem).filter(InventoryItem.store_id == store_id).update(
            {InventoryItem.store_id: None}, synchronize_session=False
        )
        db.session.query(Customer).filter(Customer.preferred_store_id == store_id).update(
            {Customer.preferred_store_id: None}, synchronize_session=False
        )
        db.session.query(TimeEntry).filter(TimeEntry.store_id == store_id).update(
            {TimeEntry.store_id: None}, synchronize_session=False
        )
        db.session.query(FittingAppointment).filter(FittingAppointment.store_id == store_id).update(
            {FittingAppointment.store_id: None}, synchronize_session=False
        )
        db.session.delete(store)
        db.session.commit()

    run_with_retry(_op)
    _invalidate()
    read_cache.invalidate(read_cache.CUSTOMERS)
