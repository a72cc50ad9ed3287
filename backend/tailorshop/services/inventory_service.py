from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import InventoryItem, OrderItem, Store, STATUS_ACTIVE, STATUS_INACTIVE, STATUS_DELETED
from ..validation import ModelValidationPolicy, validate_payload, enforce_money_fields, enforce_non_negative
from . import read_cache
from .concurrency import lock_for_update, run_with_retry
from .lifecycle_service import ensure_record_transition


class InventoryError(ValueError):
    """Raised when inventory operations fail."""
    pass


INVENTORY_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "sku", "category", "description", "price_cents", "cost_cents",
        "quantity", "min_stock_level", "store_id", "image_url",
    },
    required_on_create={"name", "sku", "category"},
)


def _invalidate() -> None:
    read_cache.invalidate(read_cache.INVENTORY)


def _check_patch(patch: dict) -> None:
    enforce_money_fields(patch, "price_cents", "cost_cents")
    enforce_non_negative(patch, "quantity", "min_stock_level")
    store_id = patch.get("store_id")
    if store_id is not None and not db.session.query(Store.id).filter_by(id=store_id).first():
        raise InventoryError("Store not found")


def _sku_taken(sku: str, *, exclude_id: int | None = None) -> bool:
    q = db.session.query(InventoryItem.id).filter(InventoryItem.sku == sku)
    if exclude_id is not None:
        q = q.filter(InventoryItem.id != exclude_id)
    return q.first() is not None


def create_item(data: dict) -> InventoryItem:
    patch = validate_payload(model=InventoryItem, payload=data, policy=INVENTORY_POLICY, partial=False)

    def _op():
        _check_patch(patch)
        if _sku_taken(patch["sku"]):
            raise InventoryError(f"SKU '{patch['sku']}' already exists")
        item = InventoryItem(status=STATUS_ACTIVE, **patch)
        db.session.add(item)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise InventoryError(f"SKU '{patch['sku']}' already exists")
        return item

    item = run_with_retry(_op)
    _invalidate()
    return item


def update_item(item_id: int, data: dict) -> InventoryItem:
    patch = validate_payload(model=InventoryItem, payload=data, policy=INVENTORY_POLICY, partial=True)

    def _op():
        item = lock_for_update(db.session.query(InventoryItem).filter_by(id=item_id)).first()
        if not item:
            raise InventoryError("Inventory item not found")
        _check_patch(patch)
        if "sku" in patch and _sku_taken(patch["sku"], exclude_id=item.id):
            raise InventoryError(f"SKU '{patch['sku']}' already exists")
        for key, value in patch.items():
            setattr(item, key, value)
        db.session.commit()
        return item

    item = run_with_retry(_op)
    _invalidate()
    return item


def get_item(item_id: int) -> InventoryItem | None:
    return db.session.query(InventoryItem).filter_by(id=item_id).first()


def list_items(*, store_id: int | None = None, category: str | None = None, include_inactive: bool = False) -> list[dict]:
    def _load():
        q = db.session.query(InventoryItem)
        if store_id is not None:
            q = q.filter(InventoryItem.store_id == store_id)
        if category:
            q = q.filter(InventoryItem.category == category)
        if not include_inactive:
            q = q.filter(InventoryItem.status == STATUS_ACTIVE)
        return [i.to_dict() for i in q.order_by(InventoryItem.name.asc()).all()]

    return read_cache.cached(read_cache.INVENTORY, ("list", store_id, category, include_inactive), _load)


def list_low_stock(*, store_id: int | None = None) -> list[dict]:
    """Active items at or below their reorder level."""
    def _load():
        q = db.session.query(InventoryItem).filter(
            InventoryItem.status == STATUS_ACTIVE,
            InventoryItem.quantity <= InventoryItem.min_stock_level,
        )
        if store_id is not None:
            q = q.filter(InventoryItem.store_id == store_id)
        return [i.to_dict() for i in q.order_by(InventoryItem.quantity.asc(), InventoryItem.name.asc()).all()]

    return read_cache.cached(read_cache.INVENTORY, ("low_stock", store_id), _load)


def _set_status(item_id: int, status: str) -> InventoryItem:
    def _op():
        item = lock_for_update(db.session.query(InventoryItem).filter_by(id=item_id)).first()
        if not item:
            raise InventoryError("Inventory item not found")
        ensure_record_transition(item.status, status, label="Inventory item")
        item.status = status
        db.session.commit()
        return item

    item = run_with_retry(_op)
    _invalidate()
    return item


def deactivate_item(item_id: int) -> InventoryItem:
    return _set_status(item_id, STATUS_INACTIVE)


def reactivate_item(item_id: int) -> InventoryItem:
    return _set_status(item_id, STATUS_ACTIVE)


def delete_item(item_id: int) -> None:
    """Remove the item; order lines keep their copied description and price."""
    def _op():
        item = lock_for_update(db.session.query(InventoryItem).filter_by(id=item_id)).first()
        if not item:
            raise InventoryError("Inventory item not found")
        ensure_record_transition(item.status, STATUS_DELETED, label="Inventory item")
        db.session.query(OrderItem).filter(OrderItem.inventory_id == item_id).update(
            {OrderItem.inventory_id: None}, synchronize_session=False
        )
        db.session.delete(item)
        db.session.commit()

    run_with_retry(_op)
    _invalidate()
