# Overview: Measurement CRUD plus versioning: snapshot, edit and prune in one transaction.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Measurement, MeasurementVersion, Order, OrderItem, Customer, VERSIONED_FIELDS
from ..validation import ModelValidationPolicy, validate_payload
from . import read_cache, notification_service
from .concurrency import lock_for_update, run_with_retry


class MeasurementError(ValueError):
    """Raised when measurement operations fail."""
    pass


MEASUREMENT_POLICY = ModelValidationPolicy(
    writable_fields=set(VERSIONED_FIELDS) | {
        "order_id", "diagram_url", "is_primary", "materials_provided_by_customer",
    },
    required_on_create={"garment_type"},
)


def _invalidate() -> None:
    read_cache.invalidate(read_cache.MEASUREMENTS, read_cache.ORDERS)


def _version_cap() -> int:
    # The newest snapshot is always kept so an edit can return it
    return max(1, int(current_app.config.get("MEASUREMENT_VERSION_CAP", 3)))


def _check_order(order_id: int | None) -> None:
    if order_id is not None and not db.session.query(Order.id).filter_by(id=order_id).first():
        raise MeasurementError("Order not found")


def _clear_other_primaries(measurement: Measurement) -> None:
    if not measurement.is_primary or measurement.order_id is None:
        return
    db.session.query(Measurement).filter(
        Measurement.order_id == measurement.order_id,
        Measurement.id != measurement.id,
    ).update({Measurement.is_primary: False}, synchronize_session=False)


def create_measurement(data: dict) -> Measurement:
    patch = validate_payload(model=Measurement, payload=data, policy=MEASUREMENT_POLICY, partial=False)

    def _op():
        _check_order(patch.get("order_id"))
        measurement = Measurement(version_counter=0, materials_images=[], **patch)
        db.session.add(measurement)
        db.session.flush()
        _clear_other_primaries(measurement)
        db.session.commit()
        return measurement

    measurement = run_with_retry(_op)
    _invalidate()
    if measurement.order_id is not None:
        notification_service.notify_measurement_created(measurement.id)
    return measurement


def get_measurement(measurement_id: int) -> Measurement | None:
    return db.session.query(Measurement).filter_by(id=measurement_id).first()


def list_measurements(*, order_id: int | None = None, customer_id: int | None = None) -> list[dict]:
    """Newest first, with the order number and customer name joined in."""
    def _load():
        q = (
            db.session.query(Measurement, Order.order_number, Customer.name)
            .outerjoin(Order, Measurement.order_id == Order.id)
            .outerjoin(Customer, Order.customer_id == Customer.id)
        )
        if order_id is not None:
            q = q.filter(Measurement.order_id == order_id)
        if customer_id is not None:
            q = q.filter(Order.customer_id == customer_id)
        rows = q.order_by(Measurement.created_at.desc(), Measurement.id.desc()).all()
        out = []
        for measurement, order_number, customer_name in rows:
            d = measurement.to_dict()
            d["order_number"] = order_number
            d["customer_name"] = customer_name
            out.append(d)
        return out

    return read_cache.cached(read_cache.MEASUREMENTS, ("list", order_id, customer_id), _load)


def _prune_versions(measurement_id: int, cap: int) -> int:
    """
    Delete versions beyond the newest `cap` (by version_number).

    Order items pinned to a pruned version lose the pin.
    """
    stale_ids = [
        row.id for row in (
            db.session.query(MeasurementVersion.id)
            .filter(MeasurementVersion.measurement_id == measurement_id)
            .order_by(MeasurementVersion.version_number.desc())
            .offset(cap)
            .all()
        )
    ]
    if not stale_ids:
        return 0
    db.session.query(OrderItem).filter(OrderItem.measurement_version_id.in_(stale_ids)).update(
        {OrderItem.measurement_version_id: None}, synchronize_session=False
    )
    db.session.query(Order).filter(Order.measurement_version_id.in_(stale_ids)).update(
        {Order.measurement_version_id: None}, synchronize_session=False
    )
    return db.session.query(MeasurementVersion).filter(MeasurementVersion.id.in_(stale_ids)).delete(
        synchronize_session=False
    )


def update_measurement(
    measurement_id: int,
    changes: dict,
    *,
    change_reason: str | None = None,
    changed_by: str | None = None,
) -> tuple[Measurement, MeasurementVersion | None]:
    """
    Edit a measurement, keeping the pre-edit values as a new version.

    The snapshot, the edit and the retention prune commit together or not
    at all. Edits that leave every versioned value as it was create no
    version. Returns the measurement and the new version (or None).
    """
    patch = validate_payload(model=Measurement, payload=changes, policy=MEASUREMENT_POLICY, partial=True)
    cap = _version_cap()

    def _op():
        measurement = lock_for_update(db.session.query(Measurement).filter_by(id=measurement_id)).first()
        if not measurement:
            raise MeasurementError("Measurement not found")

        changed = [
            key for key in VERSIONED_FIELDS
            if key in patch and patch[key] != getattr(measurement, key)
        ]

        version = None
        if changed:
            version = MeasurementVersion(
                measurement_id=measurement.id,
                version_number=measurement.version_counter + 1,
                change_reason=change_reason,
                changed_by=changed_by,
                **measurement.values_dict(),
            )
            measurement.version_counter = version.version_number
            db.session.add(version)

        for key, value in patch.items():
            setattr(measurement, key, value)
        if "order_id" in patch:
            _check_order(patch["order_id"])
        db.session.flush()
        _clear_other_primaries(measurement)

        if version is not None:
            _prune_versions(measurement.id, cap)
        db.session.commit()
        return measurement, version

    result = run_with_retry(_op)
    _invalidate()
    return result


def list_versions(measurement_id: int) -> list[MeasurementVersion]:
    """Newest version first."""
    if not db.session.query(Measurement.id).filter_by(id=measurement_id).first():
        raise MeasurementError("Measurement not found")
    return (
        db.session.query(MeasurementVersion)
        .filter(MeasurementVersion.measurement_id == measurement_id)
        .order_by(MeasurementVersion.version_number.desc())
        .all()
    )


def get_version(version_id: int) -> MeasurementVersion | None:
    return db.session.query(MeasurementVersion).filter_by(id=version_id).first()


def delete_measurement(measurement_id: int) -> None:
    """Delete a measurement with its versions; orders and items referencing it are detached."""
    def _op():
        measurement = lock_for_update(db.session.query(Measurement).filter_by(id=measurement_id)).first()
        if not measurement:
            raise MeasurementError("Measurement not found")

        db.session.query(OrderItem).filter(OrderItem.measurement_id == measurement_id).update(
            {OrderItem.measurement_id: None, OrderItem.measurement_version_id: None},
            synchronize_session=False,
        )
        db.session.query(Order).filter(Order.measurement_id == measurement_id).update(
            {Order.measurement_id: None, Order.measurement_version_id: None},
            synchronize_session=False,
        )
        db.session.query(MeasurementVersion).filter(
            MeasurementVersion.measurement_id == measurement_id
        ).delete(synchronize_session=False)
        db.session.delete(measurement)
        db.session.commit()

    run_with_retry(_op)
    _invalidate()


def add_material_images(measurement_id: int, urls: list[str]) -> Measurement:
    """Append uploaded image URLs. Not a versioned change."""
    if not urls:
        raise MeasurementError("No images provided")

    def _op():
        measurement = lock_for_update(db.session.query(Measurement).filter_by(id=measurement_id)).first()
        if not measurement:
            raise MeasurementError("Measurement not found")
        # Reassign so the JSON column is flagged dirty
        measurement.materials_images = list(measurement.materials_images or []) + list(urls)
        measurement.materials_provided_by_customer = True
        db.session.commit()
        return measurement

    measurement = run_with_retry(_op)
    _invalidate()
    return measurement


def prune_all(cap: int | None = None) -> int:
    """Apply the retention cap to every measurement. Returns versions deleted."""
    cap = _version_cap() if cap is None else max(1, cap)
    measurement_ids = [row.id for row in db.session.query(Measurement.id).all()]

    def _op():
        removed = sum(_prune_versions(mid, cap) for mid in measurement_ids)
        db.session.commit()
        return removed

    removed = run_with_retry(_op)
    if removed:
        _invalidate()
    return removed
