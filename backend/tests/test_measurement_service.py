# Overview: Pytest coverage for measurement versioning and retention.

import pytest

from tailorshop.models import Measurement, MeasurementVersion, OrderItem
from tailorshop.services import measurement_service, order_service
from tailorshop.services.measurement_service import MeasurementError
from tailorshop.validation import ValidationError


class TestVersioning:
    def test_edit_snapshots_previous_values(self, db_session, make_measurement):
        m = make_measurement(bust=34.0)
        measurement, version = measurement_service.update_measurement(
            m.id, {"bust": 36.0}, change_reason="refit", changed_by="Ravi"
        )

        assert measurement.bust == 36.0
        assert version.version_number == 1
        assert version.bust == 34.0
        assert version.change_reason == "refit"
        assert version.changed_by == "Ravi"
        assert db_session.query(MeasurementVersion).filter_by(measurement_id=m.id).count() == 1

    def test_version_numbers_increase_by_one(self, db_session, make_measurement):
        m = make_measurement(bust=30.0)
        numbers = []
        for value in (31.0, 32.0):
            _, version = measurement_service.update_measurement(m.id, {"bust": value})
            numbers.append(version.version_number)
        assert numbers == [1, 2]

    def test_noop_edit_creates_no_version(self, db_session, make_measurement):
        m = make_measurement(bust=34.0)
        _, version = measurement_service.update_measurement(m.id, {"bust": 34.0})
        assert version is None
        assert db_session.query(MeasurementVersion).count() == 0

    def test_unversioned_field_edit_creates_no_version(self, db_session, make_measurement):
        m = make_measurement()
        _, version = measurement_service.update_measurement(m.id, {"diagram_url": "/uploads/d.png"})
        assert version is None

    def test_retention_keeps_most_recent_three(self, db_session, make_measurement):
        m = make_measurement(bust=30.0)
        for value in range(31, 36):
            measurement_service.update_measurement(m.id, {"bust": float(value)})

        versions = measurement_service.list_versions(m.id)
        assert [v.version_number for v in versions] == [5, 4, 3]
        # version 5 holds the value from before the fifth edit
        assert versions[0].bust == 34.0

    def test_numbers_not_reused_after_pruning(self, db_session, make_measurement):
        m = make_measurement(bust=30.0)
        for value in range(31, 36):
            measurement_service.update_measurement(m.id, {"bust": float(value)})
        _, version = measurement_service.update_measurement(m.id, {"bust": 40.0})
        assert version.version_number == 6
        assert db_session.get(Measurement, m.id).version_counter == 6

    def test_invalid_edit_rolls_back_everything(self, db_session, make_measurement):
        m = make_measurement(bust=34.0)
        with pytest.raises(ValidationError):
            measurement_service.update_measurement(m.id, {"bust": 35.0, "garment_type": ""})
        assert db_session.query(MeasurementVersion).count() == 0
        assert db_session.get(Measurement, m.id).bust == 34.0

    def test_failure_after_snapshot_rolls_back_snapshot(self, db_session, make_measurement):
        m = make_measurement(bust=34.0)
        with pytest.raises(MeasurementError, match="Order not found"):
            measurement_service.update_measurement(m.id, {"bust": 35.0, "order_id": 404})
        assert db_session.query(MeasurementVersion).count() == 0
        assert db_session.get(Measurement, m.id).version_counter == 0

    def test_unknown_field_rejected(self, db_session, make_measurement):
        m = make_measurement()
        with pytest.raises(ValidationError, match="Field not allowed"):
            measurement_service.update_measurement(m.id, {"height": 170})

    def test_missing_measurement(self, db_session):
        with pytest.raises(MeasurementError, match="not found"):
            measurement_service.update_measurement(12345, {"bust": 1.0})


class TestPinnedVersions:
    def test_live_edit_does_not_touch_pinned_snapshot(self, db_session, make_order, make_measurement):
        order = make_order()
        m = make_measurement(order_id=order.id, bust=34.0)
        _, v1 = measurement_service.update_measurement(m.id, {"bust": 35.0})
        item = order.items[0]
        order_service.pin_measurement_version(item.id, v1.id)

        measurement_service.update_measurement(m.id, {"bust": 38.0})

        pinned = db_session.get(OrderItem, item.id)
        assert pinned.measurement_version_id == v1.id
        assert db_session.get(MeasurementVersion, v1.id).bust == 34.0

    def test_pruned_version_is_unpinned(self, db_session, make_order, make_measurement):
        order = make_order()
        m = make_measurement(order_id=order.id, bust=30.0)
        _, v1 = measurement_service.update_measurement(m.id, {"bust": 31.0})
        v1_id = v1.id
        item_id = order.items[0].id
        order_service.pin_measurement_version(item_id, v1_id)

        for value in (32.0, 33.0, 34.0):
            measurement_service.update_measurement(m.id, {"bust": value})

        assert db_session.get(MeasurementVersion, v1_id) is None
        assert db_session.get(OrderItem, item_id).measurement_version_id is None


class TestLifecycle:
    def test_list_joins_order_and_customer(self, db_session, make_order, make_measurement, customer):
        order = make_order()
        make_measurement(order_id=order.id)
        rows = measurement_service.list_measurements(order_id=order.id)
        assert rows[0]["order_number"] == order.order_number
        assert rows[0]["customer_name"] == customer.name

    def test_list_reflects_edits(self, db_session, make_measurement):
        m = make_measurement(bust=34.0)
        assert measurement_service.list_measurements()[0]["bust"] == 34.0
        measurement_service.update_measurement(m.id, {"bust": 36.0})
        assert measurement_service.list_measurements()[0]["bust"] == 36.0

    def test_delete_removes_versions(self, db_session, make_measurement):
        m = make_measurement(bust=34.0)
        measurement_service.update_measurement(m.id, {"bust": 35.0})
        measurement_service.delete_measurement(m.id)
        assert db_session.query(Measurement).count() == 0
        assert db_session.query(MeasurementVersion).count() == 0

    def test_material_images_are_not_versioned(self, db_session, make_measurement):
        m = make_measurement()
        updated = measurement_service.add_material_images(m.id, ["/uploads/materials/a.jpg"])
        assert updated.materials_images == ["/uploads/materials/a.jpg"]
        assert updated.materials_provided_by_customer is True
        assert db_session.query(MeasurementVersion).count() == 0

    def test_prune_all_with_smaller_cap(self, db_session, make_measurement):
        m = make_measurement(bust=30.0)
        for value in (31.0, 32.0, 33.0):
            measurement_service.update_measurement(m.id, {"bust": value})
        assert measurement_service.prune_all(1) == 2
        assert [v.version_number for v in measurement_service.list_versions(m.id)] == [3]

    def test_zero_cap_still_keeps_newest_version(self, app, db_session, make_measurement, monkeypatch):
        monkeypatch.setitem(app.config, "MEASUREMENT_VERSION_CAP", 0)
        m = make_measurement(bust=30.0)
        measurement_service.update_measurement(m.id, {"bust": 31.0})
        _, version = measurement_service.update_measurement(m.id, {"bust": 32.0})

        assert version.to_dict()["version_number"] == 2
        assert [v.version_number for v in measurement_service.list_versions(m.id)] == [2]
        assert measurement_service.prune_all(0) == 0

    def test_primary_flag_is_exclusive_per_order(self, db_session, make_order, make_measurement):
        order = make_order()
        first = make_measurement(order_id=order.id, is_primary=True)
        make_measurement(order_id=order.id, is_primary=True)
        assert db_session.get(Measurement, first.id).is_primary is False
