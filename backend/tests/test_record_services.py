# Overview: Pytest coverage for stores, employees and inventory.

import pytest

from tailorshop.models import Employee, InventoryItem, Order, OrderItem, Store, Task, TimeEntry
from tailorshop.services import (
    employee_service,
    inventory_service,
    order_service,
    store_service,
    task_service,
    timekeeping_service,
)
from tailorshop.services.employee_service import EmployeeError
from tailorshop.services.inventory_service import InventoryError
from tailorshop.services.lifecycle_service import LifecycleError
from tailorshop.services.store_service import StoreError
from tailorshop.validation import ValidationError


class TestStores:
    def test_create_and_list(self, db_session):
        store_service.create_store({"name": "Annex", "address": "5 Hill Rd", "city": "Pune"})
        store_service.create_store({"name": "Branch", "address": "9 Lake Rd", "city": "Mumbai"})
        assert [s["name"] for s in store_service.list_stores()] == ["Annex", "Branch"]

    def test_required_fields(self, db_session):
        with pytest.raises(ValidationError, match="Missing required fields"):
            store_service.create_store({"name": "Nowhere"})

    def test_inactive_hidden_by_default(self, db_session, store):
        store_service.deactivate_store(store.id)
        assert store_service.list_stores() == []
        assert store_service.list_stores(include_inactive=True)[0]["status"] == "INACTIVE"

        store_service.reactivate_store(store.id)
        assert store_service.list_stores()[0]["id"] == store.id

    def test_delete_refused_with_orders(self, db_session, store, make_order):
        make_order()
        with pytest.raises(StoreError, match="deactivate it instead"):
            store_service.delete_store(store.id)

    def test_delete_detaches_references(self, db_session, store, employee, fabric):
        store_id = store.id
        store_service.delete_store(store_id)

        assert db_session.get(Store, store_id) is None
        assert db_session.get(Employee, employee.id).store_id is None
        assert db_session.get(InventoryItem, fabric.id).store_id is None

    def test_update_missing(self, db_session):
        with pytest.raises(StoreError, match="Store not found"):
            store_service.update_store(999, {"name": "x"})


class TestEmployees:
    def test_role_must_be_known(self, db_session):
        with pytest.raises(ValidationError):
            employee_service.create_employee({"name": "X", "role": "pilot"})

    def test_store_must_exist(self, db_session):
        with pytest.raises(EmployeeError, match="Store not found"):
            employee_service.create_employee({"name": "X", "role": "tailor", "store_id": 999})

    def test_list_active_first(self, db_session, store):
        a = employee_service.create_employee({"name": "Anil", "role": "tailor"})
        employee_service.create_employee({"name": "Bina", "role": "tailor"})
        employee_service.deactivate_employee(a.id)

        rows = employee_service.list_employees()
        assert [r["name"] for r in rows] == ["Bina", "Anil"]
        assert [r["name"] for r in employee_service.list_employees(active_only=True)] == ["Bina"]

    def test_delete_unassigns_work(self, db_session, employee, make_order):
        order = make_order(assigned_employee_id=employee.id)
        task = task_service.create_task({"title": "Cut fabric", "assigned_to": employee.id, "order_id": order.id})
        timekeeping_service.clock_in(employee_id=employee.id)

        employee_service.delete_employee(employee.id)

        db_session.expire_all()
        assert db_session.get(Order, order.id).assigned_employee_id is None
        assert db_session.get(Task, task.id).assigned_to is None
        assert db_session.query(TimeEntry).count() == 0
        assert order_service.list_orders()[0]["assigned_employee_name"] is None

    def test_status_round_trip(self, db_session, employee):
        assert employee_service.deactivate_employee(employee.id).status == "INACTIVE"
        assert employee_service.reactivate_employee(employee.id).status == "ACTIVE"


class TestInventory:
    def test_duplicate_sku(self, db_session, fabric):
        with pytest.raises(InventoryError, match="SKU 'FAB-001' already exists"):
            inventory_service.create_item({"name": "Copy", "sku": "FAB-001", "category": "fabric"})

    def test_sku_update_conflict(self, db_session, fabric):
        other = inventory_service.create_item({"name": "Cotton", "sku": "FAB-002", "category": "fabric"})
        with pytest.raises(InventoryError, match="already exists"):
            inventory_service.update_item(other.id, {"sku": "FAB-001"})
        assert inventory_service.update_item(fabric.id, {"sku": "FAB-001", "quantity": 4}).quantity == 4

    def test_negative_values_rejected(self, db_session):
        with pytest.raises(ValidationError):
            inventory_service.create_item({"name": "Bad", "sku": "B-1", "category": "fabric", "quantity": -1})
        with pytest.raises(ValidationError):
            inventory_service.create_item({"name": "Bad", "sku": "B-2", "category": "fabric", "price_cents": -5})

    def test_low_stock(self, db_session, fabric):
        inventory_service.create_item({
            "name": "Buttons", "sku": "BTN-1", "category": "notions", "quantity": 1, "min_stock_level": 5,
        })
        assert [i["sku"] for i in inventory_service.list_low_stock()] == ["BTN-1"]

        inventory_service.update_item(fabric.id, {"quantity": 2})
        assert [i["sku"] for i in inventory_service.list_low_stock()] == ["BTN-1", "FAB-001"]

    def test_category_filter_and_inactive(self, db_session, fabric):
        inventory_service.create_item({"name": "Thread", "sku": "THR-1", "category": "notions"})
        assert [i["sku"] for i in inventory_service.list_items(category="notions")] == ["THR-1"]

        inventory_service.deactivate_item(fabric.id)
        assert [i["sku"] for i in inventory_service.list_items()] == ["THR-1"]
        assert len(inventory_service.list_items(include_inactive=True)) == 2

    def test_delete_keeps_order_lines(self, db_session, fabric, make_order):
        order = make_order(items=[{"inventory_id": fabric.id}])
        line_id = order.items[0].id

        inventory_service.delete_item(fabric.id)

        db_session.expire_all()
        line = db_session.get(OrderItem, line_id)
        assert line.inventory_id is None
        assert line.description == "Silk Blouse Fabric"
        assert line.unit_price_cents == 150000

    def test_missing_item(self, db_session):
        with pytest.raises(InventoryError, match="Inventory item not found"):
            inventory_service.deactivate_item(999)


def test_record_lifecycle_guard(db_session, store):
    store.status = "DELETED"
    db_session.commit()
    with pytest.raises(LifecycleError):
        store_service.reactivate_store(store.id)
