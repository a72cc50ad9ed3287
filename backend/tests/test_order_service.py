# Overview: Pytest coverage for order totals, items, status lifecycle and invoices.

import pytest

from tailorshop.models import Order, OrderItem
from tailorshop.services import order_service, payment_service, customer_service, settings_service, measurement_service
from tailorshop.services.lifecycle_service import LifecycleError
from tailorshop.services.order_service import OrderError, compute_totals
from tailorshop.validation import ValidationError


def _order_payload(customer, store, **extra):
    data = {
        "customer_id": customer.id,
        "store_id": store.id,
        "due_date": "2030-05-01",
        "items": [{"description": "Lehenga", "unit_price_cents": 50000, "quantity": 2}],
    }
    data.update(extra)
    return data


class TestCreateOrder:
    def test_number_and_totals(self, db_session, customer, store):
        order = order_service.create_order(_order_payload(customer, store))
        assert order.order_number == f"ORD-{order.id:06d}"
        assert order.subtotal_cents == 100000
        assert order.total_cents == 100000
        assert order.deposit_cents == 0
        assert order.remaining_balance_cents == 100000
        assert order.status == "pending"

    def test_required_fields(self, db_session, customer):
        with pytest.raises(ValidationError, match="Missing required fields"):
            order_service.create_order({"customer_id": customer.id, "items": []})

    def test_customer_must_exist(self, db_session, customer, store):
        with pytest.raises(OrderError, match="Customer not found"):
            order_service.create_order(_order_payload(customer, store, customer_id=999))

    def test_non_draft_order_needs_items(self, db_session, customer, store):
        with pytest.raises(OrderError, match="at least one item"):
            order_service.create_order(_order_payload(customer, store, items=[]))

    def test_draft_without_items(self, db_session, customer, store):
        order = order_service.create_order(_order_payload(customer, store, items=[], status="draft"))
        assert order.total_cents == 0

    def test_initial_status_must_be_draft_or_pending(self, db_session, customer, store):
        with pytest.raises(LifecycleError):
            order_service.create_order(_order_payload(customer, store, status="in_production"))

    def test_item_copies_inventory_name_and_price(self, db_session, customer, store, fabric):
        order = order_service.create_order(_order_payload(
            customer, store, items=[{"inventory_id": fabric.id, "quantity": 3}],
        ))
        item = order.items[0]
        assert item.description == "Silk Blouse Fabric"
        assert item.unit_price_cents == 150000
        assert item.total_price_cents == 450000

    def test_customer_discount_percentage_applies(self, db_session, customer, store):
        customer_service.update_customer(customer.id, {"discount_percentage": 10})
        order = order_service.create_order(_order_payload(customer, store))
        assert order.discount_cents == 10000
        assert order.total_cents == 90000

    def test_explicit_discount_wins(self, db_session, customer, store):
        customer_service.update_customer(customer.id, {"discount_percentage": 10})
        order = order_service.create_order(_order_payload(customer, store, discount_cents=500))
        assert order.discount_cents == 500
        assert order.total_cents == 99500

    def test_confirmation_message_sent(self, db_session, customer, store, wa_proxy):
        order_service.create_order(_order_payload(customer, store))
        assert [r["template"] for r in wa_proxy.sent] == ["order_confirmation"]


def test_compute_totals_with_tax():
    totals = compute_totals(10000, 1000, 1800)
    assert totals == {
        "subtotal_cents": 10000,
        "discount_cents": 1000,
        "tax_cents": 1620,
        "total_cents": 10620,
    }


def test_compute_totals_caps_discount():
    assert compute_totals(1000, 5000, 0)["total_cents"] == 0


class TestItems:
    def test_quantity_change_recomputes_balance(self, db_session, make_order):
        order = make_order(total_cents=1000)
        payment_service.record_payment(order.id, 500)
        item_id = order.items[0].id

        order_service.update_item_quantity(order.id, item_id, 3)

        refreshed = db_session.get(Order, order.id)
        assert refreshed.total_cents == 3000
        assert refreshed.deposit_cents == 500
        assert refreshed.remaining_balance_cents == 2500

    def test_add_and_remove_item(self, db_session, make_order):
        order = make_order(total_cents=1000)
        item = order_service.add_item(order.id, {"description": "Lining", "unit_price_cents": 200})
        assert db_session.get(Order, order.id).total_cents == 1200

        order_service.remove_item(order.id, item.id)
        assert db_session.get(Order, order.id).total_cents == 1000

    def test_last_item_cannot_be_removed_outside_draft(self, db_session, make_order):
        order = make_order()
        with pytest.raises(OrderError, match="last item"):
            order_service.remove_item(order.id, order.items[0].id)

    def test_terminal_order_items_are_frozen(self, db_session, make_order):
        order = make_order()
        order_service.cancel_order(order.id)
        with pytest.raises(OrderError, match="cancelled"):
            order_service.add_item(order.id, {"description": "Extra", "unit_price_cents": 1})

    def test_item_needs_price(self, db_session, make_order):
        order = make_order()
        with pytest.raises(OrderError, match="unit_price_cents is required"):
            order_service.add_item(order.id, {"description": "Free text"})

    def test_pin_rejects_version_of_other_measurement(self, db_session, make_order, make_measurement):
        order = make_order()
        a = make_measurement(order_id=order.id, bust=30.0)
        b = make_measurement(order_id=order.id, bust=40.0)
        _, va = measurement_service.update_measurement(a.id, {"bust": 31.0})
        _, vb = measurement_service.update_measurement(b.id, {"bust": 41.0})
        item_id = order.items[0].id

        order_service.pin_measurement_version(item_id, va.id)
        with pytest.raises(OrderError, match="does not belong"):
            order_service.pin_measurement_version(item_id, vb.id)
        assert db_session.get(OrderItem, item_id).measurement_version_id == va.id


class TestStatus:
    def test_forward_transition(self, db_session, make_order):
        order = make_order()
        updated = order_service.update_order_status(order.id, "in_production")
        assert updated.status == "in_production"

    def test_terminal_status_is_final(self, db_session, make_order):
        order = make_order()
        order_service.update_order_status(order.id, "completed")
        with pytest.raises(LifecycleError, match="final"):
            order_service.update_order_status(order.id, "in_production")

    def test_unknown_status(self, db_session, make_order):
        order = make_order()
        with pytest.raises(LifecycleError, match="Invalid order status"):
            order_service.update_order_status(order.id, "shipped")

    def test_draft_without_items_cannot_advance(self, db_session, customer, store):
        order = order_service.create_order(_order_payload(customer, store, items=[], status="draft"))
        with pytest.raises(OrderError, match="at least one item"):
            order_service.update_order_status(order.id, "pending")

    def test_update_order_rejects_status(self, db_session, make_order):
        order = make_order()
        with pytest.raises(OrderError, match="status endpoint"):
            order_service.update_order(order.id, {"status": "completed"})

    def test_settle_only_cancelled(self, db_session, make_order):
        order = make_order()
        with pytest.raises(OrderError, match="Only cancelled"):
            order_service.mark_settled(order.id)
        order_service.cancel_order(order.id)
        assert order_service.mark_settled(order.id).is_settled is True


class TestReads:
    def test_list_is_denormalized(self, db_session, make_order, employee):
        order = make_order(assigned_employee_id=employee.id)
        row = order_service.list_orders()[0]
        assert row["id"] == order.id
        assert row["customer_name"] == "Asha Rao"
        assert row["customer_phone"] == "9876543210"
        assert row["customer_vip_status"] == "regular"
        assert row["store_name"] == "Main Boutique"
        assert row["assigned_employee_name"] == "Ravi"

    def test_list_reflects_status_change(self, db_session, make_order):
        order = make_order()
        assert order_service.list_orders(status="pending")[0]["id"] == order.id
        order_service.update_order_status(order.id, "in_production")
        assert order_service.list_orders(status="pending") == []

    def test_invoice(self, db_session, make_order):
        settings_service.set_app_setting("invoice_template", {"company_name": "Silk Route Tailors"})
        order = make_order(total_cents=2000)
        payment_service.record_payment(order.id, 500)

        invoice = order_service.build_invoice(order.id)
        assert invoice["order"]["order_number"] == order.order_number
        assert invoice["customer"]["name"] == "Asha Rao"
        assert invoice["store"]["name"] == "Main Boutique"
        assert len(invoice["items"]) == 1
        assert invoice["balance"]["remaining_balance_cents"] == 1500
        assert invoice["template"]["company_name"] == "Silk Route Tailors"
        assert invoice["template"]["footer_text"]
