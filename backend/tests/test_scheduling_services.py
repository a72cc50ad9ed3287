# Overview: Pytest coverage for tasks, fittings and shifts.

from datetime import datetime, timedelta, timezone

import pytest

from tailorshop.services import fitting_service, order_service, task_service, timekeeping_service, employee_service
from tailorshop.services.fitting_service import FittingError
from tailorshop.services.task_service import TaskError
from tailorshop.services.timekeeping_service import TimekeepingError


class TestTasks:
    def test_completion_stamp(self, db_session, make_order, employee):
        order = make_order()
        task = task_service.create_task({"title": "Hem", "order_id": order.id, "assigned_to": employee.id})
        assert task.status == "pending"
        assert task.completed_at is None

        done = task_service.update_task_status(task.id, "completed")
        assert done.completed_at is not None

        reopened = task_service.update_task_status(task.id, "in_progress")
        assert reopened.completed_at is None

    def test_references_checked(self, db_session):
        with pytest.raises(TaskError, match="Order not found"):
            task_service.create_task({"title": "Hem", "order_id": 999})
        with pytest.raises(TaskError, match="Employee not found"):
            task_service.create_task({"title": "Hem", "assigned_to": 999})

    def test_invalid_status(self, db_session):
        task = task_service.create_task({"title": "Press"})
        with pytest.raises(TaskError, match="Invalid task status"):
            task_service.update_task_status(task.id, "blocked")

    def test_list_ordering_and_filters(self, db_session):
        low = task_service.create_task({"title": "Low", "priority": 1})
        high = task_service.create_task({"title": "High", "priority": 5})
        task_service.update_task_status(low.id, "completed")

        assert [t["title"] for t in task_service.list_tasks()] == ["High", "Low"]
        assert [t["id"] for t in task_service.list_tasks(status="pending")] == [high.id]

    def test_delete(self, db_session):
        task = task_service.create_task({"title": "Press"})
        task_service.delete_task(task.id)
        assert task_service.list_tasks() == []
        with pytest.raises(TaskError, match="Task not found"):
            task_service.delete_task(task.id)


class TestFittings:
    def test_schedule_copies_customer_and_store(self, db_session, make_order, customer, store):
        order = make_order()
        when = datetime.now(timezone.utc) + timedelta(days=2)
        appt = fitting_service.schedule_fitting(order.id, when.isoformat(), notes="Trial 1")

        assert appt.customer_id == customer.id
        assert appt.store_id == store.id
        assert [a.id for a in fitting_service.list_for_order(order.id)] == [appt.id]

    def test_upcoming_excludes_completed_and_past(self, db_session, make_order):
        order = make_order()
        now = datetime.now(timezone.utc)
        soon = fitting_service.schedule_fitting(order.id, now + timedelta(days=1))
        later = fitting_service.schedule_fitting(order.id, now + timedelta(days=3))
        fitting_service.schedule_fitting(order.id, now - timedelta(days=1))
        fitting_service.complete_fitting(later.id)

        assert [a.id for a in fitting_service.list_upcoming(now=now)] == [soon.id]

    def test_cancelled_order(self, db_session, make_order):
        order = make_order()
        order_service.cancel_order(order.id)
        with pytest.raises(FittingError, match="cancelled order"):
            fitting_service.schedule_fitting(order.id, "2030-01-01T10:00:00Z")

    def test_bad_datetime(self, db_session, make_order):
        order = make_order()
        with pytest.raises(FittingError, match="ISO-8601"):
            fitting_service.schedule_fitting(order.id, "next tuesday")


class TestTimekeeping:
    def test_single_open_shift(self, db_session, employee, store):
        entry = timekeeping_service.clock_in(employee_id=employee.id, notes="morning")
        assert entry.store_id == store.id
        with pytest.raises(TimekeepingError, match="already clocked in"):
            timekeeping_service.clock_in(employee_id=employee.id)

        closed = timekeeping_service.clock_out(employee_id=employee.id, notes="left early")
        assert closed.clock_out is not None
        assert closed.notes == "morning\nleft early"
        assert timekeeping_service.list_entries(employee_id=employee.id, open_only=True) == []

    def test_clock_out_without_shift(self, db_session, employee):
        with pytest.raises(TimekeepingError, match="not clocked in"):
            timekeeping_service.clock_out(employee_id=employee.id)

    def test_inactive_employee(self, db_session, employee):
        employee_service.deactivate_employee(employee.id)
        with pytest.raises(TimekeepingError, match="Inactive"):
            timekeeping_service.clock_in(employee_id=employee.id)
