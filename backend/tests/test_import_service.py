# Overview: Pytest coverage for the employee and service CSV imports.

import pytest

from tailorshop.models import Employee, Service
from tailorshop.services import category_service
from tailorshop.services.import_service import (
    EmployeeImportError,
    ServiceImportError,
    import_employees_csv,
    import_services_csv,
    normalize_role,
)


def test_rows_import_independently(db_session, store):
    text = (
        "Name,Phone,Email,Role,Store_ID\n"
        f"Meena,9000000010,meena@example.com,Tailor,{store.id}\n"
        "Kiran,,kiran@example.com,Tailor,\n"
        "Farah,9000000012,,Store Manager,\n"
    )
    result = import_employees_csv(text)

    assert result["success"] == 2
    assert result["failed"] == 1
    assert result["errors"] == ["Row 3: Missing required fields (name, phone)"]

    names = sorted(e.name for e in db_session.query(Employee).all())
    assert names == ["Farah", "Meena"]
    farah = db_session.query(Employee).filter_by(name="Farah").one()
    assert farah.role == "store_manager"
    assert farah.store_id is None


def test_bad_role_and_store_are_reported(db_session):
    text = "name,phone,role,store_id\nA,1,pilot,\nB,2,tailor,999\nC,3,,\n"
    result = import_employees_csv(text)

    assert result["success"] == 1
    assert result["errors"][0].startswith("Row 2: Invalid role 'pilot'")
    assert result["errors"][1] == "Row 3: Store not found"
    assert db_session.query(Employee).one().role == "sales_associate"


def test_inactive_rows(db_session):
    result = import_employees_csv("name,phone,is_active\nA,1,no\nB,2,yes\n")
    assert result["success"] == 2
    statuses = {e.name: e.status for e in db_session.query(Employee).all()}
    assert statuses == {"A": "INACTIVE", "B": "ACTIVE"}


def test_byte_order_mark_and_blank_lines(db_session):
    result = import_employees_csv("\ufeffname,phone\n\nA,1\n,\n")
    assert result == {"success": 1, "failed": 0, "errors": []}


def test_missing_columns(db_session):
    with pytest.raises(EmployeeImportError, match="Missing required columns: phone"):
        import_employees_csv("name,email\nA,a@example.com\n")


def test_header_only(db_session):
    with pytest.raises(EmployeeImportError, match="at least a header row"):
        import_employees_csv("name,phone\n")


@pytest.mark.parametrize("raw, role", [
    ("Admin", "admin"),
    ("  store   manager ", "store_manager"),
    ("Sales", "sales_associate"),
    ("", "sales_associate"),
    ("tailor", "tailor"),
])
def test_normalize_role(raw, role):
    assert normalize_role(raw) == role


def test_blank_lines_keep_file_line_numbers(db_session):
    result = import_employees_csv("name,phone,role\nA,9000000020,tailor\n\nB,,tailor\n")
    assert result["success"] == 1
    assert result["errors"] == ["Row 4: Missing required fields (name, phone)"]


class TestServiceImport:
    def test_rows_import_independently(self, db_session):
        category_service.create_category({"name": "Embellishment"})
        text = (
            "Name,Description,Price,Unit,Duration_Minutes,Category,Taxable\n"
            "Hand Embroidery,Intricate work,\"1,500\",per_piece,60,Embellishment,true\n"
            "Hemming,,abc,,,,\n"
            "\n"
            "Fall & Pico,,\u20b9250.50,,,,\n"
            "Piping,,100,,,Menswear,\n"
        )
        result = import_services_csv(text)

        assert result["success"] == 2
        assert result["errors"] == [
            "Row 3: Invalid price value",
            "Row 6: Category 'Menswear' not found",
        ]
        services = {s.name: s for s in db_session.query(Service).all()}
        embroidery = services["Hand Embroidery"]
        assert embroidery.price_cents == 150000
        assert embroidery.duration_minutes == 60
        assert embroidery.taxable is True
        assert embroidery.category.name == "Embellishment"
        assert services["Fall & Pico"].price_cents == 25050
        assert services["Fall & Pico"].unit == "per_piece"

    def test_price_cents_column_wins(self, db_session):
        result = import_services_csv("name,price,price_cents\nHemming,10,1999\n")
        assert result["success"] == 1
        assert db_session.query(Service).one().price_cents == 1999

    def test_bad_unit_and_missing_price(self, db_session):
        result = import_services_csv("name,price,unit\nA,10,per_day\nB,,\n")
        assert result["success"] == 0
        assert result["errors"][0].startswith("Row 2: Invalid unit 'per_day'")
        assert result["errors"][1] == "Row 3: Missing required fields (name, price)"

    def test_missing_columns(self, db_session):
        with pytest.raises(ServiceImportError, match="Missing required columns: price"):
            import_services_csv("name,description\nA,x\n")
