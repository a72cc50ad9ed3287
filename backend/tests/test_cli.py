from tailorshop.models import Employee, Order, OrderStatusSetting, Service


def test_init_db_seeds_settings(app, db_session):
    result = app.test_cli_runner().invoke(args=["system", "init-db"])
    assert result.exit_code == 0
    assert "14 default setting rows added" in result.output
    assert db_session.query(OrderStatusSetting).count() == 9


def test_ledger_reconcile(app, db_session, make_order):
    order = make_order(total_cents=5000)
    order.remaining_balance_cents = 1
    db_session.commit()

    result = app.test_cli_runner().invoke(args=["ledger", "reconcile"])

    assert result.exit_code == 0
    assert f"Order {order.id}: repaired" in result.output
    assert db_session.get(Order, order.id).remaining_balance_cents == 5000


def test_ledger_reconcile_missing_order(app, db_session):
    result = app.test_cli_runner().invoke(args=["ledger", "reconcile", "--order-id", "999"])
    assert result.exit_code != 0
    assert "Order not found" in result.output


def test_employees_import(app, db_session, tmp_path):
    path = tmp_path / "staff.csv"
    path.write_text("name,phone,role\nMeena,900,tailor\n,901,tailor\n", encoding="utf-8")

    result = app.test_cli_runner().invoke(args=["employees", "import", str(path)])

    assert result.exit_code == 0
    assert "FAIL Row 3: Missing required fields (name, phone)" in result.output
    assert "PASS 1 imported, 1 failed" in result.output
    assert db_session.query(Employee).count() == 1


def test_services_import(app, db_session, tmp_path):
    path = tmp_path / "services.csv"
    path.write_text("name,price,unit\nHemming,150,per_piece\nPiping,20,per_day\n", encoding="utf-8")

    result = app.test_cli_runner().invoke(args=["services", "import", str(path)])

    assert result.exit_code == 0
    assert "FAIL Row 3: Invalid unit 'per_day'" in result.output
    assert "PASS 1 imported, 1 failed" in result.output
    assert db_session.query(Service).one().price_cents == 15000


def test_services_import_rejects_bad_header(app, db_session, tmp_path):
    path = tmp_path / "services.csv"
    path.write_text("name\nHemming\n", encoding="utf-8")
    result = app.test_cli_runner().invoke(args=["services", "import", str(path)])
    assert result.exit_code != 0
    assert "Missing required columns: price" in result.output


def test_check_templates_fails_on_mismatch(app, db_session, wa_proxy):
    wa_proxy.templates = {"feedback": "Thanks {{1}}"}
    result = app.test_cli_runner().invoke(args=["notifications", "check-templates"])
    assert result.exit_code != 0
    assert "FAIL feedback: remote has 1, local sends 2" in result.output
