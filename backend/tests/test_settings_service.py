import unittest
from flask import Flask

from tailorshop.extensions import db
from tailorshop.models import OrderStatusSetting, VipStatusSetting, AppSetting, MeasurementTemplate, MEASUREMENT_FIELDS
from tailorshop.services import read_cache, settings_service, measurement_template_service
from tailorshop.services.settings_service import (
    KIND_ORDER_STATUS,
    KIND_VIP_STATUS,
    SettingsError,
)
from tailorshop.services.measurement_template_service import MeasurementTemplateError


class SettingsServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = Flask(__name__)
        cls.app.config.update(
            SECRET_KEY="test",
            SQLALCHEMY_DATABASE_URI="sqlite:///:memory:",
            SQLALCHEMY_TRACK_MODIFICATIONS=False,
            TESTING=True,
        )
        db.init_app(cls.app)
        cls.ctx = cls.app.app_context()
        cls.ctx.push()
        from tailorshop import models  # noqa: F401
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()

    def setUp(self):
        db.session.query(OrderStatusSetting).delete()
        db.session.query(VipStatusSetting).delete()
        db.session.query(AppSetting).delete()
        db.session.query(MeasurementTemplate).delete()
        db.session.commit()
        read_cache.clear()

    def test_seed_is_idempotent(self):
        added = settings_service.ensure_defaults_seeded()
        self.assertEqual(added, 9 + 4 + 1)
        self.assertEqual(settings_service.ensure_defaults_seeded(), 0)

        statuses = settings_service.list_settings(KIND_ORDER_STATUS)
        self.assertEqual([s["code"] for s in statuses][:3], ["draft", "pending", "deposit_paid"])
        self.assertTrue(all(s["is_system"] for s in statuses))

    def test_seed_keeps_edited_rows(self):
        settings_service.upsert_setting(KIND_VIP_STATUS, "gold", {"label": "Gold Club", "color": "#ffd700"})
        settings_service.ensure_defaults_seeded()

        gold = settings_service.get_setting(KIND_VIP_STATUS, "gold")
        self.assertEqual(gold.label, "Gold Club")
        self.assertEqual(len(settings_service.list_settings(KIND_VIP_STATUS)), 4)

    def test_upsert_updates_label_and_color(self):
        settings_service.ensure_defaults_seeded()
        settings_service.upsert_setting(KIND_ORDER_STATUS, "pending", {"label": "Awaiting", "color": "#123abc"})

        row = settings_service.get_setting(KIND_ORDER_STATUS, "pending")
        self.assertEqual((row.label, row.color), ("Awaiting", "#123abc"))
        labels = {s["code"]: s["label"] for s in settings_service.list_settings(KIND_ORDER_STATUS)}
        self.assertEqual(labels["pending"], "Awaiting")

    def test_upsert_rejects_unknown_code(self):
        with self.assertRaises(SettingsError):
            settings_service.upsert_setting(KIND_ORDER_STATUS, "shipped", {"label": "Shipped"})

    def test_upsert_rejects_code_change(self):
        with self.assertRaisesRegex(SettingsError, "code cannot be changed"):
            settings_service.upsert_setting(KIND_VIP_STATUS, "gold", {"code": "silver", "label": "x"})

    def test_upsert_validates_fields(self):
        with self.assertRaisesRegex(SettingsError, "label is required"):
            settings_service.upsert_setting(KIND_VIP_STATUS, "gold", {"color": "#ffffff"})
        with self.assertRaisesRegex(SettingsError, "hex value"):
            settings_service.upsert_setting(KIND_VIP_STATUS, "gold", {"label": "Gold", "color": "gold"})
        with self.assertRaisesRegex(SettingsError, "Field not allowed"):
            settings_service.upsert_setting(KIND_VIP_STATUS, "gold", {"label": "Gold", "is_system": True})

    def test_unknown_kind(self):
        with self.assertRaisesRegex(SettingsError, "Unknown settings kind"):
            settings_service.list_settings("payment_method")

    def test_system_status_cannot_be_deleted(self):
        settings_service.ensure_defaults_seeded()
        with self.assertRaisesRegex(SettingsError, "cannot be deleted"):
            settings_service.delete_setting(KIND_ORDER_STATUS, "pending")

        settings_service.upsert_setting(KIND_ORDER_STATUS, "pending", {"is_active": False})
        active = [s["code"] for s in settings_service.list_settings(KIND_ORDER_STATUS, active_only=True)]
        self.assertNotIn("pending", active)

    def test_vip_tier_can_be_deleted(self):
        settings_service.ensure_defaults_seeded()
        settings_service.delete_setting(KIND_VIP_STATUS, "platinum")
        codes = [s["code"] for s in settings_service.list_settings(KIND_VIP_STATUS)]
        self.assertEqual(codes, ["regular", "silver", "gold"])

    def test_reorder(self):
        settings_service.ensure_defaults_seeded()
        rows = settings_service.reorder_settings(KIND_VIP_STATUS, ["platinum", "regular"])
        self.assertEqual([r["code"] for r in rows], ["platinum", "regular", "silver", "gold"])

        with self.assertRaisesRegex(SettingsError, "Unknown codes"):
            settings_service.reorder_settings(KIND_VIP_STATUS, ["bronze"])
        with self.assertRaisesRegex(SettingsError, "without duplicates"):
            settings_service.reorder_settings(KIND_VIP_STATUS, ["gold", "gold"])

    def test_app_settings_and_invoice_template(self):
        self.assertIsNone(settings_service.get_app_setting("missing"))
        self.assertEqual(settings_service.get_invoice_template()["footer_text"], "Thank you for your business!")

        settings_service.set_app_setting("invoice_template", {"company_name": "Silk Route", "show_measurements": True})
        template = settings_service.get_invoice_template()
        self.assertEqual(template["company_name"], "Silk Route")
        self.assertTrue(template["show_measurements"])
        self.assertIn("logo_url", template)

        with self.assertRaises(SettingsError):
            settings_service.set_app_setting("  ", 1)

    def test_measurement_template_starts_with_every_field(self):
        template = measurement_template_service.upsert_template("Blouse", {})
        self.assertEqual(template.garment_type, "blouse")
        self.assertEqual([f["name"] for f in template.fields], list(MEASUREMENT_FIELDS))
        self.assertEqual(template.fields[0]["label"], "Full Length")
        self.assertEqual(settings_service.ensure_defaults_seeded(), 9 + 4 + 1)

    def test_measurement_template_fields_replace_and_filter(self):
        measurement_template_service.upsert_template("blouse", {"fields": [
            {"name": "bust", "label": "Bust", "enabled": True},
            {"name": "armhole", "label": "Arm Hole", "enabled": False},
            {"name": "shoulder"},
        ]})
        self.assertEqual(measurement_template_service.enabled_fields("blouse"), ["bust", "shoulder"])
        self.assertEqual(measurement_template_service.enabled_fields("lehenga"), list(MEASUREMENT_FIELDS))

        measurement_template_service.upsert_template("blouse", {"is_active": False})
        self.assertEqual(measurement_template_service.enabled_fields("blouse"), list(MEASUREMENT_FIELDS))
        self.assertEqual(measurement_template_service.list_templates(active_only=True), [])

    def test_measurement_template_validation(self):
        with self.assertRaisesRegex(MeasurementTemplateError, "unknown measurement 'wingspan'"):
            measurement_template_service.upsert_template("blouse", {"fields": [{"name": "wingspan"}]})
        with self.assertRaisesRegex(MeasurementTemplateError, "duplicate measurement"):
            measurement_template_service.upsert_template("blouse", {"fields": [{"name": "bust"}, {"name": "bust"}]})
        with self.assertRaisesRegex(MeasurementTemplateError, "garment_type cannot be changed"):
            measurement_template_service.upsert_template("blouse", {"garment_type": "kurta"})
        with self.assertRaisesRegex(MeasurementTemplateError, "not found"):
            measurement_template_service.delete_template("kurta")

    def test_measurement_templates_sorted_by_garment(self):
        measurement_template_service.upsert_template("salwar", {})
        measurement_template_service.upsert_template("blouse", {})
        rows = measurement_template_service.list_templates()
        self.assertEqual([r["garment_type"] for r in rows], ["blouse", "salwar"])

        measurement_template_service.delete_template("salwar")
        self.assertEqual(len(measurement_template_service.list_templates()), 1)


if __name__ == "__main__":
    unittest.main()
