from __future__ import annotations

from ..extensions import db
from tailorshop.time_utils import to_utc_z


class OrderStatusSetting(db.Model):
    """
    Display metadata for one order status.

    code is the stable identifier stored on orders; label and color are
    presentation only and may be changed freely.
    """
    __tablename__ = "order_status_settings"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_order_status_settings_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False)
    label = db.Column(db.String(64), nullable=False)
    color = db.Column(db.String(16), nullable=False, default="#6b7280")
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_system = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "label": self.label,
            "color": self.color,
            "sort_order": self.sort_order,
            "is_active": self.is_active,
            "is_system": self.is_system,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class VipStatusSetting(db.Model):
    """Display metadata for one VIP tier."""
    __tablename__ = "vip_status_settings"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_vip_status_settings_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(16), nullable=False)
    label = db.Column(db.String(64), nullable=False)
    color = db.Column(db.String(16), nullable=False, default="#6b7280")
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "label": self.label,
            "color": self.color,
            "sort_order": self.sort_order,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class AppSetting(db.Model):
    """Free-form JSON settings (invoice template, logo URL)."""
    __tablename__ = "app_settings"

    key = db.Column(db.String(128), primary_key=True)
    value = db.Column(db.JSON, nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "value": self.value,
            "updated_at": to_utc_z(self.updated_at),
        }


class MeasurementTemplate(db.Model):
    """
    Which measurement fields the intake form shows for a garment type.

    fields is an ordered list of {"name", "label", "enabled"} where name is
    a measurement column.
    """
    __tablename__ = "measurement_templates"
    __table_args__ = (
        db.UniqueConstraint("garment_type", name="uq_measurement_templates_garment_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    garment_type = db.Column(db.String(64), nullable=False)
    fields = db.Column(db.JSON, nullable=False, default=list)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "garment_type": self.garment_type,
            "fields": list(self.fields or []),
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
