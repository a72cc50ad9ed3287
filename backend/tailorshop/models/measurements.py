from __future__ import annotations

from ..extensions import db
from tailorshop.time_utils import to_utc_z


# Body measurement columns, in the order the shop's forms list them.
MEASUREMENT_FIELDS = (
    "full_length",
    "blouse_length",
    "shoulder",
    "bust",
    "waist_round",
    "yoke_length",
    "yoke_round",
    "slit_length",
    "slit_width",
    "stomach_length",
    "stomach_round",
    "bust_point_length",
    "bust_distance",
    "fc",
    "bc",
    "sleeve_round",
    "bicep_round",
    "armhole",
    "shoulder_balance",
    "front_neck_depth",
    "back_neck_depth",
    "collar_round",
    "bottom_length",
    "skirt_length",
    "hip_round",
    "seat_round",
    "thigh_round",
    "knee_round",
    "ankle_round",
)

# Everything a version snapshot copies from the live row.
VERSIONED_FIELDS = MEASUREMENT_FIELDS + ("garment_type", "custom_notes")


class _MeasurementValues:
    full_length = db.Column(db.Float, nullable=True)
    blouse_length = db.Column(db.Float, nullable=True)
    shoulder = db.Column(db.Float, nullable=True)
    bust = db.Column(db.Float, nullable=True)
    waist_round = db.Column(db.Float, nullable=True)
    yoke_length = db.Column(db.Float, nullable=True)
    yoke_round = db.Column(db.Float, nullable=True)
    slit_length = db.Column(db.Float, nullable=True)
    slit_width = db.Column(db.Float, nullable=True)
    stomach_length = db.Column(db.Float, nullable=True)
    stomach_round = db.Column(db.Float, nullable=True)
    bust_point_length = db.Column(db.Float, nullable=True)
    bust_distance = db.Column(db.Float, nullable=True)
    fc = db.Column(db.Float, nullable=True)
    bc = db.Column(db.Float, nullable=True)
    sleeve_round = db.Column(db.Float, nullable=True)
    bicep_round = db.Column(db.Float, nullable=True)
    armhole = db.Column(db.Float, nullable=True)
    shoulder_balance = db.Column(db.Float, nullable=True)
    front_neck_depth = db.Column(db.Float, nullable=True)
    back_neck_depth = db.Column(db.Float, nullable=True)
    collar_round = db.Column(db.Float, nullable=True)
    bottom_length = db.Column(db.Float, nullable=True)
    skirt_length = db.Column(db.Float, nullable=True)
    hip_round = db.Column(db.Float, nullable=True)
    seat_round = db.Column(db.Float, nullable=True)
    thigh_round = db.Column(db.Float, nullable=True)
    knee_round = db.Column(db.Float, nullable=True)
    ankle_round = db.Column(db.Float, nullable=True)

    garment_type = db.Column(db.String(64), nullable=False)
    custom_notes = db.Column(db.Text, nullable=True)

    def values_dict(self) -> dict:
        return {field: getattr(self, field) for field in VERSIONED_FIELDS}


class Measurement(_MeasurementValues, db.Model):
    """
    Live measurement profile, optionally attached to an order.

    Edits go through measurement_service.update_measurement, which
    snapshots the previous values into a MeasurementVersion first.
    version_counter is the last version number ever issued for this row;
    it only grows, so numbers are never reused after pruning.
    """
    __tablename__ = "measurements"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, index=True)

    diagram_url = db.Column(db.String(512), nullable=True)
    is_primary = db.Column(db.Boolean, nullable=False, default=False)
    materials_provided_by_customer = db.Column(db.Boolean, nullable=False, default=False)
    materials_images = db.Column(db.JSON, nullable=False, default=list)
    version_counter = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    order = db.relationship("Order", backref=db.backref("measurements", lazy=True))

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "order_id": self.order_id,
            "diagram_url": self.diagram_url,
            "is_primary": self.is_primary,
            "materials_provided_by_customer": self.materials_provided_by_customer,
            "materials_images": list(self.materials_images or []),
            "version_counter": self.version_counter,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        data.update(self.values_dict())
        return data


class MeasurementVersion(_MeasurementValues, db.Model):
    """
    Immutable snapshot of a measurement's values before an edit.

    Rows are only ever inserted by the versioning path and deleted by
    retention pruning or by deleting the parent measurement.
    """
    __tablename__ = "measurement_versions"
    __table_args__ = (
        db.UniqueConstraint("measurement_id", "version_number", name="uq_measurement_versions_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    measurement_id = db.Column(db.Integer, db.ForeignKey("measurements.id"), nullable=False, index=True)
    version_number = db.Column(db.Integer, nullable=False)
    change_reason = db.Column(db.Text, nullable=True)
    changed_by = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    measurement = db.relationship("Measurement", backref=db.backref("versions", lazy=True))

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "measurement_id": self.measurement_id,
            "version_number": self.version_number,
            "change_reason": self.change_reason,
            "changed_by": self.changed_by,
            "created_at": to_utc_z(self.created_at),
        }
        data.update(self.values_dict())
        return data
