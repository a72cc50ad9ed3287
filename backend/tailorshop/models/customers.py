from __future__ import annotations

from ..extensions import db
from tailorshop.time_utils import to_utc_z


VIP_TIERS = ("regular", "silver", "gold", "platinum")


class Customer(db.Model):
    """
    Customer master data.

    Root of the cascade-delete tree: orders, their items, payments,
    fittings and measurements all hang off a customer.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_phone", "phone"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=False)
    whatsapp = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(120), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    vip_status = db.Column(db.String(16), nullable=False, default="regular")
    discount_percentage = db.Column(db.Float, nullable=True)
    preferred_store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    preferred_store = db.relationship("Store", backref=db.backref("preferred_by_customers", lazy=True))

    def __repr__(self) -> str:
        return f"<Customer id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "whatsapp": self.whatsapp,
            "email": self.email,
            "address": self.address,
            "city": self.city,
            "notes": self.notes,
            "vip_status": self.vip_status,
            "discount_percentage": self.discount_percentage,
            "preferred_store_id": self.preferred_store_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
