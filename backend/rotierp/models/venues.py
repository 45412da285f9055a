from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z, utcnow

VENUE_KINDS = ("HOTEL", "HOSTEL")
VENUE_STATUSES = ("ACTIVE", "INACTIVE")


class Venue(db.Model):
    """
    Institutional bulk customer: a hotel or a hostel.

    Both kinds share one table and are told apart by ``kind``; codes are
    unique per kind.
    """
    __tablename__ = "venues"
    __table_args__ = (
        db.UniqueConstraint("kind", "code", name="uq_venues_kind_code"),
        db.Index("ix_venues_kind_status", "kind", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    kind = db.Column(db.String(16), nullable=False)
    name = db.Column(db.String(128), nullable=False)
    code = db.Column(db.String(32), nullable=False)

    manager_name = db.Column(db.String(128), nullable=False)
    manager_phone = db.Column(db.String(32), nullable=False)
    address = db.Column(db.Text, nullable=False)
    city = db.Column(db.String(64), nullable=False)
    state = db.Column(db.String(64), nullable=False)
    pincode = db.Column(db.String(16), nullable=False)
    gst_number = db.Column(db.String(32), nullable=True)
    license_number = db.Column(db.String(64), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="ACTIVE")
    opening_date = db.Column(db.Date, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    managed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    creator = db.relationship("User", foreign_keys=[created_by_user_id])
    manager = db.relationship("User", foreign_keys=[managed_by_user_id])
    orders = db.relationship(
        "VenueOrder",
        backref="venue",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def to_summary(self) -> dict:
        return {"id": self.id, "name": self.name, "code": self.code}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.kind,
            "name": self.name,
            "code": self.code,
            "managerName": self.manager_name,
            "managerPhone": self.manager_phone,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "pincode": self.pincode,
            "gstNumber": self.gst_number,
            "licenseNumber": self.license_number,
            "status": self.status,
            "openingDate": to_iso_date(self.opening_date),
            "createdBy": self.creator.to_summary() if self.creator else None,
            "managedBy": self.manager.to_summary() if self.manager else None,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class VenueOrder(db.Model):
    __tablename__ = "venue_orders"
    __table_args__ = (
        db.Index("ix_venue_orders_venue_date", "venue_id", "order_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    venue_id = db.Column(db.Integer, db.ForeignKey("venues.id"), nullable=False)
    order_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    total_packets = db.Column(db.Integer, nullable=False, default=0)
    total_rotis = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default="PENDING")
    notes = db.Column(db.Text, nullable=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    items = db.relationship(
        "VenueOrderItem",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="VenueOrderItem.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "venueId": self.venue_id,
            "venue": self.venue.to_summary() if self.venue else None,
            "orderDate": to_utc_z(self.order_date),
            "totalPackets": self.total_packets,
            "totalRotis": self.total_rotis,
            "status": self.status,
            "notes": self.notes,
            "items": [item.to_dict() for item in self.items],
        }


class VenueOrderItem(db.Model):
    __tablename__ = "venue_order_items"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("venue_orders.id"), nullable=False, index=True)
    packet_size = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    total_rotis = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "packetSize": self.packet_size,
            "quantity": self.quantity,
            "totalRotis": self.total_rotis,
        }
