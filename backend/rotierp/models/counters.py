from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z, utcnow


class Counter(db.Model):
    """Point of sale where rotis are delivered and sold by the packet."""
    __tablename__ = "counters"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    franchise_id = db.Column(db.Integer, db.ForeignKey("franchises.id"), nullable=True, index=True)
    name = db.Column(db.String(128), nullable=False)
    location = db.Column(db.String(255), nullable=True)
    manager_name = db.Column(db.String(128), nullable=True)
    manager_phone = db.Column(db.String(32), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    franchise = db.relationship("Franchise", back_populates="counters")

    def to_summary(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "location": self.location,
            "franchise": self.franchise.to_summary() if self.franchise else None,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "franchiseId": self.franchise_id,
            "franchise": self.franchise.to_summary() if self.franchise else None,
            "name": self.name,
            "location": self.location,
            "managerName": self.manager_name,
            "managerPhone": self.manager_phone,
            "isActive": self.is_active,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class CounterOrder(db.Model):
    """
    Delivery document: packets handed to a counter for a business day.

    Each delivery also increments the day's CounterInventory rows.
    """
    __tablename__ = "counter_orders"
    __table_args__ = (
        db.Index("ix_counter_orders_counter_date", "counter_id", "order_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    counter_id = db.Column(db.Integer, db.ForeignKey("counters.id"), nullable=False)
    order_date = db.Column(db.Date, nullable=False)
    total_packets = db.Column(db.Integer, nullable=False, default=0)
    total_rotis = db.Column(db.Integer, nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    counter = db.relationship("Counter")
    items = db.relationship(
        "CounterOrderItem",
        backref="counter_order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="CounterOrderItem.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "counterId": self.counter_id,
            "date": to_iso_date(self.order_date),
            "totalPackets": self.total_packets,
            "totalRotis": self.total_rotis,
            "notes": self.notes,
            "createdBy": self.created_by_user_id,
            "createdAt": to_utc_z(self.created_at),
            "items": [item.to_dict() for item in self.items],
        }


class CounterOrderItem(db.Model):
    __tablename__ = "counter_order_items"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    counter_order_id = db.Column(db.Integer, db.ForeignKey("counter_orders.id"), nullable=False, index=True)
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


class CounterInventory(db.Model):
    """
    Per-day packet ledger for a counter, one row per packet size.

    Rows are only ever changed through single-statement increments and
    conditional decrements so concurrent deliveries and sales serialize
    in the database.
    """
    __tablename__ = "counter_inventory"
    __table_args__ = (
        db.UniqueConstraint("counter_id", "date", "packet_size", name="uq_counter_inventory_day_packet"),
        db.CheckConstraint("packet_size >= 1", name="ck_counter_inventory_packet_size"),
        db.CheckConstraint("remaining_packets >= 0", name="ck_counter_inventory_remaining_nonneg"),
        db.CheckConstraint(
            "remaining_packets = total_packets - sold_packets",
            name="ck_counter_inventory_packets_balance",
        ),
        db.CheckConstraint(
            "remaining_rotis = total_rotis - sold_rotis",
            name="ck_counter_inventory_rotis_balance",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    counter_id = db.Column(db.Integer, db.ForeignKey("counters.id"), nullable=False)
    date = db.Column(db.Date, nullable=False)
    packet_size = db.Column(db.Integer, nullable=False)

    total_packets = db.Column(db.Integer, nullable=False, default=0)
    total_rotis = db.Column(db.Integer, nullable=False, default=0)
    sold_packets = db.Column(db.Integer, nullable=False, default=0)
    sold_rotis = db.Column(db.Integer, nullable=False, default=0)
    remaining_packets = db.Column(db.Integer, nullable=False, default=0)
    remaining_rotis = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    counter = db.relationship("Counter")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "counterId": self.counter_id,
            "date": to_iso_date(self.date),
            "packetSize": self.packet_size,
            "totalPackets": self.total_packets,
            "totalRotis": self.total_rotis,
            "soldPackets": self.sold_packets,
            "soldRotis": self.sold_rotis,
            "remainingPackets": self.remaining_packets,
            "remainingRotis": self.remaining_rotis,
            "updatedAt": to_utc_z(self.updated_at),
        }
