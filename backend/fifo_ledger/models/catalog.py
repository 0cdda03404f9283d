from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


STORE_CAPABILITY_RECEIVE_ONLY = "receive-only"
STORE_CAPABILITY_SELL_ONLY = "sell-only"
STORE_CAPABILITY_BOTH = "both"
STORE_CAPABILITIES = (
    STORE_CAPABILITY_RECEIVE_ONLY,
    STORE_CAPABILITY_SELL_ONLY,
    STORE_CAPABILITY_BOTH,
)


class Store(db.Model):
    """
    Physical stock location (storeroom, bar, kitchen).

    Reference data owned by the catalog. The ledger only resolves stores by
    id and checks the capability before receiving into one.

    CAPABILITY:
    - receive-only: deliveries land here (e.g. main storeroom)
    - sell-only: stock only arrives by transfer (e.g. a bar station)
    - both
    """
    __tablename__ = "stores"
    __table_args__ = (
        db.UniqueConstraint("name", "location", name="uq_stores_name_location"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    location = db.Column(db.String(255), nullable=True)
    capability = db.Column(db.String(16), nullable=False, default=STORE_CAPABILITY_BOTH)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    @property
    def can_receive(self) -> bool:
        return self.capability in (STORE_CAPABILITY_RECEIVE_ONLY, STORE_CAPABILITY_BOTH)

    def __repr__(self) -> str:
        return f"<Store id={self.id} name={self.name!r} capability={self.capability}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "location": self.location,
            "capability": self.capability,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Item(db.Model):
    """Catalog item (a spirit, a syrup, a case of limes)."""
    __tablename__ = "items"
    __table_args__ = (
        db.Index("ix_items_barcode", "barcode"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    brand = db.Column(db.String(120), nullable=True)
    category = db.Column(db.String(120), nullable=True)
    # Hex colour used by the dashboard to tint the item's rows
    color_code = db.Column(db.String(16), nullable=True)
    barcode = db.Column(db.String(64), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Item id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "brand": self.brand,
            "category": self.category,
            "color_code": self.color_code,
            "barcode": self.barcode,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class StaffMember(db.Model):
    """Staff reference used to attribute transfers and sales."""
    __tablename__ = "staff_members"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    title = db.Column(db.String(120), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<StaffMember id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "title": self.title,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
