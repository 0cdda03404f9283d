# Overview: Read-only lookups into catalog reference data (stores, items, staff).

from __future__ import annotations

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Store, Item, StaffMember


def resolve_store(store_id: int, *, require_active: bool = True) -> Store:
    store = db.session.get(Store, store_id) if store_id is not None else None
    if store is None:
        raise NotFoundError(f"Store {store_id} not found")
    if require_active and not store.is_active:
        raise ValidationError(f"Store {store_id} is inactive")
    return store


def resolve_item(item_id: int, *, require_active: bool = True) -> Item:
    item = db.session.get(Item, item_id) if item_id is not None else None
    if item is None:
        raise NotFoundError(f"Item {item_id} not found")
    if require_active and not item.is_active:
        raise ValidationError(f"Item {item_id} is inactive")
    return item


def resolve_staff(staff_id: int) -> StaffMember:
    staff = db.session.get(StaffMember, staff_id) if staff_id is not None else None
    if staff is None:
        raise NotFoundError(f"Staff member {staff_id} not found")
    if not staff.is_active:
        raise ValidationError(f"Staff member {staff_id} is inactive")
    return staff
