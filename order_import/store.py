# order_import/store.py
"""
Persistent-store collaborator: find_one / insert / update per entity type.

The import core never queries the database any other way. Every write
commits on its own; any failure is rolled back so the session is clean for
the next record, then surfaces as StoreError.
"""
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import Customer, Device, ServiceOrder, Supplier, casefold_key

from .errors import StoreError


class SqlStore:
    def __init__(self, model):
        self.model = model
        # field -> casefolded shadow column kept in sync by the model
        self.key_columns = getattr(model, "KEY_COLUMNS", {})

    @property
    def name(self) -> str:
        return self.model.__tablename__

    def _failed(self, action: str, e: Exception) -> StoreError:
        db.session.rollback()
        return StoreError(f"{self.name}: {action} failed: {e}")

    def find_one(self, account_id: int, natural_key: dict):
        q = self.model.query.filter(self.model.user_id == account_id)
        for field, value in natural_key.items():
            if field in self.key_columns:
                field, value = self.key_columns[field], casefold_key(value)
            col = getattr(self.model, field)
            if value is None:
                q = q.filter(col.is_(None))
            else:
                q = q.filter(col == value)
        try:
            return q.order_by(self.model.id).first()
        except SQLAlchemyError as e:
            raise self._failed("lookup", e) from e

    def insert(self, account_id: int, fields: dict):
        try:
            obj = self.model(user_id=account_id, **fields)
            db.session.add(obj)
            db.session.commit()
        except (SQLAlchemyError, TypeError) as e:
            raise self._failed("insert", e) from e
        return obj

    def update(self, entity_id: int, fields: dict):
        try:
            obj = db.session.get(self.model, entity_id)
            if obj is None:
                raise StoreError(f"{self.name}: id={entity_id} not found")
            for k, v in fields.items():
                setattr(obj, k, v)
            db.session.commit()
        except SQLAlchemyError as e:
            raise self._failed("update", e) from e
        except StoreError:
            db.session.rollback()
            raise
        return obj


@dataclass(frozen=True)
class Stores:
    customers: SqlStore
    devices: SqlStore
    suppliers: SqlStore
    orders: SqlStore


def default_stores() -> Stores:
    return Stores(
        customers=SqlStore(Customer),
        devices=SqlStore(Device),
        suppliers=SqlStore(Supplier),
        orders=SqlStore(ServiceOrder),
    )
