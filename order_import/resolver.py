# order_import/resolver.py
"""
Natural-key resolution for Customer / Device / Supplier.

Lookup is always done against the store (never a per-run cache), so two
records naming the same new customer inside one file resolve to one row.
Found entities are returned as-is: the import never overwrites attributes
of a record people maintain by hand.
"""
from __future__ import annotations

import logging
from typing import NamedTuple

from .errors import StoreError
from .records import NormalizedOrderFields
from .store import SqlStore, Stores

log = logging.getLogger(__name__)


class Resolution(NamedTuple):
    entity_id: int | None
    created: bool = False
    messages: tuple[str, ...] = ()


def _present(d: dict) -> dict:
    return {k: v for k, v in d.items() if v is not None}


def resolve_or_create(store: SqlStore, account_id: int, natural_key: dict,
                      attrs: dict | None = None) -> tuple[int, bool]:
    found = store.find_one(account_id, natural_key)
    if found is not None:
        log.debug("%s: matched id=%s for %s", store.name, found.id, natural_key)
        return found.id, False
    entity = store.insert(account_id, {**_present(attrs or {}), **natural_key})
    log.debug("%s: created id=%s for %s", store.name, entity.id, natural_key)
    return entity.id, True


class EntityResolver:
    def __init__(self, stores: Stores):
        self.stores = stores

    def customer(self, account_id: int, f: NormalizedOrderFields) -> Resolution:
        if not f.customer_name:
            return Resolution(None, messages=(
                "Warning: Customer name not found; the order will have no customer.",))
        cid, created = resolve_or_create(
            self.stores.customers, account_id,
            {"name": f.customer_name},
            {"phone": f.customer_phone, "email": f.customer_email,
             "address": f.customer_address, "tax_id": f.customer_tax_id},
        )
        msgs = (f"Info: Customer '{f.customer_name}' created.",) if created else ()
        return Resolution(cid, created, msgs)

    def device(self, account_id: int, f: NormalizedOrderFields, customer_id: int | None) -> Resolution:
        if not (f.device_brand and f.device_model):
            return Resolution(None, messages=(
                "Warning: Device brand and/or model not found; the order will have no device.",))
        did, created = resolve_or_create(
            self.stores.devices, account_id,
            {"brand": f.device_brand, "model": f.device_model, "serial_number": f.device_serial},
            {"customer_id": customer_id, "defect_description": f.issue_description},
        )
        msgs = (f"Info: Device '{f.device_brand} {f.device_model}' created.",) if created else ()
        return Resolution(did, created, msgs)

    def supplier(self, account_id: int, f: NormalizedOrderFields) -> Resolution:
        if not f.supplier_name:
            return Resolution(None)
        store = self.stores.suppliers
        try:
            found = store.find_one(account_id, {"name": f.supplier_name})
        except StoreError as e:
            log.warning("Supplier lookup failed for %r: %s", f.supplier_name, e)
            return Resolution(None, messages=(f"Warning: Error looking up supplier: {e}",))
        if found is not None:
            return Resolution(found.id)
        entity = store.insert(account_id, {"name": f.supplier_name})
        return Resolution(entity.id, True, (f"Info: Supplier '{f.supplier_name}' created.",))
