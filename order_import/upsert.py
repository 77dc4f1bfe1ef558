# order_import/upsert.py
"""
Idempotent create/update/skip of a ServiceOrder keyed by
(account, external_order_number).

An existing order is only rewritten when one of the compared fields differs,
so re-importing an unchanged export is a no-op.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal

from .normalizers import CENT, clean_text
from .records import CREATED, SKIPPED, UPDATED, NormalizedOrderFields
from .store import SqlStore

log = logging.getLogger(__name__)

DEFAULT_COMPARE_FIELDS = ("issue_description", "service_details", "total_amount")

COMPARABLE_FIELDS = frozenset(
    NormalizedOrderFields("_").order_payload().keys()
) | {"customer_id", "device_id", "part_supplier_id"}


def _canon(value):
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, (Decimal, int, float)):
        return Decimal(str(value)).quantize(CENT)
    if isinstance(value, datetime):
        return value.replace(microsecond=0)
    if isinstance(value, str):
        return clean_text(value)
    return value


def changed_fields(existing, payload: dict, compare_fields: Iterable[str]) -> list[str]:
    return [f for f in compare_fields if _canon(getattr(existing, f, None)) != _canon(payload.get(f))]


def upsert_order(store: SqlStore, account_id: int, fields: NormalizedOrderFields,
                 customer_id: int | None, device_id: int | None, supplier_id: int | None,
                 *, compare_fields: Iterable[str] = DEFAULT_COMPARE_FIELDS) -> tuple[str, list[str]]:
    compare_fields = tuple(compare_fields)
    unknown = set(compare_fields) - COMPARABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown compare field(s): {', '.join(sorted(unknown))}")

    payload = fields.order_payload()
    payload.update(customer_id=customer_id, device_id=device_id, part_supplier_id=supplier_id)

    existing = store.find_one(account_id, {"external_order_number": fields.external_order_number})
    if existing is None:
        store.insert(account_id, payload)
        log.debug("order %s created", fields.external_order_number)
        return CREATED, ["Info: Service order created."]

    diff = changed_fields(existing, payload, compare_fields)
    if not diff:
        return SKIPPED, ["Info: Service order skipped (already imported, content unchanged)."]

    # a record that lost its customer/device/supplier columns keeps the old links
    for rel in ("customer_id", "device_id", "part_supplier_id"):
        if payload[rel] is None:
            payload.pop(rel)
    store.update(existing.id, payload)
    log.debug("order %s updated (%s)", fields.external_order_number, ", ".join(diff))
    return UPDATED, [f"Info: Service order updated ({', '.join(diff)} changed)."]
