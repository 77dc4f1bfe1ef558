# order_import/records.py
"""Canonical shapes shared by the import stages."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal

from .normalizers import (
    DEFAULT_COUNTRY_CODE, ZERO,
    clean_text, digits_only, map_status, normalize_phone, normalize_timestamp,
    parse_amount, parse_int, parse_itemized_list, parse_payment_list,
)

DEFAULT_WARRANTY_DAYS = 90

CREATED = "created"
UPDATED = "updated"
SKIPPED = "skipped"
FAILED = "failed"
OUTCOMES = (CREATED, UPDATED, SKIPPED, FAILED)


@dataclass
class NormalizedOrderFields:
    external_order_number: str
    status: str = "pending"
    opened_at: str | None = None
    closed_at: str | None = None
    issue_description: str | None = None
    service_details: str | None = None
    parts_cost: Decimal = ZERO
    service_cost: Decimal = ZERO
    total_amount: Decimal = ZERO
    freight_cost: Decimal = ZERO
    parts: list[dict] | None = None
    payments: list[dict] | None = None
    guarantee_terms: str | None = None
    warranty_days: int = DEFAULT_WARRANTY_DAYS
    technician: str | None = None
    notes: str | None = None

    customer_name: str | None = None
    customer_phone: str | None = None
    customer_email: str | None = None
    customer_address: str | None = None
    customer_tax_id: str | None = None
    device_brand: str | None = None
    device_model: str | None = None
    device_serial: str | None = None
    supplier_name: str | None = None

    warnings: list[str] = field(default_factory=list)

    def order_payload(self) -> dict:
        """Column values for the ServiceOrder row (relations are added by the caller)."""
        return {
            "external_order_number": self.external_order_number,
            "status": self.status,
            "opened_at": _to_db_datetime(self.opened_at),
            "closed_at": _to_db_datetime(self.closed_at),
            "issue_description": self.issue_description,
            "service_details": self.service_details,
            "parts_cost": self.parts_cost,
            "service_cost": self.service_cost,
            "total_amount": self.total_amount,
            "freight_cost": self.freight_cost,
            "parts": _jsonable(self.parts),
            "payments": _jsonable(self.payments),
            "guarantee_terms": self.guarantee_terms,
            "warranty_days": self.warranty_days,
            "technician_name": self.technician,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class ImportReportEntry:
    external_order_number: str | None
    outcome: str
    messages: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "external_order_number": self.external_order_number,
            "outcome": self.outcome,
            "messages": list(self.messages),
        }


def _to_db_datetime(iso: str | None) -> datetime | None:
    # stored naive, in UTC when the source carried an offset
    if not iso:
        return None
    dt = datetime.fromisoformat(iso)
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _jsonable(items):
    if items is None:
        return None
    return [
        {k: (float(v) if isinstance(v, Decimal) else v) for k, v in item.items()}
        for item in items
    ]


def _amount(rec: dict, key: str) -> Decimal | None:
    raw = rec.get(key)
    if raw is None or str(raw).strip() == "":
        return None
    value = parse_amount(raw)
    if value is None:
        raise ValueError(f"Invalid amount for {key}: {raw!r}")
    return value


def _as_list(value, parser):
    if value is None or isinstance(value, list):
        return value or None
    return parser(value)


def normalize_record(rec: dict, *, warranty_days: int = DEFAULT_WARRANTY_DAYS,
                     country_code: str = DEFAULT_COUNTRY_CODE) -> NormalizedOrderFields:
    """
    Run every field normalizer over one canonicalized record.
    Raises ValueError for values that are present but unusable (bad amounts).
    """
    number = clean_text(rec.get("external_order_number"))
    if not number:
        raise ValueError("service order number is required")

    warnings: list[str] = []
    parts = _as_list(rec.get("parts"), parse_itemized_list)
    payments = _as_list(rec.get("payments"), parse_payment_list)

    parts_cost = _amount(rec, "parts_amount")
    if parts_cost is None:
        parts_cost = sum((p["quantity"] * p["unit_price"] for p in parts or ()), ZERO)

    raw_phone = clean_text(rec.get("customer_phone"))
    phone = normalize_phone(raw_phone, country_code) if raw_phone else None
    if raw_phone and not phone:
        warnings.append(f"Warning: Phone '{raw_phone}' could not be normalized and was ignored.")

    opened_at = normalize_timestamp(rec.get("opened_at"))
    if rec.get("opened_at") and not opened_at:
        warnings.append(f"Warning: Opening date '{rec.get('opened_at')}' could not be parsed.")
    closed_at = normalize_timestamp(rec.get("closed_at"))
    if rec.get("closed_at") and not closed_at:
        warnings.append(f"Warning: Closing date '{rec.get('closed_at')}' could not be parsed.")

    raw_days = clean_text(rec.get("warranty_days"))
    days = parse_int(raw_days)
    if days is None or days < 0:
        if raw_days:
            warnings.append(f"Warning: Warranty days '{raw_days}' is invalid; using default {warranty_days}.")
        days = warranty_days

    notes = clean_text(rec.get("notes"))
    return NormalizedOrderFields(
        external_order_number=number,
        status=map_status(rec.get("status")),
        opened_at=opened_at,
        closed_at=closed_at,
        issue_description=clean_text(rec.get("issue_description")),
        service_details=clean_text(rec.get("service_performed")) or clean_text(rec.get("diagnosis")),
        parts_cost=parts_cost,
        service_cost=_amount(rec, "labor_amount") or ZERO,
        total_amount=_amount(rec, "total_amount") or ZERO,
        freight_cost=_amount(rec, "freight_amount") or ZERO,
        parts=parts,
        payments=payments,
        guarantee_terms=notes,
        warranty_days=days,
        technician=clean_text(rec.get("technician")),
        notes=notes,
        customer_name=clean_text(rec.get("customer_name")),
        customer_phone=phone,
        customer_email=clean_text(rec.get("customer_email")),
        customer_address=clean_text(rec.get("customer_address")),
        customer_tax_id=digits_only(rec.get("customer_tax_id")),
        device_brand=clean_text(rec.get("device_brand")),
        device_model=clean_text(rec.get("device_model")),
        device_serial=clean_text(rec.get("device_serial")),
        supplier_name=clean_text(rec.get("supplier_name")),
        warnings=warnings,
    )
