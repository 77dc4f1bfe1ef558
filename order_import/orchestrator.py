# order_import/orchestrator.py
"""
Top-level import run: one uploaded file in, one report entry per record out.

Records are processed one at a time in file order. A record that blows up is
reported as failed and the run moves on; only file-level problems
(ImportFileError) abort the whole run.
"""
from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable

from flask import current_app, has_app_context

from config import Config

from .adapters import FileFormat, adapter_for, detect_format, document_mime
from .import_rules import canonicalize, unknown_headers
from .normalizers import DEFAULT_COUNTRY_CODE, clean_text
from .ocr import OcrClient, ocr_from_config
from .records import DEFAULT_WARRANTY_DAYS, FAILED, OUTCOMES, ImportReportEntry, normalize_record
from .resolver import EntityResolver
from .store import Stores, default_stores
from .upsert import DEFAULT_COMPARE_FIELDS, upsert_order

log = logging.getLogger(__name__)


def _setting(name: str, default=None):
    if has_app_context():
        value = current_app.config.get(name)
        if value is not None:
            return value
    return getattr(Config, name, default)


def summarize(report: Iterable[ImportReportEntry]) -> dict:
    counts = Counter(e.outcome for e in report)
    return {o: counts.get(o, 0) for o in OUTCOMES}


class ImportOrchestrator:
    def __init__(self, *, stores: Stores | None = None, ocr: OcrClient | None = None,
                 compare_fields: Iterable[str] | None = None,
                 warranty_days: int | None = None, country_code: str | None = None):
        self.stores = stores or default_stores()
        self.resolver = EntityResolver(self.stores)
        self.ocr = ocr
        self.compare_fields = tuple(
            compare_fields or _setting("IMPORT_COMPARE_FIELDS", DEFAULT_COMPARE_FIELDS)
        )
        self.warranty_days = warranty_days or _setting("IMPORT_DEFAULT_WARRANTY_DAYS", DEFAULT_WARRANTY_DAYS)
        self.country_code = country_code or _setting("PHONE_COUNTRY_CODE", DEFAULT_COUNTRY_CODE)

    def read_records(self, filename: str, data: bytes, content_type: str | None = None) -> list[dict]:
        fmt = detect_format(filename, content_type)
        adapter = adapter_for(fmt, ocr=self.ocr)
        mime = document_mime(filename, content_type) if fmt is FileFormat.DOCUMENT else None
        records = adapter.read(data, mime)
        if records and fmt is not FileFormat.DOCUMENT:
            ignored = unknown_headers(records[0].keys())
            if ignored:
                log.info("Ignoring unmapped columns: %s", ", ".join(ignored))
        return records

    def run(self, account_id: int, filename: str, data: bytes,
            content_type: str | None = None) -> list[ImportReportEntry]:
        log.info("Import starting: account=%s file=%s bytes=%d", account_id, filename, len(data or b""))
        records = self.read_records(filename, data, content_type)

        report: list[ImportReportEntry] = []
        for row_no, raw in enumerate(records, start=1):
            report.append(self.process_record(account_id, row_no, raw))

        log.info("Import finished: account=%s file=%s records=%d %s",
                 account_id, filename, len(report), summarize(report))
        return report

    def process_record(self, account_id: int, row_no: int, raw: dict) -> ImportReportEntry:
        rec = canonicalize(raw)
        number = clean_text(rec.get("external_order_number"))
        if not number:
            log.warning("Row %d: no service order number", row_no)
            return ImportReportEntry(None, FAILED, (
                f"Error: Row {row_no}: service order number is required and was not found.",))

        messages: list[str] = []
        try:
            fields = normalize_record(rec, warranty_days=self.warranty_days, country_code=self.country_code)
            messages.extend(fields.warnings)

            customer = self.resolver.customer(account_id, fields)
            messages.extend(customer.messages)
            device = self.resolver.device(account_id, fields, customer.entity_id)
            messages.extend(device.messages)
            supplier = self.resolver.supplier(account_id, fields)
            messages.extend(supplier.messages)

            outcome, upsert_messages = upsert_order(
                self.stores.orders, account_id, fields,
                customer.entity_id, device.entity_id, supplier.entity_id,
                compare_fields=self.compare_fields,
            )
            messages.extend(upsert_messages)
        except Exception as e:
            log.warning("Row %d (%s) failed: %s", row_no, number, e, exc_info=True)
            messages.append(f"Error: {str(e) or e.__class__.__name__}")
            return ImportReportEntry(number, FAILED, tuple(messages))

        return ImportReportEntry(number, outcome, tuple(messages))


def run_import(account_id: int, filename: str, data: bytes, content_type: str | None = None,
               **kwargs) -> list[ImportReportEntry]:
    """Import one uploaded file for one account; OCR comes from the app config unless given."""
    if "ocr" not in kwargs:
        cfg = current_app.config if has_app_context() else vars(Config)
        kwargs["ocr"] = ocr_from_config(cfg)
    return ImportOrchestrator(**kwargs).run(account_id, filename, data, content_type)
