# order_import/normalizers.py
"""
Field normalizers for imported service orders.

Pure functions: no DB, no app context. Malformed input normalizes to None
(or to a documented fallback) instead of raising; the caller decides whether
a missing value is fatal for the record.
"""
from __future__ import annotations

import re
import unicodedata
from datetime import datetime
from decimal import Decimal, InvalidOperation

import pandas as pd

DEFAULT_COUNTRY_CODE = "55"
CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# Keyword vocabulary, checked in this order (most specific first).
# Matching is case- and accent-insensitive substring matching.
STATUS_KEYWORDS = (
    ("pending_approval", ("aguardando", "aprovacao", "approval", "awaiting")),
    ("cancelled",        ("cancelada", "cancelado", "rejeitada", "cancel", "rejected")),
    ("completed",        ("concluida", "concluido", "finalizada", "finalizado", "entregue",
                          "completed", "finished", "done", "closed")),
    ("in_progress",      ("andamento", "progresso", "progress", "execucao")),
    ("pending",          ("aberta", "aberto", "pendente", "open", "pending")),
)

_DMY_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})(?:[ T](\d{1,2}):(\d{2})(?::(\d{2}))?)?$")
_ISO_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}"
    r"(?:[ T]\d{2}:\d{2}(?::\d{2}(?:\.\d{1,6})?)?)?"
    r"(?:Z|[+-]\d{2}:?\d{2})?$"
)
_THOUSANDS_DOT_RE = re.compile(r"^-?\d{1,3}(?:\.\d{3})+$")

_ITEM_RE = re.compile(
    r"^\s*(?P<qty>\d+)\s*[xX]\s*(?P<descr>.*?)\s*-\s*"
    r"(?:R\$|US\$|\$|BRL|USD)?\s*(?P<amount>\d[\d.,]*)\s*$",
    re.IGNORECASE,
)
_PAYMENT_SEP_RE = re.compile(r"\s+-\s+")


def strip_accents(value: str) -> str:
    decomposed = unicodedata.normalize("NFD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def clean_text(value) -> str | None:
    """Collapse whitespace; empty -> None."""
    if value is None:
        return None
    s = " ".join(str(value).replace("\xa0", " ").split())
    return s or None


def digits_only(value) -> str | None:
    d = re.sub(r"\D", "", str(value or ""))
    return d or None


def normalize_phone(raw, country_code: str = DEFAULT_COUNTRY_CODE) -> str | None:
    """
    Keep digits only and return an E.164-like "+<digits>" string.

    10/11 digits (area code + subscriber, trunk zeros stripped) are national
    numbers and get the country code; longer numbers already carry one.
    Fewer than 10 digits -> None.
    """
    digits = re.sub(r"\D", "", str(raw or "")).lstrip("0")
    if len(digits) < 10:
        return None
    if len(digits) in (10, 11):
        return f"+{country_code}{digits}"
    return f"+{digits}"


def _to_iso(dt: datetime) -> str:
    return dt.isoformat(timespec="seconds")


def normalize_timestamp(raw) -> str | None:
    """
    DD/MM/YYYY[ HH:MM[:SS]], YYYY-MM-DD[ HH:MM[:SS]] and full ISO-8601 are
    parsed exactly; anything else goes through pandas' generic parser
    (day-first). Unparsable -> None.
    """
    s = clean_text(raw)
    if not s:
        return None

    m = _DMY_RE.match(s)
    if m:
        day, month, year, hh, mi, ss = m.groups()
        try:
            return _to_iso(datetime(int(year), int(month), int(day),
                                    int(hh or 0), int(mi or 0), int(ss or 0)))
        except ValueError:
            return None

    if _ISO_RE.match(s):
        try:
            return _to_iso(datetime.fromisoformat(s.replace("Z", "+00:00")))
        except ValueError:
            pass

    try:
        ts = pd.to_datetime(s, dayfirst=True, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if ts is None or pd.isna(ts):
        return None
    return _to_iso(ts.to_pydatetime())


def map_status(raw) -> str:
    s = clean_text(raw)
    if not s:
        return "pending"
    key = strip_accents(s.lower())
    for status, words in STATUS_KEYWORDS:
        if any(w in key for w in words):
            return status
    # unknown wording: assume the order is still active
    return "in_progress"


def parse_amount(raw) -> Decimal | None:
    """
    '150,00' / '1.234,56' / '1,234.56' / 'R$ 100.00' -> Decimal with 2 places.
    No digits at all or garbage -> None.
    """
    if raw is None:
        return None
    if isinstance(raw, Decimal):
        return raw.quantize(CENT)
    if isinstance(raw, (int, float)):
        return Decimal(str(raw)).quantize(CENT)

    s = re.sub(r"[^\d,.\-]", "", str(raw))
    if not re.search(r"\d", s):
        return None

    if "," in s and "." in s:
        if s.rfind(",") > s.rfind("."):
            s = s.replace(".", "").replace(",", ".")
        else:
            s = s.replace(",", "")
    elif "," in s:
        s = s.replace(",", ".") if re.search(r",\d{1,2}$", s) else s.replace(",", "")
    elif _THOUSANDS_DOT_RE.match(s):
        s = s.replace(".", "")

    try:
        return Decimal(s).quantize(CENT)
    except InvalidOperation:
        return None


def parse_int(raw) -> int | None:
    m = re.search(r"-?\d+", str(raw or ""))
    return int(m.group(0)) if m else None


def parse_itemized_list(raw) -> list[dict] | None:
    """
    '2x Tela - R$100.00; 1x Bateria - R$50.00' ->
    [{'description': 'Tela', 'quantity': 2, 'unit_price': Decimal('100.00')}, ...]

    Items that don't fit '<qty>x <description> - <currency> <amount>' are kept
    with quantity 1 and unit price 0.
    """
    s = clean_text(raw)
    if not s:
        return None

    items = []
    for chunk in s.split(";"):
        chunk = chunk.strip()
        if not chunk:
            continue
        m = _ITEM_RE.match(chunk)
        price = parse_amount(m.group("amount")) if m else None
        if m and price is not None and m.group("descr").strip():
            items.append({
                "description": m.group("descr").strip(),
                "quantity": int(m.group("qty")),
                "unit_price": price,
            })
        else:
            items.append({"description": chunk, "quantity": 1, "unit_price": ZERO})
    return items or None


def parse_payment_list(raw) -> list[dict] | None:
    """
    'PIX - 800.00 - 05/08/2023 15:00; Cartão - 100.00' ->
    [{'method': 'PIX', 'amount': Decimal('800.00'), 'paid_at': '2023-08-05T15:00:00'}, ...]

    Entries without a method or a positive amount are dropped.
    """
    s = clean_text(raw)
    if not s:
        return None

    payments = []
    for chunk in s.split(";"):
        pieces = [p.strip() for p in _PAYMENT_SEP_RE.split(chunk.strip())]
        method = pieces[0] if pieces else ""
        amount = parse_amount(pieces[1]) if len(pieces) > 1 else None
        if not method or amount is None or amount <= 0:
            continue
        payments.append({
            "method": method,
            "amount": amount,
            "paid_at": normalize_timestamp(pieces[2]) if len(pieces) > 2 else None,
        })
    return payments or None
