# order_import/text_extract.py
"""
Label-based field extraction from free text (the OCR output of one document).

FIELD_PATTERNS is an ordered (field, pattern) table. Every pattern runs
independently over the whole text; fields without a match are simply absent.
Patterns are written against accent-folded text so 'Endereco:' and
'Endereço:' both match, while values keep their original spelling.
"""
from __future__ import annotations

import logging
import re
import unicodedata

from .normalizers import parse_itemized_list, parse_payment_list

log = logging.getLogger(__name__)


def _label(*names: str) -> re.Pattern:
    # "Label: value" with the value running to end of line
    alts = "|".join(names)
    return re.compile(rf"^[ \t]*(?:{alts})[ \t]*:[ \t]*(?P<value>[^\n]*?)[ \t]*$", re.I | re.M)


FIELD_PATTERNS: tuple[tuple[str, re.Pattern], ...] = (
    ("external_order_number", _label(r"N[º°o]\.?[ \t]*(?:da[ \t]+)?OS", r"Numero(?:[ \t]+da[ \t]+OS)?", r"Protocolo",
                                     r"Order[ \t]*(?:#|Number)")),
    ("opened_at",         _label(r"Data[ \t]+de[ \t]+abertura", r"Aberto[ \t]+em", r"Opened[ \t]+at")),
    ("closed_at",         _label(r"Data[ \t]+de[ \t]+fechamento", r"Fechado[ \t]+em", r"Closed[ \t]+at")),
    ("status",            _label(r"Status", r"Situacao")),
    ("customer_name",     _label(r"Cliente[ \t]*\(nome\)", r"Cliente", r"Customer")),
    ("customer_phone",    _label(r"Telefone", r"WhatsApp", r"Celular", r"Phone")),
    ("customer_email",    _label(r"E-?mail")),
    ("customer_tax_id",   _label(r"CPF[ \t]*/[ \t]*CNPJ", r"CPF", r"CNPJ")),
    ("customer_address",  _label(r"Endereco", r"Address")),
    ("device_brand",      _label(r"Veiculo[ \t]*/[ \t]*Equipamento[ \t]*\(marca\)", r"Marca", r"Brand")),
    ("device_model",      _label(r"Modelo", r"Model")),
    ("device_serial",     _label(r"Placa[ \t]*/[ \t]*IMEI[ \t]*/[ \t]*Serie", r"IMEI", r"Serie", r"Serial")),
    ("issue_description", _label(r"Defeito[ \t]+relatado", r"Problema(?:[ \t]+relatado)?")),
    ("diagnosis",         _label(r"Diagnostico")),
    ("service_performed", _label(r"Servico[ \t]+executado", r"Servico")),
    ("parts_list",        _label(r"Pecas[ \t]*\(lista\)", r"Pecas")),
    ("parts_amount",      _label(r"Valor[ \t]+pecas", r"Pecas[ \t]*\(valor\)")),
    ("labor_amount",      _label(r"Mao[ \t]+de[ \t]+obra")),
    ("total_amount",      _label(r"Total", r"Valor[ \t]+total")),
    ("freight_amount",    _label(r"Frete")),
    ("payments_text",     _label(r"Forma[ \t]+de[ \t]+pagamento", r"Pagamentos?")),
    ("notes",             _label(r"Observacoes", r"Notas")),
    ("warranty_days",     _label(r"Garantia(?:[ \t]*\(dias\))?")),
    ("technician",        _label(r"Responsavel[ \t]*/[ \t]*tecnico", r"Tecnico")),
    ("supplier_name",     _label(r"Fornecedor(?:[ \t]+da[ \t]+Peca)?")),
)


def _fold(text: str) -> str:
    """Accent-fold char by char so offsets in the folded text match the original."""
    out = []
    for ch in text:
        base = unicodedata.normalize("NFD", ch)[:1]
        out.append(base if base and not unicodedata.combining(base) else ch)
    return "".join(out)


def extract_fields(text: str) -> dict:
    """Return a flat {field: value} map; parts/payments come back parsed."""
    text = unicodedata.normalize("NFC", (text or "").replace("\r\n", "\n").replace("\r", "\n"))
    folded = _fold(text)

    data: dict = {}
    for key, pattern in FIELD_PATTERNS:
        m = pattern.search(folded)
        if not m:
            continue
        value = text[m.start("value"):m.end("value")].strip()
        if value:
            data[key] = value

    raw_parts = data.pop("parts_list", None)
    if raw_parts:
        data["parts"] = parse_itemized_list(raw_parts)
    raw_payments = data.pop("payments_text", None)
    if raw_payments:
        payments = parse_payment_list(raw_payments)
        if payments:
            data["payments"] = payments

    log.debug("Extracted %d labelled fields from document text", len(data))
    return data
