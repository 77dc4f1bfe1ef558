# order_import/import_rules.py
from __future__ import annotations

import unicodedata
from collections.abc import Iterable, Mapping


# ------------------------------- #
# Column name hints (case/accent-tolerant)
# Order matters: the first variant with a non-empty value wins.
# ------------------------------- #
COLUMN_SYNONYMS = {
    "external_order_number": ["Nº OS", "N° OS", "No OS", "Nº da OS", "Número", "Numero da OS",
                              "Protocolo", "OS", "Order #", "Order Number", "Work Order"],
    "opened_at":         ["Data de abertura", "Aberto em", "Opened At", "Open Date"],
    "closed_at":         ["Data de fechamento", "Fechado em", "Closed At", "Close Date"],
    "status":            ["Status", "Situação"],
    "customer_name":     ["Cliente (nome)", "Cliente", "Customer", "Customer Name"],
    "customer_phone":    ["Telefone", "WhatsApp", "Celular", "Phone"],
    "customer_email":    ["Email", "E-mail"],
    "customer_address":  ["Endereço", "Address"],
    "customer_tax_id":   ["CPF/CNPJ", "CPF", "CNPJ", "Tax ID"],
    "device_brand":      ["Veículo/Equipamento (marca)", "Marca", "Brand"],
    "device_model":      ["Modelo", "Model"],
    "device_serial":     ["Placa / IMEI / Série", "IMEI", "Série", "Serial", "Serial Number"],
    "issue_description": ["Defeito relatado", "Problema relatado", "Problema", "Issue"],
    "service_performed": ["Serviço executado", "Serviço", "Service"],
    "diagnosis":         ["Diagnóstico", "Diagnosis"],
    "parts":             ["Peças (lista)", "Peças", "Parts"],
    "parts_amount":      ["Valor peças", "Peças (valor)", "Parts Cost"],
    "labor_amount":      ["Mão de obra", "Labor"],
    "total_amount":      ["Total", "Valor total", "Total Amount"],
    "freight_amount":    ["Frete", "Freight", "Shipping"],
    "payments":          ["Forma de pagamento", "Pagamento", "Pagamentos", "Payments"],
    "notes":             ["Observações", "Notas", "Notes"],
    "warranty_days":     ["Garantia (dias)", "Garantia", "Warranty Days"],
    "technician":        ["Responsável/técnico", "Técnico", "Technician"],
    "supplier_name":     ["Fornecedor da Peça", "Fornecedor", "Supplier"],
}


# ---------- small helpers ----------
def _normh(s) -> str:
    # header-ish normalization: 'Nº OS ' -> 'no os', 'Endereço' -> 'endereco'
    s = unicodedata.normalize("NFKD", str(s or "")).replace("°", "o")
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    return " ".join(s.lower().split())


def _has_value(v) -> bool:
    if v is None:
        return False
    if isinstance(v, (list, tuple, dict)):
        return len(v) > 0
    return str(v).strip() != ""


_SYNONYM_INDEX = {
    field: [_normh(field)] + [_normh(v) for v in variants]
    for field, variants in COLUMN_SYNONYMS.items()
}
_KNOWN_HEADERS = {h for variants in _SYNONYM_INDEX.values() for h in variants}


def canonicalize(record: Mapping) -> dict:
    """
    Map one raw ImportRecord (source label -> value) onto canonical field keys.
    Labels nobody knows are dropped; empty values never shadow later synonyms.
    """
    by_header: dict[str, list] = {}
    for k, v in record.items():
        by_header.setdefault(_normh(k), []).append(v)

    out = {}
    for field, variants in _SYNONYM_INDEX.items():
        for h in variants:
            value = next((v for v in by_header.get(h, ()) if _has_value(v)), None)
            if value is not None:
                out[field] = value.strip() if isinstance(value, str) else value
                break
    return out


def unknown_headers(headers: Iterable) -> list[str]:
    return [str(h) for h in headers if _normh(h) not in _KNOWN_HEADERS]
