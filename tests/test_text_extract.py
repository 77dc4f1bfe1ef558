from decimal import Decimal

from order_import.import_rules import canonicalize, unknown_headers
from order_import.text_extract import extract_fields

DOCUMENT = """
ORDEM DE SERVIÇO
Nº OS: OS-200
Data de abertura: 10/01/2024 09:15
Cliente: João Pereira
Telefone: (11) 3456-7890
Endereço: Rua das Flores, 12
Status: Em andamento
Marca: Samsung
Modelo: Galaxy S21
IMEI: 356789012345678
Defeito relatado: Tela quebrada
Diagnóstico: Display trincado
Peças: 1x Tela - R$ 300,00
Mão de obra: 120,00
Total: 420,00
Forma de pagamento: PIX - 420,00 - 10/01/2024
Técnico: Carlos
"""


def test_extract_fields_reads_labelled_lines():
    data = extract_fields(DOCUMENT)
    assert data["external_order_number"] == "OS-200"
    assert data["opened_at"] == "10/01/2024 09:15"
    assert data["customer_name"] == "João Pereira"
    assert data["customer_phone"] == "(11) 3456-7890"
    assert data["customer_address"] == "Rua das Flores, 12"
    assert data["status"] == "Em andamento"
    assert data["device_brand"] == "Samsung"
    assert data["device_model"] == "Galaxy S21"
    assert data["device_serial"] == "356789012345678"
    assert data["issue_description"] == "Tela quebrada"
    assert data["diagnosis"] == "Display trincado"
    assert data["labor_amount"] == "120,00"
    assert data["total_amount"] == "420,00"
    assert data["technician"] == "Carlos"


def test_extract_fields_parses_sub_lists():
    data = extract_fields(DOCUMENT)
    assert "parts_list" not in data
    assert "payments_text" not in data
    assert data["parts"] == [{"description": "Tela", "quantity": 1, "unit_price": Decimal("300.00")}]
    assert data["payments"] == [
        {"method": "PIX", "amount": Decimal("420.00"), "paid_at": "2024-01-10T00:00:00"},
    ]


def test_extract_fields_unaccented_labels_and_case():
    data = extract_fields("NUMERO DA OS: 77\r\nendereco: Av. Brasil 100\r\nmao de obra: 50")
    assert data == {
        "external_order_number": "77",
        "customer_address": "Av. Brasil 100",
        "labor_amount": "50",
    }


def test_extract_fields_missing_fields_are_absent():
    assert extract_fields("nothing useful here") == {}
    assert extract_fields("") == {}
    assert extract_fields("Cliente:   \nTotal: 10") == {"total_amount": "10"}


# ---------- column synonyms ----------
def test_canonicalize_maps_synonyms():
    rec = canonicalize({"Nº OS": "OS-9", "Cliente": " Ana ", "Valor total": "10,00", "Coluna extra": "x"})
    assert rec == {"external_order_number": "OS-9", "customer_name": "Ana", "total_amount": "10,00"}


def test_canonicalize_first_non_empty_synonym_wins():
    rec = canonicalize({"Cliente (nome)": "", "Cliente": "Ana", "Customer": "Other"})
    assert rec["customer_name"] == "Ana"


def test_canonicalize_is_case_and_accent_insensitive():
    rec = canonicalize({"NÚMERO": "OS-1", "endereco": "Rua A", "SERVIÇO EXECUTADO": "Troca de tela"})
    assert rec == {"external_order_number": "OS-1", "customer_address": "Rua A",
                   "service_performed": "Troca de tela"}


def test_canonicalize_accepts_canonical_keys():
    rec = canonicalize(extract_fields(DOCUMENT))
    assert rec["external_order_number"] == "OS-200"
    assert rec["parts"][0]["description"] == "Tela"


def test_unknown_headers():
    assert unknown_headers(["Cliente", "Telefone", "Cor favorita"]) == ["Cor favorita"]
