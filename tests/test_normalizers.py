from decimal import Decimal

import pytest

from order_import.normalizers import (
    clean_text, map_status, normalize_phone, normalize_timestamp,
    parse_amount, parse_int, parse_itemized_list, parse_payment_list,
)


# ---------- phone ----------
@pytest.mark.parametrize("raw, expected", [
    ("11987654321", "+5511987654321"),
    ("(11) 98765-4321", "+5511987654321"),
    ("(11) 3456-7890", "+551134567890"),
    ("011 98765-4321", "+5511987654321"),
    ("+55 11 98765-4321", "+5511987654321"),
    ("55 11 98765 4321", "+5511987654321"),
])
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "abc", "98765-432", "12345"])
def test_normalize_phone_too_short_is_none(raw):
    assert normalize_phone(raw) is None


@pytest.mark.parametrize("raw", ["11987654321", "(21) 2233-4455", "+351 912 345 678", "5511987654321"])
def test_normalize_phone_is_idempotent(raw):
    once = normalize_phone(raw)
    assert once is not None
    assert normalize_phone(once) == once


def test_normalize_phone_custom_country_code():
    assert normalize_phone("4155550100", country_code="1") == "+14155550100"


# ---------- timestamps ----------
@pytest.mark.parametrize("raw, expected", [
    ("05/08/2023", "2023-08-05T00:00:00"),
    ("5/8/2023 15:00", "2023-08-05T15:00:00"),
    ("05/08/2023 15:00:30", "2023-08-05T15:00:30"),
    ("2023-08-05", "2023-08-05T00:00:00"),
    ("2023-08-05 09:30", "2023-08-05T09:30:00"),
    ("2023-08-05T09:30:00", "2023-08-05T09:30:00"),
    ("2023-08-05T09:30:00Z", "2023-08-05T09:30:00+00:00"),
    ("2023-08-05T09:30:00-03:00", "2023-08-05T09:30:00-03:00"),
])
def test_normalize_timestamp_known_formats(raw, expected):
    assert normalize_timestamp(raw) == expected


def test_normalize_timestamp_keeps_calendar_date():
    iso = normalize_timestamp("31/12/2024 23:59")
    assert iso.startswith("2024-12-31")


def test_normalize_timestamp_generic_fallback():
    assert normalize_timestamp("10 Jan 2024").startswith("2024-01-10")


@pytest.mark.parametrize("raw", [None, "", "   ", "not a date", "31/02/2024"])
def test_normalize_timestamp_unparsable_is_none(raw):
    assert normalize_timestamp(raw) is None


# ---------- status ----------
@pytest.mark.parametrize("raw, expected", [
    ("Concluída", "completed"),
    ("FINALIZADO", "completed"),
    ("Entregue ao cliente", "completed"),
    ("Aguardando aprovação", "pending_approval"),
    ("Cancelado", "cancelled"),
    ("Em andamento", "in_progress"),
    ("Aberta", "pending"),
    ("open", "pending"),
    ("", "pending"),
    (None, "pending"),
    ("Na bancada", "in_progress"),
])
def test_map_status(raw, expected):
    assert map_status(raw) == expected


# ---------- amounts ----------
@pytest.mark.parametrize("raw, expected", [
    ("150,00", Decimal("150.00")),
    ("1.234,56", Decimal("1234.56")),
    ("1,234.56", Decimal("1234.56")),
    ("R$ 100.00", Decimal("100.00")),
    ("1.234", Decimal("1234.00")),
    ("80", Decimal("80.00")),
    (12.5, Decimal("12.50")),
])
def test_parse_amount(raw, expected):
    assert parse_amount(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "abc", "R$"])
def test_parse_amount_garbage_is_none(raw):
    assert parse_amount(raw) is None


def test_parse_int_and_clean_text():
    assert parse_int("90 dias") == 90
    assert parse_int("0") == 0
    assert parse_int("-5") == -5
    assert parse_int("") is None
    assert clean_text("  Maria\xa0  Silva ") == "Maria Silva"
    assert clean_text("   ") is None


# ---------- itemized lists ----------
def test_parse_itemized_list():
    items = parse_itemized_list("2x Tela - R$100.00; 1x Bateria - R$50.00")
    assert items == [
        {"description": "Tela", "quantity": 2, "unit_price": Decimal("100.00")},
        {"description": "Bateria", "quantity": 1, "unit_price": Decimal("50.00")},
    ]


def test_parse_itemized_list_keeps_unmatched_items():
    items = parse_itemized_list("3x Parafuso - 2,50; Capa de silicone")
    assert items[0] == {"description": "Parafuso", "quantity": 3, "unit_price": Decimal("2.50")}
    assert items[1] == {"description": "Capa de silicone", "quantity": 1, "unit_price": Decimal("0.00")}


@pytest.mark.parametrize("raw, qty, price", [
    ("2x Tela - r$100.00", 2, Decimal("100.00")),
    ("1X Cabo - brl 30,00", 1, Decimal("30.00")),
    ("3x Chip - usd 5.00", 3, Decimal("5.00")),
    ("1x Película - us$ 12,50", 1, Decimal("12.50")),
])
def test_parse_itemized_list_currency_is_case_insensitive(raw, qty, price):
    [item] = parse_itemized_list(raw)
    assert (item["quantity"], item["unit_price"]) == (qty, price)


@pytest.mark.parametrize("raw", [None, "", " ; ; "])
def test_parse_itemized_list_empty(raw):
    assert parse_itemized_list(raw) is None


# ---------- payments ----------
def test_parse_payment_list():
    payments = parse_payment_list("PIX - 800.00 - 05/08/2023 15:00; Cartão - 100,00")
    assert payments == [
        {"method": "PIX", "amount": Decimal("800.00"), "paid_at": "2023-08-05T15:00:00"},
        {"method": "Cartão", "amount": Decimal("100.00"), "paid_at": None},
    ]


def test_parse_payment_list_drops_entries_without_positive_amount():
    payments = parse_payment_list("Dinheiro; Cartão - 0; Boleto - abc; PIX - 10")
    assert payments == [{"method": "PIX", "amount": Decimal("10.00"), "paid_at": None}]


def test_parse_payment_list_all_dropped_is_none():
    assert parse_payment_list("Dinheiro; Cartão - 0") is None
