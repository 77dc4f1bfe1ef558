from datetime import datetime
from decimal import Decimal

import pytest

from models import ServiceOrder
from order_import.errors import StoreError
from order_import.records import CREATED, SKIPPED, UPDATED, NormalizedOrderFields
from order_import.resolver import EntityResolver
from order_import.store import default_stores
from order_import.upsert import changed_fields, upsert_order


@pytest.fixture
def stores(app):
    return default_stores()


def _order(**kw):
    base = dict(
        external_order_number="OS-001",
        status="completed",
        opened_at="2024-01-10T09:15:00",
        issue_description="Tela quebrada",
        service_details="Troca de tela",
        parts_cost=Decimal("100.00"),
        service_cost=Decimal("50.00"),
        total_amount=Decimal("150.00"),
        parts=[{"description": "Tela", "quantity": 1, "unit_price": Decimal("100.00")}],
        payments=[{"method": "PIX", "amount": Decimal("150.00"), "paid_at": "2024-01-11T10:00:00"}],
    )
    base.update(kw)
    return NormalizedOrderFields(**base)


def _get(account_id, number="OS-001"):
    return ServiceOrder.query.filter_by(user_id=account_id, external_order_number=number).one()


def test_create_then_skip(stores, account):
    outcome, msgs = upsert_order(stores.orders, account.id, _order(), None, None, None)
    assert outcome == CREATED
    assert msgs == ["Info: Service order created."]

    so = _get(account.id)
    assert so.status == "completed"
    assert so.total_amount == Decimal("150.00")
    assert so.opened_at == datetime(2024, 1, 10, 9, 15)
    assert so.parts == [{"description": "Tela", "quantity": 1, "unit_price": 100.0}]
    assert so.payments[0]["paid_at"] == "2024-01-11T10:00:00"
    assert so.warranty_days == 90

    outcome, msgs = upsert_order(stores.orders, account.id, _order(), None, None, None)
    assert outcome == SKIPPED
    assert msgs == ["Info: Service order skipped (already imported, content unchanged)."]
    assert ServiceOrder.query.count() == 1


def test_whitespace_only_differences_are_skipped(stores, account):
    upsert_order(stores.orders, account.id, _order(), None, None, None)
    outcome, _ = upsert_order(stores.orders, account.id, _order(issue_description="Tela  quebrada "),
                              None, None, None)
    assert outcome == SKIPPED


def test_changed_total_updates_all_fields(stores, account):
    upsert_order(stores.orders, account.id, _order(), None, None, None)
    outcome, msgs = upsert_order(stores.orders, account.id,
                                 _order(total_amount=Decimal("180.00"), status="in_progress", notes="revisado"),
                                 None, None, None)
    assert outcome == UPDATED
    assert msgs == ["Info: Service order updated (total_amount changed)."]

    so = _get(account.id)
    assert so.total_amount == Decimal("180.00")
    assert so.status == "in_progress"
    assert so.notes == "revisado"
    assert ServiceOrder.query.count() == 1


def test_fields_outside_compare_set_do_not_trigger_update(stores, account):
    upsert_order(stores.orders, account.id, _order(), None, None, None)
    outcome, _ = upsert_order(stores.orders, account.id, _order(status="cancelled"), None, None, None)
    assert outcome == SKIPPED
    assert _get(account.id).status == "completed"


def test_custom_compare_fields(stores, account):
    upsert_order(stores.orders, account.id, _order(), None, None, None)
    outcome, msgs = upsert_order(stores.orders, account.id, _order(status="cancelled"), None, None, None,
                                 compare_fields=("total_amount", "status"))
    assert outcome == UPDATED
    assert msgs == ["Info: Service order updated (status changed)."]


def test_unknown_compare_field(stores, account):
    with pytest.raises(ValueError, match="Unknown compare field"):
        upsert_order(stores.orders, account.id, _order(), None, None, None, compare_fields=("colour",))


def test_update_keeps_links_when_record_has_none(stores, account):
    resolver = EntityResolver(stores)
    cust = resolver.customer(account.id, NormalizedOrderFields("OS-001", customer_name="Maria Silva"))
    upsert_order(stores.orders, account.id, _order(), cust.entity_id, None, None)

    outcome, _ = upsert_order(stores.orders, account.id, _order(total_amount=Decimal("99.00")), None, None, None)
    assert outcome == UPDATED
    assert _get(account.id).customer_id == cust.entity_id


def test_order_numbers_are_scoped_per_account(stores, account, other_account):
    assert upsert_order(stores.orders, account.id, _order(), None, None, None)[0] == CREATED
    assert upsert_order(stores.orders, other_account.id, _order(), None, None, None)[0] == CREATED
    assert ServiceOrder.query.count() == 2


def test_changed_fields_normalizes_numbers_and_text(stores, account):
    upsert_order(stores.orders, account.id, _order(), None, None, None)
    so = _get(account.id)
    payload = _order(total_amount=Decimal("150")).order_payload()
    assert changed_fields(so, payload, ("total_amount", "issue_description")) == []
    payload["service_details"] = "Troca de bateria"
    assert changed_fields(so, payload, ("service_details",)) == ["service_details"]


def test_store_failure_is_rolled_back(stores, account):
    bad = _order(parts=[{"description": "Tela", "quantity": 1, "unit_price": object()}])
    with pytest.raises(StoreError, match="service_orders: insert failed"):
        upsert_order(stores.orders, account.id, bad, None, None, None)

    # session is usable again after the rollback
    assert ServiceOrder.query.count() == 0
    assert upsert_order(stores.orders, account.id, _order(), None, None, None)[0] == CREATED
