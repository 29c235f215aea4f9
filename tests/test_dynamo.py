import threading
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from finance_insights.db.dynamo import DynamoLedgerReader
from finance_insights.db.ledger import LedgerUnavailableError
from finance_insights.models.transaction import TransactionFilter, TransactionKind


def make_reader():
    table = MagicMock()
    resource = MagicMock()
    resource.Table.return_value = table
    return DynamoLedgerReader(resource_factory=lambda: resource), table


def txn_item(txn_id, amount, day="2025-11-03", kind="EXPENSE", **extra):
    item = {
        "account_id": "acc-1",
        "sort_key": f"{day}#{txn_id}",
        "transaction_id": txn_id,
        "amount": Decimal(amount),
        "kind": kind,
        "date": day,
        "category_id": "food",
    }
    item.update(extra)
    return item


def client_error(operation):
    return ClientError(
        {"Error": {"Code": "ProvisionedThroughputExceededException", "Message": "Rate exceeded"}},
        operation,
    )


def test_fetch_transactions_converts_items():
    reader, table = make_reader()
    table.query.return_value = {
        "Items": [
            txn_item(
                "t1",
                "12.30",
                description="Lunch",
                category={"category_id": "food", "name": "Food", "kind": "EXPENSE", "color": "#F59E0B"},
            ),
            txn_item("t2", "40", kind="INCOME"),
        ]
    }

    result = reader.fetch_transactions("acc-1", TransactionFilter())

    assert [t.id for t in result] == ["t1", "t2"]
    assert result[0].amount == Decimal("12.30")
    assert result[0].date == date(2025, 11, 3)
    assert result[0].category.name == "Food"
    assert result[0].description == "Lunch"
    assert result[1].amount == Decimal("40")
    assert result[1].kind == TransactionKind.INCOME
    assert result[1].category is None


def test_fetch_transactions_passes_order_and_kind_filter():
    reader, table = make_reader()
    table.query.return_value = {"Items": []}

    reader.fetch_transactions(
        "acc-1",
        TransactionFilter(start=date(2025, 11, 1), end=date(2025, 11, 30), kind=TransactionKind.EXPENSE, newest_first=True),
    )

    params = table.query.call_args.kwargs
    assert params["ScanIndexForward"] is False
    assert "FilterExpression" in params
    assert "KeyConditionExpression" in params


def test_fetch_transactions_follows_pages_until_limit():
    reader, table = make_reader()
    table.query.side_effect = [
        {"Items": [txn_item("t1", "1")], "LastEvaluatedKey": {"sort_key": "a"}},
        {"Items": [txn_item("t2", "2"), txn_item("t3", "3")], "LastEvaluatedKey": {"sort_key": "b"}},
        {"Items": [txn_item("t4", "4")]},
    ]

    result = reader.fetch_transactions("acc-1", TransactionFilter(limit=2))

    assert [t.id for t in result] == ["t1", "t2"]
    assert table.query.call_count == 2
    assert table.query.call_args_list[1].kwargs["ExclusiveStartKey"] == {"sort_key": "a"}


def test_fetch_transactions_reads_every_page_without_limit():
    reader, table = make_reader()
    table.query.side_effect = [
        {"Items": [txn_item("t1", "1")], "LastEvaluatedKey": {"sort_key": "a"}},
        {"Items": [txn_item("t2", "2")]},
    ]

    result = reader.fetch_transactions("acc-1", TransactionFilter())

    assert [t.id for t in result] == ["t1", "t2"]
    assert table.query.call_count == 2


def test_fetch_transactions_client_error_is_ledger_unavailable():
    reader, table = make_reader()
    table.query.side_effect = client_error("Query")

    with pytest.raises(LedgerUnavailableError, match="Rate exceeded"):
        reader.fetch_transactions("acc-1", TransactionFilter())


def test_fetch_goal():
    reader, table = make_reader()
    table.get_item.return_value = {
        "Item": {
            "account_id": "acc-1",
            "period": "2025-11",
            "month": Decimal("11"),
            "year": Decimal("2025"),
            "income_target": Decimal("5000"),
            "expense_target": Decimal("3500.50"),
        }
    }

    goal = reader.fetch_goal("acc-1", 11, 2025)

    table.get_item.assert_called_once_with(Key={"account_id": "acc-1", "period": "2025-11"})
    assert goal.month == 11
    assert goal.expense_target == Decimal("3500.50")


def test_fetch_goal_missing_returns_none():
    reader, table = make_reader()
    table.get_item.return_value = {}
    assert reader.fetch_goal("acc-1", 1, 2025) is None


def test_fetch_categories_error_is_ledger_unavailable():
    reader, table = make_reader()
    table.query.side_effect = client_error("Query")

    with pytest.raises(LedgerUnavailableError):
        reader.fetch_categories("acc-1")


def test_fetch_categories():
    reader, table = make_reader()
    table.query.return_value = {
        "Items": [
            {"account_id": "acc-1", "category_id": "food", "name": "Food", "kind": "EXPENSE"},
            {"account_id": "acc-1", "category_id": "gym", "name": "Gym", "kind": "EXPENSE", "is_active": False},
        ]
    }

    result = reader.fetch_categories("acc-1")

    assert [c.id for c in result] == ["food", "gym"]
    assert result[0].color == "#6B7280"
    assert result[1].is_active is False


def test_each_thread_gets_its_own_resource():
    resources = []

    def new_resource():
        resource = MagicMock()
        resource.Table.return_value.query.return_value = {"Items": []}
        resources.append(resource)
        return resource

    reader = DynamoLedgerReader(resource_factory=new_resource)
    barrier = threading.Barrier(3)
    used = {}

    def fetch(name):
        barrier.wait()
        reader.fetch_categories("acc-1")
        reader.fetch_transactions("acc-1", TransactionFilter())
        used[name] = reader.categories_table

    threads = [threading.Thread(target=fetch, args=(f"worker-{i}",)) for i in range(3)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(resources) == 3
    assert len({id(table) for table in used.values()}) == 3
    for resource in resources:
        # categories plus transactions, both issued from the thread that owns it
        assert resource.Table.return_value.query.call_count == 2


def test_same_thread_reuses_its_resource():
    factory = MagicMock()
    factory.return_value.Table.return_value.query.return_value = {"Items": []}
    reader = DynamoLedgerReader(resource_factory=factory)

    reader.fetch_categories("acc-1")
    reader.fetch_categories("acc-1")

    factory.assert_called_once_with()
