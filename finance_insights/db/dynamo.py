"""
DynamoDB Ledger Reader

Tables:
  transactions  PK account_id, SK sort_key = "<ISO date>#<transaction_id>"
  categories    PK account_id, SK category_id
  goals         PK account_id, SK period = "YYYY-MM"
"""
import logging
import threading
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError

from finance_insights.core.config import settings
from finance_insights.db.ledger import LedgerUnavailableError
from finance_insights.models.transaction import (
    Category,
    MonthlyGoal,
    Transaction,
    TransactionFilter,
)

logger = logging.getLogger(__name__)

# Sorts after any transaction id, so "<date>#\uffff" closes a whole day.
_SORT_KEY_CEILING = "\uffff"


class DynamoLedgerReader:
    """
    boto3 resources must not be shared between threads, and report builders
    call this reader from several worker threads at once. Each thread lazily
    builds its own resource from a fresh session and keeps it for reuse.
    """

    def __init__(
        self,
        region_name: Optional[str] = None,
        resource_factory: Optional[Callable[[], Any]] = None,
    ) -> None:
        self.region_name = region_name or settings.DYNAMO_REGION
        self._resource_factory = resource_factory or self._new_resource
        self._local = threading.local()

    def _new_resource(self) -> Any:
        return boto3.session.Session().resource("dynamodb", region_name=self.region_name)

    def _table(self, name: str) -> Any:
        tables = getattr(self._local, "tables", None)
        if tables is None:
            dynamodb = self._resource_factory()
            tables = self._local.tables = {
                table_name: dynamodb.Table(table_name)
                for table_name in (
                    settings.DYNAMO_TRANSACTIONS_TABLE,
                    settings.DYNAMO_CATEGORIES_TABLE,
                    settings.DYNAMO_GOALS_TABLE,
                )
            }
        return tables[name]

    @property
    def transactions_table(self) -> Any:
        return self._table(settings.DYNAMO_TRANSACTIONS_TABLE)

    @property
    def categories_table(self) -> Any:
        return self._table(settings.DYNAMO_CATEGORIES_TABLE)

    @property
    def goals_table(self) -> Any:
        return self._table(settings.DYNAMO_GOALS_TABLE)

    def fetch_transactions(self, account_id: str, query: TransactionFilter) -> List[Transaction]:
        """
        Query one account's transactions. DynamoDB applies Limit before the
        filter expression, so pages are read until `query.limit` matches exist.
        """
        key_condition = Key("account_id").eq(account_id)
        if query.start and query.end:
            key_condition &= Key("sort_key").between(
                query.start.isoformat(), f"{query.end.isoformat()}#{_SORT_KEY_CEILING}"
            )
        elif query.start:
            key_condition &= Key("sort_key").gte(query.start.isoformat())
        elif query.end:
            key_condition &= Key("sort_key").lte(f"{query.end.isoformat()}#{_SORT_KEY_CEILING}")

        params: Dict[str, Any] = {
            "KeyConditionExpression": key_condition,
            "ScanIndexForward": not query.newest_first,
        }
        if query.kind is not None:
            params["FilterExpression"] = Attr("kind").eq(query.kind.value)

        items: List[Dict[str, Any]] = []
        try:
            while True:
                response = self.transactions_table.query(**params)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key or (query.limit is not None and len(items) >= query.limit):
                    break
                params["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as e:
            logger.error(f"fetch_transactions failed for account {account_id}: {_error_message(e)}")
            raise LedgerUnavailableError(f"Could not read transactions: {_error_message(e)}") from e

        if query.limit is not None:
            items = items[: query.limit]
        return [_to_transaction(_from_dynamo(item)) for item in items]

    def fetch_goal(self, account_id: str, month: int, year: int) -> Optional[MonthlyGoal]:
        try:
            response = self.goals_table.get_item(
                Key={"account_id": account_id, "period": f"{year:04d}-{month:02d}"}
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"fetch_goal failed for account {account_id}: {_error_message(e)}")
            raise LedgerUnavailableError(f"Could not read monthly goal: {_error_message(e)}") from e

        item = response.get("Item")
        return MonthlyGoal.model_validate(_from_dynamo(item)) if item else None

    def fetch_goals(self, account_id: str, year: int) -> List[MonthlyGoal]:
        items = self._query_all(
            self.goals_table,
            Key("account_id").eq(account_id) & Key("period").begins_with(f"{year:04d}-"),
            "fetch_goals",
        )
        return [MonthlyGoal.model_validate(_from_dynamo(item)) for item in items]

    def fetch_categories(self, account_id: str) -> List[Category]:
        items = self._query_all(self.categories_table, Key("account_id").eq(account_id), "fetch_categories")
        return [_to_category(_from_dynamo(item)) for item in items]

    def _query_all(self, table: Any, key_condition: Any, operation: str) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"KeyConditionExpression": key_condition}
        items: List[Dict[str, Any]] = []
        try:
            while True:
                response = table.query(**params)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    return items
                params["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as e:
            logger.error(f"{operation} failed: {_error_message(e)}")
            raise LedgerUnavailableError(f"{operation} failed: {_error_message(e)}") from e


def _error_message(error: Exception) -> str:
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Message", str(error))
    return str(error)


def _to_category(item: Dict[str, Any]) -> Category:
    return Category(
        id=item["category_id"],
        name=item["name"],
        color=item.get("color", "#6B7280"),
        kind=item["kind"],
        is_active=item.get("is_active", True),
    )


def _to_transaction(item: Dict[str, Any]) -> Transaction:
    category = item.get("category")
    return Transaction(
        id=item["transaction_id"],
        account_id=item["account_id"],
        amount=item["amount"],
        kind=item["kind"],
        date=item["date"],
        category_id=item["category_id"],
        description=item.get("description", ""),
        category=_to_category(category) if category else None,
    )


def _from_dynamo(obj: Any):
    """
    Recursively turn integral Decimals into ints. Fractional Decimals are kept
    as Decimal so amounts stay exact.
    """
    if isinstance(obj, list):
        return [_from_dynamo(item) for item in obj]
    if isinstance(obj, dict):
        return {k: _from_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, Decimal) and obj % 1 == 0:
        return int(obj)
    return obj
