import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List

import boto3
from boto3.dynamodb.conditions import Attr, Key
from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import settings
from app.models.bill import Classification, Notification
from app.utils.bill_notifier import NotificationStoreError

logger = logging.getLogger(__name__)

# Initialize DynamoDB resource
dynamodb = boto3.resource("dynamodb", region_name=settings.DYNAMO_REGION)

# Get table references
transactions_table = dynamodb.Table(settings.DYNAMO_TRANSACTIONS_TABLE)
bills_table = dynamodb.Table(settings.DYNAMO_BILLS_TABLE)
notifications_table = dynamodb.Table(settings.DYNAMO_NOTIFICATIONS_TABLE)

# Dedup markers share the notifications table under this sort-key prefix
DEDUP_PREFIX = "DEDUP#"


def _error_message(e: ClientError) -> str:
    return e.response.get("Error", {}).get("Message", str(e))


def _timestamp(value: datetime) -> str:
    # Fixed-width UTC so stored timestamps compare correctly as strings
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _query_all(table, **kwargs) -> List[dict]:
    """Run a query, following LastEvaluatedKey until exhausted."""
    items: List[dict] = []
    while True:
        response = table.query(**kwargs)
        items.extend(response.get("Items", []))
        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            return items
        kwargs["ExclusiveStartKey"] = last_key


# Transactions

def put_transaction(transaction_item: dict):
    """Insert a transaction for a user."""
    try:
        transactions_table.put_item(Item=_convert_for_dynamo(transaction_item))
        return True
    except ClientError as e:
        logger.error(f"[ERROR] put_transaction failed: {_error_message(e)}")
        return False


def get_recent_transactions(user_id: str, limit: int = 50):
    """
    Latest transactions for a user, newest first.
    transaction_id starts with the ISO date, so a reverse key query is date-ordered.
    """
    try:
        response = transactions_table.query(
            KeyConditionExpression=Key("user_id").eq(user_id),
            ScanIndexForward=False,
            Limit=limit,
        )
        return [_from_dynamo(item) for item in response["Items"]]
    except ClientError as e:
        logger.error(f"[ERROR] get_recent_transactions failed: {_error_message(e)}")
        return []


# Bills

def put_bill(bill_item: dict):
    """Insert or replace a bill."""
    try:
        bills_table.put_item(Item=_convert_for_dynamo(bill_item))
        return True
    except ClientError as e:
        logger.error(f"[ERROR] put_bill failed: {_error_message(e)}")
        return False


def get_bill(user_id: str, bill_id: str):
    try:
        response = bills_table.get_item(Key={"user_id": user_id, "bill_id": bill_id})
        item = response.get("Item")
        return _from_dynamo(item) if item else None
    except ClientError as e:
        logger.error(f"[ERROR] get_bill failed: {_error_message(e)}")
        return None


def get_unpaid_bills(user_id: str):
    """All bills whose status is not 'paid', ordered by due date."""
    try:
        items = _query_all(
            bills_table,
            KeyConditionExpression=Key("user_id").eq(user_id),
            FilterExpression=Attr("status").ne("paid"),
        )
    except ClientError as e:
        logger.error(f"[ERROR] get_unpaid_bills failed: {_error_message(e)}")
        return []
    bills = [_from_dynamo(item) for item in items]
    return sorted(bills, key=lambda b: b.get("due_date", ""))


def get_users_with_unpaid_bills() -> List[str]:
    """User ids owning at least one non-paid bill. Used by the periodic check."""
    user_ids = set()
    kwargs: Dict[str, Any] = {
        "FilterExpression": Attr("status").ne("paid"),
        "ProjectionExpression": "user_id",
    }
    try:
        while True:
            response = bills_table.scan(**kwargs)
            user_ids.update(item["user_id"] for item in response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            kwargs["ExclusiveStartKey"] = last_key
    except ClientError as e:
        logger.error(f"[ERROR] get_users_with_unpaid_bills failed: {_error_message(e)}")
        return []
    return sorted(user_ids)


def _update_item(table, key: dict, updates: dict):
    """
    Apply partial updates to an existing item. Returns the updated item or None.
    """
    if not updates:
        return None

    update_expression_parts = []
    expression_attribute_values = {}
    expression_attribute_names = {}

    for idx, (name, value) in enumerate(updates.items()):
        placeholder = f"#f{idx}"
        value_placeholder = f":v{idx}"
        update_expression_parts.append(f"{placeholder} = {value_placeholder}")
        expression_attribute_names[placeholder] = name
        expression_attribute_values[value_placeholder] = value

    key_names = list(key)
    response = table.update_item(
        Key=key,
        UpdateExpression="SET " + ", ".join(update_expression_parts),
        ConditionExpression=" AND ".join(f"attribute_exists({k})" for k in key_names),
        ExpressionAttributeNames=expression_attribute_names,
        ExpressionAttributeValues=_convert_for_dynamo(expression_attribute_values),
        ReturnValues="ALL_NEW",
    )
    attributes = response.get("Attributes")
    return _from_dynamo(attributes) if attributes else None


def update_bill(user_id: str, bill_id: str, updates: dict):
    try:
        return _update_item(bills_table, {"user_id": user_id, "bill_id": bill_id}, updates)
    except ClientError as e:
        logger.error(f"[ERROR] update_bill failed: {_error_message(e)}")
        return None


# Notifications

def list_notifications(user_id: str, unread_only: bool = False):
    """Notifications for a user, newest first. Dedup markers are left out."""
    try:
        items = _query_all(notifications_table, KeyConditionExpression=Key("user_id").eq(user_id))
    except ClientError as e:
        logger.error(f"[ERROR] list_notifications failed: {_error_message(e)}")
        return []

    notifications = [
        _from_dynamo(item)
        for item in items
        if not str(item.get("notification_id", "")).startswith(DEDUP_PREFIX)
    ]
    notifications.sort(key=lambda n: n.get("created_at", ""), reverse=True)
    if unread_only:
        notifications = [n for n in notifications if not n.get("read")]
    return notifications


def update_notification(user_id: str, notification_id: str, updates: dict):
    try:
        return _update_item(
            notifications_table, {"user_id": user_id, "notification_id": notification_id}, updates
        )
    except ClientError as e:
        logger.error(f"[ERROR] update_notification failed: {_error_message(e)}")
        return None


def mark_all_notifications_read(user_id: str) -> int:
    updated = 0
    for notification in list_notifications(user_id, unread_only=True):
        if update_notification(user_id, notification["notification_id"], {"read": True}):
            updated += 1
    return updated


def confirm_notification(user_id: str, notification_id: str):
    """
    Mark a notification read and confirmed. When it belongs to a bill, the bill
    is flagged as acknowledged too.
    """
    now = datetime.now(timezone.utc).isoformat()
    updated = update_notification(
        user_id, notification_id, {"read": True, "confirmed": True, "confirmed_at": now}
    )
    if not updated:
        return None

    bill_id = updated.get("bill_id")
    if bill_id:
        update_bill(
            user_id,
            bill_id,
            {"last_notification_acknowledged": True, "last_acknowledged_at": now},
        )
    return updated


def dedup_key(bill_id: str, classification) -> str:
    return f"{DEDUP_PREFIX}{bill_id}#{Classification(classification).value}"


class DynamoNotificationStore:
    """
    Persisted dedup store. The notification and its dedup marker are written
    in one transaction; the marker put is conditional on no marker newer than
    the window start, so concurrent runs cannot both succeed.
    """

    def __init__(self, table=None, client=None) -> None:
        self._table = table if table is not None else notifications_table
        self._client = client if client is not None else dynamodb.meta.client
        self._serializer = TypeSerializer()

    def _serialize(self, item: dict) -> dict:
        return {k: self._serializer.serialize(v) for k, v in _convert_for_dynamo(item).items()}

    def has_recent(self, user_id, bill_id, classification, window_start) -> bool:
        try:
            response = self._table.get_item(
                Key={"user_id": user_id, "notification_id": dedup_key(bill_id, classification)},
                ConsistentRead=True,
            )
        except ClientError as e:
            raise NotificationStoreError(_error_message(e)) from e
        except BotoCoreError as e:
            raise NotificationStoreError(str(e)) from e

        item = response.get("Item")
        return bool(item) and item.get("sent_at", "") >= _timestamp(window_start)

    def create_if_absent(self, user_id: str, notification: Notification, window_start: datetime) -> bool:
        notification_item = {"user_id": user_id, **notification.model_dump(mode="json")}
        marker_item = {
            "user_id": user_id,
            "notification_id": dedup_key(notification.bill_id, notification.notification_type),
            "bill_id": notification.bill_id,
            "notification_type": Classification(notification.notification_type).value,
            "sent_at": _timestamp(notification.created_at),
        }
        table_name = self._table.name

        try:
            self._client.transact_write_items(
                TransactItems=[
                    {
                        "Put": {
                            "TableName": table_name,
                            "Item": self._serialize(notification_item),
                            "ConditionExpression": "attribute_not_exists(notification_id)",
                        }
                    },
                    {
                        "Put": {
                            "TableName": table_name,
                            "Item": self._serialize(marker_item),
                            "ConditionExpression": (
                                "attribute_not_exists(notification_id) OR sent_at < :window_start"
                            ),
                            "ExpressionAttributeValues": {
                                ":window_start": {"S": _timestamp(window_start)}
                            },
                        }
                    },
                ]
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "TransactionCanceledException":
                reasons = e.response.get("CancellationReasons", [])
                if any(r.get("Code") == "ConditionalCheckFailed" for r in reasons):
                    return False
            raise NotificationStoreError(_error_message(e)) from e
        except BotoCoreError as e:
            raise NotificationStoreError(str(e)) from e
        return True


def _convert_for_dynamo(obj: Any):
    """
    Recursively convert floats to Decimal for DynamoDB compatibility.
    """
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _convert_for_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_convert_for_dynamo(v) for v in obj]
    return obj


def _from_dynamo(obj: Any):
    """
    Recursively convert Decimal instances back to native Python numeric types.
    """
    if isinstance(obj, list):
        return [_from_dynamo(item) for item in obj]
    if isinstance(obj, dict):
        return {k: _from_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    return obj
