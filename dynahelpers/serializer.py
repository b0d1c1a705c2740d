"""
Conversion between Python records and the DynamoDB wire format.

boto3's TypeSerializer only accepts the types DynamoDB itself knows about and
rejects floats outright. ``DynamoSerializer`` normalizes richer Python values
first (floats, datetimes, UUIDs, enums) and undoes boto3's Decimal/Binary
wrappers on the way back, so callers only ever deal in plain values.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, cast
from uuid import UUID

from boto3.dynamodb.types import Binary, TypeDeserializer, TypeSerializer

from .exceptions import DynamoSerializationError


class DynamoSerializer:
    """
    Marshals records to ``{"S": ...}`` / ``{"N": ...}`` attribute values and back.

    Outgoing:
        float -> Decimal (via str, so 0.1 stays 0.1)
        datetime -> ISO 8601, UTC rendered with a "Z" suffix
        date, UUID -> str
        Enum -> its value
        empty set -> attribute dropped (DynamoDB rejects empty sets)

    Incoming:
        whole Decimal -> int, other Decimal -> float
        Binary -> bytes
    """

    def __init__(self) -> None:
        self._serializer = TypeSerializer()
        self._deserializer = TypeDeserializer()

    def to_dynamo(self, data: dict[str, Any]) -> dict[str, dict[str, Any]]:
        """Marshals a whole record (or key) attribute by attribute."""
        result: dict[str, dict[str, Any]] = {}
        for name, value in data.items():
            if isinstance(value, (set, frozenset)) and not value:
                continue
            result[name] = self._serialize(value, f"field '{name}'")
        return result

    def to_dynamo_value(self, value: Any) -> dict[str, Any]:
        """
        Marshals a single value, e.g. for ExpressionAttributeValues.
        10.5 -> {"N": "10.5"}
        """
        return self._serialize(value, f"value '{value}'")

    def from_dynamo(self, item: dict[str, Any]) -> dict[str, Any]:
        """Unmarshals a wire-format item into a plain dict."""
        return {
            name: self._to_python(self._deserializer.deserialize(attr))
            for name, attr in item.items()
        }

    def serialize_cursor(self, last_evaluated_key: dict[str, Any]) -> dict[str, Any]:
        """
        Turns a LastEvaluatedKey into a plain cursor callers can store.

        {"pk": {"S": "value"}, "sk": {"N": "123"}} -> {"pk": "value", "sk": 123}
        """
        return self.from_dynamo(last_evaluated_key)

    def deserialize_cursor(self, cursor: dict[str, Any]) -> dict[str, Any]:
        """Turns a stored cursor back into an ExclusiveStartKey."""
        return self.to_dynamo(cursor)

    def _serialize(self, value: Any, label: str) -> dict[str, Any]:
        try:
            return cast(dict[str, Any], self._serializer.serialize(self._to_dynamo_native(value)))
        except TypeError as e:
            raise DynamoSerializationError(
                f"Failed to serialize {label}. value={value!r} error={e!s}", original_error=e
            ) from e

    def _to_dynamo_native(self, value: Any) -> Any:
        """Recursively rewrites values TypeSerializer cannot handle."""
        # bool subclasses int, keep it away from the numeric branches
        if isinstance(value, bool):
            return value
        if isinstance(value, float):
            return Decimal(str(value))
        if isinstance(value, datetime):
            offset = value.utcoffset()
            if offset is not None and offset.total_seconds() == 0:
                return value.replace(tzinfo=None).isoformat() + "Z"
            return value.isoformat()
        if isinstance(value, date):
            return value.isoformat()
        if isinstance(value, UUID):
            return str(value)
        if isinstance(value, Enum):
            return self._to_dynamo_native(value.value)
        if isinstance(value, (set, frozenset)):
            return {self._to_dynamo_native(v) for v in value}
        if isinstance(value, (list, tuple)):
            return [self._to_dynamo_native(v) for v in value]
        if isinstance(value, dict):
            return {k: self._to_dynamo_native(v) for k, v in value.items()}
        return value

    def _to_python(self, value: Any) -> Any:
        """Recursively unwraps the Decimal and Binary values boto3 hands back."""
        if isinstance(value, Decimal):
            return int(value) if value % 1 == 0 else float(value)
        if isinstance(value, Binary):
            return bytes(value.value)
        if isinstance(value, (set, frozenset)):
            return {self._to_python(v) for v in value}
        if isinstance(value, list):
            return [self._to_python(v) for v in value]
        if isinstance(value, dict):
            return {k: self._to_python(v) for k, v in value.items()}
        return value


default_serializer = DynamoSerializer()


def marshall_item(item: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Converts a Python record into a DynamoDB wire-format item."""
    return default_serializer.to_dynamo(item)


def unmarshall_item(item: dict[str, Any]) -> dict[str, Any]:
    """Converts a DynamoDB wire-format item into a Python record."""
    return default_serializer.from_dynamo(item)
