from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from botocore.exceptions import ClientError

from ._logging import logger


class DynaHelpersError(Exception):
    """
    Base exception for all dynahelpers errors.

    Every failure surfaced by the library carries a plain ``message`` and,
    when it wraps something raised by the backing client, the
    ``original_error``.
    """

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class InvalidOperatorError(DynaHelpersError):
    """Raised when a condition uses an operator outside the supported set."""

    def __init__(self, operator: Any) -> None:
        super().__init__(f"Unknown condition operator: {operator!r}")
        self.operator = operator


class TableNotFoundError(DynaHelpersError):
    """Raised when the DynamoDB table does not exist."""

    def __init__(
        self,
        table_name: str,
        original_error: Exception | None = None,
        detail: str | None = None,
    ) -> None:
        message = f"Table '{table_name}' not found"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, original_error)
        self.table_name = table_name


class ConditionalCheckFailedError(DynaHelpersError):
    """
    Raised when a conditional write fails.

    Writes are sent with ``ReturnValuesOnConditionCheckFailure=ALL_OLD`` so
    DynamoDB returns the item that failed the check; it is exposed as
    ``item`` in wire format (or None when the item did not exist).
    """

    def __init__(
        self,
        message: str = "Conditional check failed",
        item: dict[str, Any] | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error)
        self.item = item


class ProvisionedThroughputExceededError(DynaHelpersError):
    """Raised when DynamoDB throttles requests."""

    def __init__(
        self, message: str = "Request rate exceeded", original_error: Exception | None = None
    ) -> None:
        super().__init__(message, original_error)


class ItemCollectionSizeLimitError(DynaHelpersError):
    """Raised when item collection size exceeds 10GB limit."""

    def __init__(
        self,
        message: str = "Item collection size limit exceeded",
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error)


class RequestTimeoutError(DynaHelpersError):
    """Raised when a request to DynamoDB times out."""

    def __init__(
        self, message: str = "Request timed out", original_error: Exception | None = None
    ) -> None:
        super().__init__(message, original_error)


class ValidationError(DynaHelpersError):
    """Raised for request validation errors reported by DynamoDB."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message, original_error)


class BatchRetryExceededError(DynaHelpersError):
    """Raised when a batch chunk still has unprocessed entries after ``max_retries``."""

    def __init__(self, operation: str, unprocessed_count: int) -> None:
        super().__init__(
            f"{operation} gave up with {unprocessed_count} unprocessed request(s) remaining"
        )
        self.operation = operation
        self.unprocessed_count = unprocessed_count


class DynamoSerializationError(DynaHelpersError):
    """Raised when serialization to DynamoDB format fails (e.g. unsupported type)."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message, original_error)


def get_error_message(error: BaseException | Any) -> str:
    """
    Extracts a human readable message from whatever the backing client raised.
    Structured botocore errors report their service message; anything else
    is coerced to a string.
    """
    if isinstance(error, ClientError):
        return str(error.response.get("Error", {}).get("Message") or error)
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(error)


@contextmanager
def handle_dynamo_errors(
    table_name: str | None = None, operation: str | None = None
) -> Generator[None, None, None]:
    """
    Context manager that normalizes failures raised by the DynamoDB client.

    botocore ``ClientError`` codes are mapped onto the matching
    DynaHelpersError subclass. Any other exception is wrapped in a plain
    DynaHelpersError carrying its message. Library errors pass through
    untouched.

    Args:
        table_name: Optional table name for better error messages
        operation: Optional operation name used in the failure log line

    Usage:
        with handle_dynamo_errors(table_name="users", operation="get"):
            client.get_item(...)
    """
    try:
        yield
    except DynaHelpersError:
        raise
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code", "Unknown")
        error_message = get_error_message(e)

        logger.error(
            "DynamoDB call failed",
            extra={
                "table": table_name,
                "operation": operation,
                "error_code": error_code,
                "error_message": error_message,
            },
        )

        if error_code == "ResourceNotFoundException":
            raise TableNotFoundError(
                table_name=table_name or "unknown", original_error=e, detail=error_message
            ) from e

        if error_code == "ConditionalCheckFailedException":
            raise ConditionalCheckFailedError(
                message=f"Conditional check failed: {error_message}",
                item=e.response.get("Item"),
                original_error=e,
            ) from e

        if error_code in (
            "ProvisionedThroughputExceededException",
            "ThrottlingException",
            "RequestLimitExceeded",
        ):
            raise ProvisionedThroughputExceededError(message=error_message, original_error=e) from e

        if error_code in ("ValidationException", "SerializationException"):
            raise ValidationError(message=error_message, original_error=e) from e

        if error_code == "ItemCollectionSizeLimitExceededException":
            raise ItemCollectionSizeLimitError(message=error_message, original_error=e) from e

        if error_code in ("RequestTimeout", "RequestTimeoutException"):
            raise RequestTimeoutError(message=error_message, original_error=e) from e

        raise DynaHelpersError(
            message=f"DynamoDB error ({error_code}): {error_message}", original_error=e
        ) from e
    except Exception as e:
        message = get_error_message(e)
        logger.error(
            "DynamoDB call failed",
            extra={"table": table_name, "operation": operation, "error_message": message},
        )
        raise DynaHelpersError(message=message, original_error=e) from e
