from .batch import batch_delete_items, batch_get_items, batch_put_items
from .conditions import (
    QUERY_OPERATORS,
    CompiledExpression,
    Condition,
    Operator,
    compile_conditions,
)
from .config import ConnectionSettings
from .connection import create_connection, get_connection, set_connection, using_connection
from .exceptions import (
    BatchRetryExceededError,
    ConditionalCheckFailedError,
    DynaHelpersError,
    DynamoSerializationError,
    InvalidOperatorError,
    ItemCollectionSizeLimitError,
    ProvisionedThroughputExceededError,
    RequestTimeoutError,
    TableNotFoundError,
    ValidationError,
    get_error_message,
)
from .items import delete_item, get_item, put_item, update_item
from .pagination import PageResult, paginate
from .query import query_items, query_items_range, query_items_range_between, query_page
from .scan import get_all_items, scan_page
from .serializer import DynamoSerializer, marshall_item, unmarshall_item
from .updates import build_update

__all__ = [
    # Single item
    "get_item",
    "put_item",
    "update_item",
    "delete_item",
    # Query / Scan
    "query_items",
    "query_items_range",
    "query_items_range_between",
    "query_page",
    "get_all_items",
    "scan_page",
    "PageResult",
    "paginate",
    # Batch
    "batch_get_items",
    "batch_put_items",
    "batch_delete_items",
    # Expressions
    "Condition",
    "Operator",
    "QUERY_OPERATORS",
    "CompiledExpression",
    "compile_conditions",
    "build_update",
    # Connection
    "ConnectionSettings",
    "create_connection",
    "get_connection",
    "set_connection",
    "using_connection",
    # Serialization
    "DynamoSerializer",
    "marshall_item",
    "unmarshall_item",
    # Exceptions
    "DynaHelpersError",
    "InvalidOperatorError",
    "TableNotFoundError",
    "ConditionalCheckFailedError",
    "ProvisionedThroughputExceededError",
    "ItemCollectionSizeLimitError",
    "RequestTimeoutError",
    "ValidationError",
    "BatchRetryExceededError",
    "DynamoSerializationError",
    "get_error_message",
]
