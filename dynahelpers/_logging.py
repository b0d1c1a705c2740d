import hashlib
import logging
from typing import Any

# Create the library logger
logger = logging.getLogger("dynahelpers")

# Add NullHandler to prevent "No handlers could be found" warnings
# if the application doesn't configure logging.
logger.addHandler(logging.NullHandler())


def redact_key(key: dict[str, Any] | Any) -> str:
    """
    Redacts key values for logging.
    Hashes the values to allow correlation across log lines without revealing PII.
    Attribute names are kept in clear text.
    """
    try:
        if isinstance(key, dict):
            redacted = {}
            for k in sorted(key):
                val_str = str(key[k]).encode("utf-8")
                redacted[k] = hashlib.sha256(val_str).hexdigest()[:8]
            return str(redacted)
        return hashlib.sha256(str(key).encode("utf-8")).hexdigest()[:8]
    except Exception:
        return "<redaction_failed>"
