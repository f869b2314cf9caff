"""
Translation between plain Python values and the document store's typed field
encoding (``{"stringValue": ...}``, ``{"timestampValue": ...}`` and so on).
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from finance_tracker.domain.dates import date_to_timestamp, parse_timestamp


def encode_value(value: Any) -> dict[str, Any]:
    if value is None:
        return {"nullValue": None}
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, (float, Decimal)):
        return {"doubleValue": float(value)}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return {"timestampValue": value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")}
    if isinstance(value, date):
        return {"timestampValue": date_to_timestamp(value)}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(item) for item in value]}}
    raise TypeError(f"Cannot encode value of type {type(value).__name__}")


def encode_fields(data: dict[str, Any]) -> dict[str, Any]:
    return {key: encode_value(value) for key, value in data.items()}


def decode_value(encoded: dict[str, Any]) -> Any:
    if "nullValue" in encoded:
        return None
    if "booleanValue" in encoded:
        return bool(encoded["booleanValue"])
    if "integerValue" in encoded:
        return int(encoded["integerValue"])
    if "doubleValue" in encoded:
        return float(encoded["doubleValue"])
    if "stringValue" in encoded:
        return encoded["stringValue"]
    if "timestampValue" in encoded:
        return parse_timestamp(encoded["timestampValue"])
    if "mapValue" in encoded:
        return decode_fields(encoded["mapValue"].get("fields", {}))
    if "arrayValue" in encoded:
        return [decode_value(item) for item in encoded["arrayValue"].get("values", [])]
    raise ValueError(f"Unsupported document value: {sorted(encoded)}")


def decode_fields(fields: dict[str, Any]) -> dict[str, Any]:
    return {key: decode_value(value) for key, value in fields.items()}


def document_id(name: str) -> str:
    return name.rstrip("/").rsplit("/", 1)[-1]


def decode_document(document: dict[str, Any]) -> dict[str, Any]:
    """Flatten a stored document into a record dict with ``id`` and ``createdAt``."""
    record = decode_fields(document.get("fields", {}))
    record["id"] = document_id(document["name"])
    create_time = document.get("createTime")
    if create_time:
        record["createdAt"] = parse_timestamp(create_time)
    return record
