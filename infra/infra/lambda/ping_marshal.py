import base64
import dataclasses
import json
import logging
import uuid
from datetime import datetime
from decimal import Decimal

from boto3.dynamodb.types import Binary, TypeDeserializer, TypeSerializer

from ping_errors import ResponseEncodingFailed, StorageEncodingFailed

logger = logging.getLogger()

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()


def _to_dynamo_value(x):
    # TypeSerializer refuses floats and knows nothing about UUIDs or datetimes
    if isinstance(x, uuid.UUID):
        return str(x)
    if isinstance(x, datetime):
        return x.isoformat()
    if isinstance(x, float):
        return Decimal(str(x))
    if isinstance(x, dict):
        return {k: _to_dynamo_value(v) for k, v in x.items()}
    if isinstance(x, (list, tuple)):
        return [_to_dynamo_value(v) for v in x]
    return x


def marshal_item(value) -> dict:
    """Convert a dataclass or mapping into a DynamoDB attribute value map."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = dataclasses.asdict(value)
    if not isinstance(value, dict):
        logger.error(f"marshalling dynamodb item error: expected a mapping, got {type(value).__name__}")
        raise StorageEncodingFailed()

    try:
        return {k: _serializer.serialize(_to_dynamo_value(v)) for k, v in value.items()}
    except (TypeError, ValueError, ArithmeticError) as e:
        logger.error(f"marshalling dynamodb item error: {e}")
        raise StorageEncodingFailed() from e


def unmarshal_item(attributes) -> dict:
    return {k: _deserializer.deserialize(v) for k, v in (attributes or {}).items()}


def _json_default(o):
    if isinstance(o, Decimal):
        return int(o) if o == o.to_integral_value() else float(o)
    if isinstance(o, (set, frozenset)):
        return sorted(o)
    if isinstance(o, Binary):
        return base64.b64encode(o.value).decode("ascii")
    raise TypeError(f"Object of type {type(o).__name__} is not JSON serializable")


def marshal_json(value) -> bytes:
    try:
        return json.dumps(value, default=_json_default, separators=(",", ":")).encode("utf-8")
    except (TypeError, ValueError) as e:
        logger.error(f"marshalling json error: {e}")
        raise ResponseEncodingFailed() from e
