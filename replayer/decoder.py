"""Access log decoding: JSON text or file into validated LogRecords."""

import json
import logging

import jsonschema

from replayer.errors import DecodeError
from replayer.models import LogRecord

logger = logging.getLogger(__name__)

ACCESS_LOG_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "array",
    "items": {
        "type": "object",
        "required": ["accessed_at", "url", "http_method"],
        "properties": {
            "accessed_at": {"type": "string"},
            "url": {"type": "string"},
            "http_method": {"type": "string"},
            "http_header": {
                "type": "object",
                "additionalProperties": {"type": "string"},
            },
            "http_body": {"type": "string"},
        },
    },
}

_validator = jsonschema.Draft202012Validator(ACCESS_LOG_SCHEMA)
_item_validator = jsonschema.Draft202012Validator(ACCESS_LOG_SCHEMA["items"])


def _schema_error_field(error: jsonschema.ValidationError) -> str | None:
    """Map a record-level schema error path like ['http_header', 'X'] to its field."""
    path = list(error.absolute_path)
    if path:
        return path[0]
    if error.validator == "required":
        # "'url' is a required property"
        return error.message.split("'")[1] if "'" in error.message else None
    return None


def _decode_record(index: int, obj) -> LogRecord:
    errors = sorted(_item_validator.iter_errors(obj), key=lambda err: list(err.absolute_path))
    if errors:
        first = errors[0]
        raise DecodeError(first.message, index=index, field=_schema_error_field(first))
    try:
        return LogRecord.from_fields(
            accessed_at=obj["accessed_at"],
            url=obj["url"],
            http_method=obj["http_method"],
            http_header=obj.get("http_header", {}),
            http_body=obj.get("http_body", ""),
        )
    except DecodeError as e:
        raise DecodeError(e.reason, index=index, field=e.field) from e


def decode_text(text: str) -> list[LogRecord]:
    """Decode a JSON array of access log objects.

    Records are validated in order, structure first and then field values,
    so the DecodeError always names the lowest failing record index.
    """
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"invalid JSON: {e}") from e

    if not _validator.is_type(document, "array"):
        raise DecodeError(f"access log must be a JSON array, got {type(document).__name__}")

    records = [_decode_record(index, obj) for index, obj in enumerate(document)]

    logger.debug("Decoded %d access log records", len(records))
    return records


def decode_file(path: str) -> list[LogRecord]:
    """Read a whole access log file and decode it with decode_text."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise DecodeError(f"cannot read access log file {path}: {e}") from e

    logger.info("Read access log file %s (%d bytes)", path, len(text))
    return decode_text(text)
