"""Record validation and encoding.

A record is any structured object (mapping, pydantic model or dataclass).
It is copied, stamped with a ``timestamp`` when it has none, and encoded as
one line of newline-delimited JSON. The encoded size is fixed here and never
recomputed.
"""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from loguru import logger
from pydantic import BaseModel

from .clock import Clock

MAX_DATUM_BYTES = 1_000_001  # encoded record plus its trailing newline

ERR_NOT_AN_OBJECT = "The datum must be an object"
ERR_DATUM_TOO_LARGE = "The maximum datum size is 1,000,000 bytes"
ERR_NOT_ENCODABLE = "The datum could not be encoded"

TIMESTAMP_FIELD = "timestamp"


@dataclass(frozen=True)
class EncodedRecord:
    """A validated record ready for queuing."""

    payload: bytes

    @property
    def size(self) -> int:
        return len(self.payload)


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (set, frozenset)):
        return list(value)
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def as_mapping(record: Any) -> Optional[Dict[str, Any]]:
    """Return a shallow dict copy of a structured record, or None for primitives."""
    if isinstance(record, Mapping):
        return dict(record)
    if isinstance(record, BaseModel):
        return record.model_dump(mode="json")
    if dataclasses.is_dataclass(record) and not isinstance(record, type):
        return dataclasses.asdict(record)
    return None


def encode_record(record: Any, clock: Clock) -> Union[EncodedRecord, str]:
    """Validate and encode one record.

    Args:
        record: The submitted record
        clock: Source of the injected timestamp

    Returns:
        The encoded record, or one of the fixed error messages
    """
    try:
        # asdict() deep-copies and model_dump() serializes, either can fail on field values
        datum = as_mapping(record)
    except Exception as e:
        logger.error(f"usage error of Observer.send(): datum could not be converted: {e}")
        return f"{ERR_NOT_ENCODABLE}: {e}"

    if datum is None:
        logger.error(f"usage error of Observer.send(): datum must be an object, got {type(record).__name__}")
        return ERR_NOT_AN_OBJECT

    if datum.get(TIMESTAMP_FIELD) is None:
        datum[TIMESTAMP_FIELD] = clock.now_ms()

    try:
        text = json.dumps(datum, separators=(",", ":"), ensure_ascii=False, default=_json_default)
    except (TypeError, ValueError, RecursionError) as e:
        logger.error(f"usage error of Observer.send(): datum could not be encoded: {e}")
        return f"{ERR_NOT_ENCODABLE}: {e}"

    payload = (text + "\n").encode("utf-8")
    if len(payload) > MAX_DATUM_BYTES:
        logger.error(f"usage error of Observer.send(): maximum individual datum size is 1,000,000 bytes, got {len(payload)}")
        return ERR_DATUM_TOO_LARGE

    return EncodedRecord(payload=payload)
