"""Record handling primitives shared by the pipeline stages."""

from .clock import Clock, FixedClock, SystemClock
from .completion import CompletionCallback, CompletionHandle, CompletionSink, resolved_handle
from .records import (
    ERR_DATUM_TOO_LARGE,
    ERR_NOT_AN_OBJECT,
    ERR_NOT_ENCODABLE,
    MAX_DATUM_BYTES,
    EncodedRecord,
    encode_record,
)

__all__ = [
    "Clock",
    "SystemClock",
    "FixedClock",
    "CompletionCallback",
    "CompletionHandle",
    "CompletionSink",
    "resolved_handle",
    "EncodedRecord",
    "encode_record",
    "MAX_DATUM_BYTES",
    "ERR_NOT_AN_OBJECT",
    "ERR_DATUM_TOO_LARGE",
    "ERR_NOT_ENCODABLE",
]
