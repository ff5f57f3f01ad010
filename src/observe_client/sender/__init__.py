"""HTTP transport module for sending batches to the collector."""

from .http_sender import HTTPSender, TransmissionOutcome, Transport, TransportResponse, UrllibTransport

__all__ = ["HTTPSender", "Transport", "TransportResponse", "TransmissionOutcome", "UrllibTransport"]
