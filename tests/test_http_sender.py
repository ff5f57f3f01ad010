"""Tests for the HTTP sender and the urllib transport."""

import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from observe_client import Observer
from observe_client.queuer import Batch, QueuedItem
from observe_client.sender import HTTPSender, UrllibTransport

from .conftest import FakeTransport


def make_batch(*lines: bytes) -> Batch:
    items = [QueuedItem(payload=line) for line in lines]
    return Batch(items=items, size_bytes=sum(item.size for item in items))


class CollectorHandler(BaseHTTPRequestHandler):
    """Minimal collector storing what it receives."""

    def do_POST(self):
        length = int(self.headers["Content-Length"])
        self.server.received.append({"path": self.path, "headers": dict(self.headers), "body": self.rfile.read(length)})
        status, reason = self.server.reply
        body = b'{"ok":true}' if status < 300 else b'{"ok":false,"message":"rejected"}'
        self.send_response(status, reason)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def collector():
    server = ThreadingHTTPServer(("127.0.0.1", 0), CollectorHandler)
    server.received = []
    server.reply = (200, "OK")
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()


def collector_url(server) -> str:
    host, port = server.server_address[:2]
    return f"http://{host}:{port}/v1/http/test?source=unit"


def test_success_outcome():
    transport = FakeTransport(status=204, reason="No Content")
    sender = HTTPSender("https://collect.example.com", "token", transport=transport)

    outcome = sender.send_batch(make_batch(b'{"a":1}\n', b'{"b":2}\n'))

    assert outcome.ok
    assert outcome.status == 204
    assert transport.requests[0]["body"] == b'{"a":1}\n{"b":2}\n'
    assert transport.requests[0]["headers"]["Content-Length"] == "16"
    stats = sender.get_stats()
    assert stats["total_batches_sent"] == 1
    assert stats["total_records_sent"] == 2
    assert stats["total_bytes_sent"] == 16


def test_status_above_299_is_failure(log_messages):
    transport = FakeTransport(status=302, reason="Found")
    sender = HTTPSender("https://collect.example.com", "token", transport=transport)

    outcome = sender.send_batch(make_batch(b"{}\n"))

    assert not outcome.ok
    assert outcome.error == "Observe Bad HTTP result: 302 Found"
    assert sender.get_stats()["last_error"] == outcome.error
    assert any("Failed to send batch" in message for message in log_messages)


def test_transport_error_is_failure():
    transport = FakeTransport(error=TimeoutError("timed out"))
    sender = HTTPSender("https://collect.example.com", "token", transport=transport)

    outcome = sender.send_batch(make_batch(b"{}\n"))

    assert outcome.error == "Observe request failed: timed out"
    assert outcome.status is None
    assert sender.get_stats()["total_batches_failed"] == 1


def test_urllib_transport_posts_ndjson(collector):
    sender = HTTPSender(collector_url(collector), "123 secret", timeout_seconds=5, transport=UrllibTransport())

    outcome = sender.send_batch(make_batch(b'{"n":1}\n', b'{"n":2}\n'))

    assert outcome.ok, outcome.error
    received = collector.received[0]
    assert received["path"] == "/v1/http/test?source=unit"
    assert received["body"] == b'{"n":1}\n{"n":2}\n'
    assert received["headers"]["Authorization"] == "Bearer 123 secret"
    assert received["headers"]["Content-Type"] == "application/x-ndjson"


def test_urllib_transport_reports_server_error(collector):
    collector.reply = (500, "Server Error")
    transport = UrllibTransport()

    response = transport.post(collector_url(collector), b"{}\n", {"Content-Type": "application/x-ndjson"}, 5)

    assert response.status == 500
    assert response.reason == "Server Error"
    assert b"rejected" in response.body


def test_observer_against_collector(collector):
    """End to end: both records succeed, then a server error fails the next one."""
    with Observer(url=collector_url(collector), auth="token", batch_time_ms=50, timeout_seconds=5) as observer:
        first = observer.send({"message": "Hello, world!"})
        second = observer.send({"message": "Second hello"})
        assert first.result(timeout=10) is None
        assert second.result(timeout=10) is None

        collector.reply = (500, "Server Error")
        error = observer.send({"message": "Third hello"}).result(timeout=10)

    assert "500" in error and "Server Error" in error
    lines = [line for request in collector.received for line in request["body"].splitlines()]
    assert len(lines) == 3


def test_network_error_is_failure():
    # port 9 (discard) on localhost is expected to refuse connections
    sender = HTTPSender("http://127.0.0.1:9/v1/http", "token", timeout_seconds=2)

    outcome = sender.send_batch(make_batch(b"{}\n"))

    assert not outcome.ok
    assert outcome.error.startswith("Observe request failed")
