"""Tests for httpinfo.middleware."""

import unittest

from starlette.testclient import TestClient

from httpinfo.asgi import HandlerApp
from httpinfo.middleware import MetricsHandler
from httpinfo.metrics import create_counter
from httpinfo.testing import exchange_spans, reset_metrics, setup_test_tracing
from httpinfo.types import IncomingRequest
from tests.fakes import RecordingSink


def hello(sink, request):
    sink.write(b"hello")


def missing(sink, request):
    sink.commit_status(404)


class TestMetricsHandler(unittest.TestCase):
    """Exchange values are exported once the wrapped handler returns."""

    def setUp(self):
        reset_metrics()
        self.exporter = setup_test_tracing("httpinfo-test")
        self.handler = MetricsHandler(hello, ignored_paths=set())

    def tearDown(self):
        reset_metrics()

    def _call(self, handler, url="/hello", **kwargs):
        sink = RecordingSink()
        handler(sink, IncomingRequest(url=url, host="h", **kwargs))
        return sink

    def test_increments_counter_on_request(self):
        sink = self._call(self.handler)

        self.assertEqual(bytes(sink.body), b"hello")
        val = self.handler.requests.labels(method="GET", path="/hello", status="200")._value.get()
        self.assertEqual(val, 1.0)

    def test_path_excludes_query(self):
        self._call(self.handler, url="/hello?name=ada")
        self._call(self.handler, url="/hello")

        val = self.handler.requests.labels(method="GET", path="/hello", status="200")._value.get()
        self.assertEqual(val, 2.0)

    def test_records_status_codes(self):
        handler = MetricsHandler(missing, ignored_paths=set())
        self._call(handler, url="/nope")

        val = handler.requests.labels(method="GET", path="/nope", status="404")._value.get()
        self.assertEqual(val, 1.0)

    def test_unset_status_exported_as_zero(self):
        handler = MetricsHandler(lambda sink, request: None, ignored_paths=set())
        self._call(handler)

        val = handler.requests.labels(method="GET", path="/hello", status="0")._value.get()
        self.assertEqual(val, 1.0)

    def test_observes_sizes_and_duration(self):
        self._call(self.handler, headers={"A": ["bc"]}, content_length=10)

        response_sum = self.handler.response_size.labels(method="GET", path="/hello")._sum.get()
        request_sum = self.handler.request_size.labels(method="GET", path="/hello")._sum.get()
        duration_sum = self.handler.duration.labels(method="GET", path="/hello")._sum.get()

        self.assertEqual(response_sum, 5.0)
        self.assertEqual(request_sum, float(6 + 3 + 8 + 3 + 1 + 10))
        self.assertGreaterEqual(duration_sum, 0.0)

    def test_ignored_path_not_counted(self):
        handler = MetricsHandler(hello, ignored_paths={"/health"})
        sink = self._call(handler, url="/health")

        self.assertEqual(bytes(sink.body), b"hello")
        val = handler.requests.labels(method="GET", path="/health", status="200")._value.get()
        self.assertEqual(val, 0.0)

    def test_shares_registered_metrics(self):
        other = MetricsHandler(hello, ignored_paths=set())
        self.assertIs(other.requests, self.handler.requests)
        self.assertIs(other.duration, self.handler.duration)

    def test_custom_counter(self):
        counter = create_counter("test_custom_http_total", "custom", ["method", "path", "status"])
        handler = MetricsHandler(hello, requests=counter, ignored_paths=set())
        self._call(handler)

        self.assertEqual(counter.labels(method="GET", path="/hello", status="200")._value.get(), 1.0)

    def test_span_attributes(self):
        self._call(self.handler)

        spans = exchange_spans(self.exporter)
        self.assertEqual(len(spans), 1)
        attrs = spans[0].attributes
        self.assertEqual(attrs["http.request.method"], "GET")
        self.assertEqual(attrs["url.path"], "/hello")
        self.assertEqual(attrs["http.response.status_code"], 200)
        self.assertEqual(attrs["http.response.body.size"], 5)
        self.assertEqual(attrs["http.request.size"], len("/hello") + 3 + 8 + 1)

    def test_access_log_line(self):
        with self.assertLogs("httpinfo.access", level="INFO") as logs:
            self._call(self.handler)

        self.assertEqual(len(logs.records), 1)
        self.assertIn("GET /hello HTTP/1.1 200 5", logs.output[0])

    def test_access_record_carries_exchange_values(self):
        with self.assertLogs("httpinfo.access", level="INFO") as logs:
            self._call(self.handler, content_length=10)

        record = logs.records[0]
        self.assertEqual(record.method, "GET")
        self.assertEqual(record.url, "/hello")
        self.assertEqual(record.status_code, 200)
        self.assertEqual(record.response_size, 5)
        self.assertEqual(record.request_size, 6 + 3 + 8 + 1 + 10)
        self.assertGreaterEqual(record.elapsed_ms, 0.0)

    def test_handler_fault_is_not_recorded(self):
        def broken(sink, request):
            raise RuntimeError("boom")

        handler = MetricsHandler(broken, ignored_paths=set())
        with self.assertRaises(RuntimeError):
            self._call(handler)

        val = handler.requests.labels(method="GET", path="/hello", status="0")._value.get()
        self.assertEqual(val, 0.0)


class TestMetricsHandlerOverASGI(unittest.TestCase):

    def setUp(self):
        reset_metrics()
        setup_test_tracing("httpinfo-test")
        self.handler = MetricsHandler(hello, ignored_paths=set())
        self.client = TestClient(HandlerApp(self.handler))

    def tearDown(self):
        reset_metrics()

    def test_counts_multiple_requests(self):
        for _ in range(3):
            self.assertEqual(self.client.get("/ping").text, "hello")

        val = self.handler.requests.labels(method="GET", path="/ping", status="200")._value.get()
        self.assertEqual(val, 3.0)


if __name__ == "__main__":
    unittest.main()
