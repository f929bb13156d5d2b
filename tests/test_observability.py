# tests/test_observability.py
import json
import logging

from lab_assistant.observability.logger import JSONFormatter
from lab_assistant.observability.metrics import MetricsTracker
from lab_assistant.observability.posthog_client import PostHogClient


class TestMetricsTracker:

    def test_success_and_failure_counts(self):
        tracker = MetricsTracker(persist=False)

        tracker.record_success(0.5, endpoint="/chat")
        tracker.record_success(1.5, endpoint="/chat")
        tracker.record_failure(endpoint="/upload")
        tracker.record_refusal()

        metrics = tracker.get_metrics()

        assert metrics["total_requests"] == 3
        assert metrics["successful_requests"] == 2
        assert metrics["failed_requests"] == 1
        assert metrics["avg_latency"] == 1.0
        assert metrics["refused_answers"] == 1
        assert metrics["requests_by_endpoint"] == {"/chat": 2, "/upload": 1}

    def test_percentile(self):
        tracker = MetricsTracker(persist=False)

        assert tracker.get_latency_percentile(95) == 0.0

        for i in range(1, 101):
            tracker.record_success(float(i))

        assert tracker.get_latency_percentile(95) == 96.0

    def test_persistence(self, tmp_path):
        path = str(tmp_path / "metrics.json")

        tracker = MetricsTracker(path=path)
        tracker.record_success(0.2)

        assert MetricsTracker(path=path).get_metrics()["total_requests"] == 1

    def test_reset(self):
        tracker = MetricsTracker(persist=False)

        tracker.record_failure()
        tracker.reset()

        assert tracker.get_metrics()["total_requests"] == 0


class TestJSONFormatter:

    def make_record(self, **extra):

        record = logging.LogRecord(
            name="lab_assistant.test",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="Document ingested",
            args=(),
            exc_info=None,
        )

        for key, value in extra.items():
            setattr(record, key, value)

        return record

    def test_extras_and_cjk(self):
        line = JSONFormatter().format(self.make_record(doc_name="修論.pdf", chunks=3))

        data = json.loads(line)

        assert data["message"] == "Document ingested"
        assert data["doc_name"] == "修論.pdf"
        assert data["chunks"] == 3
        assert "修論.pdf" in line

    def test_non_serializable_extra(self):
        data = json.loads(JSONFormatter().format(self.make_record(obj=object())))

        assert data["obj"].startswith("<object")


class TestPostHogClient:

    def test_disabled_without_key(self, monkeypatch):
        monkeypatch.delenv("POSTHOG_API_KEY", raising=False)

        client = PostHogClient()

        assert not client.enabled

        client.track_chat("req", "質問", "semantic", 0.1, False, 2)
        client.shutdown()
