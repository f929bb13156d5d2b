import json
import logging
import os
import threading
from typing import Dict, List

from lab_assistant.config import METRICS_PATH

logger = logging.getLogger(__name__)


# Latency history kept for percentile computation
MAX_LATENCY_SAMPLES = 1000

_lock = threading.Lock()


def _empty_metrics() -> Dict:

    return {

        "total_requests": 0,
        "successful_requests": 0,
        "failed_requests": 0,

        "total_latency": 0.0,
        "avg_latency": 0.0,

        "latencies": [],

        # chat answers served from the no-data template
        "refused_answers": 0,

        "requests_by_endpoint": {},

    }


class MetricsTracker:

    def __init__(self, path: str = METRICS_PATH, persist: bool = True):

        self._path = path
        self._persist = persist
        self._metrics = _empty_metrics()

        if persist:

            directory = os.path.dirname(path)

            if directory:
                os.makedirs(directory, exist_ok=True)

            self._load()

    def _load(self):

        if not os.path.exists(self._path):
            return

        try:

            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)

        except (OSError, ValueError) as e:

            logger.warning(
                "Metrics file unreadable, starting fresh",
                extra={"error": str(e)},
            )

            return

        # Backward compatibility with files missing newer keys
        self._metrics.update(data)

    def _save(self):

        if not self._persist:
            return

        try:

            with open(self._path, "w", encoding="utf-8") as f:
                json.dump(self._metrics, f, indent=2)

        except OSError as e:

            logger.warning(
                "Metrics write failed",
                extra={"error": str(e)},
            )

    def _count_endpoint(self, endpoint: str):

        if endpoint:

            by_endpoint = self._metrics["requests_by_endpoint"]

            by_endpoint[endpoint] = by_endpoint.get(endpoint, 0) + 1

    def record_success(self, latency: float, endpoint: str = ""):

        with _lock:

            self._metrics["total_requests"] += 1

            self._metrics["successful_requests"] += 1

            self._metrics["total_latency"] += latency

            self._metrics["avg_latency"] = (
                self._metrics["total_latency"]
                / self._metrics["successful_requests"]
            )

            latencies = self._metrics["latencies"]

            latencies.append(latency)

            del latencies[:-MAX_LATENCY_SAMPLES]

            self._count_endpoint(endpoint)

            self._save()

    def record_failure(self, endpoint: str = ""):

        with _lock:

            self._metrics["total_requests"] += 1

            self._metrics["failed_requests"] += 1

            self._count_endpoint(endpoint)

            self._save()

    def record_refusal(self):

        with _lock:

            self._metrics["refused_answers"] += 1

            self._save()

    def get_metrics(self):
        return self._metrics

    def get_latency_percentile(self, percentile: float) -> float:

        latencies: List[float] = self._metrics.get("latencies", [])

        if not latencies:
            return 0.0

        sorted_latencies = sorted(latencies)

        index = int(len(sorted_latencies) * percentile / 100)

        index = min(index, len(sorted_latencies) - 1)

        return sorted_latencies[index]

    def reset(self):

        with _lock:

            self._metrics = _empty_metrics()

            self._save()


metrics_tracker = MetricsTracker()
