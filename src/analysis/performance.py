"""
Response-time measurement and classification.

Each iteration is one GET through HttpClient timed by the wall clock.
Only the measured total is reported; there is no DNS/TCP/TLS split.
"""
import json
import logging
import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from http_client.client import HttpClient, OutgoingRequest
from http_client.exceptions import HttpClientError

logger = logging.getLogger(__name__)

ITERATION_DELAY = 0.1
CRITICAL_MS = 6000
WARNING_MS = 3000
LARGE_RESPONSE_BYTES = 1_000_000


class PerformanceSeverity(str, Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    AVERAGE = "Average"
    POOR = "Poor"
    CRITICAL = "Critical"


# upper bound (inclusive, ms) for each class; anything above is critical
SEVERITY_THRESHOLDS = (
    (100, PerformanceSeverity.EXCELLENT),
    (500, PerformanceSeverity.GOOD),
    (1000, PerformanceSeverity.AVERAGE),
    (3000, PerformanceSeverity.POOR),
)


def classify_severity(total_time_ms: int) -> PerformanceSeverity:
    for limit, severity in SEVERITY_THRESHOLDS:
        if total_time_ms <= limit:
            return severity
    return PerformanceSeverity.CRITICAL


@dataclass
class PerformanceMetrics:
    total_time_ms: int
    response_size_bytes: int
    status: int
    estimated_bandwidth_mbps: Optional[float] = None
    latency_factors: List[str] = field(default_factory=list)
    bottlenecks: List[str] = field(default_factory=list)

    @classmethod
    def measure(cls, total_time_ms: int, response_size: int, status: int) -> "PerformanceMetrics":
        bandwidth = None
        if total_time_ms > 0 and response_size > 0:
            bandwidth = (response_size * 8.0) / (total_time_ms / 1000.0) / 1_000_000.0

        factors: List[str] = []
        bottlenecks: List[str] = []
        if total_time_ms > 3000:
            factors.append("Very high response time")
            bottlenecks.append("Server overload or severe network issues")
        elif total_time_ms > 1500:
            factors.append("High latency connection")
            bottlenecks.append("Server processing or network issues")
        elif total_time_ms > 500:
            factors.append("Moderate latency detected")
        if response_size > LARGE_RESPONSE_BYTES:
            factors.append("Large response payload")

        return cls(
            total_time_ms=total_time_ms,
            response_size_bytes=response_size,
            status=status,
            estimated_bandwidth_mbps=bandwidth,
            latency_factors=factors,
            bottlenecks=bottlenecks,
        )


@dataclass
class PerformanceAnalysis:
    url: str
    metrics: PerformanceMetrics
    severity: PerformanceSeverity
    recommendations: List[str] = field(default_factory=list)

    def describe(self) -> str:
        m = self.metrics
        lines = [
            f"Performance Analysis for HTTP {m.status} response:",
            "",
            f"  Total Response Time: {m.total_time_ms}ms",
            f"  Response Size: {m.response_size_bytes} bytes ({m.response_size_bytes / 1024:.2f} KB)",
        ]
        if m.estimated_bandwidth_mbps is not None:
            lines.append(f"  Estimated Bandwidth: {m.estimated_bandwidth_mbps:.2f} Mbps")
        if m.total_time_ms > CRITICAL_MS:
            lines += ["", "CRITICAL: response time exceeds 6 seconds"]
        elif m.total_time_ms > WARNING_MS:
            lines += ["", "Warning: response time exceeds 3 seconds"]
        if m.latency_factors:
            lines += ["", "Latency factors:"] + [f"  - {f}" for f in m.latency_factors]
        if m.bottlenecks:
            lines += ["", "Bottlenecks:"] + [f"  - {b}" for b in m.bottlenecks]
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["severity"] = self.severity.value
        return data


def recommendations_for(metrics: PerformanceMetrics) -> List[str]:
    recs: List[str] = []
    if metrics.total_time_ms > CRITICAL_MS:
        recs += [
            "Critical: Investigate server health and network connectivity",
            "Consider implementing request timeouts shorter than 6 seconds",
            "Check for DNS resolution issues",
            "Verify target server is responding properly",
        ]
    if metrics.total_time_ms > WARNING_MS:
        recs += [
            "Implement connection pooling to reduce connection overhead",
            "Add response caching where appropriate",
        ]
    if metrics.response_size_bytes > LARGE_RESPONSE_BYTES:
        recs += [
            "Consider implementing response compression (gzip/brotli)",
            "Implement pagination for large data sets",
        ]
    if metrics.estimated_bandwidth_mbps is not None and metrics.estimated_bandwidth_mbps < 1.0:
        recs.append("Network bandwidth appears limited - consider optimizing payload size")
    recs.append("Monitor network conditions and server response times")
    return recs


class PerformanceRunner:
    """Runs timed GET iterations against one URL."""

    def __init__(self, http_client: HttpClient, sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], float] = time.monotonic):
        self.http_client = http_client
        self._sleep = sleep
        self._clock = clock

    def analyze_request(self, request: OutgoingRequest) -> PerformanceAnalysis:
        """Time one request. HttpClientError propagates."""
        start = self._clock()
        response = self.http_client.send(request)
        total_ms = int(round((self._clock() - start) * 1000))

        metrics = PerformanceMetrics.measure(
            total_ms, len(response.body.encode("utf-8")), response.status)
        return PerformanceAnalysis(
            url=request.url,
            metrics=metrics,
            severity=classify_severity(total_ms),
            recommendations=recommendations_for(metrics),
        )

    def run(self, url: str, iterations: int) -> List[PerformanceAnalysis]:
        results: List[PerformanceAnalysis] = []
        logger.info("Running performance test with %d iterations for %s", iterations, url)
        for i in range(1, iterations + 1):
            try:
                analysis = self.analyze_request(OutgoingRequest(method="GET", url=url))
            except HttpClientError as exc:
                logger.warning("Iteration %d failed: %s", i, exc)
            else:
                logger.info("Iteration %d completed: %dms", i, analysis.metrics.total_time_ms)
                results.append(analysis)
            if i < iterations:
                self._sleep(ITERATION_DELAY)
        return results


def summarize(analyses: Sequence[PerformanceAnalysis]) -> Dict[str, Any]:
    """Count, average/min/max and severity distribution of a run."""
    if not analyses:
        return {"total_requests": 0}
    times = [a.metrics.total_time_ms for a in analyses]
    distribution = {severity.value: 0 for severity in PerformanceSeverity}
    for analysis in analyses:
        distribution[analysis.severity.value] += 1
    return {
        "total_requests": len(times),
        "average_ms": sum(times) / len(times),
        "min_ms": min(times),
        "max_ms": max(times),
        "distribution": distribution,
        "critical_warning": max(times) > CRITICAL_MS,
    }


def format_summary(summary: Dict[str, Any]) -> str:
    if not summary.get("total_requests"):
        return "No performance data available"
    dist = summary["distribution"]
    lines = [
        "=== PERFORMANCE ANALYSIS SUMMARY ===",
        "",
        f"Total Requests: {summary['total_requests']}",
        f"Average Response Time: {summary['average_ms']:.0f}ms",
        f"Minimum Response Time: {summary['min_ms']}ms",
        f"Maximum Response Time: {summary['max_ms']}ms",
        "",
        "Performance Distribution:",
        f"  Excellent (<=100ms): {dist['Excellent']}",
        f"  Good (101-500ms): {dist['Good']}",
        f"  Average (501-1000ms): {dist['Average']}",
        f"  Poor (1001-3000ms): {dist['Poor']}",
        f"  Critical (>3000ms): {dist['Critical']}",
    ]
    if summary["critical_warning"]:
        lines += ["", "CRITICAL PERFORMANCE ISSUES DETECTED: some requests exceeded 6 seconds."]
    return "\n".join(lines)


def write_report(analyses: Sequence[PerformanceAnalysis], path: Union[str, Path]) -> Path:
    path = Path(path)
    path.write_text(json.dumps([a.to_dict() for a in analyses], indent=2), encoding="utf-8")
    return path
