"""
Replay and performance analysis over the HTTP client.
"""

from .performance import (
    PerformanceAnalysis,
    PerformanceMetrics,
    PerformanceRunner,
    PerformanceSeverity,
    classify_severity,
    format_summary,
    summarize,
    write_report,
)
from .replay import ReplayAttempt, ReplayEngine, ReplaySummary

__all__ = [
    'ReplayEngine',
    'ReplayAttempt',
    'ReplaySummary',
    'PerformanceRunner',
    'PerformanceAnalysis',
    'PerformanceMetrics',
    'PerformanceSeverity',
    'classify_severity',
    'summarize',
    'format_summary',
    'write_report',
]
