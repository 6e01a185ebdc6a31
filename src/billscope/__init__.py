from billscope.buffer import MetricStreams, MetricWindow
from billscope.models import MetricSample, PivotedSeriesRow, UsageRecord
from billscope.pivot import DuplicatePolicy, pivot

__all__ = [
    "DuplicatePolicy",
    "MetricSample",
    "MetricStreams",
    "MetricWindow",
    "PivotedSeriesRow",
    "UsageRecord",
    "pivot",
]
