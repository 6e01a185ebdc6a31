import threading
from collections import deque
from collections.abc import Iterable

from billscope.models import MetricSample

DEFAULT_CAPACITY = 20

THROUGHPUT = "throughput"
LATENCY = "latency"
ERROR_RATE = "error_rate"
DEFAULT_METRICS: "tuple[str, ...]" = (THROUGHPUT, LATENCY, ERROR_RATE)


class MetricWindow:
    """
    MetricWindow: Is a thread-safe, fixed-capacity sliding window
    of the most recent samples of one metric.

    Samples are kept in append order, which is authoritative even
    when timestamps go backwards. Once the window holds more than
    capacity samples the oldest are evicted first. It bounds the
    number of samples, not the time span they cover.
    """

    def __init__(self, capacity: "int" = DEFAULT_CAPACITY) -> "None":
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._lock: "threading.Lock" = threading.Lock()
        self._samples: "deque[MetricSample]" = deque()

    @property
    def capacity(self) -> "int":
        return self._capacity

    def __len__(self) -> "int":
        with self._lock:
            return len(self._samples)

    def is_empty(self) -> "bool":
        return len(self) == 0

    def append(self, sample: "MetricSample") -> "tuple[MetricSample, ...]":
        """
        appends sample at the end, evicts from the front until the
        window fits its capacity and returns the resulting window.
        """
        # append and copy under one lock so the returned window
        # is never torn by a concurrent append
        with self._lock:
            self._samples.append(sample)
            while len(self._samples) > self._capacity:
                self._samples.popleft()
            return tuple(self._samples)

    def latest(self) -> "MetricSample | None":
        """
        returns the most recently appended sample, or None when empty.
        """
        with self._lock:
            if not self._samples:
                return None
            return self._samples[-1]

    def snapshot(self) -> "tuple[MetricSample, ...]":
        """
        returns the window contents oldest first. The tuple is a copy.
        """
        with self._lock:
            return tuple(self._samples)


class MetricStreams:
    """
    owns one MetricWindow per metric name.
    """

    def __init__(
        self,
        names: "Iterable[str]" = DEFAULT_METRICS,
        capacity: "int" = DEFAULT_CAPACITY,
    ) -> "None":
        self._windows: "dict[str, MetricWindow]" = {
            name: MetricWindow(capacity) for name in names
        }

    @property
    def names(self) -> "tuple[str, ...]":
        return tuple(self._windows)

    def __contains__(self, name: "object") -> "bool":
        return name in self._windows

    def window(self, name: "str") -> "MetricWindow":
        return self._windows[name]

    def append(self, name: "str", sample: "MetricSample") -> "tuple[MetricSample, ...]":
        return self._windows[name].append(sample)

    def latest(self, name: "str") -> "MetricSample | None":
        return self._windows[name].latest()

    def snapshot(self, name: "str") -> "tuple[MetricSample, ...]":
        return self._windows[name].snapshot()

    def snapshots(self) -> "dict[str, tuple[MetricSample, ...]]":
        return {name: w.snapshot() for name, w in self._windows.items()}
