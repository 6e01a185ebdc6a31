import asyncio
import math
import random
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from numbers import Real
from typing import Any, Protocol

import structlog

from billscope.buffer import ERROR_RATE, LATENCY, THROUGHPUT, MetricStreams
from billscope.exceptions import MalformedSample
from billscope.metrics import DashboardMetrics
from billscope.models import MetricSample

logger = structlog.get_logger()

DEFAULT_INTERVAL_SECONDS = 2.0


def _utcnow() -> "datetime":
    return datetime.now(timezone.utc)


class SampleSource(Protocol):
    """
    SampleSource is anything that can be polled for the current
    value of each live metric. read() returns raw values keyed by
    metric name; validation happens in the producer.
    """

    @property
    def name(self) -> "str": ...

    async def read(self) -> "Mapping[str, Any]": ...

    async def close(self) -> "None": ...


class SimulatedSampleSource:
    """
    SimulatedSampleSource produces synthetic throughput (events/min),
    latency (ms) and error rate (%) readings in the same ranges the
    live dashboard demo uses.
    """

    def __init__(self, rng: "random.Random | None" = None) -> "None":
        self._rng = rng or random.Random()

    @property
    def name(self) -> "str":
        return "simulated"

    async def read(self) -> "dict[str, float]":
        return {
            THROUGHPUT: self._rng.randrange(95000, 100000),
            LATENCY: self._rng.randrange(100, 150),
            ERROR_RATE: self._rng.random() * 0.5,
        }

    async def close(self) -> "None":
        pass


def validate_sample(metric: "str", timestamp: "Any", value: "Any") -> "MetricSample":
    """
    builds a MetricSample, rejecting anything the windows shouldn't
    hold: a missing timestamp, a non-numeric value (bool included)
    or a non-finite one.
    """
    if not isinstance(timestamp, datetime):
        raise MalformedSample(f"{metric}: missing or invalid timestamp {timestamp!r}")
    if isinstance(value, bool) or not isinstance(value, Real):
        raise MalformedSample(f"{metric}: value is not a number: {value!r}")

    value = float(value)
    if not math.isfinite(value):
        raise MalformedSample(f"{metric}: value is not finite: {value!r}")

    return MetricSample(timestamp=timestamp, value=value)


class SampleProducer:
    """
    SampleProducer polls a SampleSource at a fixed interval and
    appends what it reads to the matching MetricWindow. It replaces
    an ambient timer: the loop has an explicit run()/stop()
    lifecycle, and produce_once() can drive the windows with
    synthetic data without any wall-clock waiting.
    """

    def __init__(
        self,
        source: "SampleSource",
        streams: "MetricStreams",
        metrics: "DashboardMetrics",
        interval_seconds: "float" = DEFAULT_INTERVAL_SECONDS,
        clock: "Callable[[], datetime]" = _utcnow,
    ) -> "None":
        self._source = source
        self._streams = streams
        self._metrics = metrics
        self._interval = interval_seconds
        self._clock = clock
        self._stop_event: "asyncio.Event" = asyncio.Event()

    def stop(self) -> "None":
        """
        signals the loop to stop after the current cycle. The windows
        keep whatever they hold.
        """
        self._stop_event.set()

    async def close(self) -> "None":
        await self._source.close()

    async def run(self, max_cycles: "int | None" = None) -> "None":
        """
        runs the production loop until stop() is called, or for
        max_cycles cycles when given.
        """
        cycles = 0
        while not self._stop_event.is_set():
            await self.produce_once()
            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass

    async def produce_once(self) -> "int":
        """
        reads one batch from the source and appends every valid value.
        Returns the number of samples appended.
        """
        try:
            batch = await self._source.read()
        except Exception:
            # no partial data: skip the whole cycle
            logger.exception("sample_source_error", source=self._source.name)
            self._metrics.inc_query_error(self._source.name, "samples")
            return 0

        timestamp = self._clock()
        appended = 0

        for metric, raw in batch.items():
            if metric not in self._streams:
                logger.warning("unknown_metric", source=self._source.name, metric=metric)
                self._metrics.inc_sample_rejected(metric)
                continue

            try:
                sample = validate_sample(metric, timestamp, raw)
            except MalformedSample as e:
                logger.warning("sample_rejected", metric=metric, error=str(e))
                self._metrics.inc_sample_rejected(metric)
                continue

            self._streams.append(metric, sample)
            self._metrics.record_sample(metric, sample.value)
            appended += 1

        logger.debug("producer_cycle_end", source=self._source.name, appended=appended)
        return appended
