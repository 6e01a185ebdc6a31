import argparse
import asyncio
import json
import signal
import sys
from datetime import date, datetime
from decimal import Decimal
from typing import Any

import structlog
from prometheus_client import start_http_server

from billscope.buffer import MetricStreams
from billscope.cli import parse_args
from billscope.client.analytics import AnalyticsClient
from billscope.client.billing import BillingClient
from billscope.config import Config
from billscope.dashboard import Dashboard, QueryResult
from billscope.logging import setup_logging
from billscope.metrics import DashboardMetrics
from billscope.pivot import DuplicatePolicy
from billscope.sampler import SampleProducer, SimulatedSampleSource

logger = structlog.get_logger()


def _parse_listen_address(addr: "str") -> "tuple[str, int]":
    """
    parses listen address in format ':9186' or '0.0.0.0:9186'.
    """
    if addr.startswith(":"):
        return ("0.0.0.0", int(addr[1:]))

    host, port = addr.rsplit(":", 1)
    return (host, int(port))


def _json_default(obj: "Any") -> "Any":
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    raise TypeError(f"not JSON serializable: {type(obj).__name__}")


def _emit(payload: "Any") -> "None":
    json.dump(payload, sys.stdout, default=_json_default, indent=2)
    sys.stdout.write("\n")


def _emit_result(result: "QueryResult[Any]", render: "Any") -> "int":
    if not result.available:
        _emit({"available": False, "error": result.error})
        return 1

    _emit({"available": True, "data": render(result.data)})
    return 0


async def _stream(config: "Config", args: "argparse.Namespace", metrics: "DashboardMetrics") -> "int":
    streams = MetricStreams(capacity=config.window_size)
    producer = SampleProducer(
        SimulatedSampleSource(),
        streams,
        metrics,
        interval_seconds=config.sample_interval,
    )

    loop = asyncio.get_running_loop()
    # for SIGINT and SIGTERM, signal the producer
    # to stop gracefully
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, producer.stop)

    async def _print_latest() -> "None":
        while True:
            await asyncio.sleep(config.sample_interval)
            latest: "dict[str, float | None]" = {}
            for name in streams.names:
                sample = streams.latest(name)
                latest[name] = sample.value if sample else None
            _emit(latest)

    printer = asyncio.create_task(_print_latest())
    try:
        await producer.run(max_cycles=args.cycles)
    finally:
        printer.cancel()
        logger.info("shutting_down")
        await producer.close()

    _emit({name: [s.value for s in window] for name, window in streams.snapshots().items()})
    logger.info("shutdown_complete")
    return 0


async def _query(config: "Config", args: "argparse.Namespace", metrics: "DashboardMetrics") -> "int":
    dashboard = Dashboard(
        BillingClient(config.billing_url),
        AnalyticsClient(config.analytics_url),
        metrics,
    )
    try:
        if args.command == "usage":
            query = dashboard.usage_quantity_series if args.quantity else dashboard.usage_series
            result = await query(
                config.customer_id,
                args.start,
                args.end,
                sort_by_date=args.sort,
                duplicates=DuplicatePolicy.SUM if args.sum else DuplicatePolicy.LAST_WRITE_WINS,
            )
            return _emit_result(result, lambda rows: [r.as_dict() for r in rows])

        if args.command == "billing":
            result = await dashboard.billing_records(config.customer_id, args.page, args.size)
            return _emit_result(
                result,
                lambda page: {
                    "content": [
                        {
                            "id": r.id,
                            "invoice_number": r.invoice_number,
                            "customer_id": r.customer_id,
                            "customer_name": r.customer_name,
                            "billing_period_start": r.billing_period_start,
                            "billing_period_end": r.billing_period_end,
                            "total_amount": r.total_amount,
                            "status": r.status.value,
                            "due_date": r.due_date,
                            "paid_date": r.paid_date,
                        }
                        for r in page.content
                    ],
                    "total_elements": page.total_elements,
                },
            )

        result = await dashboard.cost_trend(args.days)
        return _emit_result(
            result,
            lambda trend: [{"date": label, "cost": value} for label, value in trend.points()],
        )
    finally:
        await dashboard.close()


def main(argv: "list[str] | None" = None) -> "None":
    config, args = parse_args(argv)
    setup_logging(config.log_level)

    metrics = DashboardMetrics()
    if config.listen_address:
        host, port = _parse_listen_address(config.listen_address)
        start_http_server(port, addr=host)
        logger.info("metrics_server_started", host=host, port=port)

    if args.command == "stream":
        code = asyncio.run(_stream(config, args, metrics))
    else:
        code = asyncio.run(_query(config, args, metrics))
    raise SystemExit(code)


if __name__ == "__main__":
    main()
