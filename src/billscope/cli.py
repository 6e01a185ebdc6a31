import argparse
from datetime import date, timedelta

from billscope.config import Config


def _positive_int(raw: "str") -> "int":
    value = int(raw)
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {raw}")
    return value


def parse_args(
    argv: "list[str] | None" = None,
    today: "date | None" = None,
) -> "tuple[Config, argparse.Namespace]":
    """
    parses the command line on top of the environment config.
    Returns the config and the command namespace.
    """
    today = today or date.today()
    parser = argparse.ArgumentParser(
        prog="billscope",
        description="Billing and usage dashboard data core",
    )
    parser.add_argument(
        "--web.listen-address",
        dest="listen_address",
        default=":9186",
        help="Address for the Prometheus exporter, empty to disable (default: :9186)",
    )
    parser.add_argument(
        "--window.size",
        dest="window_size",
        type=_positive_int,
        default=20,
        help="Samples kept per live metric (default: 20)",
    )
    parser.add_argument(
        "--sample.interval",
        dest="sample_interval",
        type=float,
        default=2.0,
        help="Seconds between live samples (default: 2)",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: info)",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    stream = sub.add_parser("stream", help="Stream live metrics")
    stream.add_argument(
        "--cycles",
        type=_positive_int,
        default=None,
        help="Stop after this many producer cycles (default: run until interrupted)",
    )

    usage = sub.add_parser("usage", help="Print the pivoted daily usage series")
    usage.add_argument("--customer", dest="customer_id", default=None)
    usage.add_argument(
        "--start",
        type=date.fromisoformat,
        default=today - timedelta(days=30),
        help="First day, YYYY-MM-DD (default: 30 days ago)",
    )
    usage.add_argument(
        "--end",
        type=date.fromisoformat,
        default=today,
        help="Last day, YYYY-MM-DD (default: today)",
    )
    usage.add_argument("--sort", action="store_true", help="Sort rows by date")
    usage.add_argument(
        "--sum",
        action="store_true",
        help="Sum duplicate date/resource rows instead of keeping the last",
    )
    usage.add_argument(
        "--quantity",
        action="store_true",
        help="Pivot usage quantity instead of cost",
    )

    billing = sub.add_parser("billing", help="Print a page of billing records")
    billing.add_argument("--customer", dest="customer_id", default=None)
    billing.add_argument("--page", type=int, default=0)
    billing.add_argument("--size", type=_positive_int, default=10)

    trend = sub.add_parser("trend", help="Print the daily cost trend")
    trend.add_argument("--days", type=_positive_int, default=30)

    args = parser.parse_args(argv)
    if args.command == "billing" and args.page < 0:
        parser.error("--page must be >= 0")

    config = Config.from_env()
    config.listen_address = args.listen_address
    config.window_size = args.window_size
    config.sample_interval = args.sample_interval
    config.log_level = args.log_level
    if getattr(args, "customer_id", None):
        config.customer_id = args.customer_id
    return config, args
