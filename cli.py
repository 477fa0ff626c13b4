"""Storefront-Analytics CLI.

Every command reads a JSON file holding ``orders``, ``customers``,
``products`` and ``expenses`` arrays (a bare array is read as orders).

Usage:
    python -m cli report store.json --start 2026-01-01 --end 2026-01-31
    python -m cli sales store.json --days 7
    python -m cli basket store.json --min-support 3 --top 5
    python -m cli segments store.json
    python -m cli velocity store.json --period 30 --low-stock 14
    python -m cli forecast store.json --forecast-days 7
    python -m cli export store.json --type orders --format csv
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import date
from pathlib import Path

from app.config import get_settings
from app.models import DateWindow
from app.services.analytics import AnalyticsEngine, Dataset, records_to_dicts, to_primitive
from app.services.export import ExportService
from app.services.normalize import parse_datetime
from app.services.period import last_n_days
from app.services.velocity import low_stock


def timestamp(value: str):
    """argparse type for ISO 8601 timestamps; naive values are read as UTC."""
    dt = parse_datetime(value)
    if dt is None:
        raise argparse.ArgumentTypeError(f"invalid timestamp: {value!r}")
    return dt


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="storefront-cli",
        description="Storefront analytics CLI",
    )
    sub = parser.add_subparsers(dest="command", help="Command")

    def add(name: str, help_text: str) -> argparse.ArgumentParser:
        p = sub.add_parser(name, help=help_text)
        p.add_argument("file", help="Store data JSON file")
        p.add_argument("--start", type=date.fromisoformat, help="Window start (YYYY-MM-DD)")
        p.add_argument("--end", type=date.fromisoformat, help="Window end (YYYY-MM-DD)")
        p.add_argument("--days", type=int, default=settings.default_window_days,
                       help="Window length when --start is omitted")
        p.add_argument("--now", type=timestamp, help="Reference timestamp for recency (ISO 8601)")
        return p

    # ── Reports ──────────────────────────────────────────
    report = add("report", "Full dashboard report")
    report.add_argument("--compare", choices=["previous", "year"], default=settings.compare_mode)
    report.add_argument("--top", type=int, default=settings.basket_top_n, help="Top N pairs")

    add("sales", "Sales summary")

    basket = add("basket", "Frequently bought together")
    basket.add_argument("--min-support", type=int, default=settings.basket_min_support)
    basket.add_argument("--top", type=int, default=settings.basket_top_n, help="Top N pairs")

    add("segments", "RFM customer segments")

    velocity = add("velocity", "Product sales velocity")
    velocity.add_argument("--period", type=int, default=settings.velocity_period_days)
    velocity.add_argument("--low-stock", type=int, default=None,
                          help="Only products selling out within N days")

    forecast = add("forecast", "Revenue forecast")
    forecast.add_argument("--forecast-days", type=int, default=settings.forecast_days)

    # ── Export ───────────────────────────────────────────
    export = add("export", "Export rows")
    export.add_argument("--type", choices=["sales", "orders", "customers", "products"],
                        default="sales")
    export.add_argument("--format", choices=["csv", "json", "tsv"], default="csv")
    export.add_argument("--output", "-o", help="Output file path")

    return parser


def main(argv: list[str] | None = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    data = load_dataset(args.file)
    try:
        window = resolve_window(args)
        handlers[args.command](args, data, window)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)


# ── Helpers ─────────────────────────────────────────────

def load_dataset(file: str) -> Dataset:
    path = Path(file)
    if not path.exists():
        print(f"File not found: {file}")
        sys.exit(1)
    try:
        raw = json.loads(path.read_text(encoding="utf-8-sig"))
    except json.JSONDecodeError as e:
        print(f"Invalid JSON in {file}: {e}")
        sys.exit(1)
    if isinstance(raw, list):
        raw = {"orders": raw}
    return Dataset.from_dict(raw)


def resolve_window(args) -> DateWindow:
    if args.start is None:
        return last_n_days(args.days, args.end)
    return DateWindow(start=args.start, end=args.end or date.today())


def emit(payload):
    print(json.dumps(payload, indent=2, ensure_ascii=False))


# ── Command Handlers ────────────────────────────────────

engine = AnalyticsEngine()


def handle_report(args, data: Dataset, window: DateWindow):
    report = engine.generate_report(
        data.orders, data.customers, data.products, data.expenses,
        window,
        compare=args.compare,
        now=args.now,
        top_pairs=args.top,
    )
    emit(engine.report_to_dict(report))


def handle_sales(args, data: Dataset, window: DateWindow):
    summary = engine.sales.summarize(data.orders, window)
    result = to_primitive(summary)
    result["top_products"] = records_to_dicts(summary.top_products)
    emit(result)


def handle_basket(args, data: Dataset, window: DateWindow):
    pairs = engine.basket.analyze(data.orders, args.min_support, limit=args.top)
    if not pairs:
        print("No product pairs meet the minimum support.")
        return
    print(f"{'Product 1':<30} {'Product 2':<30} {'Freq':>5} {'Conf %':>8} {'Lift':>6}")
    print("-" * 83)
    for p in pairs:
        print(
            f"{p.product1.name[:30]:<30} {p.product2.name[:30]:<30} "
            f"{p.frequency:>5} {p.confidence:>8} {p.lift:>6}"
        )


def handle_segments(args, data: Dataset, window: DateWindow):
    emit(records_to_dicts(engine.segmenter.segment(data.orders, now=args.now)))


def handle_velocity(args, data: Dataset, window: DateWindow):
    results = engine.velocity.analyze(
        data.orders, data.products, args.period, now=args.now,
    )
    if args.low_stock is not None:
        results = low_stock(results, args.low_stock)
    emit(records_to_dicts(results))


def handle_forecast(args, data: Dataset, window: DateWindow):
    summary = engine.sales.summarize(data.orders, window)
    points = engine.forecaster.forecast(summary.by_day, args.forecast_days)
    if not points:
        print("Not enough daily history to forecast (need at least 7 days with sales).")
        return
    emit(records_to_dicts(points))


def handle_export(args, data: Dataset, window: DateWindow):
    rows = engine.export_rows(
        args.type, data.orders, data.customers, data.products, window,
        now=args.now,
    )
    if args.format == "csv":
        content = ExportService.to_csv(rows)
    elif args.format == "tsv":
        content = ExportService.to_tsv(rows)
    else:
        content = ExportService.to_json(rows, pretty=True)

    if args.output:
        Path(args.output).write_text(content, encoding="utf-8")
        print(f"Exported {len(rows)} rows to {args.output}")
    else:
        print(content)


handlers = {
    "report": handle_report,
    "sales": handle_sales,
    "basket": handle_basket,
    "segments": handle_segments,
    "velocity": handle_velocity,
    "forecast": handle_forecast,
    "export": handle_export,
}


if __name__ == "__main__":
    main()
