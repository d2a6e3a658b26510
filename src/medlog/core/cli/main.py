"""Report entry point, ``medlog-report EXPORT.json --user U``.

Runs one or all analytics reports over a JSON export and prints the results
as a single JSON document on stdout.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Sequence

from medlog.core.config.settings import get_settings
from medlog.domains.adherence.connectors.json_export import JsonExportEventSource
from medlog.domains.adherence.domain_logic.calendar import PERIOD_DAYS, PERIOD_MONTHS, parse_timestamp
from medlog.domains.adherence.domain_logic.event_models import DateWindow
from medlog.domains.adherence.insights.formatter import InsightFormatter
from medlog.domains.adherence.insights.generator import create_insight_generator
from medlog.domains.adherence.services.analytics_service import AdherenceAnalyticsService

logger = logging.getLogger(__name__)

REPORTS = ("adherence", "recommendations", "consumption", "efficacy", "correlations", "health", "all")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="medlog-report",
        description="Medication adherence analytics over a JSON export.",
    )
    parser.add_argument("export", nargs="?", default=None, help="Path to the JSON export (default: JSON_EXPORT_PATH)")
    parser.add_argument("--user", required=True, help="User id whose events are analyzed")
    parser.add_argument("--medication", default=None, help="Restrict to one medication id")
    parser.add_argument(
        "--period",
        default="30days",
        choices=sorted(PERIOD_DAYS) + sorted(PERIOD_MONTHS),
        help="Look-back period ending at --now (ignored when --start is given)",
    )
    parser.add_argument("--start", default=None, help="Window start, ISO-8601")
    parser.add_argument("--end", default=None, help="Window end, ISO-8601 (default: --now)")
    parser.add_argument("--now", default=None, help="Reference time, ISO-8601 (default: current UTC time)")
    parser.add_argument("--report", default="all", choices=REPORTS)
    parser.add_argument("--privacy-mode", default=None, choices=["strict", "standard", "explicit"])
    return parser


def _window(args: argparse.Namespace, now: datetime) -> DateWindow:
    if args.start:
        end = parse_timestamp(args.end) if args.end else now
        return DateWindow(start=parse_timestamp(args.start), end=end)
    return DateWindow.for_period(args.period, now)


async def collect_reports(
    service: AdherenceAnalyticsService,
    report: str,
    user_id: str,
    window: DateWindow,
    now: datetime,
    medication_id: str | None = None,
) -> dict[str, Any]:
    """Run the requested report(s) and return them keyed by report name."""
    wanted = REPORTS[:-1] if report == "all" else (report,)
    results: dict[str, Any] = {}

    if "adherence" in wanted:
        results["adherence"] = await service.adherence_analytics(user_id, window, medication_id, now)
    if "recommendations" in wanted:
        results["recommendations"] = await service.recommendations(user_id, window, medication_id, now)
    if "consumption" in wanted:
        results["consumption"] = await service.consumption_patterns(user_id, window, medication_id)
    if "efficacy" in wanted:
        if medication_id:
            medication_ids = [medication_id]
        else:
            medication_ids = sorted(await service.event_source.get_medication_names(user_id))
        results["efficacy"] = {
            mid: await service.efficacy_summary(user_id, mid, window) for mid in medication_ids
        }
    if "correlations" in wanted:
        results["correlations"] = await service.symptom_correlations(user_id, window)
    if "health" in wanted:
        results["health"] = await service.health_correlations(user_id, window, medication_id)
    return results


def _to_json(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, dict):
        return {k: _to_json(v) for k, v in value.items()}
    return value


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.medlog_log_level.upper(), logging.INFO))

    export_path = args.export or settings.json_export_path
    source = JsonExportEventSource(export_path)
    if not source.is_connected():
        print(f"Export file not found: {export_path!r}", file=sys.stderr)
        return 2

    now = parse_timestamp(args.now) if args.now else datetime.now(timezone.utc)
    window = _window(args, now)
    formatter = InsightFormatter(
        generator=create_insight_generator(settings),
        privacy_mode=args.privacy_mode or settings.default_privacy_mode,
    )
    service = AdherenceAnalyticsService(source, formatter, settings.thresholds())

    logger.info("Running %s report(s) for window %s .. %s", args.report, window.start, window.end)
    results = asyncio.run(collect_reports(service, args.report, args.user, window, now, args.medication))

    document = {
        "user_id": args.user,
        "window": window.to_dict(),
        "provenance": source.get_provenance(),
        "reports": _to_json(results),
    }
    print(json.dumps(document, indent=2, default=str))
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
