from __future__ import annotations

import argparse
import json
import logging

from tinvest_portfolio.data_pipeline.instruments import InstrumentResolver, build_cache
from tinvest_portfolio.data_pipeline.invest_api import InvestApiClient, InvestApiError
from tinvest_portfolio.data_pipeline.report import sync_positions
from tinvest_portfolio.data_pipeline.table_sink import CsvTableSink
from tinvest_portfolio.logging_config import configure_logging
from tinvest_portfolio.settings import Settings, get_settings


logger = logging.getLogger(__name__)


def build_client(settings: Settings) -> InvestApiClient:
    return InvestApiClient(
        settings.token,
        base_urls=settings.base_urls,
        timeout=settings.request_timeout_seconds,
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sync T-Invest positions into aggregated tables.")
    parser.add_argument("--out-dir", help="Directory for the CSV tables (default: settings.output_dir).")
    parser.add_argument("--check-auth", action="store_true", help="Call GetInfo and print the response.")
    parser.add_argument("--drop-outputs", action="store_true", help="Remove every previously written table.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)

    sink = CsvTableSink(args.out_dir or settings.output_dir)
    if args.drop_outputs:
        sink.clear()
        return 0

    try:
        with build_client(settings) as client:
            if args.check_auth:
                print(json.dumps(client.get_info(), indent=2, ensure_ascii=False))
                return 0

            resolver = InstrumentResolver(
                client,
                build_cache(settings.cache_ttl_seconds, settings.cache_maxsize),
            )
            report = sync_positions(
                client,
                resolver,
                sink,
                key_field=settings.aggregate_by,
                currency=settings.reporting_currency,
                pause_seconds=settings.lookup_pause_seconds,
            )
    except InvestApiError as exc:
        logger.error("Sync aborted: %s", exc)
        return 1

    print(report.summary.to_string(index=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
