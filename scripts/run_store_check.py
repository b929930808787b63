"""
Run a store check from CLI.
"""

from __future__ import annotations

import argparse
import logging
import os

from storecheck.config import FIELD_MAPPING_PRESETS
from storecheck.schemas.store_check import RunMetricsResponse, StoreCheckSummaryResponse
from storecheck.services.store_check_service import get_store_check_service
from storecheck.tabular.csv_input import StoreCheckInputError

logger = logging.getLogger("storecheck.cli")


def _configure_logging() -> None:
    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Classify store URLs as Shopify / active / password protected."
    )
    parser.add_argument("--input", dest="input_path", default=None, help="Input CSV path.")
    parser.add_argument("--output", dest="output_path", default=None, help="Report CSV path.")
    parser.add_argument(
        "--schema",
        choices=sorted(FIELD_MAPPING_PRESETS),
        default=None,
        help="Input column preset.",
    )
    parser.add_argument("--id-field", dest="id_field", default=None)
    parser.add_argument("--url-field", dest="url_field", default=None)
    parser.add_argument("--concurrency", type=int, default=None)
    parser.add_argument("--strategy", choices=["gate", "batch"], default=None)
    args = parser.parse_args()

    _configure_logging()
    if args.concurrency is not None and args.concurrency < 1:
        parser.error("--concurrency must be at least 1")

    service = get_store_check_service().with_overrides(
        input_path=args.input_path,
        output_path=args.output_path,
        schema=args.schema,
        id_field=args.id_field,
        url_field=args.url_field,
        concurrency=args.concurrency,
        strategy=args.strategy,
    )

    try:
        outcome = service.run()
    except (StoreCheckInputError, FileNotFoundError) as exc:
        logger.error("Store check aborted: %s", exc)
        return 1

    summary = StoreCheckSummaryResponse(
        output_path=str(outcome.output_path) if outcome.output_path else None,
        concurrency=service.settings.concurrency,
        strategy=service.settings.strategy,
        peak_in_flight=outcome.peak_in_flight,
        metrics=RunMetricsResponse.from_metrics(outcome.report.metrics),
    )
    print(summary.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
