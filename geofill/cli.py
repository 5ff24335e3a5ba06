"""CLI entrypoint for the batch geocoding enrichment engine."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from geofill.common.config_loader import EngineConfig, load_config
from geofill.common.constants import (
    COMMANDS,
    DEFAULT_CONFIG_PATH,
    EXIT_HARD_FAIL,
    EXIT_PARTIAL,
    EXIT_SUCCESS,
)
from geofill.common.errors import GeofillError
from geofill.common.ids import generate_run_id
from geofill.common.logging import build_logger, log_event
from geofill.common.models import ProgressSnapshot, RunState
from geofill.engine.client import OracleClient
from geofill.engine.controller import EnrichmentController
from geofill.engine.store import RecordStore
from geofill.oracle.base import Oracle
from geofill.oracle.gemini import GeminiOracle
from geofill.pipeline.export import write_records
from geofill.pipeline.load import load_records
from geofill.pipeline.reports import run_status, write_run_report

JOIN_POLL_SECONDS = 0.5


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=COMMANDS)
    parser.add_argument("--input", required=True)
    parser.add_argument("--output", default=None)
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH)
    parser.add_argument("--overlay-config", default=None)
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--data-dir", default="./data")
    parser.add_argument("--batch-size", type=int, default=None)
    parser.add_argument("--inter-batch-delay-ms", type=int, default=None)
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARN", "ERROR"])
    return parser.parse_args(argv)


def default_output_path(input_path: Path) -> Path:
    return input_path.with_name(f"{input_path.stem}_with_latlng{input_path.suffix or '.json'}")


def apply_overrides(config: EngineConfig, args: argparse.Namespace) -> EngineConfig:
    batching = config.batching
    if args.batch_size is not None:
        batching = replace(batching, batch_size=args.batch_size)
    if args.inter_batch_delay_ms is not None:
        batching = replace(batching, inter_batch_delay=args.inter_batch_delay_ms / 1000.0)
    return replace(config, batching=batching)


def build_oracle(config: EngineConfig) -> Oracle:
    return GeminiOracle(config.oracle)


def close_oracle(oracle: Oracle) -> None:
    close = getattr(oracle, "close", None)
    if close is not None:
        close()


def wait_for_run(controller: EnrichmentController, logger: logging.Logger) -> ProgressSnapshot:
    while True:
        try:
            if controller.join(timeout=JOIN_POLL_SECONDS):
                return controller.snapshot()
        except KeyboardInterrupt:
            if controller.pause():
                log_event(logger, "interrupt received, pausing after current batch", event="RUN_PAUSE_REQUESTED")


def exit_code_for(snapshot: ProgressSnapshot, missing_after: int) -> int:
    status = run_status(snapshot, missing_after)
    if status == "error":
        return EXIT_HARD_FAIL
    if status == "partial":
        return EXIT_PARTIAL
    return EXIT_SUCCESS


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    data_dir = Path(args.data_dir)
    input_path = Path(args.input)
    output_path = Path(args.output) if args.output else default_output_path(input_path)

    logger = build_logger(run_id, log_dir=data_dir / "logs", level=args.log_level)
    config = load_config(
        Path(args.config),
        overlay_path=Path(args.overlay_config) if args.overlay_config else None,
    )
    config = apply_overrides(config, args)
    store = RecordStore(load_records(input_path, config.fields))
    counts_before = store.counts()

    if args.command == "stats":
        print(json.dumps(counts_before, sort_keys=True))
        return EXIT_SUCCESS

    oracle = build_oracle(config)
    try:
        controller = EnrichmentController(
            store,
            OracleClient(oracle, config.bbox, config.retry),
            batch_size=config.batching.batch_size,
            inter_batch_delay=config.batching.inter_batch_delay,
        )
        if controller.start():
            snapshot = wait_for_run(controller, logger)
        else:
            log_event(logger, "nothing to enrich", event="RUN_SKIPPED", state=RunState.IDLE.value, total=0)
            snapshot = controller.snapshot()
    finally:
        close_oracle(oracle)

    write_records(output_path, store.records(), config.fields)
    counts_after = store.counts()
    write_run_report(
        data_dir / "reports" / f"{run_id}.json",
        run_id=run_id,
        snapshot=snapshot,
        counts_before=counts_before,
        counts_after=counts_after,
        failure_reasons=controller.failure_reasons(),
        error=controller.last_error,
    )
    log_event(
        logger,
        f"wrote {output_path}",
        event="EXPORT",
        state=snapshot.state.value,
        processed=snapshot.processed,
        total=snapshot.total,
        successful=snapshot.successful,
    )
    return exit_code_for(snapshot, counts_after["missing"])


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    try:
        return run_command(args)
    except GeofillError as exc:
        print(f"{exc.error_code}: {exc}", file=sys.stderr)
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
