from __future__ import annotations

import argparse
import dataclasses
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from noise_tables.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from noise_tables.errors import ProcessingError
from noise_tables.logging.init import setup_logging
from noise_tables.models.config_models import RunConfig, SummaryShape
from noise_tables.models.file_category import FileCategory
from noise_tables.models.processing_result import BatchResult, RunStatus
from noise_tables.services.worker import BatchWorker

"""CLI entrypoint.

Flow:
- Load .env, then the YAML run file (``--config`` > NOISE_TABLES_CONFIG > config/run.yml)
- Apply command line overrides on top of the file
- Run the batch on a background worker; Ctrl+C requests cooperative cancellation
- Map the run status to the exit code

The SUMMARY line is logged by the batch runner itself.
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2
EXIT_CANCELLED = 3

ENV_CONFIG = "NOISE_TABLES_CONFIG"
ENV_SOURCE_DIR = "NOISE_TABLES_SOURCE_DIR"

_STATUS_EXIT_CODES = {
    RunStatus.COMPLETED: EXIT_SUCCESS_ALL,
    RunStatus.PARTIAL: EXIT_PARTIAL_FAILURE,
    RunStatus.CANCELLED: EXIT_CANCELLED,
}


def _load_env_file(path: Path) -> None:
    """Load .env without overriding variables already set in the process."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=False)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="noise-tables",
        description="Reformat acoustic calculation-point spreadsheets and build summary outputs",
    )
    p.add_argument("directory", nargs="?", help="Source directory (overrides source_directory)")
    p.add_argument("--config", type=Path, help="YAML run file (default: config/run.yml)")
    p.add_argument("--remove-required-isolation", action="store_true", default=None,
                   help="Delete 'Required isolation' rows")
    p.add_argument("--move-barrier-isolation", action="store_true", default=None,
                   help="Move 'Barrier isolation' rows up by the barrier offset")
    p.add_argument("--correction", type=float, metavar="DB",
                   help="Insert a correction row above every excess row (0 disables)")
    p.add_argument("--point-list", action="store_true", default=None,
                   help="Build the calculation point list")
    p.add_argument("--summary-table", action="store_true", default=None,
                   help="Build the summary table")
    p.add_argument("--summary-shape", choices=[s.value for s in SummaryShape],
                   help="Summary table layout")
    p.add_argument("--category", action="append", metavar="KEY",
                   choices=[c.key for c in FileCategory],
                   help="Process only this file category (repeatable)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _resolve_config(args: argparse.Namespace) -> RunConfig:
    """Load the run file and apply command line overrides.

    An explicitly requested file must exist; a missing default file means
    built-in defaults.
    """
    explicit = args.config or (Path(os.environ[ENV_CONFIG]) if os.getenv(ENV_CONFIG) else None)
    if explicit is not None:
        cfg = load_config(explicit)
    elif DEFAULT_CONFIG_PATH.exists():
        cfg = load_config(DEFAULT_CONFIG_PATH)
    else:
        cfg = RunConfig()

    ops = cfg.operations
    if args.remove_required_isolation is not None:
        ops = dataclasses.replace(ops, remove_required_isolation=True)
    if args.move_barrier_isolation is not None:
        ops = dataclasses.replace(ops, move_barrier_isolation=True)
    if args.correction is not None:
        ops = dataclasses.replace(ops, correction_value=args.correction)

    outputs = cfg.outputs
    if args.point_list is not None:
        outputs = dataclasses.replace(outputs, point_list=True)
    if args.summary_table is not None:
        outputs = dataclasses.replace(outputs, summary_table=True)
    if args.summary_shape is not None:
        outputs = dataclasses.replace(outputs, summary_shape=SummaryShape(args.summary_shape))

    categories = cfg.categories
    if args.category:
        wanted = {FileCategory.from_key(k) for k in args.category}
        categories = tuple(c for c in FileCategory if c in wanted)

    source = args.directory or os.getenv(ENV_SOURCE_DIR) or cfg.source_directory
    return dataclasses.replace(
        cfg, source_directory=source, operations=ops, outputs=outputs, categories=categories
    )


def _run_worker(worker: BatchWorker, logger) -> BatchResult | None:
    worker.start()
    while True:
        try:
            result = worker.wait(timeout=0.2)
        except KeyboardInterrupt:
            if not worker.cancel_requested:
                logger.warning("cancellation requested, finishing current row")
                worker.cancel()
            continue
        if result is not None or not worker.is_alive():
            return result


def exit_code_for(result: BatchResult) -> int:
    return _STATUS_EXIT_CODES[result.status]


def main(argv: list[str] | None = None) -> int:
    # None only: an empty list must not pull in sys.argv (pytest flags)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    _load_env_file(Path(".env"))

    try:
        cfg = _resolve_config(args)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if not cfg.source_directory:
        logger.error("no source directory given (argument, NOISE_TABLES_SOURCE_DIR or config)")
        return EXIT_FATAL
    directory = Path(cfg.source_directory)

    worker = BatchWorker(directory, config=cfg, forward_logs=False)
    try:
        result = _run_worker(worker, logger)
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL
    except Exception as e:
        logger.error(f"unexpected error: {e}")
        return EXIT_FATAL
    if result is None:
        return EXIT_FATAL
    return exit_code_for(result)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
