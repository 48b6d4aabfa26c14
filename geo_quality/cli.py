# ==============================================
# CLI — Command Line Entry Point
# ==============================================
#
# PURPOSE:
#   Command-line interface to run the analysis.
#
# COMMANDS:
# ---------
# 1. Analyse one dataset:
#    python -m geo_quality.cli analyze buildings_2023 --records 10000
#
# 2. Analyse every registered dataset:
#    python -m geo_quality.cli analyze-all
#
# 3. Run an analysis task (progress goes to PROGRESS_PATH):
#    python -m geo_quality.cli task 65f1c0ffee0000000000beef
#
# 4. Analyse a JSON export without a database:
#    python -m geo_quality.cli analyze-file export.json --schema fields.json
#
# Exit codes: 0 ok, 1 store unavailable or query rejected, 2 configuration error.
#
# ==============================================

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from geo_quality.analyzer import DatasetAnalyzer
from geo_quality.config import AppConfig, load_config, load_dictionaries
from geo_quality.context import build_context
from geo_quality.errors import ConfigurationError, StoreQueryError, StoreUnavailable
from geo_quality.persistence.progress import ProgressReporter
from geo_quality.storage.memory_store import MemoryStore
from geo_quality.storage.mongo_client import MongoStore

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger for command-line runs."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler()],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="geo-quality",
        description="Geospatial and address quality analysis of registered datasets",
    )
    parser.add_argument("--env", type=Path, default=None, help="Path to a .env file")
    parser.add_argument("--log-level", default=None, help="Overrides LOG_LEVEL (default INFO)")
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Analyse one dataset")
    analyze.add_argument("dataset")
    analyze.add_argument("--records", type=int, default=None, help="Sampling cap (<= 0: no cap)")

    analyze_all = sub.add_parser("analyze-all", help="Analyse every registered dataset")
    analyze_all.add_argument("--records", type=int, default=None, help="Sampling cap (<= 0: no cap)")

    task = sub.add_parser("task", help="Run an analysis task by id")
    task.add_argument("task_id")

    analyze_file = sub.add_parser("analyze-file", help="Analyse a JSON export in memory")
    analyze_file.add_argument("path", type=Path, help="JSON array of documents")
    analyze_file.add_argument("--schema", type=Path, required=True, help="Field schema JSON")
    analyze_file.add_argument("--records", type=int, default=None, help="Sampling cap (<= 0: no cap)")
    analyze_file.add_argument("--dictionaries", default=None, help="Overrides DICTIONARIES_PATH")

    return parser


def read_json(path: Path) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"not valid JSON: {path}: {e}") from e


def read_schema(path: Path) -> List[Dict[str, Any]]:
    """Accepts a bare field list or a structure document with "fields"."""
    raw = read_json(path)
    if isinstance(raw, dict):
        raw = raw.get("fields")
    if not isinstance(raw, list):
        raise ConfigurationError(f"schema must be a list of fields: {path}")
    return raw


def run_file(config: AppConfig, args: argparse.Namespace) -> Dict[str, Any]:
    documents = read_json(args.path)
    if not isinstance(documents, list):
        raise ConfigurationError(f"export must be a JSON array of documents: {args.path}")

    dataset = args.path.stem
    store = MemoryStore({dataset: documents}, schemas={dataset: read_schema(args.schema)})
    dictionaries = load_dictionaries(args.dictionaries or config.analysis.dictionaries_path)
    context = build_context(config, store, dictionaries)
    state = DatasetAnalyzer(store, context).analyze_dataset(dataset, args.records)
    return state.to_dict()


def run_store(config: AppConfig, args: argparse.Namespace) -> None:
    with MongoStore(config.mongo, config.layout, config.analysis.collation_locale) as store:
        context = build_context(config, store)
        reporter = ProgressReporter(config.analysis.progress_path)
        analyzer = DatasetAnalyzer(store, context, reporter)

        if args.command == "analyze":
            analyzer.analyze_dataset(args.dataset, args.records)
        elif args.command == "analyze-all":
            results = analyzer.analyze_all(args.records)
            logger.info(f"✓ {len(results)} datasets analyzed, {len(reporter.errors)} failed")
        elif args.command == "task":
            if analyzer.analyze_task(args.task_id) is None:
                raise ConfigurationError(f"task {args.task_id} failed: {'; '.join(reporter.errors)}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config(args.env)
    setup_logging(args.log_level or os.getenv("LOG_LEVEL", "INFO"))

    try:
        if args.command == "analyze-file":
            print(json.dumps(run_file(config, args), ensure_ascii=False, indent=2, default=str))
        else:
            run_store(config, args)
    except ConfigurationError as e:
        logger.error(f"✗ {e}")
        return 2
    except (StoreUnavailable, StoreQueryError) as e:
        logger.error(f"✗ {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
