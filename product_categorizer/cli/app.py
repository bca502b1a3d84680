from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from ..config.loader import AppConfig, ConfigError, load_config
from ..excel.reader import ParseError, read_sheet_rows
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary, setup_logging
from ..models.config_models import SUBMISSION_MODES
from ..models.excel_file import FileStatus, UploadedFile
from ..models.processing_result import BatchRunResult, StatusSummary
from ..services.categorization_client import CategorizationClient
from ..services.orchestrator import ProcessingError, run_batch
from ..services.summary import render_summary_line

"""CLI application (``python -m product_categorizer.cli``).

Flow:
- Load .env (python-dotenv, overriding) and config/categorizer.yml
- Collect .xlsx uploads from the given paths (directories: non-recursive)
- Run the batch (aggregate or per_file) against the categorization endpoint
- Print per-file outcomes, flush the error log and emit the SUMMARY line

Exit codes: 0 every file completed, 2 one or more files failed, 1 fatal.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

INSPECT_SAMPLE_ROWS = 5


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv.

    override=True により .env の値で既存環境変数 (CATEGORIZER_API_URL 等) を上書き。
    """
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Excel product sheets -> batch categorization")
    p.add_argument("paths", nargs="*", type=Path, help=".xlsx files or directories containing them")
    p.add_argument("--config", type=Path, default=None, help="YAML config (default: config/categorizer.yml)")
    p.add_argument("--mode", choices=SUBMISSION_MODES, default=None, help="Override processing.mode")
    p.add_argument("--locale", default=None, help="Active UI locale, e.g. en or ko-KR")
    p.add_argument("--output", type=Path, default=None, help="Write results as JSON to this file")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print parsed rows of each file then exit")
    return p.parse_args(argv)


def _collect_files(paths: list[Path]) -> list[Path]:
    files: list[Path] = []
    for path in paths:
        if path.is_dir():
            files.extend(sorted(p for p in path.iterdir() if p.suffix == ".xlsx"))
        elif path.exists():
            files.append(path)
        else:
            raise FileNotFoundError(f"file not found: {path}")
    return files


def _inspect_data(uploads: list[UploadedFile]) -> int:
    if not uploads:
        print("inspect: no .xlsx files")
        return EXIT_SUCCESS_ALL
    for upload in uploads:
        print(f"FILE: {upload.name}")
        try:
            rows = read_sheet_rows(upload.content)
        except ParseError as e:
            print(f"  read_error: {e}")
            continue
        columns = list(rows[0]) if rows else []
        print(f"  rows={len(rows)} cols={columns}")
        for row in rows[:INSPECT_SAMPLE_ROWS]:
            print(f"    {row}")
    return EXIT_SUCCESS_ALL


def _write_output(path: Path, result: BatchRunResult) -> None:
    payload: dict[str, Any] = {
        "message": result.message,
        "total_record_count": result.total_record_count,
        "limit_reached": result.limit_reached,
        "files": [
            {
                "name": o.file_name,
                "status": o.status.value,
                "record_count": o.record_count,
                "error": o.error,
            }
            for o in result.outcomes
        ],
        "results": [r.to_dict() for r in result.results],
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")


def _run(cfg: AppConfig, uploads: list[UploadedFile], args: argparse.Namespace) -> BatchRunResult:
    settings = cfg.settings
    if args.mode:
        settings = replace(settings, mode=args.mode)
    error_log = ErrorLogBuffer(cfg.logs_dir)
    # uploads が空の場合 endpoint は使われない
    endpoint = cfg.endpoint or ""
    with CategorizationClient(
        endpoint, timeout=cfg.timeout_seconds, max_records=cfg.max_submission_records
    ) as client:
        result = run_batch(uploads, client, settings=settings, locale=args.locale, error_log=error_log)
    log_path = error_log.flush()
    if log_path is not None:
        setup_logging().info(f"error log written: {log_path}")
    return result


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # NOTE: [] が渡された場合に sys.argv[1:] (pytest の引数) を読まないよう None のみ判定
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        for h in logger.handlers:
            h.setLevel("DEBUG")
        logger.setLevel("DEBUG")
        logger.debug("debug mode enabled")

    try:
        cfg = load_config(args.config, required=args.config is not None, locale=args.locale)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    try:
        uploads = [UploadedFile.from_path(p) for p in _collect_files(args.paths)]
    except OSError as e:
        logger.error(f"input: {e}")
        return EXIT_FATAL

    if args.inspect_data:
        return _inspect_data(uploads)

    if uploads and not cfg.endpoint:
        logger.error("config: api endpoint not configured (set CATEGORIZER_API_URL or api.endpoint)")
        return EXIT_FATAL

    try:
        result = _run(cfg, uploads, args)
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL

    for outcome in result.outcomes:
        if outcome.status == FileStatus.COMPLETED:
            logger.info(f"file={outcome.file_name} status=completed records={outcome.record_count}")
        else:
            logger.error(f"file={outcome.file_name} status={outcome.status.value} error={outcome.error}")

    if result.success or not uploads:
        logger.info(result.message)
    else:
        logger.warning(result.message)

    if args.output is not None:
        _write_output(args.output, result)
        logger.info(f"results written: {args.output}")

    summary = result.summary or StatusSummary(
        total_files=0, completed_files=0, error_files=0, total_records=0, total_products=0
    )
    # log_summary が "SUMMARY " ラベルを付与する
    log_summary(render_summary_line(summary).removeprefix("SUMMARY "))

    if summary.error_files > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL

