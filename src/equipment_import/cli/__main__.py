from __future__ import annotations

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

from ..config.loader import ConfigError, load_config
from ..errors import ImportPipelineError, ImportSubmissionError
from ..excel.reader import decode_spreadsheet, load_upload
from ..logging.init import log_summary, setup_logging
from ..models.config_models import ImportConfig
from ..models.equipment import Lab
from ..models.import_state import ImportState, ImportStep
from ..services.importer import ImportClient
from ..services.orchestrator import process_file, user_message
from ..services.summary import render_summary_line
from ..services.template import write_template
from ..services.transformer import detect_row_shape

"""CLI entrypoint.

Flow:
- Load .env (EQUIPMENT_API_URL / EQUIPMENT_API_TOKEN) and config/import.yml
- Resolve the labs reference list (--lab-ids, or the API labs listing)
- Run the import pipeline for one file and print a SUMMARY line

Exit codes: 0 every row imported, 2 some rows invalid or rejected, 1 fatal.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

DEFAULT_CONFIG_PATH = Path("config/import.yml")


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env so that API settings in it win over config/import.yml."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_lab_ids(value: str) -> list[Lab]:
    try:
        return [Lab(id=int(part)) for part in value.split(",") if part.strip()]
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"lab ids must be integers: {value}") from e


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="equipment-import", description="Equipment spreadsheet -> bulk import"
    )
    p.add_argument("file", nargs="?", type=Path, help="Spreadsheet to import (.xlsx, .xls, .csv)")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Config YAML path")
    p.add_argument(
        "--lab-ids", type=_parse_lab_ids, default=None, help="Known lab ids, comma separated"
    )
    p.add_argument("--dry-run", action="store_true", help="Validate only, do not submit")
    p.add_argument("--year", type=int, default=None, help="Year used in generated serial numbers")
    p.add_argument("--template", type=Path, default=None, help="Write the import template and exit")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument(
        "--inspect-data", action="store_true", help="Print headers & first rows then exit"
    )
    return p.parse_args(argv)


def _inspect_data(path: Path, cfg: ImportConfig) -> int:
    try:
        upload = load_upload(path, max_file_bytes=cfg.limits.max_file_bytes)
        sheet = decode_spreadsheet(upload.payload, upload.content_type)
    except ImportPipelineError as e:
        print(f"inspect: {user_message(e)} ({e})")
        return EXIT_FATAL
    print(f"FILE: {path.name}")
    print(f"  SHEET: {sheet.sheet_name} cols={sheet.columns}")
    shape = detect_row_shape(sheet.rows[0])
    print(f"  shape={shape.value} rows={len(sheet.rows)}")
    print("    sample_rows=", sheet.rows[:3])
    return EXIT_SUCCESS_ALL


def _exit_code(state: ImportState) -> int:
    if state.step is ImportStep.UPLOADING:
        # reset された = 致命的エラー
        return EXIT_FATAL
    summary = state.summary
    rejected = state.result.failed if state.result else 0
    if summary.invalid > 0 or rejected > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    # NOTE: [] が渡された場合に sys.argv が混入しないよう None のときのみ読む
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    logger.debug("debug mode enabled")

    _load_env_file(Path(".env"), override=True)

    if args.template is not None:
        out = write_template(args.template)
        logger.info(f"template written: {out}")
        return EXIT_SUCCESS_ALL

    if args.file is None:
        logger.error("no input file given")
        return EXIT_FATAL

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if not args.file.exists():
        logger.error(f"file not found: {args.file}")
        return EXIT_FATAL

    if args.inspect_data:
        return _inspect_data(args.file, cfg)

    client: ImportClient | None = None
    if not args.dry_run:
        if not cfg.api.token:
            logger.warning("no API token configured (set EQUIPMENT_API_TOKEN)")
        client = ImportClient(cfg.api)

    try:
        labs: list[Lab] = args.lab_ids or []
        if args.lab_ids is None and client is not None:
            try:
                labs = client.fetch_labs()
            except ImportSubmissionError as e:
                logger.error(f"labs: {e}")
                return EXIT_FATAL
            logger.info(f"labs loaded: {len(labs)}")

        logger.info(f"Processing file: {args.file}")
        state = process_file(
            args.file, client, labs, cfg, dry_run=args.dry_run, year=args.year
        )
    finally:
        if client is not None:
            client.close()

    if state.success_message:
        logger.info(state.success_message)
    if state.error_message:
        logger.error(state.error_message)

    summary_line = render_summary_line(state)
    # log_summary が "SUMMARY " を付与するので接頭辞を除く
    log_summary(summary_line[len("SUMMARY "):])
    return _exit_code(state)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
