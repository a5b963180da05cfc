from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from splkit.api.schema import FidelityReportModel
from splkit.app import (
    current_document,
    export_document,
    list_documents,
    startup,
    submit_comparison,
    submit_import,
    wait_for,
)
from splkit.config import ConfigurationError, configure_logging
from splkit.domain.model import DocumentHandle

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from splkit.api.schema import ProgressResponse

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import, export and compare SPL documents")
    parser.add_argument(
        "--database-uri",
        type=str,
        help="SQLAlchemy database URI (defaults to DATABASE_URI or the data directory)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_ = subparsers.add_parser("import", help="Import SPL XML files, in the given order")
    import_.add_argument("files", nargs="+", type=Path, help="SPL XML files")
    import_.add_argument(
        "--timeout",
        type=float,
        help="Seconds to wait for the import before giving up",
    )

    export = subparsers.add_parser("export", help="Export a stored document as SPL XML")
    export.add_argument("handle", type=str, help="Document handle (doc_...)")
    export.add_argument("--minify", action="store_true", help="Write without indentation")
    export.add_argument("--output", type=Path, help="Write to this file instead of stdout")

    compare = subparsers.add_parser(
        "compare",
        help="Compare a stored document with the payload it was imported from",
    )
    compare.add_argument("handle", type=str, help="Document handle (doc_...)")
    compare.add_argument(
        "--source",
        type=Path,
        help="Compare against this file instead of the stored payload",
    )
    compare.add_argument(
        "--all",
        action="store_true",
        help="List matching paths too, not only discrepancies",
    )

    documents = subparsers.add_parser("documents", help="List stored versions of a document set")
    documents.add_argument("set_guid", type=str, help="Document set id (setId root)")
    documents.add_argument("--current", action="store_true", help="Show the current version only")

    return parser.parse_args(list(argv))


def _validate(args: argparse.Namespace) -> None:
    if args.command in {"export", "compare"}:
        DocumentHandle.parse(args.handle)
    if args.command == "import":
        for path in args.files:
            if not path.is_file():
                raise ValueError(f"Not a file: {path}")
    if args.command == "compare" and args.source is not None and not args.source.is_file():
        raise ValueError(f"Not a file: {args.source}")


def _emit(text: str) -> None:
    sys.stdout.write(text)
    if not text.endswith("\n"):
        sys.stdout.write("\n")


def _finish(progress: ProgressResponse) -> None:
    _emit(progress.model_dump_json(indent=2))
    if progress.status != "succeeded":
        raise RuntimeError(
            f"{progress.kind} operation {progress.operation_id} ended as {progress.status}"
        )


def _run(args: argparse.Namespace) -> None:
    if args.command == "import":
        payloads = [path.read_bytes() for path in args.files]
        operation_id = submit_import(payloads)
        _finish(wait_for(operation_id, timeout=args.timeout))
    elif args.command == "export":
        xml = export_document(args.handle, minify=args.minify)
        if args.output is not None:
            args.output.write_text(xml, encoding="utf-8")
            log.info("Wrote %s", args.output)
        else:
            _emit(xml)
    elif args.command == "compare":
        source = args.source.read_bytes() if args.source is not None else None
        progress = wait_for(submit_comparison(args.handle, source_payload=source))
        if isinstance(progress.result, FidelityReportModel) and not args.all:
            progress = progress.model_copy(update={"result": progress.result.without_matches()})
        _finish(progress)
    elif args.command == "documents":
        if args.current:
            summary = current_document(args.set_guid)
            if summary is None:
                raise LookupError(f"No stored versions for set {args.set_guid}")
            _emit(summary.model_dump_json(indent=2))
        else:
            summaries = list_documents(args.set_guid)
            _emit("[" + ",".join(s.model_dump_json() for s in summaries) + "]")
    else:
        raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
        _validate(parsed_args)
    except (ValueError, ConfigurationError):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.database_uri:
            startup(database_uri=parsed_args.database_uri)
        _run(parsed_args)
    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
