#!/usr/bin/env python3
"""
fanout CLI: run one process per work item under a concurrency cap.

Every verb shares the same shape:  fanout <verb> <source> [verb arguments...] [jobs]
A run with failing items still completes and prints a summary of
total/succeeded/failed items; only setup errors stop a run before it starts.
"""
from __future__ import annotations  # Enable postponed evaluation of annotations (PEP 563)
import argparse
import logging
import os
import shlex
import signal
import sys
import threading
import time
from typing import Dict, List, NoReturn, Optional

from fanout.aliases import (
    EPILOG_TEXT, EXIT_CANCELLED, EXIT_FAILURES, EXIT_NO_ITEMS, EXIT_OK, EXIT_SETUP_ERROR,
    HASH_ALGORITHM_CHOICES, HASH_ALGORITHM_HELP_TEXT, REMOVAL_ALIASES,
    SOURCE_KIND_ALIASES, SOURCE_KIND_CHOICES, SOURCE_KIND_HELP_TEXT,
)
from fanout.commands import ContentDedupCommand, DispatchCommand, LocalOperationCommand
from fanout.core.aggregator import format_summary
from fanout.core.errors import FanoutError
from fanout.core.models import DedupReport, RunReport, default_concurrency
from fanout.core.params import DedupParams, DispatchParams, LocalParams
from fanout.presets import PRESETS, Preset
from fanout.utils.convert_utils import ConvertUtils

logger = logging.getLogger("fanout")

LOG_FORMAT = "%(levelname)-8s | %(name)-25s | %(message)s"


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: '{value}'")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1: '{value}'")
    return number


def key_value(value: str) -> tuple:
    key, sep, val = value.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE: '{value}'")
    return key, val


class CLIApplication:
    """Main CLI application controller."""

    def __init__(self):
        self.start_time: float = time.time()
        self.verbose: int = 0
        self.quiet: bool = False
        self._stop_requested = threading.Event()

    # =============================
    # Argument parsing
    # =============================

    @staticmethod
    def build_parser() -> argparse.ArgumentParser:
        common = argparse.ArgumentParser(add_help=False)
        common.add_argument(
            "--timeout", "-t",
            default=None,
            type=str,
            metavar="",
            help="Per-item timeout (e.g., 30s, 5m). Default: none"
        )
        common.add_argument(
            "--max-output",
            default=None,
            type=str,
            metavar="",
            help="Captured output limit per item and stream (e.g., 64K). Default: 1MB"
        )
        common.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress the summary"
        )
        common.add_argument(
            "--verbose", "-v",
            action="count",
            default=0,
            help="Show progress (-v) and debug logging (-vv)"
        )

        parser = argparse.ArgumentParser(
            prog="fanout",
            description="fanout: run one command per file, host or URL, N at a time",
            formatter_class=argparse.RawTextHelpFormatter,
            epilog=EPILOG_TEXT
        )
        subparsers = parser.add_subparsers(dest="verb", metavar="<verb>", required=True)

        # Generic verb
        run = subparsers.add_parser(
            "run",
            parents=[common],
            formatter_class=argparse.RawTextHelpFormatter,
            help="Run any command template once per item",
        )
        run.add_argument("--kind", "-k", choices=SOURCE_KIND_CHOICES, default="files",
                         help=SOURCE_KIND_HELP_TEXT)
        run.add_argument("--pattern", "-p", default=None, metavar="",
                         help="Only items whose name matches this glob (e.g., '*.log')")
        run.add_argument("--stdout", default=None, metavar="",
                         help="Write each item's stdout to this path template (e.g., {item}.out)")
        run.add_argument("--stdin", default=None, metavar="",
                         help="Feed this path template to each item's stdin (e.g., {item})")
        run.add_argument("--cwd", default=None, metavar="",
                         help="Working directory template for each item")
        run.add_argument("--set", "-s", action="append", type=key_value, default=[], metavar="KEY=VALUE",
                         dest="params", help="Extra placeholder value, usable as {KEY}")
        run.add_argument("--no-item", action="store_true",
                         help="Allow templates that do not reference the item")
        run.add_argument("source", help="Source of items (see --kind)")
        run.add_argument("jobs", type=positive_int, help="Number of parallel jobs")
        run.add_argument("command", nargs=argparse.REMAINDER,
                         help="Command template, e.g. gzip -k {}")

        # Preset verbs
        for preset in PRESETS.values():
            sub = subparsers.add_parser(preset.verb, parents=[common], help=preset.help)
            sub.add_argument("source", help=preset.source_help)
            for name in preset.params:
                sub.add_argument(name, help=f"Value for {{{name}}}")
            if preset.pattern:
                sub.add_argument("--pattern", "-p", dest="name_pattern", default=preset.pattern, metavar="",
                                 help=f"Item name pattern. Default: {preset.pattern}")
            sub.add_argument("jobs", nargs="?", type=positive_int, default=None,
                             help="Number of parallel jobs. Default: number of CPUs")

        # Content-identity deduplication
        dedupe = subparsers.add_parser(
            "dedupe-files",
            parents=[common],
            formatter_class=argparse.RawTextHelpFormatter,
            help="Remove byte-identical files, keeping the first one enumerated",
        )
        dedupe.add_argument("source", help="Directory to deduplicate (recursive)")
        dedupe.add_argument("jobs", nargs="?", type=positive_int, default=None,
                            help="Number of parallel hashing jobs. Default: number of CPUs")
        dedupe.add_argument("--algorithm", "-a", choices=HASH_ALGORITHM_CHOICES, default="xxh128",
                            help=HASH_ALGORITHM_HELP_TEXT)
        dedupe.add_argument("--hash-command", default=None, metavar="",
                            help="External hashing tool template instead of --algorithm,\n"
                                 "e.g. 'sha256sum {}' (digest must be the first output token)")
        dedupe.add_argument("--extensions", "-x", nargs="+", default=[], metavar="",
                            help="Only consider these extensions (e.g., .jpg .png)")
        dedupe.add_argument("--excluded-dirs", "-e", nargs="+", default=[], metavar="",
                            help="Directories to skip")
        dedupe.add_argument("--dry-run", "-n", action="store_true",
                            help="Show what would be removed without removing anything")
        dedupe.add_argument("--trash", action="store_true",
                            help="Move duplicates to the system trash instead of deleting them")
        dedupe.add_argument("--index-file", default=None, metavar="",
                            help="Also write the fingerprint index here while running; always removed at the end")

        return parser

    def parse_args(self, args: Optional[List[str]] = None) -> argparse.Namespace:
        """Parse and validate command-line arguments."""
        parsed = self.build_parser().parse_args(args)
        if parsed.verb == "run" and parsed.command and parsed.command[0] == "--":
            parsed.command = parsed.command[1:]
        return parsed

    # =============================
    # Params
    # =============================

    def create_dispatch_params(self, args: argparse.Namespace, preset: Optional[Preset] = None) -> DispatchParams:
        if preset is None:
            if not args.command:
                self.error_exit("Missing command template")
            argv = list(args.command)
            kind = SOURCE_KIND_ALIASES[args.kind]
            pattern = args.pattern
            params: Dict[str, str] = dict(args.params)
            stdout_path, stdin_path, cwd = args.stdout, args.stdin, args.cwd
            require_item = not args.no_item
        else:
            argv = list(preset.argv)
            kind = preset.kind
            pattern = getattr(args, "name_pattern", None)
            params = {name: getattr(args, name) for name in preset.params}
            stdout_path, stdin_path, cwd = preset.stdout_path, preset.stdin_path, None
            require_item = True

        try:
            return DispatchParams.from_human_readable(
                source=args.source,
                argv=argv,
                concurrency=args.jobs or default_concurrency(),
                kind=kind,
                pattern=pattern,
                params=params,
                timeout_str=args.timeout,
                max_output_str=args.max_output or "1MB",
                stdout_path=stdout_path,
                stdin_path=stdin_path,
                cwd=cwd,
                require_item=require_item,
            )
        except ValueError as e:
            self.error_exit(f"Parameter error: {e}")

    def create_dedup_params(self, args: argparse.Namespace) -> DedupParams:
        if args.max_output:
            self.error_exit("--max-output does not apply to dedupe-files")
        try:
            return DedupParams(
                root_dir=args.source,
                concurrency=args.jobs or default_concurrency(),
                algorithm=args.algorithm,
                hash_command=shlex.split(args.hash_command) if args.hash_command else [],
                extensions=args.extensions,
                excluded_dirs=args.excluded_dirs,
                removal=REMOVAL_ALIASES[args.trash],
                dry_run=args.dry_run,
                index_path=args.index_file,
                timeout=ConvertUtils.human_to_seconds(args.timeout) if args.timeout else None,
            )
        except ValueError as e:
            self.error_exit(f"Parameter error: {e}")

    # =============================
    # Progress and cancellation
    # =============================

    def progress_callback(self, stage: str, current: int, total: Optional[int]) -> None:
        """CLI progress callback - shows progress in console."""
        if not self.verbose:
            return

        if total and total > 0:
            percent = (current / total) * 100
            sys.stderr.write(f"\r  [{stage}] {current}/{total} ({percent:.1f}%)")
        else:
            sys.stderr.write(f"\r  [{stage}] {current} items processed...")
        sys.stderr.flush()

    def stopped_flag(self) -> bool:
        """True once the user pressed Ctrl+C."""
        return self._stop_requested.is_set()

    def _on_sigint(self, signum, frame) -> None:
        if self._stop_requested.is_set():
            raise KeyboardInterrupt
        self._stop_requested.set()
        print("\n⚠️  Cancelling: no new items will start (Ctrl+C again to abort)", file=sys.stderr)

    # =============================
    # Output
    # =============================

    @staticmethod
    def write_outputs(report: RunReport) -> None:
        """Write captured stdout of every item, failed ones included, in enumeration order."""
        out = getattr(sys.stdout, "buffer", None)
        for result in report.results:
            if not result.stdout:
                continue
            if out is not None:
                out.write(result.stdout)
            else:
                sys.stdout.write(result.stdout.decode("utf-8", errors="replace"))
        if out is not None:
            out.flush()
        else:
            sys.stdout.flush()

    def output_summary(self, report: RunReport) -> None:
        if self.verbose:
            sys.stderr.write("\n")
        if self.quiet:
            return
        marker = "✅" if report.success else "⚠️ "
        print(f"{marker} {format_summary(report)}", file=sys.stderr)

    def output_dedup(self, report: DedupReport) -> None:
        """Show groups with the kept file first, then the removal summary."""
        if self.verbose:
            sys.stderr.write("\n")
        if self.quiet:
            return

        if not report.groups:
            print("No duplicate groups found.")
        for idx, group in enumerate(report.groups, 1):
            size_str = ConvertUtils.bytes_to_human(group.keeper.size or 0)
            print(f"\n📁 Group {idx} | Size: {size_str} | Files: {len(group.items)} | {group.fingerprint.hex()}")
            print(f"   [KEEP] {group.keeper.value}")
            for item in group.redundant:
                print(f"   [DEL]  {item.value}")

        print()
        print("=" * 60)
        if report.dry_run:
            would_free = sum(item.size or 0 for g in report.groups for item in g.redundant)
            print(f"[DRY RUN] {report.marked} files would be removed, "
                  f"{ConvertUtils.bytes_to_human(would_free)} would be freed")
        else:
            print(f"Removed {len(report.removed)} of {report.marked} duplicates, "
                  f"{ConvertUtils.bytes_to_human(report.reclaimed_bytes)} freed")

        fingerprint_report = report.fingerprint_report
        if fingerprint_report.failures or fingerprint_report.cancelled:
            print(format_summary(fingerprint_report), file=sys.stderr)
        if report.removal_failures:
            print(f"\n⚠️  Failed to remove {len(report.removal_failures)} file(s):", file=sys.stderr)
            for result in report.removal_failures:
                print(f"  • {result.item.value}: {result.stderr_text()}", file=sys.stderr)

    @staticmethod
    def exit_code(report: RunReport) -> int:
        if report.cancelled:
            return EXIT_CANCELLED
        if report.total == 0:
            return EXIT_NO_ITEMS
        return EXIT_OK if report.success else EXIT_FAILURES

    @staticmethod
    def error_exit(message: str, code: int = EXIT_SETUP_ERROR) -> NoReturn:
        """Print error and exit."""
        print(f"❌ Error: {message}", file=sys.stderr)
        sys.exit(code)

    # =============================
    # Verbs
    # =============================

    def run_dispatch(self, args: argparse.Namespace, preset: Optional[Preset] = None) -> int:
        params = self.create_dispatch_params(args, preset)
        report = DispatchCommand().execute(
            params,
            progress_callback=self.progress_callback if self.verbose else None,
            stopped_flag=self.stopped_flag,
        )
        return self._finish(report)

    def run_local(self, args: argparse.Namespace, preset: Preset) -> int:
        if args.timeout:
            self.error_exit(f"--timeout applies only to external commands; '{args.verb}' runs in-process")
        try:
            params = LocalParams(
                source=args.source,
                operation=preset.operation,
                concurrency=args.jobs or default_concurrency(),
                kind=preset.kind,
                pattern=getattr(args, "name_pattern", None),
                max_output_bytes=ConvertUtils.human_to_bytes(args.max_output or "1MB"),
            )
        except ValueError as e:
            self.error_exit(f"Parameter error: {e}")
        report = LocalOperationCommand().execute(
            params,
            progress_callback=self.progress_callback if self.verbose else None,
            stopped_flag=self.stopped_flag,
        )
        return self._finish(report)

    def run_dedup(self, args: argparse.Namespace) -> int:
        params = self.create_dedup_params(args)
        if not self.quiet:
            mode = "dry run" if params.dry_run else params.removal.value
            print(f"Deduplicating: {params.root_dir} ({mode})")
        report = ContentDedupCommand().execute(
            params,
            progress_callback=self.progress_callback if self.verbose else None,
            stopped_flag=self.stopped_flag,
        )
        self.output_dedup(report)

        if report.fingerprint_report.cancelled:
            return EXIT_CANCELLED
        if report.scanned == 0:
            return EXIT_NO_ITEMS
        return EXIT_OK if report.success else EXIT_FAILURES

    def _finish(self, report: RunReport) -> int:
        self.write_outputs(report)
        if report.total == 0:
            if not self.quiet:
                print("No items found.", file=sys.stderr)
            return EXIT_NO_ITEMS
        self.output_summary(report)
        return self.exit_code(report)

    def configure_logging(self) -> None:
        level = logging.ERROR
        if self.verbose == 1:
            level = logging.INFO
        elif self.verbose >= 2:
            level = logging.DEBUG
        logging.basicConfig(level=level, format=LOG_FORMAT)
        logging.getLogger("fanout").setLevel(level)

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Main entry point. Returns the process exit code."""
        args = self.parse_args(argv)
        self.verbose = args.verbose
        self.quiet = args.quiet
        self.configure_logging()
        logger.debug(f"Verb: {args.verb}, source: {args.source}")

        previous_handler = None
        if threading.current_thread() is threading.main_thread():
            previous_handler = signal.signal(signal.SIGINT, self._on_sigint)

        try:
            if args.verb == "run":
                code = self.run_dispatch(args)
            elif args.verb == "dedupe-files":
                code = self.run_dedup(args)
            else:
                preset = PRESETS[args.verb]
                code = self.run_local(args, preset) if preset.is_local else self.run_dispatch(args, preset)
        except FanoutError as e:
            self.error_exit(str(e))
        finally:
            if previous_handler is not None:
                signal.signal(signal.SIGINT, previous_handler)

        if self.verbose:
            elapsed = time.time() - self.start_time
            print(f"\nCompleted in {elapsed:.2f} seconds", file=sys.stderr)
        return code


def main() -> None:
    """Application entry point."""
    app = CLIApplication()
    try:
        sys.exit(app.run())
    except KeyboardInterrupt:
        print("\n⚠️  Operation cancelled by user (Ctrl+C)", file=sys.stderr)
        sys.exit(EXIT_CANCELLED)
    except Exception as e:
        if os.environ.get("DEBUG"):
            raise
        print(f"❌ Unexpected error: {e}", file=sys.stderr)
        sys.exit(EXIT_FAILURES)


if __name__ == "__main__":
    main()
