#!/usr/bin/env python3
"""
dupekeep CLI: command line interface for duplicate file detection and removal.
Builds DedupeParams from the arguments, wires signals to a cancellation token and
renders the run report. All decisions are made by DedupeCommand.
"""
from __future__ import annotations  # Enable postponed evaluation of annotations (PEP 563)
import argparse
import logging
import os
import signal
import sys
import time
from typing import List, Optional, NoReturn

from dupekeep.aliases import (
    RULE_ALIASES, RULE_HELP_TEXT, DELETE_MATCH_HELP_TEXT, KEEP_MATCH_HELP_TEXT, EPILOG_TEXT
)
from dupekeep.commands import DedupeCommand
from dupekeep.core.cancel import CancellationToken
from dupekeep.core.errors import IndexStoreError
from dupekeep.core.models import DedupeParams, RunMode, RunReport, BucketDecision
from dupekeep.utils.convert_utils import ConvertUtils

LOG_FORMAT = "%(levelname)-8s | %(name)-25s | %(message)s"

EXIT_STOPPED = 130


class CLIApplication:
    """Main CLI application controller."""

    def __init__(self):
        self.start_time: float = time.time()
        self.verbose: bool = False
        self.quiet: bool = False
        self.token = CancellationToken()
        self._signal_count = 0

        # Fix encoding for Windows consoles to prevent UnicodeEncodeError
        for stream in (sys.stdout, sys.stderr):
            if hasattr(stream, "reconfigure"):
                stream.reconfigure(encoding='utf-8')

    @staticmethod
    def parse_args(args=None) -> argparse.Namespace:
        """Parse command-line arguments."""
        parser = argparse.ArgumentParser(
            prog="dupekeep",
            description="dupekeep: content-based duplicate finder with a persistent index",
            formatter_class=argparse.RawTextHelpFormatter,
            epilog=EPILOG_TEXT
        )

        parser.add_argument(
            "roots",
            nargs="*",
            metavar="PATH",
            help="Directories (or files) to scan for duplicates"
        )

        # Index options
        parser.add_argument(
            "--index", "-d",
            default="",
            type=str,
            metavar="FILE",
            dest="index_path",
            help="Path to the index file; read before and written after the run"
        )
        parser.add_argument(
            "--index-only",
            action="store_true",
            help="Only update the index, do not look for duplicates (requires --index)"
        )
        parser.add_argument(
            "--workers", "-w",
            type=int,
            default=os.cpu_count() or 1,
            metavar="N",
            help="Number of parallel hashing workers. Default: number of CPUs"
        )
        parser.add_argument(
            "--excluded-dirs", "-e",
            nargs="+",
            default=[],
            type=str,
            metavar="",
            dest="excluded_dirs",
            help="Excluded/ignored directories (space separated)"
        )

        # Retention rules: at most one positional rule
        rules = parser.add_mutually_exclusive_group()
        for alias, rule in RULE_ALIASES.items():
            rules.add_argument(
                f"--{alias}",
                action="store_const",
                const=alias,
                dest="rule",
                help=RULE_HELP_TEXT[rule]
            )

        parser.add_argument(
            "--delete-match",
            default="",
            type=str,
            metavar="REGEX",
            help=DELETE_MATCH_HELP_TEXT
        )
        parser.add_argument(
            "--keep-match",
            default="",
            type=str,
            metavar="REGEX",
            help=KEEP_MATCH_HELP_TEXT
        )

        # Actions
        parser.add_argument(
            "--dry-run", "-n",
            action="store_true",
            help="Show what would be deleted without touching any file"
        )
        parser.add_argument(
            "--trash",
            action="store_true",
            help="Move duplicates to the system trash instead of deleting them"
        )

        # Output options
        parser.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress non-essential output"
        )
        parser.add_argument(
            "--verbose", "-v",
            action="store_true",
            help="Show detailed statistics and per-file progress"
        )

        return parser.parse_args(args)

    def create_params(self, args: argparse.Namespace) -> DedupeParams:
        """Create DedupeParams from CLI arguments."""
        if not args.roots and not args.index_path:
            self.error_exit("Nothing to do: give at least one directory or an --index")

        try:
            return DedupeParams.from_strings(
                roots=args.roots,
                index_path=args.index_path,
                index_only=args.index_only,
                workers=args.workers,
                rule=args.rule,
                delete_match=args.delete_match,
                keep_match=args.keep_match,
                dry_run=args.dry_run,
                use_trash=args.trash,
                excluded_dirs=args.excluded_dirs,
            )
        except ValueError as e:
            self.error_exit(f"Parameter error: {e}")

    def configure_logging(self) -> None:
        level = logging.WARNING
        if self.verbose:
            level = logging.DEBUG
        elif self.quiet:
            level = logging.ERROR
        logging.basicConfig(level=level, format=LOG_FORMAT)
        logging.getLogger().setLevel(level)

    def install_signal_handlers(self) -> dict:
        """First signal requests a graceful stop (index still saved); second one aborts."""
        previous = {}
        for name in ("SIGINT", "SIGTERM", "SIGHUP", "SIGQUIT"):
            signum = getattr(signal, name, None)
            if signum is not None:
                previous[signum] = signal.signal(signum, self._handle_signal)
        return previous

    @staticmethod
    def restore_signal_handlers(previous: dict) -> None:
        for signum, handler in previous.items():
            signal.signal(signum, handler)

    def _handle_signal(self, signum, frame) -> None:
        self._signal_count += 1
        if self._signal_count > 1:
            print("\n⚠️  Forced exit", file=sys.stderr)
            os._exit(EXIT_STOPPED)
        print(f"\n>>>>> got {signal.Signals(signum).name}, finishing up <<<<<", file=sys.stderr)
        self.token.stop()

    def progress_callback(self, stage: str, current: int, total: Optional[int]) -> None:
        """CLI progress callback - shows progress in console."""
        if not self.verbose:
            return

        if total and total > 0:
            percent = (current / total) * 100
            sys.stderr.write(f"\r  [{stage}] {current}/{total} ({percent:.1f}%)")
        else:
            sys.stderr.write(f"\r  [{stage}] {current} files processed...")
        sys.stderr.flush()

    def run_command(self, params: DedupeParams) -> RunReport:
        """Execute the run; a corrupt index is fatal."""
        command = DedupeCommand()
        try:
            report = command.execute(
                params,
                token=self.token,
                progress_callback=self.progress_callback if self.verbose else None,
            )
        except IndexStoreError as e:
            self.error_exit(f"Cannot use index: {e}")

        if self.verbose:
            sys.stderr.write("\n")
            print()
            print(report.stats.print_summary())
        return report

    def output_results(self, report: RunReport, params: DedupeParams) -> None:
        """Output duplicate groups with the per-file verdict."""
        if self.quiet or params.mode == RunMode.INDEX_ONLY:
            return

        if not report.decisions:
            print("No duplicate groups found.")
            return

        total_files = sum(len(d.ordered) for d in report.decisions)
        print(f"\nFound {len(report.decisions)} duplicate groups ({total_files} files)")

        for idx, decision in enumerate(report.decisions, 1):
            self._print_decision(idx, decision, report)

    @staticmethod
    def _outcome_tag(path: str, report: RunReport) -> str:
        """Tag of a marked record, taken from what actually happened to it."""
        if path in report.deleted:
            return "[DEL] "
        if path in report.would_delete:
            return "[DRY] "
        if path in report.failed_deletions:
            return "[FAIL]"
        return "[SKIP]"

    def _print_decision(self, idx: int, decision: BucketDecision, report: RunReport) -> None:
        size_str = ConvertUtils.bytes_to_human(decision.size)
        print(f"\n📁 Group {idx} | Hash: {ConvertUtils.digest_to_hex(decision.digest)} "
              f"| Size: {size_str} | Files: {len(decision.ordered)}")
        reasons = {record.path: reason for record, reason in decision.marked}
        for record in decision.ordered:
            if record.path in reasons:
                tag = self._outcome_tag(record.path, report)
                print(f"   {tag} {record.path}")
                reason = reasons[record.path]
                if tag == "[SKIP]":
                    reason += " (not processed, run was stopped)"
                print(f"          Reason: {reason}")
            else:
                tag = "[KEEP]" if decision.marked else "      "
                print(f"   {tag} {record.path}")
                if self.verbose:
                    print(f"          Modified: {ConvertUtils.ns_to_human(record.mtime_ns)}")

    def output_summary(self, report: RunReport, params: DedupeParams) -> None:
        if self.quiet:
            return

        print()
        print("=" * 60)
        print(f"New files indexed: {report.new_files} | Hashed: {report.hashed_files}"
              f" | Unreadable: {report.failed_hashes}")
        if params.mode == RunMode.ENFORCE and params.policy.is_active:
            space_str = ConvertUtils.bytes_to_human(report.reclaimed_bytes)
            if params.dry_run:
                print(f"Dry run: {len(report.would_delete)} files would be deleted ({space_str})")
            else:
                verb = "moved to trash" if params.use_trash else "deleted"
                print(f"✅ {len(report.deleted)} files {verb} ({space_str} freed)")
        if report.failed_deletions:
            print(f"⚠️  Failed to delete {len(report.failed_deletions)} file(s):")
            for path in report.failed_deletions[:5]:
                print(f"  • {path}")
            if len(report.failed_deletions) > 5:
                print(f"  ...and {len(report.failed_deletions) - 5} more files")
        if params.index_path and not report.persist_error:
            print(f"Index saved to {params.index_path}")

    def warning(self, message: str) -> None:
        """Print a warning message to stderr."""
        if not self.quiet:
            print(f"⚠️  {message}", file=sys.stderr)

    @staticmethod
    def error_exit(message: str, code: int = 1) -> NoReturn:
        """Print error and exit."""
        print(f"❌ Error: {message}", file=sys.stderr)
        sys.exit(code)

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Main entry point; returns the process exit code."""
        args = self.parse_args(argv)
        self.verbose = args.verbose
        self.quiet = args.quiet
        self.configure_logging()

        params = self.create_params(args)
        for root in params.roots:
            if not os.path.exists(root):
                self.warning(f"Path not found: {root}")

        if not self.quiet and params.roots:
            print(f"Scanning: {', '.join(params.roots)}")

        previous_handlers = self.install_signal_handlers()
        try:
            report = self.run_command(params)
        finally:
            self.restore_signal_handlers(previous_handlers)

        self.output_results(report, params)
        self.output_summary(report, params)

        if report.persist_error:
            self.warning(f"Index was not saved: {report.persist_error}")
            return 1
        if report.stopped:
            self.warning("Process was stopped before completion")
            return EXIT_STOPPED

        elapsed = time.time() - self.start_time
        if self.verbose:
            print(f"\n✅ Completed in {elapsed:.2f} seconds")
        return 0


def main() -> None:
    """Application entry point."""
    app = CLIApplication()
    try:
        sys.exit(app.run())
    except KeyboardInterrupt:
        print("\n⚠️  Operation cancelled by user (Ctrl+C)")
        sys.exit(EXIT_STOPPED)
    except Exception as e:
        if os.environ.get("DEBUG"):
            raise
        print(f"❌ Unexpected error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
