"""
Main entry point for the Copy Files application.

This module handles:
- Command line argument parsing
- Logging configuration
- Settings loading
- Building the copy request from the selection and filters
- Running the copy worker on a background thread
- Cancellation on Ctrl+C
- Exception handling
"""

from __future__ import annotations

import argparse
import faulthandler
import logging
import os
import signal
import sys
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, List

from PyQt6.QtCore import QCoreApplication, QTimer

from copyfiles import __version__
from copyfiles.core.archive import ZipArchiveBuilder
from copyfiles.core.models import (
    CopyRequest,
    DateOption,
    FilterSpec,
    PipelineResult,
    ValidationError,
    normalize_path,
)
from copyfiles.core.selection import build_selection
from copyfiles.services.settings import ApplicationSettings, SettingsManager
from copyfiles.workers.copy_worker import CopyPipelineWorker
from copyfiles.workers.base_worker import WorkerThread


# =============================================================================
# Constants
# =============================================================================

APP_NAME = "CopyFiles"
APP_VERSION = __version__
APP_ORGANIZATION = "CopyFiles"

APP_DIR = Path(__file__).parent
LOGS_DIR = APP_DIR / "logs"

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class CommandLineArgs:
    """Parsed command line arguments."""
    source_path: str = ""
    target_path: str = ""
    selected_paths: list[str] = field(default_factory=list)
    file_types: Optional[list[str]] = None
    date_option: Optional[DateOption] = None
    all_files: bool = False
    create_zip: bool = False
    config_file: Optional[str] = None
    log_level: str = "INFO"
    reset_settings: bool = False
    debug: bool = False


# =============================================================================
# Logging Setup
# =============================================================================

LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class LogFormatter(logging.Formatter):
    """Pipe-separated log lines, colored by level on a terminal."""

    LEVEL_COLORS = {
        logging.DEBUG: '\033[2m',
        logging.WARNING: '\033[33m',
        logging.ERROR: '\033[31m',
        logging.CRITICAL: '\033[1;31m',
    }
    RESET = '\033[0m'

    def __init__(self, stream=None, colored: bool = True):
        super().__init__(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
        isatty = getattr(stream, 'isatty', None)
        self.colored = colored and isatty is not None and isatty()

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        color = self.LEVEL_COLORS.get(record.levelno) if self.colored else None
        return f"{color}{line}{self.RESET}" if color else line


def setup_logging(level: str = "INFO", log_file: Optional[Path] = None) -> logging.Logger:
    """
    Route all log records to the console and, optionally, a log file.

    Args:
        level: Level name such as "INFO" or "DEBUG"
        log_file: File to append records to as well

    Returns:
        The root logger
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    handlers: list[logging.Handler] = []

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(LogFormatter(sys.stdout))
    handlers.append(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        to_file = logging.FileHandler(log_file, encoding='utf-8')
        to_file.setFormatter(LogFormatter(colored=False))
        handlers.append(to_file)

    root_logger = logging.getLogger()
    for old in list(root_logger.handlers):
        root_logger.removeHandler(old)
    for handler in handlers:
        handler.setLevel(numeric_level)
        root_logger.addHandler(handler)
    root_logger.setLevel(numeric_level)

    return root_logger


# =============================================================================
# Exception Handling
# =============================================================================

class ExceptionHandler:
    """sys.excepthook replacement that sends uncaught errors to the log."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def install(self) -> None:
        sys.excepthook = self.handle_exception

    def handle_exception(self, exc_type: type, exc_value: BaseException, exc_tb) -> None:
        # Ctrl+C outside the event loop keeps the default behaviour
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_tb)
            return

        self.logger.critical(
            f"Uncaught {exc_type.__name__}: {exc_value}",
            exc_info=(exc_type, exc_value, exc_tb)
        )


# =============================================================================
# Command Line Parsing
# =============================================================================

def parse_arguments(args: Optional[List[str]] = None) -> CommandLineArgs:
    """
    Parse command line arguments.

    Args:
        args: Arguments to parse (defaults to sys.argv)

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Copy selected files from a source directory to a target directory",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s src dst                              Copy the whole tree
  %(prog)s src dst --select src/docs --types txt pdf
                                                Copy .txt and .pdf files under src/docs
  %(prog)s src dst --date "Last 7 days" --zip   Copy recent files and zip the result
  %(prog)s src dst --types ""                   Copy files without an extension
        """
    )

    # Positional arguments
    parser.add_argument(
        'source',
        help='Source directory'
    )
    parser.add_argument(
        'target',
        help='Existing target directory (not inside the source)'
    )

    # Selection
    parser.add_argument(
        '-s', '--select',
        action='append',
        default=[],
        metavar='PATH',
        help='File or directory to copy (repeatable, default: whole tree)'
    )

    # Filters
    parser.add_argument(
        '-t', '--types',
        nargs='+',
        metavar='EXT',
        help='File extensions to keep ("All" for every type, "" for none)'
    )
    parser.add_argument(
        '--date',
        choices=DateOption.labels(),
        help='Modification date filter'
    )
    parser.add_argument(
        '-a', '--all-files',
        action='store_true',
        help='Keep every selected file regardless of type and date'
    )

    # Archive
    parser.add_argument(
        '-z', '--zip',
        action='store_true',
        help='Create <target>.zip after a successful copy'
    )

    # Configuration
    parser.add_argument(
        '-c', '--config',
        help='Configuration file path'
    )
    parser.add_argument(
        '--reset-settings',
        action='store_true',
        help='Reset all settings to defaults'
    )

    # Logging
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug mode (also writes a log file)'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        default='INFO',
        help='Log level'
    )

    # Version
    parser.add_argument(
        '--version',
        action='version',
        version=f'{APP_NAME} {APP_VERSION}'
    )

    # Parse
    parsed = parser.parse_args(args)

    # Build result
    result = CommandLineArgs()
    result.source_path = parsed.source
    result.target_path = parsed.target
    result.selected_paths = parsed.select
    result.file_types = parsed.types
    result.all_files = parsed.all_files
    result.create_zip = parsed.zip
    result.config_file = parsed.config
    result.reset_settings = parsed.reset_settings
    result.debug = parsed.debug

    if parsed.date:
        result.date_option = DateOption.lookup(parsed.date)

    # Log level
    if parsed.debug or parsed.verbose:
        result.log_level = 'DEBUG'
    else:
        result.log_level = parsed.log_level

    return result


# =============================================================================
# Request Building
# =============================================================================

def build_filter_spec(args: CommandLineArgs, settings: ApplicationSettings) -> FilterSpec:
    """Filters from settings, overridden by any command line flags."""
    overrides: dict = {}
    if args.all_files:
        overrides['all_files'] = True
    if args.date_option is not None:
        overrides['date_option'] = args.date_option
    if args.file_types is not None:
        overrides['file_types'] = frozenset(args.file_types)
    return replace(settings.filters.to_spec(), **overrides)


def build_request(args: CommandLineArgs, settings: ApplicationSettings) -> CopyRequest:
    """
    Build the copy request.

    Raises:
        ValidationError: source is not a directory
        ValueError: a selected path lies outside the source
    """
    source = normalize_path(args.source_path)
    if not source.is_dir():
        raise ValidationError(f"Source directory not found: {source}")

    return CopyRequest(
        source_root=source,
        target_root=normalize_path(args.target_path),
        selection=build_selection(source, args.selected_paths),
        filter_spec=build_filter_spec(args, settings),
        archive_requested=args.create_zip or settings.archive.create_archive,
    )


# =============================================================================
# Progress Output
# =============================================================================

class ConsoleProgress:
    """Renders (current, total) progress updates as a single console line."""

    WIDTH = 40

    def __init__(self, stream=None):
        self.stream = stream or sys.stderr
        self._active = False

    def update(self, current: int, total: int, message: str) -> None:
        if total <= 0:
            return
        filled = int(self.WIDTH * current / total)
        bar = '#' * filled + '-' * (self.WIDTH - filled)
        self.stream.write(f"\r[{bar}] {current}/{total}")
        self.stream.flush()
        self._active = True

    def close(self) -> None:
        if self._active:
            self.stream.write("\n")
            self.stream.flush()
            self._active = False


# =============================================================================
# Signal Handlers
# =============================================================================

def setup_signal_handlers(on_interrupt: Callable[[], None]) -> Optional[QTimer]:
    """
    Set up Unix signal handlers.

    Returns the timer that lets Python run signal handlers while the Qt
    event loop is busy; the caller must keep a reference to it.
    """
    if sys.platform == 'win32':
        return None

    def _signal_handler(signum, frame) -> None:
        logging.info(f"Received signal {signum}, cancelling...")
        on_interrupt()

    # Handle SIGINT (Ctrl+C) and SIGTERM as cancellation requests
    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    # Allow Qt to process signals
    timer = QTimer()
    timer.timeout.connect(lambda: None)
    timer.start(500)
    return timer


# =============================================================================
# Run
# =============================================================================

def run_worker(app: QCoreApplication, worker: CopyPipelineWorker, logger: logging.Logger) -> int:
    """
    Run the copy worker on a background thread until it finishes.

    Returns:
        Exit code
    """
    thread = WorkerThread(worker)
    progress = ConsoleProgress()
    outcome = {'code': EXIT_FAILURE}

    def on_finished(result: PipelineResult) -> None:
        progress.close()
        if result.archive_error is not None:
            outcome['code'] = EXIT_FAILURE
        else:
            outcome['code'] = EXIT_OK

    def on_cancelled(result: PipelineResult) -> None:
        progress.close()
        outcome['code'] = EXIT_CANCELLED

    def on_error(error_type: str, message: str) -> None:
        progress.close()
        logger.error(f"Copy failed - {error_type}: {message}")
        outcome['code'] = EXIT_FAILURE

    worker.signals.progress.connect(progress.update)
    worker.signals.finished.connect(on_finished)
    worker.signals.cancelled.connect(on_cancelled)
    worker.signals.error.connect(on_error)
    thread.finished.connect(app.quit)

    timer = setup_signal_handlers(thread.cancel)

    thread.start()
    app.exec()
    thread.wait()

    if timer is not None:
        timer.stop()

    return outcome['code']


# =============================================================================
# Main Function
# =============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    """
    Run one copy from the command line.

    Returns:
        Process exit code: EXIT_OK, EXIT_FAILURE or EXIT_CANCELLED
    """
    # Windowed/frozen launches can start without standard streams
    for name in ('stdout', 'stderr'):
        if getattr(sys, name) is None:
            setattr(sys, name, open(os.devnull, 'w'))

    faulthandler.enable()

    args = parse_arguments(argv)

    log_file = None
    if args.debug:
        log_file = LOGS_DIR / f"copyfiles_{datetime.now():%Y%m%d}.log"
    logger = setup_logging(args.log_level, log_file)
    logger.info(f"{APP_NAME} {APP_VERSION}")

    ExceptionHandler(logger).install()

    settings_manager = SettingsManager(Path(args.config_file) if args.config_file else None)
    settings = settings_manager.reset() if args.reset_settings else settings_manager.settings

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    app.setApplicationName(APP_NAME)
    app.setApplicationVersion(APP_VERSION)
    app.setOrganizationName(APP_ORGANIZATION)

    try:
        request = build_request(args, settings)
        worker = CopyPipelineWorker(
            request,
            copy_options=settings.copy.to_options(),
            archive_builder=ZipArchiveBuilder(buffer_size=settings.archive.buffer_size),
        )
    except ValueError as e:
        logger.error(str(e))
        return EXIT_FAILURE

    settings_manager.add_recent_path(str(request.source_root), is_source=True)
    settings_manager.add_recent_path(str(request.target_root), is_source=False)

    exit_code = run_worker(app, worker, logger)
    logger.debug(f"Exit code {exit_code}")
    return exit_code


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == '__main__':
    sys.exit(main())
