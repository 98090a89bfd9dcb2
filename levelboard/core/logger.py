"""
LevelBoard - Logger
===================

Tree-style logger for the dashboard process with timezone-aware timestamps.

Features:
- Unique run ID per dashboard process
- Tree formatting for structured key/value details
- Console and file output simultaneously
- Daily log folders with separate log and error files
- Automatic cleanup of old log folders
- Debug output gated behind the DEBUG env var

Log Structure:
    logs/
    ├── 2026-10-18/
    │   ├── LevelBoard-2026-10-18.log
    │   └── LevelBoard-Errors-2026-10-18.log
    └── ...

The base folder defaults to ``logs/`` at the repository root and can be moved
with the ``LOG_DIR`` env var.
"""

import os
import re
import shutil
import uuid
import traceback
from datetime import datetime
from pathlib import Path
from typing import List, Tuple, Optional, Any
from zoneinfo import ZoneInfo


# =============================================================================
# Constants
# =============================================================================

LOG_RETENTION_DAYS = 7
LOG_FILE_PREFIX = "LevelBoard"
DEFAULT_LOG_TIMEZONE = "America/New_York"

EMOJI_PATTERN = re.compile(
    "["
    "\U0001F600-\U0001F64F"
    "\U0001F300-\U0001F5FF"
    "\U0001F680-\U0001F6FF"
    "\U0001F900-\U0001F9FF"
    "\U00002600-\U000026FF"
    "\U00002702-\U000027B0"
    "]+",
    flags=re.UNICODE
)


# =============================================================================
# Tree Symbols
# =============================================================================

class TreeSymbols:
    """Box-drawing characters for tree formatting."""
    BRANCH = "├─"
    LAST = "└─"
    PIPE = "│ "
    SPACE = "  "


# =============================================================================
# MiniTreeLogger
# =============================================================================

class MiniTreeLogger:
    """Logger with tree-style formatting and daily file rotation."""

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        """
        Initialize the logger with a run ID and today's log folder.

        Args:
            base_dir: Folder holding the dated log folders. Falls back to
                LOG_DIR, then to ``logs/`` next to the package.
        """
        self.run_id: str = str(uuid.uuid4())[:8]

        if base_dir is None:
            env_dir = os.getenv("LOG_DIR")
            base_dir = Path(env_dir) if env_dir else Path(__file__).parent.parent.parent / "logs"
        self.logs_base_dir = base_dir
        self.logs_base_dir.mkdir(parents=True, exist_ok=True)

        self._timezone = ZoneInfo(os.getenv("LOG_TIMEZONE", DEFAULT_LOG_TIMEZONE))
        self.current_date = datetime.now(self._timezone).strftime("%Y-%m-%d")
        self._set_log_paths()

        self._cleanup_old_logs()
        self._write_header(f"NEW SESSION - RUN ID: {self.run_id}")

    # =========================================================================
    # Private Methods - Setup
    # =========================================================================

    def _set_log_paths(self) -> None:
        self.log_dir = self.logs_base_dir / self.current_date
        self.log_dir.mkdir(exist_ok=True)
        self.log_file: Path = self.log_dir / f"{LOG_FILE_PREFIX}-{self.current_date}.log"
        self.error_file: Path = self.log_dir / f"{LOG_FILE_PREFIX}-Errors-{self.current_date}.log"

    def _check_date_rotation(self) -> None:
        """Move to a new dated folder once the day changes."""
        current_date = datetime.now(self._timezone).strftime("%Y-%m-%d")
        if current_date != self.current_date:
            self.current_date = current_date
            self._set_log_paths()
            self._write_header(f"LOG ROTATION - Continuing session {self.run_id}")

    def _cleanup_old_logs(self) -> None:
        """Delete dated log folders older than the retention period."""
        try:
            now = datetime.now(self._timezone)
            deleted_count = 0

            for folder in self.logs_base_dir.iterdir():
                if not folder.is_dir():
                    continue
                try:
                    folder_date = datetime.strptime(folder.name, "%Y-%m-%d")
                except ValueError:
                    continue
                folder_date = folder_date.replace(tzinfo=self._timezone)

                if (now - folder_date).days > LOG_RETENTION_DAYS:
                    shutil.rmtree(folder)
                    deleted_count += 1

            if deleted_count > 0:
                print(f"[LOG CLEANUP] Deleted {deleted_count} old log folders (>{LOG_RETENTION_DAYS} days)")
        except OSError as e:
            print(f"[LOG CLEANUP ERROR] {e}")

    def _write_header(self, text: str) -> None:
        header = (
            f"\n{'='*60}\n"
            f"{text}\n"
            f"{self._get_timestamp()}\n"
            f"{'='*60}\n\n"
        )
        self._append(self.log_file, header)
        self._append(self.error_file, header)

    # =========================================================================
    # Private Methods - Formatting
    # =========================================================================

    def _get_timestamp(self) -> str:
        current_time = datetime.now(self._timezone)
        tz_name = current_time.strftime("%Z")
        return current_time.strftime(f"[%I:%M:%S %p {tz_name}]")

    @staticmethod
    def _append(path: Path, text: str) -> None:
        try:
            with open(path, "a", encoding="utf-8") as f:
                f.write(text)
        except OSError:
            pass

    def _format(self, message: str, emoji: str) -> str:
        clean_message = EMOJI_PATTERN.sub("", message).strip()
        timestamp = self._get_timestamp()
        return f"{timestamp} {emoji} {clean_message}" if emoji else f"{timestamp} {clean_message}"

    def _write(self, message: str, emoji: str = "", to_error: bool = False) -> None:
        """Write a timestamped line to the console and log file(s)."""
        self._check_date_rotation()
        full_message = self._format(message, emoji)
        print(full_message)
        self._append(self.log_file, f"{full_message}\n")
        if to_error:
            self._append(self.error_file, f"{full_message}\n")

    def _write_raw(self, message: str, to_error: bool = False) -> None:
        """Write a line without timestamp (tree branches)."""
        print(message)
        self._append(self.log_file, f"{message}\n")
        if to_error:
            self._append(self.error_file, f"{message}\n")

    def _emit(
        self,
        msg: str,
        details: Optional[List[Tuple[str, Any]]],
        emoji: str,
        status: str,
        to_error: bool = False,
    ) -> None:
        self._write(msg, emoji, to_error=to_error)
        items = details or [("Status", status)]
        for i, (key, value) in enumerate(items):
            prefix = TreeSymbols.LAST if i == len(items) - 1 else TreeSymbols.BRANCH
            self._write_raw(f"  {prefix} {key}: {value}", to_error=to_error)
        self._write_raw("", to_error=to_error)

    # =========================================================================
    # Public Methods - Log Levels
    # =========================================================================

    def info(self, msg: str, details: Optional[List[Tuple[str, Any]]] = None) -> None:
        """Log an informational message as a tree."""
        self._emit(msg, details, "ℹ️", "OK")

    def success(self, msg: str, details: Optional[List[Tuple[str, Any]]] = None) -> None:
        """Log a success message as a tree."""
        self._emit(msg, details, "✅", "Complete")

    def warning(self, msg: str, details: Optional[List[Tuple[str, Any]]] = None) -> None:
        """Log a warning as a tree (also written to the error log)."""
        self._emit(msg, details, "⚠️", "Warning", to_error=True)

    def error(self, msg: str, details: Optional[List[Tuple[str, Any]]] = None) -> None:
        """Log an error as a tree (also written to the error log)."""
        self._emit(msg, details, "❌", "Failed", to_error=True)

    def debug(self, msg: str, details: Optional[List[Tuple[str, Any]]] = None) -> None:
        """Log a debug message (only if DEBUG env var is set)."""
        if os.getenv("DEBUG", "").lower() in ("1", "true", "yes"):
            self._emit(msg, details, "🔍", "Debug")

    def exception(self, msg: str, details: Optional[List[Tuple[str, Any]]] = None) -> None:
        """Log an error plus the active traceback to both log files."""
        self._emit(msg, details, "💥", "Exception", to_error=True)
        tb = traceback.format_exc()
        self._append(self.log_file, f"{tb}\n")
        self._append(self.error_file, f"{tb}\n")

    # =========================================================================
    # Public Methods - Tree Formatting
    # =========================================================================

    def tree(
        self,
        title: str,
        items: List[Tuple[str, Any]],
        emoji: str = "📦"
    ) -> None:
        """
        Log structured data in tree format.

        Example output:
            [12:00:00 PM EDT] 📦 Dashboard Started
              ├─ Host: 0.0.0.0
              ├─ Port: 3000
              └─ Enrichment: Enabled
        """
        self._emit(title, items, emoji, "OK")

    def error_tree(
        self,
        title: str,
        error: BaseException,
        context: Optional[List[Tuple[str, Any]]] = None
    ) -> None:
        """
        Log an exception with context in tree format.

        Example output:
            [12:00:00 PM EDT] ❌ Leaderboard API Error
              ├─ Type: OperationalError
              ├─ Message: no such table: users
              └─ Server ID: 1430038605518077964
        """
        items: List[Tuple[str, Any]] = [
            ("Type", type(error).__name__),
            ("Message", str(error)),
        ]
        if context:
            items.extend(context)
        self._emit(title, items, "❌", "Failed", to_error=True)


# =============================================================================
# Module Export
# =============================================================================

logger = MiniTreeLogger()

__all__ = ["logger", "MiniTreeLogger", "TreeSymbols"]
