"""
Structured logging system for auditing vault activity.
Provides JSON-formatted logs with context and metadata.
"""

import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any


class StructuredLogger:
    """
    Logger that outputs both human-readable and machine-parseable logs.

    Usage:
        logger = StructuredLogger("insight_store.events")
        logger.info("artifact_saved", artifact_id="channel_UC123", kind="channel")
    """

    def __init__(
        self,
        name: str,
        log_dir: Path | None = None,
        enable_json: bool = True,
        enable_console: bool = True,
    ):
        """
        Initialize structured logger.

        Args:
            name: Logger name
            log_dir: Directory for JSON log files (None = disabled)
            enable_json: Enable JSON file logging
            enable_console: Enable output through the standard logger
        """
        self.name = name
        self.log_dir = log_dir
        self.enable_json = enable_json and log_dir is not None
        self.enable_console = enable_console

        self._logger = logging.getLogger(name)

        self._json_file = None
        self.json_log_path: Path | None = None
        if self.enable_json:
            log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.json_log_path = log_dir / f"insight_store_{timestamp}.jsonl"
            self._json_file = open(self.json_log_path, "a", encoding="utf-8")  # noqa: SIM115

        # Session context (added to all log entries)
        self._session_context: dict[str, Any] = {
            "session_id": f"{int(time.time())}_{id(self)}",
            "start_time": datetime.now().isoformat(),
        }

    def set_session_context(self, **kwargs) -> None:
        """Set session-level context that appears in all logs."""
        self._session_context.update(kwargs)

    def _format_message(self, event: str, **context) -> str:
        """Format message for console output."""
        parts = [f"[{event}]"]
        for key, value in context.items():
            if key not in ("level", "timestamp"):
                parts.append(f"{key}={value}")
        return " ".join(parts)

    def _write_json(self, level: str, event: str, **context) -> None:
        """Write structured log entry to JSON file."""
        if not self._json_file or self._json_file.closed:
            return

        entry = {
            "timestamp": datetime.now().isoformat(),
            "level": level,
            "event": event,
            **self._session_context,
            **context,
        }

        try:
            self._json_file.write(json.dumps(entry, default=str) + "\n")
            self._json_file.flush()
        except (OSError, TypeError) as e:
            # Fallback to stderr if JSON logging fails
            print(f"JSON logging failed: {e}", file=sys.stderr)

    def _emit(self, level: int, event: str, **context) -> None:
        if self.enable_console:
            self._logger.log(level, self._format_message(event, **context))
        if self.enable_json:
            self._write_json(logging.getLevelName(level), event, **context)

    def debug(self, event: str, **context) -> None:
        """Log debug event."""
        self._emit(logging.DEBUG, event, **context)

    def info(self, event: str, **context) -> None:
        """Log info event."""
        self._emit(logging.INFO, event, **context)

    def warning(self, event: str, **context) -> None:
        """Log warning event."""
        self._emit(logging.WARNING, event, **context)

    def error(self, event: str, **context) -> None:
        """Log error event."""
        self._emit(logging.ERROR, event, **context)

    def close(self) -> None:
        """Close JSON log file."""
        if self._json_file and not self._json_file.closed:
            self._json_file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class VaultEventLogger:
    """Specialized logger for artifact lifecycle events."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger

    def artifact_saved(self, artifact_id: str, kind: str, replaced: bool):
        """Log an artifact inserted or replaced in the active set."""
        self.logger.info(
            "artifact_saved", artifact_id=artifact_id, kind=kind, replaced=replaced
        )

    def artifact_rejected(self, artifact_id: str, reason: str, active_count: int):
        """Log an insert or restore blocked by the capacity cap."""
        self.logger.warning(
            "artifact_rejected",
            artifact_id=artifact_id,
            reason=reason,
            active_count=active_count,
        )

    def artifact_trashed(self, artifact_id: str):
        self.logger.info("artifact_trashed", artifact_id=artifact_id)

    def artifact_restored(self, artifact_id: str):
        self.logger.info("artifact_restored", artifact_id=artifact_id)

    def artifact_deleted(self, artifact_id: str):
        self.logger.info("artifact_deleted", artifact_id=artifact_id)

    def vault_cleared(self, moved: int):
        """Log a bulk move of every active artifact to the trash."""
        self.logger.info("vault_cleared", moved_to_trash=moved)

    def vault_purged(self, trash_expired: int, minimized: int):
        """Log an automatic purge pass that removed something."""
        self.logger.info(
            "vault_purged",
            trash_expired=trash_expired,
            data_minimized=minimized,
            total=trash_expired + minimized,
        )

    def write_failed(self, operation: str, error: str):
        self.logger.error("vault_write_failed", operation=operation, error=error)


def create_event_logger(
    log_dir: Path | None = None, enable_json: bool = False
) -> tuple[StructuredLogger, VaultEventLogger]:
    """
    Create the structured loggers.

    Returns:
        Tuple of (base_logger, vault_logger)
    """
    base = StructuredLogger("insight_store.events", log_dir=log_dir, enable_json=enable_json)
    return base, VaultEventLogger(base)
