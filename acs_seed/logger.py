"""
Structured logging module for the seeding toolkit.
Writes newline-delimited JSON (.jsonl) with a run_id on every entry.
"""

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, asdict

@dataclass
class LogEntry:
    """Single structured log line."""
    ts: str  # RFC3339 UTC timestamp
    run_id: str  # Unique identifier for CLI command invocation
    level: str  # info, warning, error
    event: str  # Event type (e.g., login, user_created)
    data: Optional[Dict[str, Any]] = None  # Arbitrary event data

    def to_json(self) -> str:
        """Convert to JSON string for .jsonl format."""
        return json.dumps(asdict(self), separators=(',', ':'), default=str)

class StructuredLogger:
    """
    Structured logger:
    - Newline-delimited JSON (.jsonl) format
    - Keys: ts (RFC3339 UTC), run_id, level, event, data
    - Files named: acs-seed-YYYYMMDD.log.jsonl
    """

    def __init__(self, log_dir: Optional[Path] = None, run_id: Optional[str] = None):
        self.run_id = run_id or str(uuid.uuid4())[:8]  # Short run ID
        self.log_dir = log_dir or Path("./runs") / datetime.now().strftime("%Y-%m-%d")
        self.log_dir.mkdir(parents=True, exist_ok=True)

        log_filename = f"acs-seed-{datetime.now().strftime('%Y%m%d')}.log.jsonl"
        self.log_file = self.log_dir / log_filename

    def _log(self, level: str, event: str, data: Optional[Dict[str, Any]] = None):
        entry = LogEntry(
            ts=datetime.now(timezone.utc).isoformat(),
            run_id=self.run_id,
            level=level,
            event=event,
            data=data
        )

        with open(self.log_file, 'a', encoding='utf-8') as f:
            f.write(entry.to_json() + '\n')

    def info(self, event: str, data: Optional[Dict[str, Any]] = None):
        """Log info level event."""
        self._log("info", event, data)

    def warning(self, event: str, data: Optional[Dict[str, Any]] = None):
        """Log warning level event."""
        self._log("warning", event, data)

    def error(self, event: str, data: Optional[Dict[str, Any]] = None):
        """Log error level event."""
        self._log("error", event, data)

    def log_request_failure(self, event: str, error: Exception, **kwargs: Any):
        """Log a failed API call with whatever response details the error carries."""
        data: Dict[str, Any] = {"error": str(error), "error_type": type(error).__name__}
        status_code = getattr(error, "status_code", None)
        if status_code is not None:
            data["status_code"] = status_code
        response_body = getattr(error, "response_body", None)
        if response_body:
            data["response_body"] = response_body
        data.update(kwargs)

        self.error(event, data)

    def log_provisioning_summary(self, total_cards: int, created: int, failed: int,
                                 blacklisted: int, blacklist_failures: int):
        """Log provisioning run summary."""
        self.info("provisioning_complete", {
            "total_cards": total_cards,
            "created": created,
            "failed": failed,
            "blacklisted": blacklisted,
            "blacklist_failures": blacklist_failures
        })

# Global logger instance
_logger: Optional[StructuredLogger] = None

def init_logger(run_id: Optional[str] = None, log_dir: Optional[Path] = None) -> StructuredLogger:
    """Initialize logger with specific configuration."""
    global _logger
    _logger = StructuredLogger(log_dir=log_dir, run_id=run_id)
    return _logger

def get_logger() -> StructuredLogger:
    """Get the global logger instance."""
    global _logger
    if _logger is None:
        _logger = init_logger()
    return _logger

def log_info(event: str, data: Optional[Dict[str, Any]] = None):
    """Convenience function for info logging."""
    get_logger().info(event, data)

def log_warning(event: str, data: Optional[Dict[str, Any]] = None):
    """Convenience function for warning logging."""
    get_logger().warning(event, data)

def log_error(event: str, data: Optional[Dict[str, Any]] = None):
    """Convenience function for error logging."""
    get_logger().error(event, data)
