"""Crash handling utilities."""

import json
import os
import sys
import traceback
import uuid

from utils.timestamp import format_timestamp

# Overridden by configure() from config.logging.crash_file
_crash_log = "logs/crash.log"


def configure(crash_file):
    """Set crash log file path from config."""
    global _crash_log
    _crash_log = crash_file


def _write_crash(record):
    """Append one JSON crash record. Never raises."""
    try:
        log_dir = os.path.dirname(_crash_log)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        with open(_crash_log, "a") as f:
            f.write(json.dumps(record, default=str) + "\n")
    except Exception:
        pass


def crash_record(exc_type, exc_value, exc_tb):
    record = {
        "id": uuid.uuid4().hex[:12],
        "timestamp": format_timestamp(),
        "type": exc_type.__name__ if exc_type else "Unknown",
        "msg": str(exc_value) if exc_value else "",
        "traceback": "".join(traceback.format_exception(exc_type, exc_value, exc_tb)),
    }
    # flakegen errors carry their own tracking id and context
    error_id = getattr(exc_value, "error_id", None)
    if error_id:
        record["error_id"] = error_id
        record["context"] = getattr(exc_value, "context", {})
    return record


def log_crash(exc_type, exc_value, exc_tb):
    """Log crash to stderr and file. Never raises."""
    record = crash_record(exc_type, exc_value, exc_tb)
    sys.stderr.write(f"\n{'=' * 60}\nCRASH [{record['id']}] {record['timestamp']}\n{'=' * 60}\n")
    sys.stderr.write(f"{record['type']}: {record['msg']}\n{'-' * 60}\n{record['traceback']}{'=' * 60}\n\n")
    _write_crash(record)


def install_crash_handler():
    """Install global sync exception handler."""
    sys.excepthook = log_crash
