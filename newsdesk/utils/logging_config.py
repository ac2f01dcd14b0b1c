"""
Centralized logging configuration for the newsdesk pipeline.

Provides consistent logging across all services with:
- Color-coded console output for development
- Daily rotating file logs for production debugging
- Structured JSON logging for analysis
- Stage timing helpers
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


class StructuredFormatter(logging.Formatter):
    """Outputs structured JSON log lines."""

    def format(self, record):
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if hasattr(record, 'extra_data'):
            log_entry['extra'] = record.extra_data

        return json.dumps(log_entry, ensure_ascii=False)


class ColoredConsoleFormatter(logging.Formatter):
    """Colored console formatter for local runs."""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        color = self.COLORS.get(record.levelname, '')
        formatted = (
            f"{color}[{self.formatTime(record, '%H:%M:%S')}] {record.levelname:8} "
            f"[{record.name:28}] {record.getMessage()}{self.RESET}"
        )
        if record.exc_info:
            formatted += f"\n{self.formatException(record.exc_info)}"
        return formatted


def setup_logging(
    log_level: str = "INFO",
    log_dir: Optional[str] = None,
    enable_file_logging: bool = False,
    enable_structured_logging: bool = False,
) -> None:
    """
    Configure root logging for the pipeline.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for log files (defaults to ./logs)
        enable_file_logging: Whether to write daily rotating log files
        enable_structured_logging: Whether to emit JSON lines instead of colored text
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    if enable_structured_logging:
        console_handler.setFormatter(StructuredFormatter())
    else:
        console_handler.setFormatter(ColoredConsoleFormatter())
    root_logger.addHandler(console_handler)

    if enable_file_logging:
        directory = Path(log_dir) if log_dir else Path.cwd() / "logs"
        directory.mkdir(parents=True, exist_ok=True)

        daily_handler = logging.handlers.TimedRotatingFileHandler(
            directory / "newsdesk.log",
            when='midnight',
            backupCount=7,
            encoding='utf-8',
        )
        daily_handler.setLevel(logging.DEBUG)
        if enable_structured_logging:
            daily_handler.setFormatter(StructuredFormatter())
        else:
            daily_handler.setFormatter(logging.Formatter(
                '%(asctime)s | %(levelname)-8s | %(name)-28s | %(message)s'
            ))
        root_logger.addHandler(daily_handler)

    configure_pipeline_loggers(log_level)


def configure_pipeline_loggers(log_level: str) -> None:
    """Quiet down chatty third-party loggers."""
    logging.getLogger('aiohttp').setLevel(logging.WARNING)
    logging.getLogger('aiosqlite').setLevel(logging.WARNING)
    logging.getLogger('google_genai').setLevel(logging.WARNING)

    # Ranking runs once per pair plus once globally; keep it at INFO unless debugging
    ranking_logger = logging.getLogger('newsdesk.services.ranking_service')
    ranking_logger.setLevel(logging.DEBUG if log_level.upper() == "DEBUG" else logging.INFO)


class PerformanceTracker:
    """Context manager for timing a pipeline stage."""

    def __init__(self, operation_name: str, logger: Optional[logging.Logger] = None):
        self.operation_name = operation_name
        self.logger = logger or logging.getLogger(__name__)
        self.start_time: Optional[datetime] = None
        self.duration_ms: float = 0.0

    def __enter__(self):
        self.start_time = datetime.now()
        self.logger.debug(f"Starting: {self.operation_name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time:
            self.duration_ms = (datetime.now() - self.start_time).total_seconds() * 1000
            if exc_type:
                self.logger.error(f"Failed: {self.operation_name} ({self.duration_ms:.1f}ms) - {exc_val}")
            else:
                self.logger.info(f"Completed: {self.operation_name} ({self.duration_ms:.1f}ms)")


def log_pipeline_metrics(
    logger: logging.Logger,
    stage: str,
    input_count: int,
    output_count: int,
    duration_ms: float,
    **extra_data
):
    """Log structured stage metrics (counts in/out, duration)."""
    metrics = {
        'stage': stage,
        'input_count': input_count,
        'output_count': output_count,
        'duration_ms': duration_ms,
        'reduction_rate': (input_count - output_count) / input_count if input_count > 0 else 0,
        **extra_data
    }
    logger.info(
        f"{stage}: {input_count} -> {output_count} ({duration_ms:.1f}ms)",
        extra={'extra_data': metrics},
    )
