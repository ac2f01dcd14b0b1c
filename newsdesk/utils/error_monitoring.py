import json
import logging
import traceback
from collections import defaultdict, deque
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Deque, Dict, List, Optional, Tuple


@dataclass
class ErrorContext:
    """Context for an error occurrence"""
    error_type: str
    error_message: str
    stack_trace: str
    timestamp: datetime
    service: str
    operation: str
    severity: str
    recovery_action: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class ErrorSeverity(Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


class ServiceType(Enum):
    """Service classifications"""
    CRITICAL = "critical"
    IMPORTANT = "important"
    OPTIONAL = "optional"


class CriticalError(Exception):
    """Exception for errors that must stop the request"""
    pass


class ErrorHandler:
    """
    Records upstream-environment failures (providers, remote cache, summarizer).

    These failures are recovered where they happen; the handler only keeps a
    bounded history, per-type counts and a severity so operators can see which
    upstream is degrading.
    """

    def __init__(self, history_size: int = 200) -> None:
        self.service_criticality: Dict[str, ServiceType] = {
            'cache': ServiceType.IMPORTANT,
            'newsapi': ServiceType.IMPORTANT,
            'guardian': ServiceType.IMPORTANT,
            'rss': ServiceType.OPTIONAL,
            'summarization': ServiceType.OPTIONAL,
        }

        self.error_history: Deque[ErrorContext] = deque(maxlen=history_size)
        self.error_counts: Dict[str, int] = defaultdict(int)
        self.service_counts: Dict[str, int] = defaultdict(int)

        self.logger = logging.getLogger(__name__)

    def handle_error(
        self,
        error: BaseException,
        service: str,
        operation: str,
        context: Optional[Dict[str, Any]] = None
    ) -> ErrorContext:
        error_type = type(error).__name__
        error_message = str(error) or error_type
        stack_trace = ''.join(traceback.format_exception(type(error), error, error.__traceback__))
        timestamp = datetime.now()

        severity = self.classify_severity(error, service)
        error_context = ErrorContext(
            error_type=error_type,
            error_message=error_message,
            stack_trace=stack_trace,
            timestamp=timestamp,
            service=service,
            operation=operation,
            severity=severity.value,
            recovery_action=self.get_recovery_suggestion(error),
            metadata=context or {},
        )

        self.error_history.append(error_context)
        self.error_counts[error_type] += 1
        self.service_counts[service] += 1

        log = self.logger.warning if severity in (ErrorSeverity.LOW, ErrorSeverity.MEDIUM) else self.logger.error
        log(json.dumps({
            'event': 'error',
            'service': service,
            'operation': operation,
            'severity': severity.value,
            'error_type': error_type,
            'error_message': error_message,
            'timestamp': timestamp.isoformat(),
            **(context or {}),
        }))

        if self.should_stop_pipeline(error_context):
            raise CriticalError(f"Critical error in {service}:{operation} - {error_message}")

        return error_context

    def classify_severity(self, error: BaseException, service: str) -> ErrorSeverity:
        error_name = type(error).__name__
        message_lower = str(error).lower()
        service_type = self.service_criticality.get(service, ServiceType.OPTIONAL)

        if 'unauthorized' in message_lower or 'invalid api key' in message_lower or 'apikeyinvalid' in message_lower:
            return ErrorSeverity.HIGH

        if error_name in ('TimeoutError', 'CancelledError'):
            return ErrorSeverity.MEDIUM if service_type == ServiceType.IMPORTANT else ErrorSeverity.LOW

        if 'rate limit' in message_lower or 'too many requests' in message_lower or '429' in message_lower:
            return ErrorSeverity.MEDIUM

        if service_type == ServiceType.CRITICAL:
            return ErrorSeverity.CRITICAL
        if service_type == ServiceType.IMPORTANT:
            return ErrorSeverity.MEDIUM
        return ErrorSeverity.LOW

    def should_stop_pipeline(self, error_context: ErrorContext) -> bool:
        return error_context.severity == ErrorSeverity.CRITICAL.value

    def get_recovery_suggestion(self, error: BaseException) -> Optional[str]:
        msg = str(error).lower()
        name = type(error).__name__
        if ('rate' in msg and 'limit' in msg) or '429' in msg:
            return "Provider rate limit hit. Cache TTLs widen automatically under quota pressure."
        if name == 'TimeoutError' or 'timeout' in msg:
            return "Provider call timed out. Check provider latency or raise ADAPTER_TIMEOUT."
        if 'unauthorized' in msg or 'api key' in msg:
            return "Authentication failure. Verify the provider API key in the environment."
        return None

    def detect_error_patterns(self, window: timedelta = timedelta(minutes=15)) -> List[str]:
        patterns: List[str] = []
        cutoff = datetime.now() - window
        tuple_counts: Dict[Tuple[str, str], int] = defaultdict(int)
        for ctx in self.error_history:
            if ctx.timestamp >= cutoff:
                tuple_counts[(ctx.error_type, ctx.service)] += 1

        for (etype, service), count in tuple_counts.items():
            if count >= 3:
                patterns.append(f"Repeated pattern: {etype} in {service} occurred {count} times recently")
        return patterns

    def get_error_statistics(self) -> Dict[str, Any]:
        return {
            'total_errors': sum(self.error_counts.values()),
            'error_types': dict(self.error_counts),
            'services': dict(self.service_counts),
        }
