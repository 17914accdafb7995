"""Append-only audit trail for confirmed bookings.

One human-readable line per booking:

    [APT-1001] 15/01/2025 09:00 | Dr. Ayse Demir      | Patient: Bengu Gedik     | CONFIRMED | 350.00

Sinks only store lines. AuditTrail adds retries with exponential backoff and a
circuit breaker so a broken sink fails fast instead of stalling every booking.
"""
import logging
from decimal import Decimal
from pathlib import Path
from threading import Lock
from typing import List, Optional, Protocol, Union

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from clinic import config
from clinic.circuit_breaker import CircuitBreaker, CircuitBreakerOpen
from clinic.errors import AuditWriteError
from clinic.logging_config import get_logger
from clinic.models import Appointment, Doctor, Patient

logger = logging.getLogger(__name__)


def format_audit_record(
    appointment: Appointment,
    doctor: Doctor,
    patient: Patient,
) -> str:
    """Render the audit line for a booking."""
    fee = doctor.fee.quantize(Decimal("0.01"))
    return (
        f"[{appointment.appointment_id}] "
        f"{appointment.slot.strftime(config.DATETIME_DISPLAY_FORMAT)} | "
        f"Dr. {doctor.name:<15} | "
        f"Patient: {patient.name:<15} | "
        f"{appointment.status.value} | "
        f"{fee}"
    )


class AuditSink(Protocol):
    """Anything that can durably store one audit line."""

    def write(self, record: str) -> None:
        ...


class FileAuditSink:
    """Appends audit lines to a UTF-8 text file."""

    def __init__(self, path: Union[str, Path, None] = None):
        self.path = Path(path or config.AUDIT_LOG_PATH)
        self._lock = Lock()

    def write(self, record: str) -> None:
        with self._lock:
            with open(self.path, 'a', encoding='utf-8') as f:
                f.write(record + "\n")

    def read_records(self) -> List[str]:
        """All records written so far, oldest first."""
        if not self.path.exists():
            return []
        with open(self.path, 'r', encoding='utf-8') as f:
            return [line.rstrip("\n") for line in f if line.strip()]


class LoggingAuditSink:
    """Emits audit lines into the structured log stream."""

    def __init__(self, logger_name: str = "clinic.audit.records"):
        self._log = get_logger(logger_name)

    def write(self, record: str) -> None:
        self._log.info("audit_record", record=record)


class MemoryAuditSink:
    """Keeps audit lines in memory (embedding and tests)."""

    def __init__(self):
        self.records: List[str] = []

    def write(self, record: str) -> None:
        self.records.append(record)


class AuditTrail:
    """
    Resilient front for an AuditSink.

    Pattern: tenacity retry (exponential backoff on OSError) wrapped by a
    circuit breaker. Anything that still fails surfaces as AuditWriteError.
    """

    def __init__(
        self,
        sink: AuditSink,
        max_attempts: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
        breaker: Optional[CircuitBreaker] = None,
    ):
        self.sink = sink
        self.max_attempts = max_attempts or config.AUDIT_MAX_ATTEMPTS
        self.backoff_seconds = (
            config.AUDIT_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
        )
        self.breaker = breaker or CircuitBreaker(
            failure_threshold=config.AUDIT_FAILURE_THRESHOLD,
            timeout=config.AUDIT_RESET_TIMEOUT,
        )

    def _write_with_retry(self, record: str) -> None:
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_seconds, max=8),
            retry=retry_if_exception_type(OSError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                self.sink.write(record)

    def record(self, line: str, appointment: Optional[Appointment] = None) -> None:
        """
        Write one audit line.

        Raises:
            AuditWriteError: If the sink keeps failing or the breaker is open
        """
        try:
            self.breaker.call(self._write_with_retry, line)
        except CircuitBreakerOpen as e:
            raise AuditWriteError(f"Audit sink unavailable: {e}", appointment) from e
        except Exception as e:
            raise AuditWriteError(f"Audit write failed: {e}", appointment) from e
