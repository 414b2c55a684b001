"""Scrub known secret values from log output."""
import logging
from typing import Iterable, Optional, Set

REDACTED = "***REDACTED***"


class SecretSet:
    """
    Known secret values, updated in place as secrets are discovered.

    Only the main thread adds values; log handlers read the set at emission.
    """

    def __init__(self, values: Optional[Iterable[str]] = None):
        self._values: Set[str] = set()
        for value in values or []:
            self.add(value)

    def add(self, value: str) -> None:
        value = value.strip() if value else ""
        if value:
            self._values.add(value)

    def __contains__(self, value: str) -> bool:
        return value in self._values

    def __len__(self) -> int:
        return len(self._values)

    def redact(self, text: str) -> str:
        # Longest first so a secret containing another is replaced whole
        for value in sorted(self._values, key=len, reverse=True):
            text = text.replace(value, REDACTED)
        return text


class RedactingFilter(logging.Filter):
    """Handler filter that replaces every known secret in the final message."""

    def __init__(self, secrets: SecretSet):
        super().__init__()
        self.secrets = secrets
        self._formatter = logging.Formatter()

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = self.secrets.redact(record.getMessage())
        record.args = None
        if record.exc_info and not record.exc_text:
            record.exc_text = self._formatter.formatException(record.exc_info)
        if record.exc_text:
            record.exc_text = self.secrets.redact(record.exc_text)
        return True


def install_redaction(secrets: SecretSet, logger: Optional[logging.Logger] = None) -> RedactingFilter:
    """Attach a RedactingFilter to every handler of logger (root by default)."""
    logger = logger or logging.getLogger()
    redacting_filter = RedactingFilter(secrets)
    for handler in logger.handlers:
        handler.addFilter(redacting_filter)
    return redacting_filter
