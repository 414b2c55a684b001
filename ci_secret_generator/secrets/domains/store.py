"""Secret store interface and the dry-run implementation."""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, TextIO
import yaml

logger = logging.getLogger(__name__)


class SecretStore(ABC):
    """Destination for generated secret values, one item at a time."""

    @abstractmethod
    def set_field(self, item_name: str, field_name: str, value: bytes) -> None:
        pass

    @abstractmethod
    def set_attachment(self, item_name: str, attachment_name: str, value: bytes) -> None:
        pass

    @abstractmethod
    def set_password(self, item_name: str, value: bytes) -> None:
        pass

    @abstractmethod
    def set_notes(self, item_name: str, notes: str) -> None:
        """Replace the item notes. Callers never pass empty notes."""
        pass

    @abstractmethod
    def logout(self) -> None:
        """End the session and release any resources."""
        pass


class DryRunSecretStore(SecretStore):
    """
    Records intended operations instead of uploading them.

    Each operation is written as one YAML document to the given stream so the
    output can be reviewed or diffed before a live run.
    """

    def __init__(self, stream: TextIO):
        self._stream = stream

    @property
    def name(self) -> str:
        return getattr(self._stream, "name", "<stream>")

    def _write(self, operation: Dict[str, Any]) -> None:
        yaml.safe_dump(operation, self._stream, explicit_start=True, sort_keys=False)

    def set_field(self, item_name: str, field_name: str, value: bytes) -> None:
        self._write({
            "operation": "set_field",
            "item_name": item_name,
            "field": field_name,
            "value": value.decode("utf-8", errors="backslashreplace"),
        })

    def set_attachment(self, item_name: str, attachment_name: str, value: bytes) -> None:
        self._write({
            "operation": "set_attachment",
            "item_name": item_name,
            "attachment": attachment_name,
            "value": value.decode("utf-8", errors="backslashreplace"),
        })

    def set_password(self, item_name: str, value: bytes) -> None:
        self._write({
            "operation": "set_password",
            "item_name": item_name,
            "value": value.decode("utf-8", errors="backslashreplace"),
        })

    def set_notes(self, item_name: str, notes: str) -> None:
        self._write({
            "operation": "set_notes",
            "item_name": item_name,
            "notes": notes,
        })

    def logout(self) -> None:
        if not self._stream.closed:
            self._stream.flush()
            self._stream.close()
        logger.debug(f"Dry-run output closed: {self.name}")
