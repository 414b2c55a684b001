"""Error types for secret generation."""
from typing import List, Optional


class SecretGeneratorError(Exception):
    """Base class for ci-secret-generator errors."""
    pass


class ConfigError(SecretGeneratorError):
    """Configuration error exception."""
    pass


class ExpansionError(SecretGeneratorError):
    """A template could not be expanded across its params."""
    pass


class StoreError(SecretGeneratorError):
    """A secret store operation failed."""
    pass


class CommandError(SecretGeneratorError):
    """A generator command exited non-zero or could not be started."""

    def __init__(self, command: str, output: str = "", returncode: Optional[int] = None):
        self.command = command
        self.output = output
        self.returncode = returncode
        super().__init__(
            f"command {command!r} failed (exit code {returncode}), output- {output}"
        )


class AggregateError(SecretGeneratorError):
    """
    Collection of failures from a best-effort run.

    Use from_errors() so an empty run yields None instead of an empty aggregate.
    """

    def __init__(self, errors: List[Exception]):
        self.errors = list(errors)
        if len(self.errors) == 1:
            message = str(self.errors[0])
        else:
            message = "[" + ", ".join(str(e) for e in self.errors) + "]"
        super().__init__(message)

    def __len__(self) -> int:
        return len(self.errors)

    def __iter__(self):
        return iter(self.errors)

    @classmethod
    def from_errors(cls, errors: List[Exception]) -> Optional["AggregateError"]:
        if not errors:
            return None
        return cls(errors)
