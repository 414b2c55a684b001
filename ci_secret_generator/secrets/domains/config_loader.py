"""Configuration loader for ci-secret-generator."""
import logging
from pathlib import Path
from typing import List
import yaml

from .errors import ConfigError
from .models import SecretItem

logger = logging.getLogger(__name__)


def _cmd_empty_error(item_index: int, entry_index: int, entry: str) -> ConfigError:
    return ConfigError(
        f"config[{item_index}].{entry}[{entry_index}]: "
        f"empty field not allowed for cmd if name is specified"
    )


def validate_config(items: List[SecretItem]) -> None:
    """
    Validate item templates before expansion.

    Args:
        items: Parsed item templates

    Raises:
        ConfigError: On the first item that breaks a rule
    """
    for i, item in enumerate(items):
        if not item.item_name:
            raise ConfigError(f"config[{i}].item_name: empty key is not allowed")

        for field_index, spec in enumerate(item.fields):
            if spec.name and not spec.cmd:
                raise _cmd_empty_error(i, field_index, "fields")

        for attachment_index, spec in enumerate(item.attachments):
            if spec.name and not spec.cmd:
                raise _cmd_empty_error(i, attachment_index, "attachments")

        for param_name, values in item.params.items():
            if not values:
                raise ConfigError(
                    f"at least one argument required for param: {param_name}, "
                    f"item_name: {item.item_name}"
                )


def parse_config(text: str, source: str = "<string>") -> List[SecretItem]:
    """
    Parse item templates from YAML text.

    Args:
        text: YAML document holding a list of items
        source: Name used in error messages

    Returns:
        List of item templates, unvalidated

    Raises:
        ConfigError: If the YAML is malformed or has the wrong shape
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {source}: {e}")

    if data is None:
        raise ConfigError(f"Config file at {source} is empty")

    if not isinstance(data, list):
        raise ConfigError(
            f"Config at {source} must be a list of items\n"
            f"Required format:\n"
            f"- item_name: my-item\n"
            f"  fields:\n"
            f"  - name: token\n"
            f"    cmd: generate-token.sh\n"
            f"  notes: optional notes"
        )

    items = []
    for i, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ConfigError(f"config[{i}]: expected a mapping, got {type(entry).__name__}")
        try:
            items.append(SecretItem.from_dict(entry))
        except TypeError as e:
            raise ConfigError(f"config[{i}]: {e}")
    return items


def load_config(config_path: str) -> List[SecretItem]:
    """
    Load and validate item templates from a YAML file.

    Raises:
        ConfigError: If the file is missing, unreadable or invalid
    """
    path = Path(config_path)
    if not path.is_file():
        raise ConfigError(f"Configuration file not found at: {config_path}")

    try:
        text = path.read_text()
    except OSError as e:
        raise ConfigError(f"Failed to read config file at {config_path}: {e}")

    items = parse_config(text, source=config_path)
    validate_config(items)

    logger.info(f"Configuration loaded successfully from {config_path}")
    logger.debug(f"Loaded {len(items)} item templates")
    return items


def dump_config(items: List[SecretItem]) -> str:
    """Serialize item templates back to the config file format."""
    return yaml.safe_dump([item.to_dict() for item in items], sort_keys=False)
