"""Workflow that generates secret values and uploads them to a store."""
import logging
from typing import List, Optional

from ..domains.errors import AggregateError, CommandError, ExpansionError, SecretGeneratorError
from ..domains.models import SecretItem
from ..domains.store import SecretStore
from .commands import execute_command
from .expansion import expand_parameters

logger = logging.getLogger(__name__)


def _update_item(item: SecretItem, store: SecretStore) -> List[Exception]:
    """Upload every value of one item, collecting failures instead of stopping."""
    errors: List[Exception] = []
    name = item.item_name

    for spec in item.fields:
        logger.info(f"item {name}: processing field {spec.name} (command: {spec.cmd})")
        try:
            out = execute_command(spec.cmd)
        except CommandError as e:
            logger.error(f"{spec.cmd} failed to generate field: {e}")
            errors.append(SecretGeneratorError(
                f"item_name: {name}, field_name: {spec.name}, {spec.cmd} failed: {e}"
            ))
            continue
        try:
            store.set_field(name, spec.name, out)
        except Exception as e:
            logger.error(f"item {name}: failed to upload field {spec.name}: {e}")
            errors.append(SecretGeneratorError(
                f"item_name: {name}, field_name: {spec.name}, failed to upload field: {e}"
            ))

    for spec in item.attachments:
        logger.info(f"item {name}: processing attachment {spec.name} (command: {spec.cmd})")
        try:
            out = execute_command(spec.cmd)
        except CommandError as e:
            logger.error(f"{spec.cmd} failed to generate attachment: {e}")
            errors.append(SecretGeneratorError(
                f"item_name: {name}, attachment_name: {spec.name}, {spec.cmd} failed: {e}"
            ))
            continue
        try:
            store.set_attachment(name, spec.name, out)
        except Exception as e:
            logger.error(f"item {name}: failed to upload attachment {spec.name}: {e}")
            errors.append(SecretGeneratorError(
                f"item_name: {name}, attachment_name: {spec.name}, failed to upload attachment: {e}"
            ))

    if item.password:
        logger.info(f"item {name}: processing password (command: {item.password})")
        try:
            out = execute_command(item.password)
        except CommandError as e:
            logger.error(f"{item.password} failed to generate password: {e}")
            errors.append(SecretGeneratorError(
                f"item_name: {name}, password: {item.password} failed: {e}"
            ))
        else:
            try:
                store.set_password(name, out)
            except Exception as e:
                logger.error(f"item {name}: failed to upload password: {e}")
                errors.append(SecretGeneratorError(
                    f"item_name: {name}, password: failed to upload password: {e}"
                ))

    # Empty notes leave existing notes alone; clearing them is a manual operation
    if item.notes:
        logger.info(f"item {name}: adding notes")
        try:
            store.set_notes(name, item.notes)
        except Exception as e:
            logger.error(f"item {name}: failed to update notes: {e}")
            errors.append(SecretGeneratorError(f"item_name: {name}, failed to update notes: {e}"))

    return errors


def update_secrets(items: List[SecretItem], store: SecretStore) -> Optional[AggregateError]:
    """
    Generate and upload every value of every expanded item.

    Processing never stops early: each failing command or store call is
    logged and recorded, and the next value is attempted.

    Args:
        items: Concrete (expanded) items
        store: Destination store

    Returns:
        AggregateError with every failure, or None if all succeeded
    """
    errors: List[Exception] = []
    for item in items:
        errors.extend(_update_item(item, store))
    return AggregateError.from_errors(errors)


def generate_secrets(templates: List[SecretItem], store: SecretStore) -> Optional[AggregateError]:
    """Expand templates, then update the store with every expanded item."""
    errors: List[Exception] = []
    items, expansion_errors = expand_parameters(templates)
    if expansion_errors:
        errors.append(ExpansionError(
            f"error parsing parameters: {AggregateError(expansion_errors)}"
        ))
    logger.info(f"Expanded {len(templates)} templates into {len(items)} items")

    update_error = update_secrets(items, store)
    if update_error:
        errors.extend(update_error.errors)
    return AggregateError.from_errors(errors)
