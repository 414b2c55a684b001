"""Expand item templates across their params."""
import logging
from typing import List, Tuple

from ..domains.errors import ExpansionError
from ..domains.models import SecretItem

logger = logging.getLogger(__name__)


def expand_template(template: SecretItem) -> List[SecretItem]:
    """
    Return one concrete item per combination of param values.

    Params are applied in mapping order. Each step replaces the working set
    with every (item, value) pair, so the result is the full cross product.
    A template without params yields a single clone of itself.
    """
    expanded = [template.clone()]
    for param_name, values in template.params.items():
        expanded = [item.substitute(param_name, value) for item in expanded for value in values]
    return expanded


def expand_parameters(templates: List[SecretItem]) -> Tuple[List[SecretItem], List[Exception]]:
    """
    Expand every template.

    Args:
        templates: Validated item templates

    Returns:
        (expanded items, errors). A template that fails to expand is reported
        in errors and contributes no items; the others are unaffected.
    """
    items: List[SecretItem] = []
    errors: List[Exception] = []
    for template in templates:
        try:
            expanded = expand_template(template)
        except Exception as e:
            errors.append(ExpansionError(f"error copying item {template.item_name}: {e}"))
            logger.error(f"Failed to expand item {template.item_name}: {e}")
            continue
        if template.params:
            logger.debug(f"Expanded {template.item_name} into {len(expanded)} items")
        items.extend(expanded)
    return items, errors
