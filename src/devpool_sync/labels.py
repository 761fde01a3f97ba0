"""
Label reconciliation and price extraction for mirrored devpool issues.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Final

from .exceptions import PriceParseError
from .models import Label, make_labels

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .models import Issue

logger: logging.Logger = logging.getLogger(__name__)

PRICE_PREFIX: Final[str] = "Price:"
PRICING_PREFIX: Final[str] = "Pricing:"
PARTNER_PREFIX: Final[str] = "Partner:"
ID_PREFIX: Final[str] = "id:"
TIME_PREFIX: Final[str] = "Time:"
UNAVAILABLE: Final[str] = "Unavailable"
PRICE_NOT_SET: Final[str] = "Pricing: not set"

_AMOUNT_RE: Final[re.Pattern[str]] = re.compile(r"^\s*(\d+)")


def is_price_label(name: str) -> bool:
    """Check if a label name is a raw price label ("Price: ..." or "Pricing: ...")."""
    return name.startswith((PRICE_PREFIX, PRICING_PREFIX))


def label_value(name: str) -> str:
    """Return the part of a label name after the first colon.

    Example: "Partner: my/repo" -> "my/repo"
    """
    _, _, value = name.partition(":")
    return value.strip()


def find_label(labels: Iterable[Label], prefix: str) -> Label | None:
    """Return the first label whose name starts with `prefix`."""
    return next((label for label in labels if label.has_prefix(prefix)), None)


def has_price_label(labels: Iterable[Label]) -> bool:
    """Check if the labels carry a price, ignoring the "not set" placeholder."""
    return any(is_price_label(label.name) and label.name != PRICE_NOT_SET for label in labels)


def get_price_label(labels: Iterable[Label]) -> str:
    """Return the normalized price label for a label set.

    Partner "Price: X" labels are renamed to "Pricing: X": the devpool bot
    removes manually added labels starting with "Price:".
    """
    for label in labels:
        if label.has_prefix(PRICE_PREFIX):
            return PRICING_PREFIX + label.name[len(PRICE_PREFIX) :]
        if label.has_prefix(PRICING_PREFIX):
            return label.name
    return PRICE_NOT_SET


def parse_price(label_name: str) -> int | None:
    """Parse the amount of a price label.

    Returns:
        The integer amount, or None for the "not set" placeholder.

    Raises:
        PriceParseError: If the label carries a non-numeric amount
    """
    if label_name == PRICE_NOT_SET:
        return None
    match = _AMOUNT_RE.match(label_value(label_name))
    if match is None:
        msg = f"Price '{label_name}' is not a valid number"
        raise PriceParseError(msg)
    return int(match.group(1))


def get_price(labels: Iterable[Label], *, context: str = "") -> int | None:
    """Return the numeric price of a label set, or None when there is no usable price."""
    label = find_label(labels, PRICING_PREFIX)
    if label is None:
        return None
    try:
        return parse_price(label.name)
    except PriceParseError as e:
        logger.error(f"{e} in issue {context}".rstrip())
        return None


def reconcile_labels(
    partner_issue: Issue,
    owner: str,
    repo: str,
    category: str | None = None,
) -> list[str]:
    """Build the label list a mirrored issue should carry.

    Args:
        partner_issue: The partner issue being mirrored
        owner: Owner of the partner repository, taken from the issue URL
        repo: Name of the partner repository, taken from the issue URL
        category: Category label configured for the project, if any

    Returns:
        Ordered label names: price, partner, id, then "Unavailable" if the
        partner issue is assigned, then the partner's own labels except raw
        price, partner and id labels, then the category label.
    """
    names = [
        get_price_label(partner_issue.labels),
        f"Partner: {owner}/{repo}",
        f"id: {partner_issue.identifier}",
    ]

    if partner_issue.assigned:
        names.append(UNAVAILABLE)

    for label in partner_issue.labels:
        # Price, partner and id labels must only ever be synthesized above
        if is_price_label(label.name) or label.has_prefix((PARTNER_PREFIX, ID_PREFIX)):
            continue
        if label.name not in names:
            names.append(label.name)

    if category and category not in names:
        names.append(category)

    return names


def without_unavailable(names: Iterable[str]) -> list[str]:
    return [name for name in names if name != UNAVAILABLE]


def same_labels(current: Iterable[Label], expected: Iterable[str]) -> bool:
    """Compare label sets ignoring order."""
    return set(current) == set(make_labels(expected))

