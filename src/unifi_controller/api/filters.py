"""Filter construction and validation for the resource queries.

Everything here runs before a request is sent, so a bad filter never
reaches the controller.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Sequence, Union

from .exceptions import InvalidFilterError

DEFAULT_START = 0
DEFAULT_LIMIT = 100
DEFAULT_PERIOD_HOURS = 1

MAC_ADDRESS_PATTERN = re.compile(r"^(?:[0-9A-Fa-f]{2}[:-]){5}[0-9A-Fa-f]{2}$")


def _positive_or(value: Optional[int], default: int) -> int:
    if value is None or isinstance(value, bool) or not isinstance(value, int):
        return default
    return value if value > 0 else default


def paging_filter(
    start: Optional[int] = None,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    """Build the ``_start``/``_limit`` pair; non-positive values fall back to defaults.

    Example:
        >>> paging_filter(limit=-5)
        {'_start': 0, '_limit': 100}
    """
    return {
        "_start": _positive_or(start, DEFAULT_START),
        "_limit": _positive_or(limit, DEFAULT_LIMIT),
    }


def alarm_filter(
    start: Optional[int] = None,
    limit: Optional[int] = None,
    archived: bool = False,
) -> Dict[str, Any]:
    return {**paging_filter(start, limit), "archived": bool(archived)}


def event_filter(
    start: Optional[int] = None,
    limit: Optional[int] = None,
    period: Optional[int] = None,
) -> Dict[str, Any]:
    """Paging plus ``within``, the look-back period in hours (minimum 1)."""
    return {**paging_filter(start, limit), "within": period_hours(period)}


def rogue_ap_filter(
    limit: Optional[int] = None,
    period: Optional[int] = None,
) -> Dict[str, Any]:
    return {
        "_limit": _positive_or(limit, DEFAULT_LIMIT),
        "within": period_hours(period),
    }


def period_hours(period: Optional[int]) -> int:
    if isinstance(period, int) and not isinstance(period, bool) and period > 1:
        return period
    return DEFAULT_PERIOD_HOURS


def mac_filter(macs: Union[str, Sequence[str], None]) -> List[str]:
    """Normalize a mac-address filter to a validated list.

    Args:
        macs: A single address, a sequence of addresses, or None for no filter.

    Returns:
        List of addresses, in the order given.

    Raises:
        InvalidFilterError: The filter is not a string/sequence, or an entry
            is not a valid mac address.
    """
    if macs is None:
        return []
    if isinstance(macs, str):
        macs = [macs]
    if not isinstance(macs, (list, tuple)):
        raise InvalidFilterError(
            message="Filter must be a single mac address or a list of mac addresses",
        )

    for mac in macs:
        if not isinstance(mac, str) or not MAC_ADDRESS_PATTERN.match(mac):
            raise InvalidFilterError(
                message=f"Invalid mac address specified: {mac!r}",
                hint="Use the aa:bb:cc:dd:ee:ff format.",
            )
    return list(macs)
