"""Household key derivation from raw voter address fragments.

Imported voter rolls spell the same field several ways (``Door_No``,
``HouseNo``, ``Address-House no`` ...).  Each fragment is taken from the first
alias that holds a non-empty value, in the order given.

Key format: ``"<house>-<street>"`` with surrounding whitespace trimmed.

Returns ``None`` ("no key") when the street fragment is empty or the trimmed
key is empty or a bare ``-``.  A record without a key is never merged with
another record by address.

Safety rule: raw address values are never logged.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence

from households.core.settings import DEFAULT_HOUSE_NUMBER_ALIASES, DEFAULT_STREET_ALIASES

KEY_SEPARATOR = "-"


def _is_empty(value: object) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0
    if isinstance(value, str):
        return not value.strip()
    return False


def first_present(fields: Mapping[str, object], aliases: Sequence[str]) -> str:
    """Return the first non-empty value of *aliases* in *fields* as a string.

    Empty means missing, ``None``, ``False``, numeric zero or a blank string.
    Returns ``""`` when every alias is empty.
    """
    for alias in aliases:
        value = fields.get(alias)
        if not _is_empty(value):
            return value if isinstance(value, str) else str(value)
    return ""


def household_key(
    fields: Mapping[str, object],
    house_aliases: Sequence[str] = DEFAULT_HOUSE_NUMBER_ALIASES,
    street_aliases: Sequence[str] = DEFAULT_STREET_ALIASES,
) -> str | None:
    """Return the household key for *fields*, or ``None`` when there is none.

    Parameters
    ----------
    fields:
        Raw address fragments of one voter record, keyed by field name.
    house_aliases, street_aliases:
        Ordered field names tried for the house-number and street fragments.

    Notes
    -----
    * Fragments keep their original case and inner spacing.
    * Never raises; never logs raw values.
    """
    house = first_present(fields, house_aliases)
    street = first_present(fields, street_aliases)

    if not street:
        return None

    key = f"{house}{KEY_SEPARATOR}{street}".strip()
    if not key or key == KEY_SEPARATOR:
        return None
    return key
