"""Utility helpers shared by the command line and the engine.

This module collects lightweight parsing functions that do not fit in more
specific modules. User-facing parsers raise ``ValueError`` with a message
suitable for printing, while :func:`enum_by_name` never raises and falls back
to a default so engine configuration stays total.

Usage Example
-------------
>>> from melody_composer.utils import validate_time_signature
>>> validate_time_signature("7/8")
(7, 8)
>>> parse_key("D4")
62
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Type, TypeVar

from .note_utils import note_to_midi

__all__ = ["validate_time_signature", "parse_key", "enum_by_name", "VALID_DENOMINATORS"]

VALID_DENOMINATORS = frozenset({1, 2, 4, 8, 16, 32})

E = TypeVar("E", bound=Enum)


def validate_time_signature(ts: str) -> tuple[int, int]:
    """Parse and validate a time signature string.

    Parameters
    ----------
    ts:
        Time signature in ``"NUM/DEN"`` form. Whitespace around the
        separator is ignored.

    Returns
    -------
    tuple[int, int]
        ``(numerator, denominator)`` when ``ts`` is valid.

    Raises
    ------
    ValueError
        If ``ts`` is malformed, the numerator lies outside ``1-32`` or the
        denominator is not a power of two up to 32.
    """

    parts = ts.strip().split("/")
    if len(parts) != 2:
        raise ValueError(
            "Time signature must be in the form 'numerator/denominator'."
        )

    try:
        numerator = int(parts[0])
        denominator = int(parts[1])
    except ValueError as exc:
        raise ValueError(
            "Time signature must contain integer numerator and denominator."
        ) from exc

    if not 1 <= numerator <= 32 or denominator not in VALID_DENOMINATORS:
        raise ValueError(
            "Time signature numerator must be 1-32 and denominator one of 1, 2, 4, 8, 16 or 32."
        )
    return numerator, denominator


def parse_key(text: str) -> int:
    """Return the MIDI key for ``text``.

    ``text`` may be a MIDI number (``"60"``) or a note name with octave
    (``"C4"``, ``"Bb3"``).

    Raises
    ------
    ValueError
        If ``text`` is neither a number in ``0-127`` nor a valid note name.
    """

    value = str(text).strip()
    if value.lstrip("-").isdigit():
        key = int(value)
        if not 0 <= key <= 127:
            logging.error("Key out of range: %s", value)
            raise ValueError(f"Key {key} out of range 0-127")
        return key
    return note_to_midi(value)


def _normalise(text: str) -> str:
    return "".join(ch for ch in str(text).lower() if ch.isalnum() or ch == ":")


def enum_by_name(cls: Type[E], name, default: E) -> E:
    """Return the member of ``cls`` matching ``name``.

    Both member names and values match, ignoring case, spaces, hyphens and
    underscores, so ``"arp-up"``, ``"ArpUp"`` and ``"ARP_UP"`` are the same.
    Unknown names yield ``default``.
    """

    if isinstance(name, cls):
        return name
    wanted = _normalise(name)
    for member in cls:
        if wanted in (_normalise(member.name), _normalise(member.value)):
            return member
    logging.debug("Unknown %s %r; using %s", cls.__name__, name, default.name)
    return default
