"""
Boat name classifier.

RevSport boat names follow a loose club convention, e.g.::

    1X - Carmody single scull ( Go For Gold )
    2X RACER - Swift double/pair 70 KG (Ian Krix)
    2X/- RACER - Partridge 95 KG              # also riggable as a pair
    4X - Ausrowtec coxed quad/four 90 KG Hunter
    Tinnie - 15HP (2010 Stacer Seasprite 359)

Each attribute is read by its own pattern, so a name that breaks one
part of the convention still yields the others.  ``classify`` never
raises: anything unrecognised falls back to the default value.
"""

from __future__ import annotations

import re

from boatboard.models import AssetAttributes, BoatCategory, BoatType, Classification

_TYPE_RE = re.compile(r"^\s*(1X|2X|4X|8X)(/[+-])?", re.IGNORECASE)
_TYPE_BY_CODE = {
    "1X": BoatType.SINGLE,
    "2X": BoatType.DOUBLE,
    "4X": BoatType.QUAD,
    "8X": BoatType.QUAD,
}

_RACER_RE = re.compile(r"RACER", re.IGNORECASE)
_HYBRID_RE = re.compile(r"\bRT\b", re.IGNORECASE)
_WEIGHT_RE = re.compile(r"(\d+)\s*KG", re.IGNORECASE)
_NICKNAME_RE = re.compile(r"\(\s*([^)]*?)\s*\)")

_TINNIE_RE = re.compile(r"\btinnie\b", re.IGNORECASE)
_HORSEPOWER_RE = re.compile(r"\d+\s*HP\b\s*", re.IGNORECASE)

# Display-name cleanup, applied in order.
_STRIP_TYPE_RE = re.compile(r"^\s*(1X|2X|4X|8X)(/[+-])?\s*(-\s*)?", re.IGNORECASE)
_STRIP_RACER_RE = re.compile(r"\bRACER\b\s*-?\s*", re.IGNORECASE)
_STRIP_CLASS_RE = re.compile(r"\b(RT|T)\b\s*-?\s*", re.IGNORECASE)
_STRIP_TINNIE_RE = re.compile(r"^\s*Tinnie\s*-?\s*", re.IGNORECASE)
_PARENS_RE = re.compile(r"\([^)]*\)")
_SPACES_RE = re.compile(r"\s+")


def classify(raw_name: str) -> AssetAttributes:
    """Read type, classification, weight, sweep, nickname and display name."""
    name = raw_name or ""

    type_match = _TYPE_RE.match(name)
    type_code = type_match.group(1).upper() if type_match else None
    boat_type = _TYPE_BY_CODE.get(type_code, BoatType.UNKNOWN)
    sweep_capable = bool(type_match and type_match.group(2))

    weight_match = _WEIGHT_RE.search(name)
    nickname_match = _NICKNAME_RE.search(name)
    nickname = nickname_match.group(1) if nickname_match else ""

    is_tinnie = bool(_TINNIE_RE.search(name) or _HORSEPOWER_RE.search(name))

    return AssetAttributes(
        boat_type=boat_type,
        type_code=type_code,
        classification=_classification(name),
        category=BoatCategory.TINNIE if is_tinnie else BoatCategory.ROWING,
        weight_kg=int(weight_match.group(1)) if weight_match else None,
        sweep_capable=sweep_capable,
        nickname=nickname or None,
        display_name=_display_name(name, is_tinnie),
    )


def _classification(name: str) -> Classification:
    if _RACER_RE.search(name):
        return Classification.RACE
    if _HYBRID_RE.search(name):
        return Classification.HYBRID
    return Classification.TRAINING


def _display_name(name: str, is_tinnie: bool) -> str:
    if is_tinnie:
        cleaned = _STRIP_TINNIE_RE.sub("", name)
        cleaned = _HORSEPOWER_RE.sub("", cleaned, count=1)
    else:
        cleaned = _STRIP_TYPE_RE.sub("", name)
        cleaned = _STRIP_RACER_RE.sub("", cleaned, count=1)
        cleaned = _STRIP_CLASS_RE.sub("", cleaned, count=1)
        cleaned = _WEIGHT_RE.sub("", cleaned, count=1)
    cleaned = _PARENS_RE.sub("", cleaned, count=1)
    cleaned = _SPACES_RE.sub(" ", cleaned).strip()
    # Keep something on screen for names made only of metadata.
    return cleaned or name.strip()
