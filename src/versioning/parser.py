"""Composer version string parsing."""

import re
from typing import Union

from errors import MalformedVersion
from .models import Stability, Version

_VERSION_RE = re.compile(
    r"^v?(?P<release>\d+(?:\.\d+){0,3})"
    r"(?:[._-]?(?P<modifier>stable|beta|b|rc|alpha|a|patch|pl|p|dev)(?:[._-]?(?P<number>\d+))?)?"
    r"(?:\+[0-9A-Za-z.\-]+)?$",
    re.IGNORECASE,
)

_MODIFIERS = {
    "stable": Stability.STABLE,
    "beta": Stability.BETA,
    "b": Stability.BETA,
    "rc": Stability.RC,
    "alpha": Stability.ALPHA,
    "a": Stability.ALPHA,
    "patch": Stability.PATCH,
    "pl": Stability.PATCH,
    "p": Stability.PATCH,
    "dev": Stability.DEV,
}


def normalize(raw: Union[str, Version]) -> Version:
    """Parse a version string into a Version.

    Accepts one to four dot-separated numeric components, an optional
    leading ``v`` and an optional stability suffix (``-beta2``, ``RC1``,
    ``-dev`` ...). Build metadata after ``+`` is accepted and ignored.

    Raises:
        MalformedVersion: if the string is not a version (branch names such
            as ``dev-main`` included).
    """
    if isinstance(raw, Version):
        return raw
    if not isinstance(raw, str):
        raise MalformedVersion(f"Invalid version {raw!r}: expected a string")
    text = raw.strip()
    match = _VERSION_RE.match(text)
    if not match:
        raise MalformedVersion(f"Invalid version string \"{raw}\"")
    release = tuple(int(part) for part in match.group("release").split("."))
    modifier = match.group("modifier")
    stability = _MODIFIERS[modifier.lower()] if modifier else Stability.STABLE
    number = int(match.group("number")) if match.group("number") else 0
    return Version(raw=text, release=release, stability=stability, stability_number=number)


def major_of(version: Union[str, Version]) -> int:
    """Return the first numeric component of a version."""
    return normalize(version).major


def is_branch(raw: str) -> bool:
    """True for branch references such as ``dev-main`` or ``10.1.x-dev``."""
    text = raw.strip().lower()
    return text.startswith("dev-") or (text.endswith("-dev") and ".x" in text)


def stability_of(raw: str) -> Stability:
    """Return the stability flag of a raw version string.

    Never raises: anything that is not a parseable release is reported as
    ``dev`` so it can never be picked as a stable target.
    """
    if is_branch(raw):
        return Stability.DEV
    try:
        return normalize(raw).stability
    except MalformedVersion:
        return Stability.DEV
