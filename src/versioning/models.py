"""Data models for versioning and update requests."""

from __future__ import annotations

import functools
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple


class Stability(Enum):
    """Composer stability flags, lowest precedence first."""
    DEV = "dev"
    ALPHA = "alpha"
    BETA = "beta"
    RC = "rc"
    STABLE = "stable"
    PATCH = "patch"

    @property
    def rank(self) -> int:
        """Position of this flag in Composer's precedence ladder."""
        return _STABILITY_ORDER.index(self)


_STABILITY_ORDER = [
    Stability.DEV,
    Stability.ALPHA,
    Stability.BETA,
    Stability.RC,
    Stability.STABLE,
    Stability.PATCH,
]

# Composer normalizes every release to four numeric components.
RELEASE_WIDTH = 4


@functools.total_ordering
@dataclass(frozen=True, eq=False)
class Version:
    """A parsed Composer version.

    Ordering and equality follow Composer precedence and ignore the raw
    spelling, so ``Version("v10.1", ...) == Version("10.1.0", ...)``.
    """
    raw: str
    release: Tuple[int, ...]
    stability: Stability = Stability.STABLE
    stability_number: int = 0

    @property
    def major(self) -> int:
        """First numeric component."""
        return self.release[0]

    @property
    def minor(self) -> Optional[int]:
        """Second numeric component, if the raw string spelled one."""
        return self.release[1] if len(self.release) > 1 else None

    @property
    def padded_release(self) -> Tuple[int, ...]:
        return self.release + (0,) * (RELEASE_WIDTH - len(self.release))

    @property
    def sort_key(self) -> Tuple[Tuple[int, ...], int, int]:
        return (self.padded_release, self.stability.rank, self.stability_number)

    @property
    def normalized(self) -> str:
        """Canonical four-component spelling, e.g. ``10.1.0.0-beta2``."""
        text = ".".join(str(part) for part in self.padded_release)
        if self.stability is Stability.STABLE:
            return text
        suffix = "RC" if self.stability is Stability.RC else self.stability.value
        if self.stability_number:
            suffix = f"{suffix}{self.stability_number}"
        return f"{text}-{suffix}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.sort_key == other.sort_key

    def __lt__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.sort_key < other.sort_key

    def __hash__(self) -> int:
        return hash(self.sort_key)

    def __str__(self) -> str:
        return self.raw


@dataclass(frozen=True)
class PackageCatalogEntry:
    """One published version of a package as reported by a catalog."""
    name: str
    version: str
    stability: Stability


class UpdatePolicy(Enum):
    """How the target version is chosen."""
    EXACT_VERSION = "version"
    LATEST_MINOR = "latest-minor"
    LATEST_MAJOR = "latest-major"
    NEXT_MAJOR = "next-major"


@dataclass(frozen=True)
class UpdateRequest:
    """A validated request: exactly one policy, plus the confirmation bypass."""
    policy: UpdatePolicy
    version: Optional[str] = None
    assume_yes: bool = False


@dataclass(frozen=True)
class RequestedChange:
    """Raw selectors as received from the command line, not yet validated."""
    version: Optional[str] = None
    latest_minor: bool = False
    latest_major: bool = False
    next_major: bool = False
    assume_yes: bool = False

    def selected_policies(self) -> List[UpdatePolicy]:
        """Return every policy whose selector is present, in a fixed order."""
        selected = []
        if self.version and self.version.strip():
            selected.append(UpdatePolicy.EXACT_VERSION)
        if self.latest_minor:
            selected.append(UpdatePolicy.LATEST_MINOR)
        if self.latest_major:
            selected.append(UpdatePolicy.LATEST_MAJOR)
        if self.next_major:
            selected.append(UpdatePolicy.NEXT_MAJOR)
        return selected
