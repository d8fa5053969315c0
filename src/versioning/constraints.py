"""Version constraints and the range/caret algebra built on them.

Constraint strings use Composer syntax. Only the subset this tool needs is
understood: wildcards, comparisons, conjunctions (space or comma), ``||``
alternatives, caret, tilde and ``1.2.*`` ranges.
"""

from __future__ import annotations

import logging
import operator
import re
from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterable, List, Sequence, Tuple, Union

from errors import MalformedVersion
from .models import PackageCatalogEntry, Stability, Version
from .parser import is_branch, normalize

logger = logging.getLogger(__name__)

VersionLike = Union[str, Version]


class Constraint(ABC):
    """A predicate over versions."""

    @abstractmethod
    def matches(self, version: Version) -> bool:
        """Return True if ``version`` satisfies this constraint."""

    def __contains__(self, version: VersionLike) -> bool:
        return self.matches(normalize(version))


class AnyVersion(Constraint):
    """The wildcard constraint ``*``."""

    def matches(self, version: Version) -> bool:
        return True

    def __str__(self) -> str:
        return "*"

    def __repr__(self) -> str:
        return "AnyVersion()"


class Comparison(Constraint):
    """A single comparison against a bound, e.g. ``>10.1.0``."""

    _OPERATORS: Dict[str, Callable[[Version, Version], bool]] = {
        ">": operator.gt,
        ">=": operator.ge,
        "<": operator.lt,
        "<=": operator.le,
        "==": operator.eq,
        "!=": operator.ne,
    }

    def __init__(self, op: str, bound: VersionLike):
        if op == "=":
            op = "=="
        if op not in self._OPERATORS:
            raise MalformedVersion(f"Unsupported constraint operator \"{op}\"")
        self.op = op
        self.bound = normalize(bound)

    def matches(self, version: Version) -> bool:
        return self._OPERATORS[self.op](version, self.bound)

    def __str__(self) -> str:
        return f"{self.op}{self.bound.raw}"

    def __repr__(self) -> str:
        return f"Comparison({self.op!r}, {self.bound.raw!r})"


class AllOf(Constraint):
    """Conjunction: every member must match."""

    def __init__(self, constraints: Sequence[Constraint]):
        self.constraints: Tuple[Constraint, ...] = tuple(constraints)

    def matches(self, version: Version) -> bool:
        return all(c.matches(version) for c in self.constraints)

    def __str__(self) -> str:
        return " ".join(str(c) for c in self.constraints)

    def __repr__(self) -> str:
        return f"AllOf({list(self.constraints)!r})"


class AnyOf(Constraint):
    """Disjunction: at least one member must match."""

    def __init__(self, constraints: Sequence[Constraint]):
        self.constraints: Tuple[Constraint, ...] = tuple(constraints)

    def matches(self, version: Version) -> bool:
        return any(c.matches(version) for c in self.constraints)

    def __str__(self) -> str:
        return " || ".join(str(c) for c in self.constraints)

    def __repr__(self) -> str:
        return f"AnyOf({list(self.constraints)!r})"


class CaretRange(AllOf):
    """``^X.Y``: every version from X.Y.0 up to, not including, (X+1).0.0."""

    def __init__(self, base: VersionLike):
        version = normalize(base)
        self.base = version
        minor = version.minor or 0
        super().__init__([
            Comparison(">=", f"{version.major}.{minor}.0-dev"),
            _below_major(version.major + 1),
        ])

    def __str__(self) -> str:
        return f"^{self.base.major}.{self.base.minor or 0}"

    def __repr__(self) -> str:
        return f"CaretRange({self.base.raw!r})"


def _below_major(major: int) -> Comparison:
    """Strict upper bound excluding every release of ``major``, pre-releases included."""
    return Comparison("<", f"{major}.0.0-dev")


def greater_than(floor_exclusive: VersionLike) -> Constraint:
    """``> floor_exclusive``."""
    return Comparison(">", floor_exclusive)


def range_within_major(floor_exclusive: VersionLike, major: int) -> Constraint:
    """``> floor_exclusive AND < (major+1).0.0``."""
    return AllOf([Comparison(">", floor_exclusive), _below_major(major + 1)])


def range_for_major(low_major_inclusive: int, high_major_exclusive: int) -> Constraint:
    """``>= low.0.0 AND < high.0.0``."""
    return AllOf([
        Comparison(">=", f"{low_major_inclusive}.0.0"),
        _below_major(high_major_exclusive),
    ])


def filter_stable_sorted_descending(
    entries: Iterable[PackageCatalogEntry], constraint: Constraint
) -> List[str]:
    """Keep stable entries satisfying ``constraint``, highest version first.

    Entries of equal precedence (``10.1`` and ``10.1.0``) are ordered by
    their raw strings, descending. Duplicate raw strings collapse to one and
    unparseable versions are skipped.
    """
    matching: Dict[str, Version] = {}
    for entry in entries:
        if entry.stability is not Stability.STABLE:
            continue
        try:
            version = normalize(entry.version)
        except MalformedVersion:
            logger.debug("Skipping unparseable catalog version %s of %s", entry.version, entry.name)
            continue
        if constraint.matches(version):
            matching[version.raw] = version
    ordered = sorted(matching.values(), key=lambda v: (v.sort_key, v.raw), reverse=True)
    return [v.raw for v in ordered]


_BRANCH_ALIAS_RE = re.compile(r"^v?(\d+)\.(\d+)\.x-dev$", re.IGNORECASE)


def caret_range_from(exact_version: str) -> str:
    """Build a ``^major.minor`` constraint string from an exact version.

    Versions spelling fewer than two numeric components, and named branches
    such as ``dev-main``, come back verbatim behind a caret.
    """
    text = exact_version.strip()
    alias = _BRANCH_ALIAS_RE.match(text)
    if alias:
        return f"^{alias.group(1)}.{alias.group(2)}"
    if is_branch(text):
        return f"^{text}"
    version = normalize(text)
    if version.minor is None:
        return f"^{text}"
    return f"^{version.major}.{version.minor}"


_WILDCARD_RE = re.compile(r"^[*xX](?:\.[*xX]){0,3}$")
_PARTIAL_WILDCARD_RE = re.compile(r"^v?(\d+)(?:\.(\d+))?(?:\.(\d+))?\.[*xX]$")
_COMPARISON_RE = re.compile(r"^(>=|<=|==|!=|<>|>|<|=)\s*(.+)$")
_STABILITY_FLAG_RE = re.compile(r"@(?:stable|rc|beta|alpha|dev)$", re.IGNORECASE)


def _parse_term(term: str) -> Constraint:
    term = _STABILITY_FLAG_RE.sub("", term).strip()
    if not term or _WILDCARD_RE.match(term):
        return AnyVersion()
    if term.startswith("^"):
        return CaretRange(term[1:])
    if term.startswith("~"):
        base = normalize(term[1:])
        if len(base.release) <= 2:
            upper = _below_major(base.major + 1)
        else:
            upper = Comparison("<", f"{base.major}.{base.release[1] + 1}.0-dev")
        return AllOf([Comparison(">=", base), upper])
    partial = _PARTIAL_WILDCARD_RE.match(term)
    if partial:
        parts = [int(p) for p in partial.groups() if p is not None]
        lower = ".".join(str(p) for p in parts) + "-dev"
        bumped = parts[:-1] + [parts[-1] + 1]
        upper = ".".join(str(p) for p in bumped) + "-dev"
        return AllOf([Comparison(">=", lower), Comparison("<", upper)])
    comparison = _COMPARISON_RE.match(term)
    if comparison:
        op = "!=" if comparison.group(1) == "<>" else comparison.group(1)
        return Comparison(op, comparison.group(2).strip())
    return Comparison("==", term)


def parse_constraint(expression: str) -> Constraint:
    """Parse a Composer constraint string.

    Raises:
        MalformedVersion: if any part of the expression is not understood.
    """
    alternatives = [alt.strip() for alt in re.split(r"\s*\|\|?\s*", expression.strip())]
    parsed: List[Constraint] = []
    for alternative in alternatives:
        # Glue operators to their operand so "> 1.0" splits as one term.
        glued = re.sub(r"(>=|<=|==|!=|<>|>|<|=)\s+", r"\1", alternative)
        terms = [t for t in re.split(r"\s*,\s*|\s+", glued) if t]
        members = [_parse_term(t) for t in terms] or [AnyVersion()]
        parsed.append(members[0] if len(members) == 1 else AllOf(members))
    return parsed[0] if len(parsed) == 1 else AnyOf(parsed)


def is_wildcard(expression: str) -> bool:
    """True if the constraint string accepts every version (``*``, ``x``, ``*@dev``...)."""
    try:
        return isinstance(parse_constraint(expression), AnyVersion)
    except MalformedVersion:
        return False
