"""Target version selection for the supported update policies."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional

from constants import Constants
from errors import InvalidRequest
from common.logging_utils import extra_context, is_debug_enabled
from .constraints import (
    Constraint,
    filter_stable_sorted_descending,
    greater_than,
    range_for_major,
    range_within_major,
)
from .models import PackageCatalogEntry, RequestedChange, UpdatePolicy, UpdateRequest
from .parser import major_of, normalize

logger = logging.getLogger(__name__)


class CatalogAccessor(ABC):
    """Source of published package versions."""

    @abstractmethod
    def find_versions(self, package_name: str, constraint: Constraint) -> Iterable[PackageCatalogEntry]:
        """Return the published versions of ``package_name`` matching ``constraint``."""


def build_request(change: RequestedChange) -> UpdateRequest:
    """Validate raw selectors into an UpdateRequest.

    Raises:
        InvalidRequest: if no selector, or more than one, is present.
    """
    selected = change.selected_policies()
    if not selected:
        raise InvalidRequest(
            "You must specify either a version or the --latest-minor, --latest-major, or --next-major option."
        )
    if len(selected) > 1:
        if UpdatePolicy.EXACT_VERSION in selected:
            raise InvalidRequest(
                "You cannot specify a version and the --latest-minor, --latest-major, or --next-major option at the same time."
            )
        raise InvalidRequest("Only one of --latest-minor, --latest-major, or --next-major may be specified.")
    policy = selected[0]
    version = change.version.strip() if policy is UpdatePolicy.EXACT_VERSION else None
    return UpdateRequest(policy=policy, version=version, assume_yes=change.assume_yes)


def _highest(catalog: CatalogAccessor, package_name: str, constraint: Constraint) -> Optional[str]:
    entries = list(catalog.find_versions(package_name, constraint))
    versions = filter_stable_sorted_descending(entries, constraint)
    if is_debug_enabled(logger):
        logger.debug(
            "Catalog candidates filtered",
            extra=extra_context(
                event="decision",
                component="policy",
                action="filter_candidates",
                package=package_name,
                target=str(constraint),
                count=len(versions),
            ),
        )
    return versions[0] if versions else None


def resolve_target(
    current: str,
    request: UpdateRequest,
    catalog: CatalogAccessor,
    package_name: str = Constants.PRIMARY_PACKAGE,
) -> Optional[str]:
    """Pick the version to move ``package_name`` to.

    Returns None when the catalog holds nothing newer for the policy. An
    explicit version is returned as-is without consulting the catalog; a bad
    one surfaces later as a resolver failure.

    Raises:
        MalformedVersion: if ``current`` cannot be parsed for a catalog policy.
    """
    if request.policy is UpdatePolicy.EXACT_VERSION:
        return request.version

    if request.policy is UpdatePolicy.LATEST_MINOR:
        constraint = range_within_major(current, major_of(current))
    elif request.policy is UpdatePolicy.LATEST_MAJOR:
        constraint = greater_than(current)
    elif request.policy is UpdatePolicy.NEXT_MAJOR:
        next_major = major_of(current) + 1
        constraint = range_for_major(next_major, next_major + 1)
    else:
        raise InvalidRequest(f"Unsupported update policy: {request.policy}")

    target = _highest(catalog, package_name, constraint)
    logger.debug("Policy %s resolved %s -> %s", request.policy.value, current, target)
    return target


def is_update_needed(current: str, target: Optional[str]) -> bool:
    """False when there is no target or it names the current version."""
    if target is None:
        return False
    if target.strip() == current.strip():
        return False
    try:
        return normalize(target) != normalize(current)
    except ValueError:
        return True
