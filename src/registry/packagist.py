"""Packagist catalog client backed by the Composer v2 metadata API."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from constants import Constants
from errors import CatalogUnavailable, MalformedVersion
from common.http_client import get_json
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from versioning.constraints import Constraint
from versioning.models import PackageCatalogEntry
from versioning.parser import normalize, stability_of
from versioning.policy import CatalogAccessor

logger = logging.getLogger(__name__)

MINIFIED_FORMAT = "composer/2.0"
UNSET_MARKER = "__unset"


def expand_minified(versions: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Expand Composer's minified metadata.

    Each entry only lists keys that changed since the previous entry; the
    ``"__unset"`` value removes a key. Entries that are not objects are skipped.
    """
    expanded: List[Dict[str, Any]] = []
    previous: Optional[Dict[str, Any]] = None
    for entry in versions:
        if not isinstance(entry, dict):
            logger.debug("Skipping non-object metadata entry %r", entry)
            continue
        if previous is None:
            current = dict(entry)
        else:
            current = dict(previous)
            for key, value in entry.items():
                if value == UNSET_MARKER:
                    current.pop(key, None)
                else:
                    current[key] = value
        expanded.append(current)
        previous = current
    return expanded


class PackagistCatalog(CatalogAccessor):
    """Looks up published versions on a Packagist-compatible repository."""

    def __init__(self, base_url: Optional[str] = None):
        url = base_url or Constants.REGISTRY_URL_PACKAGIST
        self.base_url = url if url.endswith("/") else url + "/"

    def fetch_metadata(self, package_name: str) -> List[Dict[str, Any]]:
        """Fetch and expand the version list of a package.

        Returns:
            Expanded version entries; empty if the package is unknown.

        Raises:
            CatalogUnavailable: if the repository cannot be reached or
                answers with something other than package metadata.
        """
        name = package_name.lower()
        url = f"{self.base_url}{name}.json"
        status_code, _, data = get_json(url, headers={"Accept": "application/json"})

        if status_code == 404:
            logger.warning("Package %s was not found at %s", name, safe_url(url))
            return []
        if status_code != 200 or not isinstance(data, dict):
            raise CatalogUnavailable(
                f"Could not fetch versions of {name} from {safe_url(url)} (status {status_code})"
            )

        packages = data.get("packages")
        versions = packages.get(name) if isinstance(packages, dict) else None
        if not isinstance(versions, list):
            raise CatalogUnavailable(f"Unexpected metadata format for {name} from {safe_url(url)}")
        if data.get("minified") == MINIFIED_FORMAT:
            versions = expand_minified(versions)
        return versions

    def find_versions(self, package_name: str, constraint: Constraint) -> List[PackageCatalogEntry]:
        entries = []
        for item in self.fetch_metadata(package_name):
            raw = item.get("version") if isinstance(item, dict) else None
            if not isinstance(raw, str):
                continue
            try:
                matched = constraint.matches(normalize(raw))
            except MalformedVersion:
                continue
            if matched:
                entries.append(PackageCatalogEntry(name=package_name, version=raw, stability=stability_of(raw)))

        if is_debug_enabled(logger):
            logger.debug(
                "Catalog lookup",
                extra=extra_context(
                    event="catalog_lookup",
                    component="packagist",
                    action="find_versions",
                    package=package_name,
                    target=str(constraint),
                    count=len(entries),
                ),
            )
        return entries
