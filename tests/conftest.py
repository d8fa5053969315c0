"""Shared fixtures: a throwaway Drupal project plus catalog and resolver stubs."""

import json

import pytest

from resolver.composer import ResolverInvoker, ResolverOutcome
from versioning.models import PackageCatalogEntry
from versioning.parser import stability_of
from versioning.policy import CatalogAccessor

CORE = "drupal/core-recommended"


class StubCatalog(CatalogAccessor):
    """Catalog answering from a fixed list of versions per package."""

    def __init__(self, versions=None):
        self.versions = versions or {}
        self.calls = []

    def find_versions(self, package_name, constraint):
        self.calls.append((package_name, str(constraint)))
        return [
            PackageCatalogEntry(name=package_name, version=raw, stability=stability_of(raw))
            for raw in self.versions.get(package_name, [])
            if raw in constraint
        ]


class StubResolver(ResolverInvoker):
    """Resolver that records its flags and can rewrite the lock like composer would."""

    def __init__(self, exit_codes=None, lock_path=None, locked=None):
        self.exit_codes = list(exit_codes or [])
        self.lock_path = lock_path
        self.locked = locked
        self.calls = []

    def run(self, flags):
        self.calls.append(frozenset(flags))
        code = self.exit_codes.pop(0) if self.exit_codes else 0
        if code == 0 and self.lock_path and self.locked is not None:
            write_lock(self.lock_path, self.locked)
        return ResolverOutcome(code)


def write_manifest(path, require=None, require_dev=None, **extra):
    document = {"name": "acme/site", "type": "project"}
    document.update(extra)
    if require is not None:
        document["require"] = require
    if require_dev is not None:
        document["require-dev"] = require_dev
    path.write_text(json.dumps(document, indent=4) + "\n", encoding="utf-8")


def write_lock(path, locked, locked_dev=None):
    document = {
        "content-hash": "abc123",
        "packages": [{"name": name, "version": version} for name, version in locked.items()],
        "packages-dev": [{"name": name, "version": version} for name, version in (locked_dev or {}).items()],
    }
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(document, handle, indent=4)
        handle.write("\n")


@pytest.fixture
def drupal_project(tmp_path):
    """A Drupal 10.1.0 project with a lock file and no vendor dir."""
    write_manifest(
        tmp_path / "composer.json",
        require={
            CORE: "^10.1",
            "drupal/core-composer-scaffold": "^10.1",
            "drupal/token": "^1.11",
            "php": ">=8.1",
        },
        require_dev={
            "drupal/core-dev": "^10.1",
            "phpunit/phpunit": "^9.6",
        },
    )
    write_lock(
        tmp_path / "composer.lock",
        {CORE: "10.1.0", "drupal/core-composer-scaffold": "10.1.0", "drupal/token": "1.11.0"},
        {"drupal/core-dev": "10.1.0", "phpunit/phpunit": "9.6.8"},
    )
    return tmp_path
