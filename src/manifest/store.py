"""Read and write access to composer.json and composer.lock.

The manifest is held as the decoded JSON document so that every key this
tool does not touch is written back unchanged and in its original order.
The lock file is only ever read; the external resolver owns it.
"""

from __future__ import annotations

import json
import logging
import os
import re
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from constants import Constants, Partition
from errors import MalformedArtifact, UnreadableArtifact, WriteFailure

logger = logging.getLogger(__name__)

_INDENT_RE = re.compile(r"^\{[ \t]*\r?\n([ \t]+)\S")


def lock_path_for(manifest_path: str) -> str:
    """Return the lock file belonging to a manifest (``x.json`` -> ``x.lock``)."""
    root, ext = os.path.splitext(manifest_path)
    if ext == ".json":
        return root + ".lock"
    return manifest_path + ".lock"


def _read_text(path: str) -> str:
    try:
        with open(path, "r", encoding="utf-8-sig") as handle:
            return handle.read()
    except (OSError, UnicodeDecodeError) as e:
        raise UnreadableArtifact(f"{path} is not readable: {e}") from e


def _decode(text: str, path: str) -> Dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedArtifact(f"{path} does not contain valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedArtifact(f"{path} must contain a JSON object at the top level")
    return data


def _detect_indent(text: str) -> Any:
    match = _INDENT_RE.match(text)
    if not match:
        return 4
    indent = match.group(1)
    return indent if "\t" in indent else len(indent)


class DependencySet:
    """The manifest document plus partition-aware constraint accessors."""

    def __init__(self, document: Dict[str, Any], path: str = Constants.MANIFEST_FILE):
        self.document = document
        self.path = path
        for partition in Partition:
            self._validate(partition)

    def _validate(self, partition: Partition) -> None:
        value = self.document.get(partition.value)
        if value is None or value == []:
            return
        if not isinstance(value, dict):
            raise MalformedArtifact(f"\"{partition.value}\" in {self.path} must be an object")
        for name, constraint in value.items():
            if not isinstance(constraint, str):
                raise MalformedArtifact(
                    f"Constraint for {name} in \"{partition.value}\" of {self.path} must be a string"
                )

    def _mapping(self, partition: Partition, create: bool = False) -> Optional[Dict[str, str]]:
        value = self.document.get(partition.value)
        if isinstance(value, dict):
            return value
        if create:
            value = {}
            self.document[partition.value] = value
            return value
        return None

    def constraints_of(self, partition: Partition) -> List[Tuple[str, str]]:
        """(name, constraint) pairs of a partition, in file order."""
        mapping = self._mapping(partition)
        return list(mapping.items()) if mapping else []

    def constraint_of(self, partition: Partition, name: str) -> Optional[str]:
        mapping = self._mapping(partition)
        return mapping.get(name) if mapping else None

    def partition_of(self, name: str) -> Optional[Partition]:
        """The partition declaring ``name``, primary first."""
        for partition in Partition:
            if self.constraint_of(partition, name) is not None:
                return partition
        return None

    def set_constraint(self, partition: Partition, name: str, constraint: str) -> None:
        """Set a constraint in memory; existing keys keep their position."""
        self._mapping(partition, create=True)[name] = constraint


class LockedVersionSet(Mapping[str, str]):
    """Read-only mapping of package name to locked exact version."""

    def __init__(self, versions: Dict[str, str]):
        self._versions = dict(versions)

    @classmethod
    def from_document(cls, document: Dict[str, Any], path: str) -> "LockedVersionSet":
        if "packages" not in document:
            raise MalformedArtifact(f"{path} has no \"packages\" list")
        versions: Dict[str, str] = {}
        for key in ("packages", "packages-dev"):
            packages = document.get(key)
            if packages is None and key == "packages-dev":
                continue
            if not isinstance(packages, list):
                raise MalformedArtifact(f"\"{key}\" in {path} must be a list")
            for package in packages:
                if not isinstance(package, dict):
                    raise MalformedArtifact(f"Entries of \"{key}\" in {path} must be objects")
                name = package.get("name")
                version = package.get("version")
                if not isinstance(name, str) or not isinstance(version, str):
                    raise MalformedArtifact(
                        f"Entries of \"{key}\" in {path} need string \"name\" and \"version\" fields"
                    )
                versions[name] = version
        return cls(versions)

    def __getitem__(self, name: str) -> str:
        return self._versions[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._versions)

    def __len__(self) -> int:
        return len(self._versions)


class ManifestStore:
    """Loads, mutates and persists a project's Composer manifest."""

    def __init__(self, manifest_path: str, lock_path: Optional[str] = None):
        self.manifest_path = manifest_path
        self.lock_path = lock_path or lock_path_for(manifest_path)
        self._dependencies: Optional[DependencySet] = None
        self._locked: Optional[LockedVersionSet] = None
        self._indent: Any = 4

    @classmethod
    def for_directory(cls, working_dir: str, manifest_file: Optional[str] = None) -> "ManifestStore":
        return cls(os.path.join(working_dir, manifest_file or Constants.MANIFEST_FILE))

    @property
    def project_dir(self) -> str:
        return os.path.dirname(os.path.abspath(self.manifest_path))

    @property
    def dependencies(self) -> DependencySet:
        if self._dependencies is None:
            raise RuntimeError("ManifestStore.load() must be called first")
        return self._dependencies

    @property
    def locked(self) -> LockedVersionSet:
        if self._locked is None:
            raise RuntimeError("ManifestStore.load() must be called first")
        return self._locked

    def load(self) -> Tuple[DependencySet, LockedVersionSet]:
        """Read both artifacts from disk, replacing any in-memory state.

        Raises:
            UnreadableArtifact: if either file cannot be read.
            MalformedArtifact: if either file has an unexpected shape.
        """
        manifest_text = _read_text(self.manifest_path)
        lock_text = _read_text(self.lock_path)
        dependencies = DependencySet(_decode(manifest_text, self.manifest_path), self.manifest_path)
        locked = LockedVersionSet.from_document(_decode(lock_text, self.lock_path), self.lock_path)
        self._indent = _detect_indent(manifest_text)
        self._dependencies = dependencies
        self._locked = locked
        logger.debug("Loaded %s (%d locked packages)", self.manifest_path, len(locked))
        return dependencies, locked

    def constraints_of(self, partition: Partition) -> List[Tuple[str, str]]:
        return self.dependencies.constraints_of(partition)

    def set_constraint(self, partition: Partition, name: str, constraint: str) -> None:
        self.dependencies.set_constraint(partition, name, constraint)

    def locked_versions(self) -> Mapping[str, str]:
        return self.locked

    def _vendor_dir(self) -> str:
        config = self.dependencies.document.get("config")
        vendor = config.get("vendor-dir") if isinstance(config, dict) else None
        if not isinstance(vendor, str) or not vendor:
            vendor = Constants.DEFAULT_VENDOR_DIR
        return os.path.join(self.project_dir, vendor)

    def _installed_from_vendor(self, name: str) -> Optional[str]:
        path = os.path.join(self._vendor_dir(), Constants.INSTALLED_FILE)
        if not os.path.isfile(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable %s: %s", path, e)
            return None
        # Composer 2 wraps the list in {"packages": [...]}; Composer 1 writes the bare list.
        packages = data.get("packages") if isinstance(data, dict) else data
        if not isinstance(packages, list):
            return None
        for package in packages:
            if isinstance(package, dict) and package.get("name") == name:
                version = package.get("version")
                return version if isinstance(version, str) else None
        return None

    def installed_version(self, name: str) -> Optional[str]:
        """Version of ``name`` as installed in the vendor dir, else as locked."""
        installed = self._installed_from_vendor(name)
        if installed is not None:
            return installed
        return self.locked.get(name)

    def persist(self) -> None:
        """Write the in-memory manifest back to disk.

        Raises:
            WriteFailure: on any I/O error.
        """
        text = json.dumps(self.dependencies.document, indent=self._indent, ensure_ascii=False) + "\n"
        try:
            with open(self.manifest_path, "w", encoding="utf-8", newline="\n") as handle:
                handle.write(text)
        except OSError as e:
            raise WriteFailure(f"Could not write {self.manifest_path}: {e}") from e
        logger.debug("Wrote %s", self.manifest_path)
