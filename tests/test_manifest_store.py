"""Tests for ManifestStore: loading, constraint edits and persistence."""

import json

import pytest

from conftest import CORE, write_lock, write_manifest
from constants import Partition
from errors import MalformedArtifact, UnreadableArtifact, WriteFailure
from manifest.store import LockedVersionSet, ManifestStore, lock_path_for


def test_lock_path_for():
    assert lock_path_for("/p/composer.json") == "/p/composer.lock"
    assert lock_path_for("/p/custom.json") == "/p/custom.lock"
    assert lock_path_for("/p/manifest") == "/p/manifest.lock"


class TestLoad:
    """Tests for ManifestStore.load()."""

    def test_reads_both_partitions_and_lock(self, drupal_project):
        store = ManifestStore.for_directory(str(drupal_project))
        deps, locked = store.load()
        assert deps.constraint_of(Partition.PRIMARY, CORE) == "^10.1"
        assert deps.constraint_of(Partition.AUXILIARY, "phpunit/phpunit") == "^9.6"
        assert deps.partition_of("drupal/core-dev") is Partition.AUXILIARY
        assert deps.partition_of("nope/nope") is None
        assert locked[CORE] == "10.1.0"
        assert locked["phpunit/phpunit"] == "9.6.8"

    def test_constraints_in_file_order(self, drupal_project):
        store = ManifestStore.for_directory(str(drupal_project))
        store.load()
        names = [name for name, _ in store.constraints_of(Partition.PRIMARY)]
        assert names == [CORE, "drupal/core-composer-scaffold", "drupal/token", "php"]

    def test_locked_versions(self, drupal_project):
        store = ManifestStore.for_directory(str(drupal_project))
        store.load()
        locked = store.locked_versions()
        assert isinstance(locked, LockedVersionSet)
        assert dict(locked) == {
            CORE: "10.1.0",
            "drupal/core-composer-scaffold": "10.1.0",
            "drupal/token": "1.11.0",
            "drupal/core-dev": "10.1.0",
            "phpunit/phpunit": "9.6.8",
        }
        with pytest.raises(TypeError):
            locked["drupal/token"] = "2.0.0"

    def test_missing_manifest(self, tmp_path):
        with pytest.raises(UnreadableArtifact):
            ManifestStore.for_directory(str(tmp_path)).load()

    def test_missing_lock(self, tmp_path):
        write_manifest(tmp_path / "composer.json", require={CORE: "^10.1"})
        with pytest.raises(UnreadableArtifact):
            ManifestStore.for_directory(str(tmp_path)).load()

    def test_invalid_json(self, drupal_project):
        (drupal_project / "composer.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(MalformedArtifact):
            ManifestStore.for_directory(str(drupal_project)).load()

    def test_non_string_constraint(self, drupal_project):
        write_manifest(drupal_project / "composer.json", require={CORE: 10})
        with pytest.raises(MalformedArtifact):
            ManifestStore.for_directory(str(drupal_project)).load()

    def test_empty_list_partition_allowed(self, drupal_project):
        write_manifest(drupal_project / "composer.json", require={CORE: "^10.1"}, require_dev=[])
        store = ManifestStore.for_directory(str(drupal_project))
        deps, _ = store.load()
        assert deps.constraints_of(Partition.AUXILIARY) == []

    def test_lock_without_packages(self, drupal_project):
        (drupal_project / "composer.lock").write_text("{}", encoding="utf-8")
        with pytest.raises(MalformedArtifact):
            ManifestStore.for_directory(str(drupal_project)).load()

    def test_locked_version_set_ignores_missing_dev_list(self):
        locked = LockedVersionSet.from_document({"packages": [{"name": "a/b", "version": "1.0.0"}]}, "x.lock")
        assert dict(locked) == {"a/b": "1.0.0"}

    def test_accessors_require_load(self, drupal_project):
        store = ManifestStore.for_directory(str(drupal_project))
        with pytest.raises(RuntimeError):
            _ = store.dependencies


class TestInstalledVersion:
    """Tests for installed_version()."""

    def test_falls_back_to_lock(self, drupal_project):
        store = ManifestStore.for_directory(str(drupal_project))
        store.load()
        assert store.installed_version(CORE) == "10.1.0"
        assert store.installed_version("drupal/unknown") is None

    def test_prefers_vendor_installed_json(self, drupal_project):
        installed = drupal_project / "vendor" / "composer"
        installed.mkdir(parents=True)
        (installed / "installed.json").write_text(
            json.dumps({"packages": [{"name": CORE, "version": "10.1.2"}]}), encoding="utf-8"
        )
        store = ManifestStore.for_directory(str(drupal_project))
        store.load()
        assert store.installed_version(CORE) == "10.1.2"

    def test_honors_vendor_dir_config(self, tmp_path):
        write_manifest(tmp_path / "composer.json", require={CORE: "^10.1"}, config={"vendor-dir": "lib"})
        write_lock(tmp_path / "composer.lock", {CORE: "10.1.0"})
        installed = tmp_path / "lib" / "composer"
        installed.mkdir(parents=True)
        (installed / "installed.json").write_text(
            json.dumps([{"name": CORE, "version": "10.0.3"}]), encoding="utf-8"
        )
        store = ManifestStore.for_directory(str(tmp_path))
        store.load()
        assert store.installed_version(CORE) == "10.0.3"


class TestPersist:
    """Tests for set_constraint() and persist()."""

    def test_round_trip_keeps_unrelated_keys(self, drupal_project):
        store = ManifestStore.for_directory(str(drupal_project))
        store.load()
        store.set_constraint(Partition.PRIMARY, "drupal/token", "*")
        store.persist()

        text = (drupal_project / "composer.json").read_text(encoding="utf-8")
        data = json.loads(text)
        assert text.endswith("}\n")
        assert data["name"] == "acme/site"
        assert data["require"]["drupal/token"] == "*"
        assert list(data["require"]) == [CORE, "drupal/core-composer-scaffold", "drupal/token", "php"]
        assert '\n    "name"' in text

    def test_keeps_two_space_indent(self, tmp_path):
        (tmp_path / "composer.json").write_text(
            '{\n  "name": "acme/site",\n  "require": {\n    "drupal/core-recommended": "^10.1"\n  }\n}\n',
            encoding="utf-8",
        )
        write_lock(tmp_path / "composer.lock", {CORE: "10.1.0"})
        store = ManifestStore.for_directory(str(tmp_path))
        store.load()
        store.persist()
        assert '\n  "name"' in (tmp_path / "composer.json").read_text(encoding="utf-8")

    def test_set_constraint_creates_partition(self, tmp_path):
        write_manifest(tmp_path / "composer.json")
        write_lock(tmp_path / "composer.lock", {})
        store = ManifestStore.for_directory(str(tmp_path))
        store.load()
        store.set_constraint(Partition.PRIMARY, CORE, "10.2.0")
        assert store.constraints_of(Partition.PRIMARY) == [(CORE, "10.2.0")]

    def test_persist_never_touches_lock(self, drupal_project):
        before = (drupal_project / "composer.lock").read_bytes()
        store = ManifestStore.for_directory(str(drupal_project))
        store.load()
        store.persist()
        assert (drupal_project / "composer.lock").read_bytes() == before

    def test_write_failure(self, drupal_project):
        store = ManifestStore.for_directory(str(drupal_project))
        store.load()
        store.manifest_path = str(drupal_project / "missing-dir" / "composer.json")
        with pytest.raises(WriteFailure):
            store.persist()
