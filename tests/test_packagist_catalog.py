"""Tests for the Packagist catalog client."""

from unittest.mock import patch

import pytest

from conftest import CORE
from errors import CatalogUnavailable
from registry.packagist import MINIFIED_FORMAT, PackagistCatalog, expand_minified
from versioning.constraints import AnyVersion, greater_than
from versioning.models import Stability


def _metadata(versions, minified=True):
    data = {"packages": {CORE: versions}}
    if minified:
        data["minified"] = MINIFIED_FORMAT
    return data


class TestExpandMinified:
    """Tests for expand_minified()."""

    def test_inherits_and_unsets_keys(self):
        expanded = expand_minified([
            {"name": CORE, "version": "10.2.0", "require": {"php": ">=8.1"}},
            {"version": "10.1.5"},
            {"version": "10.1.0", "require": "__unset"},
        ])
        assert expanded[1] == {"name": CORE, "version": "10.1.5", "require": {"php": ">=8.1"}}
        assert expanded[2] == {"name": CORE, "version": "10.1.0"}

    def test_empty(self):
        assert expand_minified([]) == []

    def test_skips_non_object_entries(self):
        expanded = expand_minified([
            {"name": CORE, "version": "10.2.0"},
            "garbage",
            None,
            {"version": "10.1.5"},
        ])
        assert expanded == [
            {"name": CORE, "version": "10.2.0"},
            {"name": CORE, "version": "10.1.5"},
        ]


class TestPackagistCatalog:
    """Tests for PackagistCatalog."""

    def test_url_and_filtering(self):
        data = _metadata([
            {"name": CORE, "version": "10.2.0"},
            {"version": "10.2.0-rc1"},
            {"version": "10.1.5"},
            {"version": "10.1.0"},
            {"version": "not-a-version"},
        ])
        with patch("registry.packagist.get_json", return_value=(200, {}, data)) as mock_get:
            catalog = PackagistCatalog("https://repo.example/p2")
            found = catalog.find_versions("Drupal/Core-Recommended", greater_than("10.1.0"))

        assert mock_get.call_args[0][0] == "https://repo.example/p2/drupal/core-recommended.json"
        assert [(e.version, e.stability) for e in found] == [
            ("10.2.0", Stability.STABLE),
            ("10.2.0-rc1", Stability.RC),
            ("10.1.5", Stability.STABLE),
        ]

    def test_not_minified(self):
        data = _metadata([{"name": CORE, "version": "11.0.0"}, {"name": CORE, "version": "10.3.1"}], minified=False)
        with patch("registry.packagist.get_json", return_value=(200, {}, data)):
            found = PackagistCatalog().find_versions(CORE, AnyVersion())
        assert [e.version for e in found] == ["11.0.0", "10.3.1"]

    def test_unknown_package_is_empty(self):
        with patch("registry.packagist.get_json", return_value=(404, {}, None)):
            assert PackagistCatalog().find_versions(CORE, AnyVersion()) == []

    def test_transport_failure(self):
        with patch("registry.packagist.get_json", return_value=(0, {}, None)):
            with pytest.raises(CatalogUnavailable):
                PackagistCatalog().find_versions(CORE, AnyVersion())

    def test_unexpected_shape(self):
        with patch("registry.packagist.get_json", return_value=(200, {}, {"packages": {}})):
            with pytest.raises(CatalogUnavailable):
                PackagistCatalog().fetch_metadata(CORE)
