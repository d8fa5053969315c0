"""Tests for request validation and target version selection."""

import pytest

from conftest import CORE, StubCatalog
from errors import InvalidRequest, MalformedVersion
from versioning.models import RequestedChange, UpdatePolicy, UpdateRequest
from versioning.policy import build_request, is_update_needed, resolve_target


class TestBuildRequest:
    """Tests for build_request()."""

    def test_exact_version(self):
        request = build_request(RequestedChange(version=" 10.2.3 "))
        assert request == UpdateRequest(policy=UpdatePolicy.EXACT_VERSION, version="10.2.3")

    @pytest.mark.parametrize("field, policy", [
        ("latest_minor", UpdatePolicy.LATEST_MINOR),
        ("latest_major", UpdatePolicy.LATEST_MAJOR),
        ("next_major", UpdatePolicy.NEXT_MAJOR),
    ])
    def test_single_flag(self, field, policy):
        request = build_request(RequestedChange(**{field: True}, assume_yes=True))
        assert request.policy is policy
        assert request.version is None
        assert request.assume_yes is True

    def test_nothing_selected(self):
        with pytest.raises(InvalidRequest, match="You must specify either a version"):
            build_request(RequestedChange())

    @pytest.mark.parametrize("version", ["", "   ", "\t\n"])
    def test_blank_version_selects_nothing(self, version):
        with pytest.raises(InvalidRequest, match="You must specify either a version"):
            build_request(RequestedChange(version=version, assume_yes=True))

    def test_blank_version_with_flag(self):
        request = build_request(RequestedChange(version="  ", latest_minor=True))
        assert request.policy is UpdatePolicy.LATEST_MINOR

    def test_version_and_flag(self):
        with pytest.raises(InvalidRequest, match="at the same time"):
            build_request(RequestedChange(version="10.2.0", latest_minor=True))

    def test_two_flags(self):
        with pytest.raises(InvalidRequest, match="Only one of"):
            build_request(RequestedChange(latest_major=True, next_major=True))


class TestResolveTarget:
    """Tests for resolve_target()."""

    def test_latest_minor_stays_within_major(self):
        catalog = StubCatalog({CORE: ["10.1.5", "10.2.0", "9.5.0"]})
        request = UpdateRequest(policy=UpdatePolicy.LATEST_MINOR)
        assert resolve_target("10.1.0", request, catalog) == "10.2.0"

    def test_latest_minor_ignores_next_major_and_prereleases(self):
        catalog = StubCatalog({CORE: ["10.1.5", "10.3.0-rc1", "11.0.0"]})
        request = UpdateRequest(policy=UpdatePolicy.LATEST_MINOR)
        assert resolve_target("10.1.0", request, catalog) == "10.1.5"

    def test_next_major(self):
        catalog = StubCatalog({CORE: ["11.0.0", "11.1.0", "12.0.0"]})
        request = UpdateRequest(policy=UpdatePolicy.NEXT_MAJOR)
        assert resolve_target("10.1.0", request, catalog) == "11.1.0"

    def test_latest_major(self):
        catalog = StubCatalog({CORE: ["10.1.5", "11.1.0", "12.0.0", "12.1.0-beta1"]})
        request = UpdateRequest(policy=UpdatePolicy.LATEST_MAJOR)
        assert resolve_target("10.1.0", request, catalog) == "12.0.0"

    def test_nothing_newer(self):
        catalog = StubCatalog({CORE: ["10.0.0", "10.1.0"]})
        request = UpdateRequest(policy=UpdatePolicy.LATEST_MAJOR)
        assert resolve_target("10.1.0", request, catalog) is None

    def test_unknown_package(self):
        request = UpdateRequest(policy=UpdatePolicy.NEXT_MAJOR)
        assert resolve_target("10.1.0", request, StubCatalog()) is None

    def test_exact_version_skips_catalog(self):
        catalog = StubCatalog({CORE: ["11.0.0"]})
        request = UpdateRequest(policy=UpdatePolicy.EXACT_VERSION, version="10.2.3")
        assert resolve_target("10.1.0", request, catalog) == "10.2.3"
        assert catalog.calls == []

    def test_queries_requested_package(self):
        catalog = StubCatalog({"drupal/core": ["11.0.0"]})
        request = UpdateRequest(policy=UpdatePolicy.NEXT_MAJOR)
        assert resolve_target("10.1.0", request, catalog, package_name="drupal/core") == "11.0.0"

    def test_malformed_current(self):
        request = UpdateRequest(policy=UpdatePolicy.LATEST_MINOR)
        with pytest.raises(MalformedVersion):
            resolve_target("dev-main", request, StubCatalog())


class TestIsUpdateNeeded:
    """Tests for is_update_needed()."""

    def test_no_target(self):
        assert not is_update_needed("10.1.0", None)

    def test_same_version(self):
        assert not is_update_needed("10.1.0", "10.1.0")

    def test_equivalent_spelling(self):
        assert not is_update_needed("10.1.0", "v10.1")

    def test_different(self):
        assert is_update_needed("10.1.0", "10.1.5")

    def test_unparseable_target_is_attempted(self):
        assert is_update_needed("10.1.0", "dev-main")
