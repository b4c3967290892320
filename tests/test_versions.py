"""Tests for monover.versions."""

from __future__ import annotations

import pytest
import semver

from monover.errors import MalformedVersion, NegativeVersion
from monover.versions import RollKind, is_valid_version, parse_version, roll_version


class TestParseVersion:
    def test_full_semver(self) -> None:
        v = parse_version("1.2.3")
        assert (v.major, v.minor, v.patch) == (1, 2, 3)

    def test_prerelease_and_build(self) -> None:
        v = parse_version("1.2.3-rc.1+build.5")
        assert v.prerelease == "rc.1"
        assert v.build == "build.5"

    @pytest.mark.parametrize("raw", ["1.2", "5", "x.y", "v1.2.3", "", "1.2.3.4"])
    def test_rejects_partial_or_invalid(self, raw: str) -> None:
        with pytest.raises(MalformedVersion) as exc_info:
            parse_version(raw)
        assert exc_info.value.raw == raw

    @pytest.mark.parametrize("raw", ["0.0.0", "1.2.3", "10.20.30-alpha.1", "1.0.0+sha.abc"])
    def test_round_trip(self, raw: str) -> None:
        assert str(parse_version(raw)) == raw

    def test_is_valid_version(self) -> None:
        assert is_valid_version("1.0.0")
        assert not is_valid_version("1.0")


class TestOrdering:
    def test_prerelease_sorts_before_release(self) -> None:
        assert parse_version("1.0.0-rc.1") < parse_version("1.0.0")

    def test_build_metadata_ignored(self) -> None:
        assert parse_version("1.0.0+a") == parse_version("1.0.0+b")


class TestRollVersion:
    def test_patch(self) -> None:
        assert str(roll_version(parse_version("1.2.3"), RollKind.PATCH)) == "1.2.4"

    def test_minor_resets_patch(self) -> None:
        assert str(roll_version(parse_version("1.2.3"), RollKind.MINOR)) == "1.3.0"

    def test_major_resets_minor_and_patch(self) -> None:
        assert str(roll_version(parse_version("1.2.3"), RollKind.MAJOR)) == "2.0.0"

    def test_amount(self) -> None:
        assert str(roll_version(parse_version("1.2.3"), RollKind.MINOR, 3)) == "1.5.0"

    def test_decrement(self) -> None:
        assert str(roll_version(parse_version("1.2.3"), RollKind.PATCH, -3)) == "1.2.0"

    def test_accepts_plain_string_kind(self) -> None:
        assert str(roll_version(parse_version("1.2.3"), "major")) == "2.0.0"

    def test_clears_prerelease_and_build(self) -> None:
        rolled = roll_version(parse_version("1.2.3-rc.1+build.7"), RollKind.PATCH)
        assert rolled == semver.Version(1, 2, 4)
        assert rolled.prerelease is None
        assert rolled.build is None

    def test_negative_result_raises(self) -> None:
        with pytest.raises(NegativeVersion) as exc_info:
            roll_version(parse_version("1.0.3"), RollKind.PATCH, -5, package="core")
        err = exc_info.value
        assert err.package == "core"
        assert err.attempted == -2
        assert "Cannot decrement patch version of 'core' by 5 from 1.0.3" in str(err)

    def test_decrement_to_zero_is_allowed(self) -> None:
        assert str(roll_version(parse_version("3.4.5"), RollKind.MAJOR, -3)) == "0.0.0"
