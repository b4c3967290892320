"""Version parsing and rolling utilities.

Versions are semver.Version objects. Parsing is strict (a version needs all
three numeric components), so "1.2" is reported as malformed rather than
silently padded.
"""

from __future__ import annotations

from enum import Enum

import semver

from .errors import MalformedVersion, NegativeVersion


class RollKind(str, Enum):
    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"


def parse_version(version_str: str) -> semver.Version:
    """Parse a full semantic version string.

    Raises:
        MalformedVersion: If the string is not valid semver.
    """
    try:
        return semver.Version.parse(version_str)
    except (ValueError, TypeError) as exc:
        raise MalformedVersion(version_str) from exc


def is_valid_version(version_str: str) -> bool:
    return semver.Version.is_valid(version_str)


def roll_version(
    version: semver.Version,
    kind: RollKind,
    amount: int = 1,
    *,
    package: str | None = None,
) -> semver.Version:
    """Add `amount` to one component, zeroing the lower-order ones.

    Pre-release and build metadata are always cleared. Components never
    borrow from higher ones, so decrementing below zero is an error.

    Examples:
        1.2.3 patch +1 → 1.2.4
        1.2.3 minor +1 → 1.3.0
        1.2.3 major +1 → 2.0.0
        1.0.3 patch -5 → NegativeVersion

    Raises:
        NegativeVersion: If the rolled component would drop below zero.
    """
    kind = RollKind(kind)
    current = getattr(version, kind.value)
    rolled = current + amount
    if rolled < 0:
        raise NegativeVersion(package, str(version), kind.value, amount, rolled)

    if kind is RollKind.MAJOR:
        return semver.Version(rolled, 0, 0)
    if kind is RollKind.MINOR:
        return semver.Version(version.major, rolled, 0)
    return semver.Version(version.major, version.minor, rolled)
