"""
Semantic versions and version requirements.

``SemanticVersion`` orders interpreter versions (``3.7.2-rc1 < 3.7.2``);
``VersionRequirement`` is the predicate users write in ``.python-version``
files and on the command line:

    ======================  ===========================================
    Text                    Requirement
    ======================  ===========================================
    ``latest``, ``*``, ""   ``Any``
    ``3.7.4``, ``=3.7.4``   ``Exact(3.7.4)``
    ``3.7``, ``~3.7``       ``Compatible(3, 7)``: any 3.7.x
    ``3``, ``~3``, ``3.*``  ``Compatible(3)``: any 3.x.y
    ``~3.7.2``              ``Compatible(3, 7, 2)``: 3.7.x at or above 3.7.2
    ======================  ===========================================

Example:
    >>> req = VersionRequirement.parse("~3.7")
    >>> req.matches(SemanticVersion.parse("3.7.5"))
    True
    >>> req.matches(SemanticVersion.parse("3.8.0"))
    False
"""

import functools
import re
from abc import ABC, abstractmethod
from typing import Optional, Tuple

from hygeia.core.exceptions import InvalidRequirementError, InvalidVersionError

_VERSION_RE = re.compile(
    r"^v?(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)

_PARTIAL_RE = re.compile(
    r"^(?P<major>\d+)(?:\.(?P<minor>\d+|\*)(?:\.(?P<patch>\d+|\*))?)?"
    r"(?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)


@functools.total_ordering
class SemanticVersion:
    """
    Immutable ``major.minor.patch[-prerelease]`` version.

    A version with a prerelease label sorts below the same
    ``major.minor.patch`` without one; prerelease labels compare by
    dot-separated identifier, numerically where both are numeric.
    """

    __slots__ = ("major", "minor", "patch", "pre", "_key")

    def __init__(self, major: int, minor: int, patch: int, pre: Optional[str] = None):
        if min(major, minor, patch) < 0:
            raise InvalidVersionError(f"{major}.{minor}.{patch}")
        object.__setattr__(self, "major", int(major))
        object.__setattr__(self, "minor", int(minor))
        object.__setattr__(self, "patch", int(patch))
        object.__setattr__(self, "pre", pre or None)
        object.__setattr__(self, "_key", self._sort_key())

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    @classmethod
    def parse(cls, text: str) -> "SemanticVersion":
        """
        Parse a full semantic version.

        Raises:
            InvalidVersionError: If ``text`` is not ``major.minor.patch[-pre]``
        """
        match = _VERSION_RE.match(text.strip()) if isinstance(text, str) else None
        if match is None:
            raise InvalidVersionError(text)
        return cls(
            int(match.group("major")),
            int(match.group("minor")),
            int(match.group("patch")),
            match.group("pre"),
        )

    @property
    def release(self) -> Tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    @property
    def is_prerelease(self) -> bool:
        return self.pre is not None

    def major_minor(self) -> str:
        return f"{self.major}.{self.minor}"

    def _sort_key(self):
        if self.pre is None:
            # Releases sort after any prerelease of the same triple
            return (self.release, 1, ())
        identifiers = []
        for part in self.pre.split("."):
            if part.isdigit():
                identifiers.append((0, int(part), ""))
            else:
                identifiers.append((1, 0, part))
        return (self.release, 0, tuple(identifiers))

    def __eq__(self, other) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._key == other._key

    def __lt__(self, other: "SemanticVersion") -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._key < other._key

    def __hash__(self) -> int:
        return hash(self._key)

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        return f"{base}-{self.pre}" if self.pre else base

    def __repr__(self) -> str:
        return f"SemanticVersion('{self}')"


class VersionRequirement(ABC):
    """Predicate over :class:`SemanticVersion`. Use :meth:`parse` to build one."""

    @abstractmethod
    def matches(self, version: SemanticVersion) -> bool:
        pass

    @classmethod
    def parse(cls, text: str) -> "VersionRequirement":
        """
        Parse a requirement string.

        Raises:
            InvalidRequirementError: If ``text`` is not a recognised requirement
        """
        if text is None:
            return Any()
        stripped = text.strip()

        if stripped in ("", "*", "latest"):
            return Any()

        operator = ""
        if stripped[0] in "=~":
            operator = stripped[0]
            stripped = stripped[1:].strip()

        match = _PARTIAL_RE.match(stripped)
        if match is None:
            raise InvalidRequirementError(text)

        major = int(match.group("major"))
        minor = _component(match.group("minor"))
        patch = _component(match.group("patch"))
        pre = match.group("pre")

        if match.group("minor") == "*" and match.group("patch") is not None:
            raise InvalidRequirementError(text)
        if pre is not None and patch is None:
            raise InvalidRequirementError(text)

        if operator != "~" and minor is not None and patch is not None:
            return Exact(SemanticVersion(major, minor, patch, pre))
        return Compatible(major, minor, patch, pre)

    def __eq__(self, other) -> bool:
        return type(self) is type(other) and self.__dict__ == other.__dict__

    def __hash__(self) -> int:
        return hash((type(self).__name__, str(self)))

    def __repr__(self) -> str:
        return f"{type(self).__name__}('{self}')"


def _component(value: Optional[str]) -> Optional[int]:
    if value is None or value == "*":
        return None
    return int(value)


class Any(VersionRequirement):
    """Matches every version (``*`` or ``latest``)."""

    def matches(self, version: SemanticVersion) -> bool:
        return True

    def __str__(self) -> str:
        return "*"


class Exact(VersionRequirement):
    """Matches exactly one version."""

    def __init__(self, version: SemanticVersion):
        self.version = version

    def matches(self, version: SemanticVersion) -> bool:
        return version == self.version

    def __str__(self) -> str:
        return f"={self.version}"


class Compatible(VersionRequirement):
    """
    Tilde requirement: same major (and minor when given), at or above the baseline.

    Prereleases only match when the baseline itself names a prerelease of
    the same ``major.minor.patch``.
    """

    def __init__(
        self,
        major: int,
        minor: Optional[int] = None,
        patch: Optional[int] = None,
        pre: Optional[str] = None,
    ):
        self.major = major
        self.minor = minor
        self.patch = patch
        self.pre = pre

    @property
    def baseline(self) -> SemanticVersion:
        return SemanticVersion(self.major, self.minor or 0, self.patch or 0, self.pre)

    def matches(self, version: SemanticVersion) -> bool:
        if version.major != self.major:
            return False
        if self.minor is not None and version.minor != self.minor:
            return False
        if version.is_prerelease:
            if self.pre is None or version.release != self.baseline.release:
                return False
        return version >= self.baseline

    def __str__(self) -> str:
        text = f"~{self.major}"
        if self.minor is not None:
            text += f".{self.minor}"
            if self.patch is not None:
                text += f".{self.patch}"
        if self.pre is not None:
            text += f"-{self.pre}"
        return text
