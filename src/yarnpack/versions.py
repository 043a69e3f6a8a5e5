# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Semantic versions and npm-style range constraints."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import total_ordering
from typing import Final, Literal

from packaging.version import InvalidVersion, Version

_VERSION_RE: Final[re.Pattern[str]] = re.compile(
    r"^[v=\s]*(\d+)\.(\d+)\.(\d+)(?:-([0-9A-Za-z.-]+))?(?:\+([0-9A-Za-z.-]+))?$",
)
_PARTIAL_RE: Final[re.Pattern[str]] = re.compile(
    r"^[v=]*(\d+|[xX*])?(?:\.(\d+|[xX*]))?(?:\.(\d+|[xX*]))?(?:-([0-9A-Za-z.-]+))?(?:\+[0-9A-Za-z.-]+)?$",
)
_OPERATOR_RE: Final[re.Pattern[str]] = re.compile(r"^(<=|>=|<|>|=|~>|~|\^)?(.*)$")
_HYPHEN_RE: Final[re.Pattern[str]] = re.compile(r"^(\S+)\s+-\s+(\S+)$")
_OPERATOR_GAP_RE: Final[re.Pattern[str]] = re.compile(r"(<=|>=|<|>|=|~>|~|\^)\s+")

Operator = Literal["<", "<=", ">", ">=", "="]


class VersionError(ValueError):
    """Raised when a version or version range cannot be parsed."""


@total_ordering
@dataclass(frozen=True, slots=True, eq=False)
class SemanticVersion:
    """Semantic version with ``packaging`` backed precedence.

    Pre-release tags are ordered as PEP 440 pre-releases, so only ``alpha``,
    ``beta`` and ``rc`` tags with an optional number are accepted. Spellings
    that normalise alike compare equal (``1.0.0-rc.1 == 1.0.0-rc1``), and
    dotted semver tags such as ``alpha.beta`` are rejected.
    """

    major: int
    minor: int
    patch: int
    prerelease: str | None = None
    build: str | None = None
    _key: Version = field(init=False, repr=False)

    def __post_init__(self) -> None:
        candidate = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            candidate = f"{candidate}-{self.prerelease}"
        try:
            key = Version(candidate)
        except InvalidVersion as exc:
            raise VersionError(f"Unsupported pre-release tag in version '{self}'") from exc
        # packaging reads numeric tags such as ``-1`` as post-releases
        if self.prerelease and (key.pre is None or key.post is not None or key.dev is not None):
            raise VersionError(f"Unsupported pre-release tag in version '{self}'")
        object.__setattr__(self, "_key", key)

    @classmethod
    def parse(cls, text: str) -> SemanticVersion:
        """Parse ``text`` such as ``1.22.19`` or ``4.0.0-rc.53``.

        Args:
            text: Version string, optionally prefixed with ``v``.

        Returns:
            SemanticVersion: Parsed version.

        Raises:
            VersionError: If ``text`` is not a full semantic version.
        """

        match = _VERSION_RE.match(text.strip())
        if match is None:
            raise VersionError(f"Invalid version '{text}'")
        major, minor, patch, prerelease, build = match.groups()
        return cls(int(major), int(minor), int(patch), prerelease, build)

    @property
    def release(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._key == other._key

    def __lt__(self, other: SemanticVersion) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._key < other._key

    def __hash__(self) -> int:
        return hash(self._key)

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text = f"{text}-{self.prerelease}"
        if self.build:
            text = f"{text}+{self.build}"
        return text


@dataclass(frozen=True, slots=True)
class _Partial:
    major: int | None
    minor: int | None
    patch: int | None
    prerelease: str | None

    def floor(self) -> SemanticVersion:
        return SemanticVersion(self.major or 0, self.minor or 0, self.patch or 0, self.prerelease)


@dataclass(frozen=True, slots=True)
class Comparator:
    """Single ``<operator><version>`` test."""

    operator: Operator
    version: SemanticVersion

    def test(self, candidate: SemanticVersion) -> bool:
        match self.operator:
            case "<":
                return candidate < self.version
            case "<=":
                return candidate <= self.version
            case ">":
                return candidate > self.version
            case ">=":
                return candidate >= self.version
            case _:
                return candidate == self.version

    def __str__(self) -> str:
        return f"{self.operator}{self.version}"


_NOTHING: Final[tuple[Comparator, ...]] = (Comparator("<", SemanticVersion(0, 0, 0)),)


@dataclass(frozen=True, slots=True)
class VersionConstraint:
    """Parsed range expression such as ``1.22.x`` or ``^3.2.0 || >=4``."""

    raw: str
    alternatives: tuple[tuple[Comparator, ...], ...]

    @classmethod
    def parse(cls, text: str) -> VersionConstraint:
        """Parse an npm-style range expression.

        Raises:
            VersionError: If any comparator in ``text`` is malformed.
        """

        alternatives = tuple(_parse_set(part) for part in text.split("||"))
        return cls(raw=text.strip(), alternatives=alternatives)

    def satisfies(self, version: SemanticVersion) -> bool:
        return any(_set_matches(comparators, version) for comparators in self.alternatives)

    def __str__(self) -> str:
        return self.raw


def _set_matches(comparators: tuple[Comparator, ...], version: SemanticVersion) -> bool:
    if not all(comparator.test(version) for comparator in comparators):
        return False
    if version.prerelease is None:
        return True
    # Pre-releases only match when the range opts into the same release tuple.
    return any(
        comparator.version.prerelease is not None and comparator.version.release == version.release
        for comparator in comparators
    )


def _parse_set(text: str) -> tuple[Comparator, ...]:
    text = text.strip()
    hyphen = _HYPHEN_RE.match(text)
    if hyphen is not None:
        return _hyphen_range(_parse_partial(hyphen.group(1)), _parse_partial(hyphen.group(2)))
    comparators: list[Comparator] = []
    for token in _OPERATOR_GAP_RE.sub(r"\1", text).split():
        comparators.extend(_desugar(token))
    return tuple(comparators)


def _parse_partial(text: str) -> _Partial:
    match = _PARTIAL_RE.match(text)
    if match is None:
        raise VersionError(f"Invalid version range component '{text}'")
    major_raw, minor_raw, patch_raw, prerelease = match.groups()
    parts: list[int | None] = []
    wildcard = False
    for raw in (major_raw, minor_raw, patch_raw):
        if wildcard or raw is None or raw in {"x", "X", "*"}:
            wildcard = True
            parts.append(None)
        else:
            parts.append(int(raw))
    major, minor, patch = parts
    if patch is None:
        prerelease = None
    return _Partial(major, minor, patch, prerelease)


def _desugar(token: str) -> tuple[Comparator, ...]:
    match = _OPERATOR_RE.match(token)
    operator, body = match.groups() if match else (None, token)
    partial = _parse_partial(body)
    match operator:
        case None | "=":
            return _x_range(partial)
        case "~" | "~>":
            return _tilde(partial)
        case "^":
            return _caret(partial)
        case _:
            return _primitive(operator, partial)


def _x_range(partial: _Partial) -> tuple[Comparator, ...]:
    major, minor, patch = partial.major, partial.minor, partial.patch
    if major is None:
        return ()
    if minor is None:
        return (
            Comparator(">=", SemanticVersion(major, 0, 0)),
            Comparator("<", SemanticVersion(major + 1, 0, 0)),
        )
    if patch is None:
        return (
            Comparator(">=", SemanticVersion(major, minor, 0)),
            Comparator("<", SemanticVersion(major, minor + 1, 0)),
        )
    return (Comparator("=", partial.floor()),)


def _tilde(partial: _Partial) -> tuple[Comparator, ...]:
    if partial.major is None or partial.minor is None or partial.patch is None:
        return _x_range(partial)
    return (
        Comparator(">=", partial.floor()),
        Comparator("<", SemanticVersion(partial.major, partial.minor + 1, 0)),
    )


def _caret(partial: _Partial) -> tuple[Comparator, ...]:
    major, minor, patch = partial.major, partial.minor, partial.patch
    if major is None:
        return ()
    lower = Comparator(">=", partial.floor())
    if minor is None or major > 0:
        return (lower, Comparator("<", SemanticVersion(major + 1, 0, 0)))
    if patch is None or minor > 0:
        return (lower, Comparator("<", SemanticVersion(0, minor + 1, 0)))
    return (lower, Comparator("<", SemanticVersion(0, 0, patch + 1)))


def _primitive(operator: str, partial: _Partial) -> tuple[Comparator, ...]:
    major, minor, patch = partial.major, partial.minor, partial.patch
    if major is None:
        return _NOTHING if operator in {"<", ">"} else ()
    if patch is not None:
        return (Comparator(operator, partial.floor()),)  # type: ignore[arg-type]
    match operator:
        case ">":
            bump = SemanticVersion(major + 1, 0, 0) if minor is None else SemanticVersion(major, minor + 1, 0)
            return (Comparator(">=", bump),)
        case ">=" | "<":
            return (Comparator(operator, partial.floor()),)
        case _:
            bump = SemanticVersion(major + 1, 0, 0) if minor is None else SemanticVersion(major, minor + 1, 0)
            return (Comparator("<", bump),)


def _hyphen_range(lower: _Partial, upper: _Partial) -> tuple[Comparator, ...]:
    comparators: list[Comparator] = []
    if lower.major is not None:
        comparators.append(Comparator(">=", lower.floor()))
    if upper.major is not None:
        if upper.patch is not None:
            comparators.append(Comparator("<=", upper.floor()))
        else:
            comparators.extend(_primitive("<=", upper))
    return tuple(comparators)


__all__ = ["Comparator", "SemanticVersion", "VersionConstraint", "VersionError"]
