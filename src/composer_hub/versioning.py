"""Composer-style version normalization."""

from __future__ import annotations

import re

_STABILITIES = {
    "a": "alpha",
    "alpha": "alpha",
    "b": "beta",
    "beta": "beta",
    "p": "patch",
    "pl": "patch",
    "patch": "patch",
    "rc": "RC",
    "stable": "stable",
}

_VERSION_PATTERN = re.compile(
    r"^v?(\d{1,5})(\.\d+)?(\.\d+)?(\.\d+)?"
    r"[._-]?(?:(stable|beta|b|rc|alpha|a|patch|pl|p)((?:[.-]?\d+)*))?"
    r"([.-]?dev)?$",
    re.IGNORECASE,
)
_BRANCH_ALIASES = {"master", "trunk", "default"}


def normalize_version(version: str) -> str:
    """Normalize a version string the way Composer does.

    ``1.2`` becomes ``1.2.0.0`` and ``v2.0b1`` becomes ``2.0.0.0-beta1``.
    Raises ``ValueError`` for strings that are not versions.
    """

    value = (version or "").strip()
    if not value:
        raise ValueError("Version string is empty.")

    # Build metadata carries no ordering information.
    value = value.split("+", 1)[0]

    lowered = value.lower()
    if lowered.startswith("dev-"):
        return f"dev-{value[4:]}"
    if lowered in _BRANCH_ALIASES:
        return f"dev-{lowered}"

    match = _VERSION_PATTERN.match(value)
    if match is None:
        raise ValueError(f"Invalid version string: {version}")

    parts = [match.group(1)]
    for group in match.group(2, 3, 4):
        parts.append(group[1:] if group else "0")
    normalized = ".".join(str(int(part)) for part in parts)

    stability = match.group(5)
    if stability:
        expanded = _STABILITIES[stability.lower()]
        if expanded != "stable":
            number = (match.group(6) or "").lstrip(".-")
            normalized = f"{normalized}-{expanded}{number}"
    if match.group(7):
        normalized = f"{normalized}-dev"
    return normalized


__all__ = ["normalize_version"]
