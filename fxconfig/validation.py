"""Checkers for policy expressions, file paths and directory paths."""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass, field
from typing import Protocol

from .policydsl import PolicyParseError, SignaturePolicy, from_string


class ValidationError(ValueError):
    """Raised when a checked input is not valid."""


class _PolicyChecker(Protocol):
    def check(self, expression: str) -> object: ...


class _PathChecker(Protocol):
    def exists(self, path: str) -> str: ...


class PolicyDSLChecker:
    """Validates policy expressions by parsing them."""

    def check(self, expression: str) -> SignaturePolicy:
        """Return the parsed policy, or raise ValidationError if it does not parse."""
        try:
            return from_string(expression)
        except PolicyParseError as err:
            raise ValidationError(f"invalid policy expression: {err}") from err


def _stat_clean(path: str) -> tuple[str, os.stat_result | None]:
    if not path:
        raise ValidationError("path must not be empty")
    clean = os.path.normpath(path)
    if ".." in clean:
        raise ValidationError("path traversal not allowed")
    try:
        return clean, os.stat(clean)
    except FileNotFoundError:
        return clean, None
    except OSError as err:
        raise ValidationError(str(err)) from err


class OSFileChecker:
    """Checks that a path names an existing file, rejecting path traversal."""

    def exists(self, path: str) -> str:
        """Return the cleaned path if it exists and is not a directory."""
        clean, info = _stat_clean(path)
        if info is None:
            raise ValidationError(f"file does not exist: {path}")
        if stat.S_ISDIR(info.st_mode):
            raise ValidationError(f"expected file but got directory: {path}")
        return clean


class OSDirectoryChecker:
    """Checks that a path names an existing directory, rejecting path traversal."""

    def exists(self, path: str) -> str:
        """Return the cleaned path if it exists and is a directory."""
        clean, info = _stat_clean(path)
        if info is None:
            raise ValidationError(f"directory does not exist: {path}")
        if not stat.S_ISDIR(info.st_mode):
            raise ValidationError(f"not a directory: {path}")
        return clean


@dataclass(frozen=True)
class Context:
    """The checkers used to validate user input and configuration."""

    policy_checker: _PolicyChecker = field(default_factory=PolicyDSLChecker)
    file_checker: _PathChecker = field(default_factory=OSFileChecker)
    directory_checker: _PathChecker = field(default_factory=OSDirectoryChecker)


def new_validation_context() -> Context:
    """Return a context backed by the policy parser and the file system."""
    return Context(
        policy_checker=PolicyDSLChecker(),
        file_checker=OSFileChecker(),
        directory_checker=OSDirectoryChecker(),
    )