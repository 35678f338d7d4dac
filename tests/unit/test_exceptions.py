from __future__ import annotations

from refreshcache.core.exceptions import (
    ArgumentError,
    CacheError,
    ConfigurationError,
    GetError,
    RefreshError,
    SetError,
    StorageError,
)


def test_exception_hierarchy_is_structural() -> None:
    for exc in (ArgumentError, ConfigurationError, GetError, SetError, StorageError, RefreshError):
        assert issubclass(exc, CacheError)


def test_argument_error_is_not_a_value_error() -> None:
    # Callers catch CacheError, not builtins.
    assert not issubclass(ArgumentError, ValueError)
