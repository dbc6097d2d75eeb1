"""Request-scoped flags and per-call write options for `PartnerStore`."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping


_TRUTHY = {"1", "true", "yes", "y", "on"}


@dataclass(frozen=True)
class Context:
    """Immutable bag of small request-scoped flags.

    Known keys:
    - active_test: hide inactive records from searches (default True)
    - show_address / show_address_only / show_email / html_format: display name
    - force_email / default_email: `name_create` behaviour
    """

    values: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    def has_key(self, key: str) -> bool:
        return key in self.values

    def get_bool(self, key: str, default: bool = False) -> bool:
        if key not in self.values:
            return default
        raw = self.values[key]
        if isinstance(raw, str):
            return raw.strip().lower() in _TRUTHY
        return bool(raw)

    def get_string(self, key: str, default: str = "") -> str:
        raw = self.values.get(key)
        if raw is None:
            return default
        return str(raw)

    def with_keys(self, **flags: Any) -> "Context":
        merged = dict(self.values)
        merged.update(flags)
        return Context(merged)


@dataclass(frozen=True)
class WriteOptions:
    """Options carried by a single `PartnerStore.write` call.

    `suppress_resync` marks writes issued by the synchronizer itself: the
    values are stored and derived fields recomputed, but `fields_sync` is not
    run again for the written records.
    """

    suppress_resync: bool = False


SYNC_WRITE = WriteOptions(suppress_resync=True)
