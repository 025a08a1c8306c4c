from __future__ import annotations

import json
import types
from abc import ABC
from dataclasses import MISSING, dataclass, fields
from typing import (
    Any,
    TypeVar,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

T = TypeVar("T", bound="ConfigBase")

_UNION_TYPES = (Union, types.UnionType)


def alias(name: str) -> dict[str, str]:
    """Field metadata mapping an attribute to its serialized key."""
    return {"alias": name}


def _key(f: Any) -> str:
    return f.metadata.get("alias", f.name)


def _is_optional(field_type: Any) -> bool:
    """Check if type is Optional[X]"""
    origin = get_origin(field_type)
    if origin is type(None):
        return True
    if origin in _UNION_TYPES:
        return type(None) in get_args(field_type)
    return False


def _get_inner_type(field_type: Any) -> Any:
    """Get inner type from Optional[X] or List[X]"""
    origin = get_origin(field_type)
    if origin is list:
        args = get_args(field_type)
        return args[0] if args else Any
    if origin in _UNION_TYPES:
        for arg in get_args(field_type):
            if arg is not type(None):
                return arg
    return field_type


@dataclass
class ConfigBase(ABC):
    """
    Base class for all configuration records.
    Automatic conversion to and from plain dictionaries.

    Fields declared with ``metadata=alias("some-key")`` are written and read
    under that key, which keeps the hyphenated keys of persisted profiles.
    """

    def to_dict(self, exclude_defaults: bool = False, exclude_none: bool = True) -> dict[str, Any]:
        """
        Convert to dictionary.

        Args:
            exclude_defaults: Exclude fields with default values
            exclude_none: Exclude fields with None value
        """
        result = {}

        for f in fields(self):
            value = getattr(self, f.name)

            # Skip None
            if exclude_none and value is None:
                continue

            # Skip default values
            if exclude_defaults:
                if f.default is not MISSING and value == f.default:
                    continue
                if f.default_factory is not MISSING and value == f.default_factory():
                    continue

            if isinstance(value, ConfigBase):
                result[_key(f)] = value.to_dict(exclude_defaults, exclude_none)
            elif isinstance(value, list):
                result[_key(f)] = [
                    item.to_dict(exclude_defaults, exclude_none)
                    if isinstance(item, ConfigBase)
                    else item
                    for item in value
                ]
            else:
                result[_key(f)] = value

        return result

    def to_json(self, indent: int | None = 2, ensure_ascii: bool = False) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=ensure_ascii)

    @classmethod
    def from_dict(cls: type[T], data: dict[str, Any] | None) -> T:
        """
        Create instance from dictionary.

        Unknown keys are ignored, missing keys keep their defaults.

        Args:
            data: Dictionary with data
        """
        if not data:
            return cls()

        try:
            field_types = get_type_hints(cls)
        except (NameError, TypeError):
            field_types = {}

        kwargs = {}
        for f in fields(cls):
            if not f.init:
                continue
            key = _key(f)
            if key not in data:
                continue

            value = data[key]
            field_type = field_types.get(f.name, f.type)

            if _is_optional(field_type):
                if value is None:
                    kwargs[f.name] = None
                    continue
                field_type = _get_inner_type(field_type)
            elif value is None:
                # null for a required field keeps its default
                continue

            origin = get_origin(field_type)

            if origin is list:
                inner_type = _get_inner_type(field_type)
                if isinstance(inner_type, type) and issubclass(inner_type, ConfigBase):
                    kwargs[f.name] = [inner_type.from_dict(item) for item in value or []]
                else:
                    kwargs[f.name] = list(value or [])
            elif isinstance(field_type, type) and issubclass(field_type, ConfigBase):
                kwargs[f.name] = field_type.from_dict(value) if isinstance(value, dict) else value
            else:
                kwargs[f.name] = value

        return cls(**kwargs)

    def copy(self: T) -> T:
        """Create a deep copy."""
        return self.__class__.from_dict(self.to_dict(exclude_none=False))


class ProxyMode:
    """Operating modes of a profile."""

    RULE = "rule"
    GLOBAL = "global"
    DIRECT = "direct"


class ProxyGroupType:
    """Proxy group selection strategies."""

    SELECT = "select"
    URLTEST = "urltest"


class RuleType:
    """Rule kinds with special handling. Any other kind is a kernel match field."""

    RULE_SET = "rule_set"
    FINAL = "final"


class FinalDns:
    """DNS servers selectable as the final resolver."""

    REMOTE = "remote-dns"
    LOCAL = "local-dns"


class TunStack:
    """TUN stack implementations."""

    SYSTEM = "System"
    GVISOR = "gVisor"
    MIXED = "Mixed"


class DnsStrategy:
    """DNS resolution strategies."""

    PREFER_IPV4 = "prefer_ipv4"
    PREFER_IPV6 = "prefer_ipv6"
    IPV4_ONLY = "ipv4_only"
    IPV6_ONLY = "ipv6_only"


# Proxy members of a group with this type are kernel outbounds, not subscription entries
BUILT_IN_PROXY_TYPE = "built-in"
AUTO_INTERFACE = "Auto"
