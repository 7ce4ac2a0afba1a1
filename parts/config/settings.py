# parts/config/settings.py
"""
Data model of a parts configuration document.

A document is a TOML table holding an optional `default` part name and one
sub-table per named part. Parts are validated strictly: unknown keys and
values of the wrong type are rejected instead of being ignored.
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

import structlog

from parts.exceptions import NoDefaultPart, SchemaError, UnknownPart

log = structlog.get_logger(__name__)

DEFAULT_DIRECTORY = "./"
DEFAULT_KEY = "default"

# maps keys used in a part table (toml) to their corresponding Part attribute names.
# format: "config_file_key": "Part_attribute_name"
PART_KEY_TO_ATTR_MAP: Dict[str, str] = {
    "directory": "directory",
    "ignore_hidden": "ignore_hidden",
    "use_gitignore": "use_gitignore",
    "globs": "include_globs",
    "regexes": "include_regexes",
    "exclude_globs": "exclude_globs",
    "exclude_regexes": "exclude_regexes",
}

_BOOL_KEYS = ("ignore_hidden", "use_gitignore")
_LIST_KEYS = ("globs", "regexes", "exclude_globs", "exclude_regexes")


@dataclass(frozen=True)
class Part:
    # one named file-selection configuration: a root directory plus include/exclude rules.
    name: str = ""
    directory: str = DEFAULT_DIRECTORY
    ignore_hidden: bool = True
    use_gitignore: bool = True
    include_globs: Tuple[str, ...] = ()
    include_regexes: Tuple[str, ...] = ()
    exclude_globs: Tuple[str, ...] = ()
    exclude_regexes: Tuple[str, ...] = ()

    @classmethod
    def from_table(cls, name: str, table: Mapping[str, Any], origin: str = "") -> "Part":
        """
        Builds a Part from one TOML table, rejecting unknown keys and wrong types.
        `origin` only serves error messages.
        """
        unknown = [k for k in table if k not in PART_KEY_TO_ATTR_MAP]
        if unknown:
            raise SchemaError(
                origin,
                f"part {name!r} has unknown field(s) {', '.join(repr(k) for k in unknown)}, "
                f"expected one of {', '.join(PART_KEY_TO_ATTR_MAP)}",
            )

        kwargs: Dict[str, Any] = {"name": name}
        for key, value in table.items():
            attr = PART_KEY_TO_ATTR_MAP[key]
            if key == "directory":
                if not isinstance(value, str):
                    raise SchemaError(origin, f"part {name!r}: 'directory' must be a string, got {type(value).__name__}")
                kwargs[attr] = value
            elif key in _BOOL_KEYS:
                if not isinstance(value, bool):
                    raise SchemaError(origin, f"part {name!r}: {key!r} must be a boolean, got {type(value).__name__}")
                kwargs[attr] = value
            elif key in _LIST_KEYS:
                if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
                    raise SchemaError(origin, f"part {name!r}: {key!r} must be a list of strings")
                kwargs[attr] = tuple(value)
        return cls(**kwargs)


@dataclass(frozen=True)
class ConfigDocument:
    # root of a parsed config: the source it came from, an optional default, and its parts.
    origin: str
    default: Optional[str] = None
    parts: Mapping[str, Part] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "parts", MappingProxyType(dict(self.parts)))

    @classmethod
    def from_table(cls, table: Mapping[str, Any], origin: str) -> "ConfigDocument":
        default = table.get(DEFAULT_KEY)
        if default is not None and not isinstance(default, str):
            raise SchemaError(origin, f"{DEFAULT_KEY!r} must be a string, got {type(default).__name__}")

        parts: Dict[str, Part] = {}
        for name, value in table.items():
            if name == DEFAULT_KEY:
                continue
            if not isinstance(value, dict):
                raise SchemaError(origin, f"{name!r} must be a table describing a part, got {type(value).__name__}")
            parts[name] = Part.from_table(name, value, origin)

        if default is not None and default not in parts:
            log.warning("default_part_not_defined", origin=origin, default=default)
        log.debug("config_document_built", origin=origin, parts=list(parts), default=default)
        return cls(origin=origin, default=default, parts=parts)

    def get(self, name: Optional[str] = None) -> Optional[Part]:
        # named lookup, or the default part when no name is given.
        if name is not None:
            return self.parts.get(name)
        return self.get_default()

    def get_default(self) -> Optional[Part]:
        if self.default is None:
            return None
        return self.parts.get(self.default)

    def is_default(self, name: str) -> bool:
        return self.default is not None and self.default == name

    def require(self, name: Optional[str] = None) -> Part:
        part = self.get(name)
        if part is not None:
            return part
        if name is None:
            raise NoDefaultPart(self.origin)
        raise UnknownPart(name)
