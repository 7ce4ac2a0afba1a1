# parts/config/loader.py
"""
Locates and loads the parts configuration from TOML files.

A config source is `<path>` or `<path>:<key>[.<key>...]`; the keys descend
nested tables inside the file (e.g. `pyproject.toml:tool.parts`) before the
parts schema is applied. Without an explicit source, a fixed list of
conventional candidates is tried in order.
"""
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

import structlog
import toml

from parts.exceptions import (
    ConfigError,
    ConfigFileDoesNotExist,
    ConfigReadError,
    InvalidConfigSource,
    KeysNotFound,
    NoConfigFileFound,
    TomlSyntaxError,
    ValueIsNotTable,
)

from .settings import ConfigDocument

log = structlog.get_logger(__name__)

SPLIT_PATH = ":"
SPLIT_KEYS = "."

# tried in order when no explicit source is given.
DISCOVERY_CANDIDATES: Tuple[str, ...] = (
    "parts.toml",
    ".parts.toml",
    "Cargo.toml:metadata.parts",
    "pyproject.toml:tool.parts",
)


def split_path_and_keys(source: str) -> Tuple[str, List[str]]:
    """
    Splits a config source into a file path and a list of keys.

    Only the first `:` separates path and keys; keys are separated with `.`
    and must not be empty.

    >>> split_path_and_keys("Cargo.toml:metadata.parts")
    ('Cargo.toml', ['metadata', 'parts'])
    >>> split_path_and_keys(".parts.toml")
    ('.parts.toml', [])
    """
    path, sep, raw_keys = source.partition(SPLIT_PATH)
    if not sep:
        return source, []
    keys = raw_keys.split(SPLIT_KEYS)
    if any(not key for key in keys):
        raise InvalidConfigSource(source, "keys must be non-empty and separated by a single '.'")
    return path, keys


def validate_config_source(value: str) -> str:
    # checks that the path part of a config source exists, before any parsing.
    path, _ = split_path_and_keys(value)
    if not Path(path).exists():
        raise ConfigFileDoesNotExist(value)
    return value


def _read_toml_document(file_path: Path) -> Any:
    log.debug("loading_toml_config_file", path=str(file_path))
    try:
        content = file_path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise TomlSyntaxError(str(file_path), f"not valid UTF-8 ({e})") from e
    except OSError as e:
        raise ConfigReadError(str(file_path), e) from e
    try:
        return toml.loads(content)
    except toml.TomlDecodeError as e:
        raise TomlSyntaxError(str(file_path), str(e)) from e


def _descend_keys(document: Any, keys: Sequence[str], path: str) -> Any:
    # walks one key per level; every intermediate value has to be a table.
    dotted = SPLIT_KEYS.join(keys)
    current = document
    for key in keys:
        if not isinstance(current, dict):
            raise ValueIsNotTable(path, dotted)
        if key not in current:
            raise KeysNotFound(dotted, key, path)
        current = current[key]
    if not isinstance(current, dict):
        raise ValueIsNotTable(path, dotted)
    return current


def load_config_source(source: str, base_dir: Optional[Path] = None) -> ConfigDocument:
    """
    Loads a ConfigDocument from an explicit config source.

    Every failure is raised: an explicitly requested source is never skipped.
    """
    path_str, keys = split_path_and_keys(source)
    file_path = Path(path_str)
    if base_dir is not None and not file_path.is_absolute():
        file_path = base_dir / file_path

    document = _read_toml_document(file_path)
    table = _descend_keys(document, keys, path_str)
    config = ConfigDocument.from_table(table, origin=source)
    log.info("config_loaded", origin=source, parts=len(config.parts), default=config.default)
    return config


def discover_config(
    candidates: Sequence[str] = DISCOVERY_CANDIDATES,
    base_dir: Optional[Path] = None,
) -> ConfigDocument:
    """
    Tries each candidate source in order and returns the first that loads.

    Missing files, missing keys and schema violations skip to the next
    candidate. A malformed TOML file aborts discovery, since it is an error in
    an existing file rather than a missing one.
    """
    for candidate in candidates:
        try:
            return load_config_source(candidate, base_dir=base_dir)
        except TomlSyntaxError:
            raise
        except ConfigError as e:
            log.info("config_candidate_skipped", candidate=candidate, reason=str(e))
    raise NoConfigFileFound(candidates)


class ConfigResolver:
    # resolves a ConfigDocument from an explicit source or by discovery over `candidates`.

    def __init__(self, candidates: Sequence[str] = DISCOVERY_CANDIDATES, base_dir: Optional[Path] = None):
        self.candidates: Tuple[str, ...] = tuple(candidates)
        self.base_dir = base_dir

    def resolve(self, source: Optional[str] = None) -> ConfigDocument:
        if source is not None:
            return load_config_source(source, base_dir=self.base_dir)
        return discover_config(self.candidates, base_dir=self.base_dir)
