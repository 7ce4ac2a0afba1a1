# parts/core/discovery/ignore_rules.py
from pathlib import Path
from typing import List, NamedTuple, Optional, Tuple

import pathspec
import structlog

log = structlog.get_logger(__name__)

IGNORE_FILE_NAMES = (".gitignore", ".ignore")


def is_hidden_name(name: str) -> bool:
    # dot-files and dot-directories are hidden.
    return name.startswith(".") and name not in (".", "..")


def load_ignore_file(ignore_file_path: Path) -> Optional[pathspec.GitIgnoreSpec]:
    # loads and compiles gitignore-style patterns from a given file.
    try:
        if not ignore_file_path.is_file():
            return None
        with ignore_file_path.open("r", encoding="utf-8", errors="ignore") as f_obj:
            lines = [line.rstrip("\n") for line in f_obj]
    except OSError as e:
        log.warning("failed_to_read_ignore_file", path=str(ignore_file_path), error=str(e))
        return None
    if not any(line.strip() and not line.lstrip().startswith("#") for line in lines):
        return None
    log.debug("loaded_ignore_file", path=str(ignore_file_path))
    return pathspec.GitIgnoreSpec.from_lines(lines)


def load_directory_specs(directory: Path) -> List[pathspec.GitIgnoreSpec]:
    specs = []
    for file_name in IGNORE_FILE_NAMES:
        spec = load_ignore_file(directory / file_name)
        if spec is not None:
            specs.append(spec)
    return specs


class _Frame(NamedTuple):
    # `strip` is removed from walk-relative paths, `prepend` is added in front,
    # turning them into paths relative to the directory holding the spec.
    strip: str
    prepend: str
    spec: pathspec.GitIgnoreSpec


class IgnoreChain:
    """
    Immutable stack of ignore specs that apply to one directory of the walk.

    Specs of deeper directories win over shallower ones; inside one spec the
    last matching pattern wins, so `!pattern` lines can whitelist.
    """

    __slots__ = ("_frames",)

    def __init__(self, frames: Tuple[_Frame, ...] = ()):
        self._frames = frames

    def __bool__(self) -> bool:
        return bool(self._frames)

    def extend(self, rel_dir: str, specs: List[pathspec.GitIgnoreSpec]) -> "IgnoreChain":
        # adds the specs found in `rel_dir` ("" for the walk root).
        if not specs:
            return self
        strip = rel_dir + "/" if rel_dir else ""
        return IgnoreChain(self._frames + tuple(_Frame(strip, "", spec) for spec in specs))

    @classmethod
    def for_root(cls, root: Path) -> "IgnoreChain":
        """
        Collects ignore files of the root's ancestors, up to the enclosing git
        repository root. Outside a repository no ancestor is consulted.
        """
        try:
            resolved = root.resolve()
        except OSError:
            return cls()
        ancestors: List[Path] = []
        current = resolved
        repo_root: Optional[Path] = None
        while True:
            if (current / ".git").exists():
                repo_root = current
                break
            if current.parent == current:
                break
            current = current.parent
            ancestors.append(current)
        if repo_root is None or repo_root == resolved:
            return cls()

        frames: List[_Frame] = []
        # shallowest first, so that deeper directories take precedence
        for ancestor in reversed(ancestors):
            prepend = resolved.relative_to(ancestor).as_posix() + "/"
            for spec in load_directory_specs(ancestor):
                frames.append(_Frame("", prepend, spec))
        return cls(tuple(frames))

    def is_ignored(self, rel_path: str, is_dir: bool) -> bool:
        for frame in reversed(self._frames):
            if frame.strip and not rel_path.startswith(frame.strip):
                continue
            candidate = frame.prepend + rel_path[len(frame.strip):]
            if is_dir:
                candidate += "/"
            result = frame.spec.check_file(candidate)
            if result.include is not None:
                return bool(result.include)
        return False
