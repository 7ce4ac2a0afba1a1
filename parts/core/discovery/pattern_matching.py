# parts/core/discovery/pattern_matching.py
"""
Compiles include/exclude rules into a single byte-level matcher.

Globs are translated to regular expressions anchored on the whole path
relative to the walk root, with `/` as the only separator. They are merged
with the user's literal regexes into one alternation compiled once, so a
match costs a single search no matter which rule matches.
"""
import os
import re
from typing import Iterable, List, Optional, Pattern, Tuple, Union

import structlog

from parts.exceptions import PatternError

log = structlog.get_logger(__name__)

_NOT_SEP = "[^/]"
# `(?i)foo`-style global flags are only legal at the start of a whole pattern.
_GLOBAL_FLAGS_RE = re.compile(r"^\(\?([aiLmsux]+)\)")


def _class_escape(ch: str) -> str:
    return "\\" + ch if ch in "\\]^-[" else ch


def _translate_class(glob: str, start: int) -> Tuple[str, int]:
    # translates `[...]` beginning at `start` (the `[`); returns regex and the index after `]`.
    n = len(glob)
    j = start + 1
    negate = False
    if j < n and glob[j] in "!^":
        negate = True
        j += 1
    items: List[str] = []
    first = True
    while True:
        if j >= n:
            raise PatternError(glob, "unclosed character class")
        ch = glob[j]
        if ch == "]" and not first:
            break
        first = False
        if j + 2 < n and glob[j + 1] == "-" and glob[j + 2] != "]":
            lo, hi = ch, glob[j + 2]
            if lo > hi:
                raise PatternError(glob, f"invalid range {lo!r}-{hi!r} in character class")
            items.append(f"{_class_escape(lo)}-{_class_escape(hi)}")
            j += 3
        else:
            items.append(_class_escape(ch))
            j += 1
    body = "".join(items)
    if negate:
        return f"[^/{body}]", j + 1
    return f"[{body}]", j + 1


def translate_glob(glob: str) -> str:
    """
    Translates a glob into regex source matching a whole `/`-separated path.

    `*` and `?` never cross a separator; `**` as a full segment crosses any
    number of them (`**/x`, `a/**/b`, `a/**`, `**`), and `**` embedded in a
    segment (`src/**.rs`) matches anything including separators.
    """
    out: List[str] = []
    n = len(glob)
    i = 0
    in_alternation = False
    while i < n:
        c = glob[i]
        if c == "\\":
            if i + 1 >= n:
                raise PatternError(glob, "dangling escape at end of pattern")
            out.append(re.escape(glob[i + 1]))
            i += 2
        elif c == "*":
            j = i
            while j < n and glob[j] == "*":
                j += 1
            if j - i == 1:
                out.append(_NOT_SEP + "*")
                i = j
                continue
            starts_segment = i == 0 or glob[i - 1] == "/"
            if starts_segment and j < n and glob[j] == "/":
                # leading `**/` or middle `/**/`: zero or more whole directories
                out.append("(?:.*/)?")
                i = j + 1
            else:
                out.append(".*")
                i = j
        elif c == "?":
            out.append(_NOT_SEP)
            i += 1
        elif c == "[":
            source, i = _translate_class(glob, i)
            out.append(source)
        elif c == "{":
            if in_alternation:
                raise PatternError(glob, "nested alternate groups are not allowed")
            in_alternation = True
            out.append("(?:")
            i += 1
        elif c == "," and in_alternation:
            out.append("|")
            i += 1
        elif c == "}" and in_alternation:
            in_alternation = False
            out.append(")")
            i += 1
        else:
            out.append(re.escape(c))
            i += 1
    if in_alternation:
        raise PatternError(glob, "unclosed alternate group")
    return "^(?s:" + "".join(out) + r")\Z"


def _scope_global_flags(regex: str) -> str:
    # `(?i)abc` -> `(?i:abc)` so the pattern can sit inside an alternation.
    m = _GLOBAL_FLAGS_RE.match(regex)
    if not m:
        return regex
    flags, rest = m.group(1), regex[m.end():]
    if "x" in flags:
        # a trailing `# comment` runs to the end of the line, so close the group on the next one
        return f"(?{flags}:{rest}\n)"
    return f"(?{flags}:{rest})"


def _has_backreference(regex: str) -> bool:
    # `\1`, `(?P=name)` and `(?(1)...)` refer to groups by number or name,
    # which no longer line up once the regex is one branch of a larger alternation.
    n = len(regex)
    i = 0
    in_class = False
    while i < n:
        c = regex[i]
        if c == "\\":
            if not in_class and i + 1 < n and regex[i + 1] in "123456789":
                return True
            i += 2
            continue
        if in_class:
            if c == "]":
                in_class = False
        elif c == "[":
            in_class = True
            # `]` right after `[` or `[^` is a literal
            i += 1
            if i < n and regex[i] == "^":
                i += 1
            if i < n and regex[i] == "]":
                i += 1
            continue
        elif regex.startswith(("(?P=", "(?("), i):
            return True
        i += 1
    return False


def _compile_bytes(source: str, original: str) -> Pattern[bytes]:
    try:
        return re.compile(source.encode("utf-8"))
    except re.error as e:
        raise PatternError(original, str(e)) from e


class PatternSet:
    """
    Immutable union of translated globs and literal regexes.

    An empty set matches nothing: "no include rules" does not mean "include
    everything", a catch-all pattern such as `**` has to be given explicitly.
    """

    __slots__ = ("globs", "regexes", "_matcher")

    def __init__(self, globs: Tuple[str, ...], regexes: Tuple[str, ...], matcher: Optional[Pattern[bytes]]):
        self.globs = globs
        self.regexes = regexes
        self._matcher = matcher

    @classmethod
    def empty(cls) -> "PatternSet":
        return cls((), (), None)

    @property
    def is_empty(self) -> bool:
        return self._matcher is None

    def __len__(self) -> int:
        return len(self.globs) + len(self.regexes)

    def is_match(self, path: Union[bytes, str]) -> bool:
        if self._matcher is None:
            return False
        if isinstance(path, str):
            path = os.fsencode(path)
        return self._matcher.search(path) is not None

    def __repr__(self) -> str:
        return f"PatternSet(globs={list(self.globs)!r}, regexes={list(self.regexes)!r})"


def compile_pattern_set(globs: Iterable[str], regexes: Iterable[str]) -> PatternSet:
    """
    Compiles globs and regexes into one PatternSet.

    Each pattern is checked on its own first, so a PatternError names the
    offending pattern; the union is then compiled as a single expression.
    Regexes with backreferences are rejected, since group numbers shift
    inside the union.
    """
    globs = tuple(globs)
    regexes = tuple(regexes)
    if not globs and not regexes:
        return PatternSet.empty()

    sources: List[str] = []
    for glob in globs:
        source = translate_glob(glob)
        _compile_bytes(source, glob)
        sources.append(source)
    for regex in regexes:
        source = _scope_global_flags(regex)
        compiled = _compile_bytes(source, regex)
        if compiled.groups and _has_backreference(regex):
            raise PatternError(regex, "backreferences are not supported")
        sources.append(source)

    combined = "|".join(f"(?:{source})" for source in sources)
    matcher = _compile_bytes(combined, " | ".join(globs + regexes))
    log.debug("pattern_set_compiled", globs=len(globs), regexes=len(regexes))
    return PatternSet(globs, regexes, matcher)
