"""
Glob matching for root-relative paths.

``*`` and ``?`` stay inside one path segment, ``**`` spans any number of
segments (including none), ``[...]`` is a character class and ``{a,b}``
expands to alternatives. Extended globs (``?(a|b)``, ``*(..)``, ``+(..)``,
``@(..)``, ``!(..)``) and POSIX classes such as ``[[:alpha:]]`` work inside a
segment, and a leading ``!`` negates the whole pattern. Leading dots get no
special treatment, so ``*`` matches ``.env`` exactly as it matches ``env``.
"""

from __future__ import annotations

import os
import re
import string
from functools import lru_cache
from typing import Iterable, List, Optional, Pattern, Tuple

_GLOBSTAR = object()


def normalize_path(path: str) -> str:
    """Return *path* with ``/`` separators and no leading ``./``."""
    path = path.replace(os.sep, "/")
    if os.altsep:
        path = path.replace(os.altsep, "/")
    while path.startswith("./"):
        path = path[2:]
    return path


# Brace expansion
def _find_brace_group(pattern: str) -> Optional[Tuple[int, int, List[str]]]:
    i, n = 0, len(pattern)
    while i < n:
        ch = pattern[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "{":
            depth = 0
            options: List[str] = []
            last = i + 1
            j = i
            while j < n:
                c = pattern[j]
                if c == "\\":
                    j += 2
                    continue
                if c == "{":
                    depth += 1
                elif c == "}":
                    depth -= 1
                    if depth == 0:
                        options.append(pattern[last:j])
                        if len(options) > 1:
                            return i, j, options
                        break
                elif c == "," and depth == 1:
                    options.append(pattern[last:j])
                    last = j + 1
                j += 1
            else:
                # unbalanced; nothing after this point can close
                return None
        i += 1
    return None


def expand_braces(pattern: str) -> List[str]:
    """Expand every ``{a,b,...}`` group in *pattern*, left to right.

    A group without a comma (``{a}``) and an unclosed ``{`` are kept literally.
    """
    group = _find_brace_group(pattern)
    if group is None:
        return [pattern]
    start, end, options = group
    prefix, suffix = pattern[:start], pattern[end + 1:]
    expanded: List[str] = []
    for option in options:
        expanded.extend(expand_braces(prefix + option + suffix))
    return expanded


# Translation to regular expressions
_POSIX_CLASSES = {
    "alnum": "a-zA-Z0-9",
    "alpha": "a-zA-Z",
    "ascii": "\\x00-\\x7f",
    "blank": " \\t",
    "cntrl": "\\x00-\\x1f\\x7f",
    "digit": "0-9",
    "graph": "\\x21-\\x7e",
    "lower": "a-z",
    "print": "\\x20-\\x7e",
    "punct": "".join("\\" + c for c in string.punctuation),
    "space": " \\t\\n\\r\\f\\v",
    "upper": "A-Z",
    "word": "\\w",
    "xdigit": "0-9A-Fa-f",
}

# ?(..) *(..) +(..) @(..); !(..) is handled separately
_EXTGLOB_SUFFIX = {"?": "?", "*": "*", "+": "+", "@": ""}


def _class_end(segment: str, start: int) -> Optional[int]:
    j, n = start, len(segment)
    if j < n and segment[j] in "!^":
        j += 1
    if j < n and segment[j] == "]":
        j += 1  # "[]...]" and "[!]...]" start with a literal bracket
    while j < n and segment[j] != "]":
        if segment.startswith("[:", j):
            close = segment.find(":]", j + 2)
            if close != -1:
                j = close + 2
                continue
        j += 2 if segment[j] == "\\" else 1
    return j if j < n else None


def _translate_class(body: str) -> str:
    negate = body[:1] in ("!", "^")
    if negate:
        body = body[1:]
    out: List[str] = []
    i = 0
    while i < len(body):
        c = body[i]
        if body.startswith("[:", i) and body.find(":]", i + 2) != -1:
            close = body.find(":]", i + 2)
            name = body[i + 2:close]
            if name not in _POSIX_CLASSES:
                raise re.error(f"unknown character class [:{name}:]")
            out.append(_POSIX_CLASSES[name])
            i = close + 2
            continue
        if c == "\\" and i + 1 < len(body):
            out.append(re.escape(body[i + 1]))
            i += 2
            continue
        out.append("\\" + c if c in "[]^\\" else c)
        i += 1
    if negate:
        return "[^/" + "".join(out) + "]"
    return "[" + "".join(out) + "]"


def _group_end(segment: str, start: int) -> Optional[int]:
    """Index of the ``)`` closing a group whose body starts at *start*."""
    depth = 1
    j, n = start, len(segment)
    while j < n:
        c = segment[j]
        if c == "\\":
            j += 2
            continue
        if c == "[":
            end = _class_end(segment, j + 1)
            if end is not None:
                j = end + 1
                continue
        if c == "(":
            depth += 1
        elif c == ")":
            depth -= 1
            if depth == 0:
                return j
        j += 1
    return None


def _split_alternatives(body: str) -> List[str]:
    alternatives: List[str] = []
    depth, last, j = 0, 0, 0
    while j < len(body):
        c = body[j]
        if c == "\\":
            j += 2
            continue
        if c == "[":
            end = _class_end(body, j + 1)
            if end is not None:
                j = end + 1
                continue
        if c == "(":
            depth += 1
        elif c == ")":
            depth -= 1
        elif c == "|" and depth == 0:
            alternatives.append(body[last:j])
            last = j + 1
        j += 1
    alternatives.append(body[last:])
    return alternatives


def _translate_segment(segment: str) -> str:
    out: List[str] = []
    i, n = 0, len(segment)
    while i < n:
        ch = segment[i]
        i += 1
        if ch in "?*+@!" and i < n and segment[i] == "(":
            end = _group_end(segment, i + 1)
            if end is not None:
                body = segment[i + 1:end]
                group = "|".join(_translate_segment(a) for a in _split_alternatives(body))
                i = end + 1
                if ch == "!":
                    # anything except the group, given what follows in the segment
                    rest = _translate_segment(segment[i:])
                    out.append(f"(?:(?!(?:{group}){rest}(?:/|\\Z))[^/]*?)")
                else:
                    out.append(f"(?:{group}){_EXTGLOB_SUFFIX[ch]}")
                continue
        if ch == "*":
            while i < n and segment[i] == "*":
                i += 1
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        elif ch == "[":
            end = _class_end(segment, i)
            if end is None:
                out.append(re.escape(ch))
            else:
                out.append(_translate_class(segment[i:end]))
                i = end + 1
        elif ch == "\\" and i < n:
            out.append(re.escape(segment[i]))
            i += 1
        else:
            out.append(re.escape(ch))
    return "".join(out)


def _translate(pattern: str) -> str:
    parts: List[object] = []
    for segment in pattern.split("/"):
        if segment == "**":
            if parts and parts[-1] is _GLOBSTAR:
                continue
            parts.append(_GLOBSTAR)
        else:
            parts.append(_translate_segment(segment))

    regex = ""
    last = len(parts) - 1
    for idx, part in enumerate(parts):
        if part is _GLOBSTAR:
            if idx == 0:
                regex += ".*" if idx == last else "(?:.*/)?"
            else:
                regex += "(?:/.*)?" if idx == last else "/(?:.*/)?"
        else:
            if idx > 0 and parts[idx - 1] is not _GLOBSTAR:
                regex += "/"
            regex += str(part)
    return regex


def split_negation(pattern: str) -> Tuple[bool, str]:
    negated = False
    while pattern.startswith("!") and not pattern.startswith("!("):
        negated = not negated
        pattern = pattern[1:]
    return negated, pattern


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str) -> Optional[Pattern[str]]:
    """Compile *pattern* to a regex, or ``None`` if it is malformed."""
    try:
        alternatives = "|".join(_translate(p) for p in expand_braces(pattern))
        return re.compile(f"(?:{alternatives})\\Z", re.DOTALL)
    except re.error:
        return None


def matches(relative_path: str, pattern: str) -> bool:
    """Return whether *relative_path* matches the glob *pattern*.

    A leading ``!`` (not followed by ``(``) negates the pattern; an even
    number of them cancels out. Malformed patterns never match.
    """
    negated, pattern = split_negation(pattern)
    compiled = compile_pattern(pattern)
    if compiled is None:
        return False
    return (compiled.match(normalize_path(relative_path)) is not None) != negated


def matches_any(relative_path: str, patterns: Iterable[str]) -> bool:
    return any(matches(relative_path, p) for p in patterns)
