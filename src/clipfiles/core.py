"""
Core logic for clipfiles package.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple, Union

import pathspec

from .patterns import matches, matches_any, normalize_path

logger = logging.getLogger(__name__)


# Exceptions
class ClipfilesError(Exception): ...
class ConfigurationError(ClipfilesError): ...
class InvalidRootError(ClipfilesError): ...
class ClipboardError(ClipfilesError): ...


# Defaults & helpers
BUILTIN_EXCLUSIONS: Tuple[str, ...] = (
    "**/node_modules/**",
    "**/__pycache__/**",
    "**/.git/**",
    "**/.idea/**",
    "**/.vscode/**",
    "**/.github/**",
    "**/.gitlab/**",
    "**/dist/**",
    "**/build/**",
    "**/out/**",
    "**/target/**",
    "**/bin/**",
    "**/obj/**",
    "**/tmp/**",
    "**/temp/**",
    "**/package-lock.json",
    "**/yarn.lock",
    "**/pnpm-lock.yaml",
    "**/.env",
    "**/.env.*",
    "**/.DS_Store",
    "**/coverage/**",
    "**/.next/**",
    "**/.nuxt/**",
    "**/vendor/**",
    "**/*.min.js",
    "**/*.min.css",
    "**/Thumbs.db",
    "**/.sass-cache/**",
    "**/bower_components/**",
    "**/.cache/**",
    "**/logs/**",
    "**/*.log",
    "**/zz_*.go",
)

IGNORE_FILENAME = ".gitignore"

PROMPT = (
    "This is my project, just reply ack when you receive this project, "
    "I will give you further instructions soon."
)


class EntryKind(Enum):
    DIRECTORY = "directory"
    FILE = "file"
    OTHER = "other"


def classify(entry: os.DirEntry) -> EntryKind:
    """Classify a directory entry without following symlinks."""
    try:
        if entry.is_dir(follow_symlinks=False):
            return EntryKind.DIRECTORY
        if entry.is_file(follow_symlinks=False):
            return EntryKind.FILE
    except OSError as e:
        logger.debug("Could not stat %s: %s", entry.path, e)
    return EntryKind.OTHER


# Configuration
@dataclass(frozen=True)
class Configuration:
    root: Path
    extensions: Tuple[str, ...] = ()
    include_names: Tuple[str, ...] = ()
    exclude_patterns: Tuple[str, ...] = ()
    emit_prompt: bool = False


def build_configuration(
    directory: Union[str, Path, None],
    extensions: Optional[Iterable[str]] = None,
    include_names: Optional[Iterable[str]] = None,
    exclude_patterns: Optional[Iterable[str]] = None,
    emit_prompt: bool = False,
) -> Configuration:
    """Validate user input and return an immutable :class:`Configuration`.

    Every check runs before the filesystem is touched; the root is resolved
    to an absolute path only once the input is known to be valid.
    """
    if directory is None or not str(directory).strip():
        raise ConfigurationError("You must provide a valid directory path.")
    exts = tuple(extensions or ())
    includes = tuple(include_names or ())
    if not exts and not includes:
        raise ConfigurationError(
            "You must provide at least one extension (--ext) or filename (--include)."
        )
    for ext in exts:
        if not ext.startswith("."):
            raise ConfigurationError(
                f"Invalid extension \"{ext}\". Extensions should start with a '.'"
            )
    return Configuration(
        root=Path(directory).resolve(),
        extensions=exts,
        include_names=includes,
        exclude_patterns=tuple(exclude_patterns or ()),
        emit_prompt=emit_prompt,
    )


# Ignore-file utilities
@dataclass(frozen=True)
class IgnoreRule:
    """One ``.gitignore`` rule, compiled once on construction.

    Raises ``ValueError`` for a pattern ``pathspec`` cannot compile.
    """

    pattern: str
    negated: bool = False
    directory_only: bool = False
    _spec: pathspec.GitIgnoreSpec = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        body = self.pattern + ("/" if self.directory_only else "")
        object.__setattr__(self, "_spec", pathspec.GitIgnoreSpec.from_lines([body]))

    @property
    def line(self) -> str:
        """The rule written back in ``.gitignore`` syntax."""
        return f"{'!' if self.negated else ''}{self.pattern}{'/' if self.directory_only else ''}"

    def matches(self, relative_path: str, is_dir: bool = False) -> bool:
        # only "name/" rules look at the directory marker; "foo/**" must not hit "foo"
        if is_dir and self.directory_only:
            relative_path += "/"
        return self._spec.match_file(relative_path)


def _strip_trailing_space(line: str) -> str:
    stripped = line.rstrip(" \t")
    # "foo\ " keeps its escaped trailing space
    if stripped.endswith("\\") and len(stripped) < len(line):
        return stripped + line[len(stripped)]
    return stripped


def parse_ignore_line(raw: str) -> Optional[IgnoreRule]:
    """Parse one ``.gitignore`` line; comments and blanks give ``None``."""
    line = _strip_trailing_space(raw.rstrip("\r\n"))
    if not line.strip() or line.startswith("#"):
        return None
    negated = line.startswith("!")
    if negated:
        line = line[1:]
    directory_only = line.endswith("/")
    pattern = line.rstrip("/")
    if not pattern:
        return None
    return IgnoreRule(pattern, negated=negated, directory_only=directory_only)


@dataclass(frozen=True)
class IgnoreRuleSet:
    """Ordered ``.gitignore`` rules; the last matching rule decides."""

    rules: Tuple[IgnoreRule, ...] = ()

    @classmethod
    def parse(cls, lines: Iterable[str]) -> "IgnoreRuleSet":
        rules: List[IgnoreRule] = []
        for lineno, raw in enumerate(lines, 1):
            try:
                rule = parse_ignore_line(raw)
            except ValueError as e:
                logger.warning(
                    "Skipping invalid %s rule on line %d: %s", IGNORE_FILENAME, lineno, e
                )
                continue
            if rule is not None:
                rules.append(rule)
        return cls(tuple(rules))

    def __len__(self) -> int:
        return len(self.rules)

    def ignores(self, relative_path: str, is_dir: bool = False) -> bool:
        path = normalize_path(relative_path)
        ignored = False
        for rule in self.rules:
            if rule.matches(path, is_dir):
                ignored = not rule.negated
        return ignored


def load_ignore_rules(root: Path) -> IgnoreRuleSet:
    """Read the root ``.gitignore``.

    A missing file yields an empty rule set. Any other read failure is logged
    as a warning and also yields an empty rule set.
    """
    ignore_path = root / IGNORE_FILENAME
    try:
        with ignore_path.open("r", encoding="utf-8") as fh:
            return IgnoreRuleSet.parse(fh)
    except FileNotFoundError:
        return IgnoreRuleSet()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Error reading %s: %s", IGNORE_FILENAME, e)
        return IgnoreRuleSet()


# Selection policy
@dataclass(frozen=True)
class GlobExclusion:
    """Unconditional exclusion: any matching glob excludes the entry."""

    source: str
    patterns: Tuple[str, ...]

    def excludes(self, relative_path: str, kind: EntryKind) -> bool:
        return matches_any(relative_path, self.patterns)


@dataclass(frozen=True)
class IgnoreFileExclusion:
    """Exclusion by ``.gitignore`` rules, negations included."""

    rules: IgnoreRuleSet
    source: str = IGNORE_FILENAME

    def excludes(self, relative_path: str, kind: EntryKind) -> bool:
        return self.rules.ignores(relative_path, is_dir=kind is EntryKind.DIRECTORY)


class SelectionPolicy:
    """Decides, per entry, whether it is excluded and whether a file is admitted.

    Exclusion is the OR of independent predicates: built-in globs, user globs
    and the ignore file. A ``.gitignore`` negation therefore cannot bring back
    a path that a glob excludes.
    """

    def __init__(self, config: Configuration, ignore_rules: Optional[IgnoreRuleSet] = None):
        self.root = config.root
        self.extensions = config.extensions
        self.include_names = config.include_names
        self.exclusions = (
            GlobExclusion("built-in", BUILTIN_EXCLUSIONS),
            GlobExclusion("--exclude", config.exclude_patterns),
            IgnoreFileExclusion(ignore_rules or IgnoreRuleSet()),
        )

    def excluded_by(self, relative_path: str, kind: EntryKind) -> Optional[str]:
        """Return the source of the first exclusion that applies, if any."""
        for exclusion in self.exclusions:
            if exclusion.excludes(relative_path, kind):
                return exclusion.source
        return None

    def should_exclude(self, relative_path: str, kind: EntryKind) -> bool:
        return self.excluded_by(relative_path, kind) is not None

    def should_admit(self, relative_path: str, kind: EntryKind) -> bool:
        if kind is not EntryKind.FILE:
            return False
        relative_path = normalize_path(relative_path)
        name = relative_path.rsplit("/", 1)[-1]
        if any(name.endswith(ext) for ext in self.extensions):
            return True
        return any(self._include_matches(relative_path, name, p) for p in self.include_names)

    def _include_matches(self, relative_path: str, name: str, pattern: str) -> bool:
        if os.path.isabs(pattern):
            absolute = self.root.joinpath(relative_path)
            if Path(os.path.abspath(pattern)) == absolute:
                return True
            return matches(absolute.as_posix(), normalize_path(pattern))
        target = normalize_path(pattern)
        if target in (name, relative_path):
            return True
        return matches(name, target) or matches(relative_path, target)


# Tree walker
def _list_directory(path: Union[str, Path]) -> List[os.DirEntry]:
    with os.scandir(path) as it:
        return list(it)


def walk(root: Path, policy: SelectionPolicy) -> Iterator[Tuple[Path, str]]:
    """Yield ``(path, relative_path)`` for every admitted file under *root*.

    Depth-first pre-order, entries in the order the filesystem lists them.
    Excluded directories are never entered. A directory that cannot be listed
    is logged and skipped; only the root itself is fatal.
    """
    try:
        root_entries = _list_directory(root)
    except OSError as e:
        raise InvalidRootError(f"Could not read root directory '{root}': {e}") from e

    stack: List[Tuple[Iterator[os.DirEntry], str]] = [(iter(root_entries), "")]
    while stack:
        entries, parent = stack[-1]
        entry = next(entries, None)
        if entry is None:
            stack.pop()
            continue

        relative_path = f"{parent}/{entry.name}" if parent else entry.name
        kind = classify(entry)
        source = policy.excluded_by(relative_path, kind)
        if source is not None:
            logger.debug("Excluded %s (%s)", relative_path, source)
            continue

        if kind is EntryKind.DIRECTORY:
            try:
                children = _list_directory(entry.path)
            except OSError as e:
                logger.error("Error reading directory %s: %s", entry.path, e)
                continue
            stack.append((iter(children), relative_path))
        elif kind is EntryKind.FILE and policy.should_admit(relative_path, kind):
            logger.debug("Admitted %s", relative_path)
            yield Path(entry.path), relative_path


# Aggregation
def format_block(relative_path: str, content: str) -> str:
    return f"\n=== {relative_path} ===\n\n{content}\n"


class Aggregator:
    """Owns the output buffer and appends file blocks in admission order."""

    def __init__(self, emit_prompt: bool = False):
        self.emit_prompt = emit_prompt
        self.paths: List[str] = []
        self.skipped: List[str] = []
        self._blocks: List[str] = []
        self._result: Optional[str] = None

    def append(self, relative_path: str, content: str) -> None:
        if self._result is not None:
            raise RuntimeError("Aggregator is already finalized")
        self._blocks.append(format_block(relative_path, content))
        self.paths.append(relative_path)

    def add_file(self, path: Path, relative_path: str) -> bool:
        """Read *path* as UTF-8 and append it; log and skip it on failure."""
        try:
            content = path.read_bytes().decode("utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Error reading file %s: %s", path, e)
            self.skipped.append(relative_path)
            return False
        self.append(relative_path, content)
        return True

    def finalize(self) -> str:
        if self._result is None:
            body = "".join(self._blocks)
            self._result = f"{PROMPT}\n\n{body}" if self.emit_prompt else body
        return self._result


# Pipeline
def check_root(root: Path) -> Path:
    if not root.exists():
        raise InvalidRootError(f"Root directory '{root}' does not exist")
    if not root.is_dir():
        raise InvalidRootError(f"Root path '{root}' is not a directory")
    return root


def collect(config: Configuration) -> Aggregator:
    """Walk ``config.root`` and aggregate every admitted file."""
    root = check_root(config.root)
    ignore_rules = load_ignore_rules(root)
    if ignore_rules:
        logger.debug("Loaded %d rules from %s", len(ignore_rules), IGNORE_FILENAME)
    policy = SelectionPolicy(config, ignore_rules)
    aggregator = Aggregator(emit_prompt=config.emit_prompt)
    for path, relative_path in walk(root, policy):
        aggregator.add_file(path, relative_path)
    return aggregator

