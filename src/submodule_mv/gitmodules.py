"""
Parsing and writing of the module registry (``.gitmodules``) and of
submodule ``gitdir:`` link files.

The registry is edited as a list of lines: sections and keys are located by
parsing, assignments replace only the affected lines, and everything else
(comments, indentation, unrelated sections, ordering) is written back as read.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .models import RegistryFormatError, SubmoduleEntry, UrlKind


logger = logging.getLogger(__name__)

GITMODULES = ".gitmodules"
GITDIR_PREFIX = "gitdir:"

_SECTION_RE = re.compile(r'^\s*\[\s*submodule\s+"(?P<name>(?:[^"\\]|\\.)*)"\s*\]\s*(?:[#;].*)?$')
_OTHER_SECTION_RE = re.compile(r"^\s*\[[^\]]*\]")
_KEY_RE = re.compile(r"^(?P<indent>\s*)(?P<key>[A-Za-z][A-Za-z0-9-]*)\s*=\s*(?P<value>.*?)\s*$")
_DRIVE_RE = re.compile(r"^[A-Za-z]:[\\/]")
_VALUE_ESCAPES = {"n": "\n", "t": "\t", "b": "\b", '"': '"', "\\": "\\"}
_NEEDS_QUOTING_RE = re.compile(r'[#;"\\\n\t]|^\s|\s$')


def _unescape(value: str) -> str:
    return value.replace('\\"', '"').replace("\\\\", "\\")


def parse_value(raw: str) -> str:
    """Decode a config value the way git reads it.

    Double quotes are removed, backslash escapes are decoded, and an unquoted
    ``#`` or ``;`` starts a comment. Runs of unquoted whitespace inside the
    value are kept, leading and trailing ones are dropped.
    """
    out: List[str] = []
    quoted = False
    pending = 0
    chars = iter(raw)
    for c in chars:
        if not quoted and c in "#;":
            break
        if not quoted and c.isspace():
            if out:
                pending += 1
            continue
        if pending:
            out.append(" " * pending)
            pending = 0
        if c == '"':
            quoted = not quoted
        elif c == "\\":
            escaped = next(chars, "")
            out.append(_VALUE_ESCAPES.get(escaped, escaped))
        else:
            out.append(c)
    return "".join(out)


def quote_value(value: str) -> str:
    """Render ``value`` so that git reads it back unchanged."""
    if not _NEEDS_QUOTING_RE.search(value):
        return value
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


def _quote_name(name: str) -> str:
    return name.replace("\\", "\\\\").replace('"', '\\"')


@dataclass
class _Section:
    name: str
    header: int
    keys: Dict[str, int] = field(default_factory=dict)


class GitModulesFile:
    """Layout-preserving view of a ``.gitmodules`` file."""

    def __init__(self, lines: List[str], path: Optional[Path] = None) -> None:
        self.path = path
        self.lines = lines
        self._sections: List[_Section] = []
        self._parse()

    @classmethod
    def from_text(cls, text: str, path: Optional[Path] = None) -> "GitModulesFile":
        return cls(text.splitlines(keepends=True), path)

    @classmethod
    def load(cls, path: Path) -> "GitModulesFile":
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise RegistryFormatError(f"Cannot read {path}: {e}") from e
        return cls.from_text(text, Path(path))

    def to_text(self) -> str:
        return "".join(self.lines)

    def save(self, path: Optional[Path] = None) -> None:
        target = Path(path or self.path)
        target.write_text(self.to_text(), encoding="utf-8")
        logger.debug(f"Wrote {len(self._sections)} submodule section(s) to {target}")

    def _parse(self) -> None:
        self._sections = []
        current: Optional[_Section] = None
        for idx, line in enumerate(self.lines):
            stripped = line.strip()
            if not stripped or stripped[0] in "#;":
                continue
            match = _SECTION_RE.match(line)
            if match:
                current = _Section(name=_unescape(match.group("name")), header=idx)
                self._sections.append(current)
                continue
            if _OTHER_SECTION_RE.match(line):
                current = None
                continue
            key_match = _KEY_RE.match(line)
            if key_match and current is not None:
                current.keys[key_match.group("key").lower()] = idx
            elif current is not None:
                raise RegistryFormatError(
                    f"Unparseable line {idx + 1} in {self.path or GITMODULES}: {stripped!r}"
                )

    def _section(self, name: str) -> _Section:
        for section in self._sections:
            if section.name == name:
                return section
        raise RegistryFormatError(f"No submodule named '{name}' in {self.path or GITMODULES}")

    def _value(self, section: _Section, key: str) -> Optional[str]:
        idx = section.keys.get(key)
        if idx is None:
            return None
        return parse_value(_KEY_RE.match(self.lines[idx]).group("value"))

    @property
    def entries(self) -> List[SubmoduleEntry]:
        return [
            SubmoduleEntry(name=s.name, path=self._value(s, "path"), url=self._value(s, "url"))
            for s in self._sections
        ]

    def get(self, name: str) -> SubmoduleEntry:
        section = self._section(name)
        return SubmoduleEntry(name=section.name, path=self._value(section, "path"), url=self._value(section, "url"))

    def find_by_path(self, path: str) -> Optional[SubmoduleEntry]:
        """Return the entry whose ``path`` equals ``path`` (trailing slashes ignored)."""
        wanted = path.rstrip("/")
        for entry in self.entries:
            if entry.path is not None and entry.path.rstrip("/") == wanted:
                return entry
        return None

    def rename(self, name: str, new_name: str) -> None:
        if name == new_name:
            return
        if any(s.name == new_name for s in self._sections):
            raise RegistryFormatError(f"Submodule '{new_name}' already exists in {self.path or GITMODULES}")
        section = self._section(name)
        old = self.lines[section.header]
        newline = "\n" if old.endswith("\n") else ""
        indent = old[: len(old) - len(old.lstrip())]
        self.lines[section.header] = f'{indent}[submodule "{_quote_name(new_name)}"]{newline}'
        section.name = new_name

    def set_value(self, name: str, key: str, value: str) -> None:
        section = self._section(name)
        key = key.lower()
        idx = section.keys.get(key)
        if idx is not None:
            old = self.lines[idx]
            match = _KEY_RE.match(old)
            newline = "\n" if old.endswith("\n") else ""
            self.lines[idx] = f"{match.group('indent')}{match.group('key')} = {quote_value(value)}{newline}"
            return

        # Append after the last key of the section
        last = max(section.keys.values(), default=section.header)
        if not self.lines[last].endswith("\n"):
            self.lines[last] += "\n"
        self.lines.insert(last + 1, f"\t{key} = {quote_value(value)}\n")
        self._parse()


def read_gitdir_link(link_file: Path) -> Optional[str]:
    """Return the path stored in a ``gitdir:`` link file, or None if it is not one."""
    link_file = Path(link_file)
    if not link_file.is_file():
        return None
    try:
        content = link_file.read_text(encoding="utf-8").strip()
    except OSError as e:
        logger.warning(f"Could not read {link_file}: {e}")
        return None
    if not content.startswith(GITDIR_PREFIX):
        return None
    return content[len(GITDIR_PREFIX):].strip()


def format_gitdir_link(gitdir: str) -> str:
    return f"{GITDIR_PREFIX} {gitdir}\n"


def classify_url(url: Optional[str]) -> UrlKind:
    """Classify a submodule URL.

    ``./`` URLs live inside the parent's tree and are the only ones that move
    with the submodule. ``../`` URLs resolve against the parent's remote.
    """
    if not url:
        return UrlKind.REMOTE
    if url == "." or url.startswith("./"):
        return UrlKind.IN_TREE
    if url == ".." or url.startswith("../"):
        return UrlKind.UPSTREAM_RELATIVE
    if url.startswith(("/", "~")) or _DRIVE_RE.match(url):
        return UrlKind.ABSOLUTE_PATH
    return UrlKind.REMOTE
