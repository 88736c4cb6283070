"""
Data models for the git submodule relocation tool.
"""

from __future__ import annotations

import shlex
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple


@dataclass
class RelocationConfig:
    """Runtime switches for a relocation.

    ``git_dir`` overrides the parent's internal storage directory (``.git``);
    when it is set, pointer files are written with absolute paths.
    """

    dry_run: bool = False
    verbose: bool = False
    git_dir: Optional[Path] = None


class UrlKind(Enum):
    """Classification of a submodule URL."""

    IN_TREE = "in_tree"
    UPSTREAM_RELATIVE = "upstream_relative"
    ABSOLUTE_PATH = "absolute_path"
    REMOTE = "remote"

    @property
    def is_local(self) -> bool:
        return self is UrlKind.IN_TREE


@dataclass
class SubmoduleEntry:
    """One ``[submodule "<name>"]`` section of the module registry."""

    name: str
    path: Optional[str] = None
    url: Optional[str] = None


@dataclass
class RelocationLayout:
    """Derived locations for a single relocation."""

    root: Path
    git_dir: Path
    source: str
    destination_dir: str
    project: str
    entry: SubmoduleEntry
    url_kind: UrlKind
    central_storage: bool
    old_storage: Optional[Path] = None
    new_storage: Optional[Path] = None
    absolute_pointers: bool = False

    @property
    def target(self) -> str:
        """Repository-relative POSIX path the submodule ends up at."""
        if self.destination_dir:
            return f"{self.destination_dir}/{self.project}"
        return self.project

    @property
    def displacement(self) -> int:
        """Number of segments between the root and the destination directory."""
        return len([p for p in self.destination_dir.split("/") if p])

    @property
    def source_path(self) -> Path:
        return self.root / self.source

    @property
    def target_path(self) -> Path:
        return self.root / self.target

    @property
    def link_file(self) -> Path:
        return self.source_path / ".git"


def _dotted(section: str) -> str:
    """'submodule "x"' -> 'submodule.x', the form git config takes on the command line."""
    name, _, sub = section.partition(" ")
    if not sub:
        return name
    return name + "." + sub.strip('"')


class Action(ABC):
    """A single step of a relocation plan."""

    @abstractmethod
    def describe(self) -> str:
        """Human readable summary, shown in verbose mode."""

    @abstractmethod
    def command(self) -> str:
        """Shell-like rendering, shown in dry-run mode."""


@dataclass(frozen=True)
class RenameRegistrySection(Action):
    registry_file: Path
    old_name: str
    new_name: str

    def describe(self) -> str:
        return f"Renaming submodule '{self.old_name}' to '{self.new_name}' in {self.registry_file.name}"

    def command(self) -> str:
        return (
            f"git config -f {shlex.quote(str(self.registry_file))} --rename-section "
            f"{shlex.quote(f'submodule.{self.old_name}')} {shlex.quote(f'submodule.{self.new_name}')}"
        )


@dataclass(frozen=True)
class SetRegistryValue(Action):
    registry_file: Path
    name: str
    key: str
    value: str

    def describe(self) -> str:
        return f"Setting {self.key} of submodule '{self.name}' to '{self.value}'"

    def command(self) -> str:
        return (
            f"git config -f {shlex.quote(str(self.registry_file))} "
            f"{shlex.quote(f'submodule.{self.name}.{self.key}')} {shlex.quote(self.value)}"
        )


@dataclass(frozen=True)
class SetConfigValue(Action):
    config_file: Path
    section: str
    key: str
    value: str

    def describe(self) -> str:
        return f"Pointing {self.section}.{self.key} in {self.config_file} at '{self.value}'"

    def command(self) -> str:
        return (
            f"git config -f {shlex.quote(str(self.config_file))} "
            f"{self.section}.{self.key} {shlex.quote(self.value)}"
        )


@dataclass(frozen=True)
class RenameConfigSection(Action):
    config_file: Path
    old_section: str
    new_section: str

    def describe(self) -> str:
        return f"Renaming [{self.old_section}] to [{self.new_section}] in {self.config_file}"

    def command(self) -> str:
        return (
            f"git config -f {shlex.quote(str(self.config_file))} --rename-section "
            f"{shlex.quote(_dotted(self.old_section))} {shlex.quote(_dotted(self.new_section))}"
        )


@dataclass(frozen=True)
class WriteGitdirLink(Action):
    link_file: Path
    gitdir: str

    def describe(self) -> str:
        return f"Pointing {self.link_file} at '{self.gitdir}'"

    def command(self) -> str:
        return f"echo {shlex.quote(f'gitdir: {self.gitdir}')} > {shlex.quote(str(self.link_file))}"


@dataclass(frozen=True)
class MoveDirectory(Action):
    source: Path
    destination: Path

    def describe(self) -> str:
        return f"Moving {self.source} to {self.destination}"

    def command(self) -> str:
        return (
            f"mkdir -p {shlex.quote(str(self.destination.parent))} && "
            f"mv {shlex.quote(str(self.source))} {shlex.quote(str(self.destination))}"
        )


class IndexOpKind(Enum):
    REMOVE_CACHED = "remove_cached"
    ADD = "add"


@dataclass(frozen=True)
class IndexOperation(Action):
    kind: IndexOpKind
    paths: Tuple[str, ...]

    def describe(self) -> str:
        joined = ", ".join(self.paths)
        if self.kind is IndexOpKind.REMOVE_CACHED:
            return f"Removing {joined} from the index"
        return f"Staging {joined}"

    def command(self) -> str:
        quoted = " ".join(shlex.quote(p) for p in self.paths)
        if self.kind is IndexOpKind.REMOVE_CACHED:
            return f"git rm --cached -q {quoted}"
        return f"git add {quoted}"


@dataclass
class RelocationPlan:
    """Ordered actions for one relocation, plus the layout they were derived from."""

    layout: RelocationLayout
    actions: List[Action] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


class RelocationError(Exception):
    """Base exception for relocation failures."""

    exit_code = 1


class SourceNotFoundError(RelocationError):
    """The submodule to move does not exist."""

    exit_code = 1


class DestinationOutsideRepositoryError(RelocationError):
    """The destination resolves outside the working directory."""

    exit_code = 2


class GitDirNotFoundError(RelocationError):
    """The internal storage directory or its config is missing."""

    exit_code = 3


class DestinationInGitDirError(RelocationError):
    """The destination resolves inside the internal storage directory."""

    exit_code = 4


class GitmodulesNotFoundError(RelocationError):
    """No module registry at the repository root."""

    exit_code = 5


class SubmoduleNotRegisteredError(RelocationError):
    """The module registry has no entry for the source path."""

    exit_code = 6


class DestinationExistsError(RelocationError):
    """The destination path, or the submodule name it implies, is already taken."""

    exit_code = 7


class DestinationInsideSourceError(RelocationError):
    """The destination lies inside the submodule being moved."""

    exit_code = 8


class GitRepositoryError(RelocationError):
    """A git command run against the parent repository failed."""

    pass


class RegistryFormatError(RelocationError):
    """The module registry could not be parsed or updated."""

    pass


class RelocationExecutionError(RelocationError):
    """A plan step failed after validation passed."""

    pass
