"""
Validation and planning for a submodule relocation.

Nothing in this module writes to disk: ``RelocationPlanner.plan`` only reads
the repository and returns the ordered list of actions to perform.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional

from .git_manager import has_config_section
from .gitmodules import GITMODULES, GitModulesFile, classify_url, read_gitdir_link
from .models import (
    Action,
    DestinationExistsError,
    DestinationInGitDirError,
    DestinationInsideSourceError,
    DestinationOutsideRepositoryError,
    GitDirNotFoundError,
    GitmodulesNotFoundError,
    IndexOperation,
    IndexOpKind,
    MoveDirectory,
    RelocationConfig,
    RelocationLayout,
    RelocationPlan,
    RenameConfigSection,
    RenameRegistrySection,
    SetConfigValue,
    SetRegistryValue,
    SourceNotFoundError,
    SubmoduleNotRegisteredError,
    WriteGitdirLink,
)


logger = logging.getLogger(__name__)

_SEPARATORS = ("/", os.sep)


def _is_within(path: str, parent: str) -> bool:
    """True if ``path`` is strictly below ``parent`` (both canonical)."""
    return path.startswith(parent.rstrip(os.sep) + os.sep)


def _posix_rel(path: str, root: Path) -> str:
    rel = Path(os.path.relpath(path, root)).as_posix()
    return "" if rel == "." else rel


class RelocationPlanner:
    """Validates a (source, destination) pair and builds the relocation plan."""

    def __init__(self, root: Optional[Path] = None, config: Optional[RelocationConfig] = None) -> None:
        self.root = Path(root or Path.cwd()).resolve()
        self.config = config or RelocationConfig()
        if self.config.git_dir is not None:
            self.git_dir = (self.root / self.config.git_dir).resolve()
        else:
            self.git_dir = self.root / ".git"
        self.registry_file = self.root / GITMODULES

    def validate(self, source: str, destination: str) -> RelocationLayout:
        """Run the precondition checks in order and return the derived layout.

        Raises:
            SourceNotFoundError: source is not an existing directory
            DestinationOutsideRepositoryError: target escapes the working directory
            GitDirNotFoundError: storage directory or its config is missing
            DestinationInGitDirError: target lies inside the storage directory
            GitmodulesNotFoundError: no registry at the root
            SubmoduleNotRegisteredError: registry has no entry for the source
            DestinationExistsError: target, its storage or its submodule name already exists
            DestinationInsideSourceError: target lies inside the source
        """
        source_arg = source.rstrip("/\\") or source
        source_path = self.root / source_arg
        if not source_path.is_dir():
            raise SourceNotFoundError(f"Source directory '{source}' does not exist")
        source_rel = _posix_rel(os.path.normpath(str(source_path)), self.root)

        # A trailing separator means "move into", otherwise the last segment is the new name
        if destination.endswith(_SEPARATORS) or Path(destination).name in ("", ".", ".."):
            dest_dir_arg, project = destination, Path(source_rel).name
        else:
            dest_dir_arg, project = os.path.dirname(destination), Path(destination).name

        target_abs = os.path.realpath(os.path.join(str(self.root), dest_dir_arg, project))
        if not _is_within(target_abs, str(self.root)):
            raise DestinationOutsideRepositoryError(
                f"Destination '{destination}' resolves outside of {self.root}"
            )

        config_file = self.git_dir / "config"
        if not self.git_dir.is_dir() or not config_file.is_file() or not os.access(config_file, os.R_OK):
            raise GitDirNotFoundError(f"No readable repository config at {config_file}")

        git_dir_real = os.path.realpath(str(self.git_dir))
        if target_abs == git_dir_real or _is_within(target_abs, git_dir_real):
            raise DestinationInGitDirError(
                f"Destination '{destination}' resolves inside the repository directory {self.git_dir}"
            )

        if not self.registry_file.is_file():
            raise GitmodulesNotFoundError(
                f"No {GITMODULES} in {self.root}; run from the root of the parent repository"
            )

        registry = GitModulesFile.load(self.registry_file)
        entry = registry.find_by_path(source_rel)
        if entry is None:
            raise SubmoduleNotRegisteredError(f"'{source_rel}' is not a submodule listed in {GITMODULES}")

        target_rel = _posix_rel(target_abs, self.root)
        if os.path.lexists(target_abs):
            raise DestinationExistsError(f"Destination '{target_rel}' already exists")

        source_real = os.path.realpath(str(source_path))
        if _is_within(target_abs, source_real):
            raise DestinationInsideSourceError(
                f"Destination '{target_rel}' lies inside the submodule '{source_rel}'"
            )

        if target_rel != entry.name and any(e.name == target_rel for e in registry.entries):
            raise DestinationExistsError(f"A submodule named '{target_rel}' already exists in {GITMODULES}")

        layout = RelocationLayout(
            root=self.root,
            git_dir=self.git_dir,
            source=source_rel,
            destination_dir=_posix_rel(os.path.dirname(target_abs), self.root),
            project=os.path.basename(target_abs),
            entry=entry,
            url_kind=classify_url(entry.url),
            central_storage=False,
            absolute_pointers=self.config.git_dir is not None,
        )
        self._locate_storage(layout)
        logger.debug(f"Validated relocation {layout.source} -> {layout.target} ({layout.url_kind.value})")
        return layout

    def _locate_storage(self, layout: RelocationLayout) -> None:
        if layout.url_kind.is_local:
            return
        gitdir = read_gitdir_link(layout.link_file)
        if gitdir is None:
            logger.warning(
                f"Submodule '{layout.source}' keeps its repository inside its working tree; "
                "skipping repository storage relocation"
            )
            return

        old_storage = Path(os.path.normpath(os.path.join(str(layout.source_path), gitdir)))
        if not old_storage.is_dir():
            fallback = layout.git_dir / "modules" / layout.source
            logger.warning(f"gitdir pointer {gitdir} does not exist, trying {fallback}")
            if not fallback.is_dir():
                raise GitDirNotFoundError(f"Repository storage for '{layout.source}' not found")
            old_storage = fallback

        new_storage = layout.git_dir / "modules" / layout.target
        if new_storage.exists():
            raise DestinationExistsError(f"Repository storage {new_storage} already exists")

        layout.central_storage = True
        layout.old_storage = old_storage
        layout.new_storage = new_storage
        if not _is_within(str(new_storage), str(layout.root)):
            layout.absolute_pointers = True

    def worktree_pointer(self, layout: RelocationLayout) -> str:
        """Value for ``core.worktree`` in the relocated storage config."""
        if layout.absolute_pointers:
            return layout.target_path.as_posix()
        depth = len(layout.new_storage.relative_to(layout.root).parts)
        return "../" * depth + layout.target

    def gitdir_pointer(self, layout: RelocationLayout) -> str:
        """Value for the ``gitdir:`` line of the relocated link file."""
        if layout.absolute_pointers:
            return layout.new_storage.as_posix()
        storage_rel = layout.new_storage.relative_to(layout.root).as_posix()
        return "../" * (layout.displacement + 1) + storage_rel

    def plan(self, source: str, destination: str) -> RelocationPlan:
        """Validate and return the ordered actions for the relocation."""
        layout = self.validate(source, destination)
        plan = RelocationPlan(layout=layout)
        actions: List[Action] = plan.actions
        target = layout.target

        if layout.entry.name != target:
            actions.append(RenameRegistrySection(self.registry_file, layout.entry.name, target))
        actions.append(SetRegistryValue(self.registry_file, target, "path", target))

        if layout.url_kind.is_local:
            url_path = os.path.normpath(layout.entry.url[2:] or ".")
            if Path(url_path).as_posix() == layout.source:
                actions.append(SetRegistryValue(self.registry_file, target, "url", f"./{target}"))
            else:
                plan.warnings.append(
                    f"url '{layout.entry.url}' does not name '{layout.source}'; leaving it unchanged"
                )

        parent_config = layout.git_dir / "config"
        old_section, new_section = f'submodule "{layout.entry.name}"', f'submodule "{target}"'
        if layout.entry.name != target and has_config_section(parent_config, old_section):
            actions.append(RenameConfigSection(parent_config, old_section, new_section))

        if layout.central_storage:
            config_file = layout.old_storage / "config"
            if os.access(config_file, os.W_OK):
                actions.append(SetConfigValue(config_file, "core", "worktree", self.worktree_pointer(layout)))
            else:
                plan.warnings.append(f"{config_file} is not writable; core.worktree left unchanged")
            actions.append(WriteGitdirLink(layout.link_file, self.gitdir_pointer(layout)))
            actions.append(MoveDirectory(layout.old_storage, layout.new_storage))

        actions.append(MoveDirectory(layout.source_path, layout.target_path))
        # git refuses to drop a gitlink while .gitmodules has unstaged edits
        actions.append(IndexOperation(IndexOpKind.ADD, (GITMODULES,)))
        actions.append(IndexOperation(IndexOpKind.REMOVE_CACHED, (layout.source,)))
        actions.append(IndexOperation(IndexOpKind.ADD, (target,)))

        for warning in plan.warnings:
            logger.warning(warning)
        logger.info(f"Planned {len(actions)} step(s) to move '{layout.source}' to '{target}'")
        return plan
