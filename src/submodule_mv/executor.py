"""
Execution of relocation plans.
"""

from __future__ import annotations

import logging
import os
from typing import Callable, Optional

from .gitmodules import GitModulesFile, format_gitdir_link
from .git_manager import GitManager
from .models import (
    Action,
    IndexOperation,
    IndexOpKind,
    MoveDirectory,
    RelocationError,
    RelocationExecutionError,
    RelocationPlan,
    RenameConfigSection,
    RenameRegistrySection,
    SetConfigValue,
    SetRegistryValue,
    WriteGitdirLink,
)


logger = logging.getLogger(__name__)


class PlanExecutor:
    """Interprets plan actions, either performing them or echoing them.

    ``echo`` receives command renderings in dry-run mode and step descriptions
    in verbose mode.
    """

    def __init__(
        self,
        git_manager: GitManager,
        dry_run: bool = False,
        verbose: bool = False,
        echo: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.gm = git_manager
        self.dry_run = dry_run
        self.verbose = verbose or dry_run
        self.echo = echo or (lambda message: None)
        self._handlers = {
            RenameRegistrySection: self._rename_section,
            SetRegistryValue: self._set_registry_value,
            RenameConfigSection: self._rename_config_section,
            SetConfigValue: self._set_config_value,
            WriteGitdirLink: self._write_gitdir_link,
            MoveDirectory: self._move_directory,
            IndexOperation: self._index_operation,
        }

    def run(self, plan: RelocationPlan) -> int:
        """Run every action in order. Returns the number of actions performed or echoed."""
        total = len(plan.actions)
        for step, action in enumerate(plan.actions, 1):
            if self.verbose:
                self.echo(f"[{step}/{total}] {action.describe()}")
            if self.dry_run:
                self.echo(action.command())
                continue
            self.execute(action, step)
        return total

    def execute(self, action: Action, step: int = 0) -> None:
        handler = self._handlers.get(type(action))
        if handler is None:
            raise RelocationExecutionError(f"Unsupported action {type(action).__name__}")
        logger.debug(f"Step {step}: {action.command()}")
        try:
            handler(action)
        except (OSError, RelocationError) as e:
            logger.error(f"Step {step} failed: {e}")
            raise RelocationExecutionError(
                f"Step {step} ({action.describe()}) failed: {e}. The repository is partially "
                "relocated; fix the cause and finish by hand, or re-run with the arguments swapped."
            ) from e

    def _rename_section(self, action: RenameRegistrySection) -> None:
        registry = GitModulesFile.load(action.registry_file)
        registry.rename(action.old_name, action.new_name)
        registry.save()

    def _set_registry_value(self, action: SetRegistryValue) -> None:
        registry = GitModulesFile.load(action.registry_file)
        registry.set_value(action.name, action.key, action.value)
        registry.save()

    def _rename_config_section(self, action: RenameConfigSection) -> None:
        self.gm.rename_config_section(action.config_file, action.old_section, action.new_section)

    def _set_config_value(self, action: SetConfigValue) -> None:
        self.gm.set_config_value(action.config_file, action.section, action.key, action.value)

    def _write_gitdir_link(self, action: WriteGitdirLink) -> None:
        action.link_file.write_text(format_gitdir_link(action.gitdir), encoding="utf-8")
        logger.info(f"Wrote gitdir pointer {action.gitdir} to {action.link_file}")

    def _move_directory(self, action: MoveDirectory) -> None:
        # renames() creates missing parents and prunes the emptied ones
        os.renames(action.source, action.destination)
        logger.info(f"Moved {action.source} -> {action.destination}")

    def _index_operation(self, action: IndexOperation) -> None:
        if action.kind is IndexOpKind.REMOVE_CACHED:
            self.gm.remove_cached(action.paths)
        else:
            self.gm.add(action.paths)
