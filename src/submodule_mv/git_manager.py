"""
Git operations against the parent repository.
"""

from __future__ import annotations

import contextlib
import logging
from pathlib import Path
from typing import Iterator, Optional, Sequence, Union

from git import Git
from git.config import GitConfigParser
from git.exc import GitCommandError

from .gitmodules import quote_value
from .models import GitRepositoryError


logger = logging.getLogger(__name__)


class GitManager:
    """Runs index, status and config operations for the parent repository."""

    def __init__(self, repo_path: Optional[Path] = None, git_dir: Optional[Path] = None) -> None:
        """Initialize with the parent's working directory and optional storage override."""
        self.repo_path = (repo_path or Path.cwd()).resolve()
        self.git_dir = Path(git_dir).resolve() if git_dir else None
        self._git: Optional[Git] = None

    # --- Path normalization helpers ---
    def _to_repo_relative_str(self, p: Union[str, Path]) -> str:
        """Return a POSIX-style path relative to the repo root for any given path.

        Absolute paths inside the working directory are made relative; relative
        paths are normalized to POSIX separators; anything else is passed as-is.
        """
        pp = Path(p)
        try:
            if pp.is_absolute():
                return pp.resolve().relative_to(self.repo_path).as_posix()
            return pp.as_posix()
        except ValueError:
            s = pp.as_posix()
            logger.debug(f"Path '{s}' not under repo root '{self.repo_path}'; passing as-is")
            return s

    @property
    def git(self) -> Git:
        """Git command wrapper bound to the repository root."""
        if self._git is None:
            self._git = Git(str(self.repo_path))
        return self._git

    @contextlib.contextmanager
    def _environment(self) -> Iterator[None]:
        if self.git_dir is None:
            yield
            return
        with self.git.custom_environment(GIT_DIR=str(self.git_dir), GIT_WORK_TREE=str(self.repo_path)):
            yield

    def remove_cached(self, paths: Sequence[Union[str, Path]]) -> None:
        """Drop paths from the index without touching the working tree."""
        rels = [self._to_repo_relative_str(p) for p in paths]
        try:
            with self._environment():
                self.git.rm("--cached", "-q", "--", *rels)
            logger.info(f"Removed from index: {', '.join(rels)}")
        except GitCommandError as e:
            logger.error(f"Error removing {rels} from index: {e}")
            raise GitRepositoryError(f"Failed to remove {', '.join(rels)} from the index: {e}")

    def add(self, paths: Sequence[Union[str, Path]]) -> None:
        """Stage paths in the index."""
        rels = [self._to_repo_relative_str(p) for p in paths]
        try:
            with self._environment():
                self.git.add("--", *rels)
            logger.info(f"Staged: {', '.join(rels)}")
        except GitCommandError as e:
            logger.error(f"Error staging {rels}: {e}")
            raise GitRepositoryError(f"Failed to stage {', '.join(rels)}: {e}")

    def status(self) -> str:
        """Return the output of ``git status``."""
        try:
            with self._environment():
                return self.git.status()
        except GitCommandError as e:
            logger.error(f"Error getting status: {e}")
            raise GitRepositoryError(f"Could not get repository status: {e}")

    def set_config_value(self, config_file: Path, section: str, key: str, value: str) -> None:
        """Write ``section.key = value`` into a git config file, quoted as git expects."""
        try:
            with GitConfigParser(str(config_file), read_only=False) as writer:
                writer.set_value(section, key, quote_value(value))
            logger.info(f"Set {section}.{key}={value} in {config_file}")
        except (OSError, ValueError) as e:
            logger.error(f"Error writing {section}.{key} to {config_file}: {e}")
            raise GitRepositoryError(f"Failed to update {config_file}: {e}")

    def rename_config_section(self, config_file: Path, section: str, new_section: str) -> None:
        """Rename a section of a git config file, e.g. ``submodule "a"`` to ``submodule "b"``."""
        try:
            with GitConfigParser(str(config_file), read_only=False) as writer:
                writer.rename_section(section, new_section)
            logger.info(f"Renamed [{section}] to [{new_section}] in {config_file}")
        except (OSError, ValueError) as e:
            logger.error(f"Error renaming [{section}] in {config_file}: {e}")
            raise GitRepositoryError(f"Failed to update {config_file}: {e}")


def has_config_section(config_file: Path, section: str) -> bool:
    """True if the git config file has the given section."""
    reader = GitConfigParser(str(config_file), read_only=True)
    try:
        return reader.has_section(section)
    finally:
        reader.release()
