"""
Tests for the plan executor.
"""

from pathlib import Path
from unittest.mock import Mock, call, patch

import pytest
from git.config import GitConfigParser

from submodule_mv.executor import PlanExecutor
from submodule_mv.git_manager import GitManager
from submodule_mv.models import (
    IndexOperation,
    IndexOpKind,
    MoveDirectory,
    RelocationExecutionError,
    RelocationPlan,
)
from submodule_mv.planner import RelocationPlanner


def _worktree_of(config_file: Path) -> str:
    reader = GitConfigParser(str(config_file), read_only=True)
    try:
        return reader.get_value("core", "worktree")
    finally:
        reader.release()


@pytest.fixture()
def git_manager(parent_repo: Path):
    """Real GitManager with the index operations stubbed out."""
    gm = GitManager(parent_repo)
    with patch.object(gm, "remove_cached") as remove_cached, patch.object(gm, "add") as add:
        gm.remove_cached_mock = remove_cached
        gm.add_mock = add
        yield gm


class TestDryRun:

    def test_dry_run_echoes_commands_and_changes_nothing(self, parent_repo: Path):
        plan = RelocationPlanner(parent_repo).plan("lib/foo", "vendor/")
        gm = Mock(spec=GitManager)
        echoed = []
        before = (parent_repo / ".gitmodules").read_text()

        count = PlanExecutor(gm, dry_run=True, echo=echoed.append).run(plan)

        assert count == len(plan.actions)
        commands = [a.command() for a in plan.actions]
        assert all(c in echoed for c in commands)
        assert "git rm --cached -q lib/foo" in echoed
        assert (parent_repo / ".gitmodules").read_text() == before
        assert (parent_repo / "lib" / "foo").is_dir()
        assert not (parent_repo / "vendor").exists()
        gm.remove_cached.assert_not_called()
        gm.add.assert_not_called()
        gm.set_config_value.assert_not_called()

    def test_dry_run_implies_verbose(self, parent_repo: Path):
        plan = RelocationPlanner(parent_repo).plan("lib/foo", "vendor/")
        echoed = []
        PlanExecutor(Mock(spec=GitManager), dry_run=True, echo=echoed.append).run(plan)
        assert echoed[0].startswith(f"[1/{len(plan.actions)}] ")
        assert len(echoed) == 2 * len(plan.actions)


class TestExecution:

    def test_scenario(self, parent_repo: Path, git_manager):
        plan = RelocationPlanner(parent_repo).plan("lib/foo", "vendor/")
        PlanExecutor(git_manager).run(plan)

        registry = (parent_repo / ".gitmodules").read_text()
        assert registry == '[submodule "vendor/foo"]\n\tpath = vendor/foo\n\turl = ../upstream/foo.git\n'

        assert not (parent_repo / "lib" / "foo").exists()
        # Emptied parent directories are pruned
        assert not (parent_repo / "lib").exists()
        assert (parent_repo / "vendor" / "foo" / "README.md").read_text() == "# foo\n"
        assert (parent_repo / "vendor" / "foo" / ".git").read_text() == "gitdir: ../../.git/modules/vendor/foo\n"

        old_storage = parent_repo / ".git" / "modules" / "lib" / "foo"
        new_storage = parent_repo / ".git" / "modules" / "vendor" / "foo"
        assert not old_storage.exists()
        assert (new_storage / "HEAD").is_file()
        assert _worktree_of(new_storage / "config") == "../../../../vendor/foo"

        git_manager.remove_cached_mock.assert_called_once_with(("lib/foo",))
        assert git_manager.add_mock.call_args_list == [call((".gitmodules",)), call(("vendor/foo",))]

    def test_verbose_echoes_descriptions(self, parent_repo: Path, git_manager):
        plan = RelocationPlanner(parent_repo).plan("lib/foo", "vendor/")
        echoed = []
        PlanExecutor(git_manager, verbose=True, echo=echoed.append).run(plan)
        assert len(echoed) == len(plan.actions)
        assert echoed[-1] == f"[{len(plan.actions)}/{len(plan.actions)}] Staging vendor/foo"

    def test_failure_is_wrapped_and_stops(self, parent_repo: Path):
        gm = Mock(spec=GitManager)
        plan = RelocationPlan(
            layout=None,
            actions=[
                MoveDirectory(parent_repo / "missing", parent_repo / "elsewhere"),
                IndexOperation(IndexOpKind.ADD, (".gitmodules",)),
            ],
        )
        with pytest.raises(RelocationExecutionError) as exc_info:
            PlanExecutor(gm).run(plan)
        assert "Step 1" in str(exc_info.value)
        assert "swapped" in str(exc_info.value)
        gm.add.assert_not_called()

    def test_unsupported_action(self):
        with pytest.raises(RelocationExecutionError):
            PlanExecutor(Mock(spec=GitManager)).execute(object())
