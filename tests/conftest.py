"""
Shared fixtures: fake parent repositories laid out the way git lays out
submodules, without needing a git binary.
"""

from pathlib import Path

import pytest


PARENT_CONFIG = "[core]\n\trepositoryformatversion = 0\n\tbare = false\n"


def _write_submodule(root: Path, name: str, path: str, url: str, embedded: bool) -> None:
    worktree = root / path
    worktree.mkdir(parents=True)
    (worktree / "README.md").write_text(f"# {name}\n")

    if embedded:
        (worktree / ".git").mkdir()
        (worktree / ".git" / "config").write_text(PARENT_CONFIG)
        return

    depth = len(Path(path).parts)
    storage = root / ".git" / "modules" / path
    storage.mkdir(parents=True)
    (storage / "HEAD").write_text("ref: refs/heads/main\n")
    (storage / "config").write_text(
        PARENT_CONFIG + f"\tworktree = {'../' * (depth + 2)}{path}\n"
    )
    (worktree / ".git").write_text(f"gitdir: {'../' * depth}.git/modules/{path}\n")


@pytest.fixture()
def make_parent(tmp_path: Path):
    """Factory building a parent repository with one or more submodules.

    Each submodule is given as a dict with ``path`` and optionally ``name``,
    ``url`` and ``embedded``.
    """

    def _make(*submodules, gitmodules: bool = True, git_dir: bool = True) -> Path:
        root = tmp_path / "parent"
        root.mkdir()
        if git_dir:
            (root / ".git").mkdir()
            (root / ".git" / "config").write_text(PARENT_CONFIG)

        sections = []
        for sub in submodules or ({"path": "lib/foo", "name": "foo"},):
            path = sub["path"]
            name = sub.get("name", path)
            url = sub.get("url", f"../upstream/{Path(path).name}.git")
            sections.append(f'[submodule "{name}"]\n\tpath = {path}\n\turl = {url}\n')
            _write_submodule(root, name, path, url, sub.get("embedded", False))

        if gitmodules:
            (root / ".gitmodules").write_text("".join(sections))
        return root

    return _make


@pytest.fixture()
def parent_repo(make_parent) -> Path:
    """Parent with submodule ``foo`` at ``lib/foo`` and an upstream-relative url."""
    return make_parent()


@pytest.fixture(autouse=True)
def isolated_log(tmp_path: Path, monkeypatch):
    """Keep CLI log files out of the home directory."""
    monkeypatch.setenv("GIT_SUBMODULE_MV_LOG", str(tmp_path / "logs" / "git-submodule-mv.log"))
    monkeypatch.delenv("GIT_SUBMODULE_MV_DEBUG", raising=False)
    monkeypatch.delenv("GIT_DIR", raising=False)
