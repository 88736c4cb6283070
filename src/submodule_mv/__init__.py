"""
git-submodule-mv - Relocate a git submodule inside its parent repository.

This package moves a submodule's working tree and repository storage and
rewrites every pointer between them (.gitmodules, core.worktree, gitdir link)
so the submodule keeps working at its new path.
"""

__version__ = "0.1.0"

from .relocator import SubmoduleRelocator
from .models import RelocationConfig, RelocationLayout, RelocationPlan, SubmoduleEntry, UrlKind, RelocationError
from .git_manager import GitManager
from .gitmodules import GitModulesFile
from .planner import RelocationPlanner
from .executor import PlanExecutor

__all__ = [
    "SubmoduleRelocator",
    "RelocationConfig",
    "RelocationLayout",
    "RelocationPlan",
    "SubmoduleEntry",
    "UrlKind",
    "RelocationError",
    "GitManager",
    "GitModulesFile",
    "RelocationPlanner",
    "PlanExecutor",
]
