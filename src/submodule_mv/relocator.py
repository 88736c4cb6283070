"""
High level relocation workflow: validate, plan, execute, report.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from .executor import PlanExecutor
from .git_manager import GitManager
from .models import RelocationConfig, RelocationPlan
from .planner import RelocationPlanner


logger = logging.getLogger(__name__)


class SubmoduleRelocator:
    """Moves a submodule inside its parent repository.

    The working directory must be the root of the parent repository. Runs
    are not atomic: a failure after validation leaves the steps already
    performed in place, and relocating back with swapped arguments undoes a
    completed run.
    """

    def __init__(
        self,
        root: Optional[Path] = None,
        config: Optional[RelocationConfig] = None,
        git_manager: Optional[GitManager] = None,
        echo: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.root = Path(root or Path.cwd()).resolve()
        self.config = config or RelocationConfig()
        self.planner = RelocationPlanner(self.root, self.config)
        git_dir = self.planner.git_dir if self.config.git_dir is not None else None
        self.gm = git_manager or GitManager(self.root, git_dir)
        self.executor = PlanExecutor(
            self.gm,
            dry_run=self.config.dry_run,
            verbose=self.config.verbose,
            echo=echo,
        )

    def plan(self, source: str, destination: str) -> RelocationPlan:
        return self.planner.plan(source, destination)

    def relocate(self, source: str, destination: str) -> RelocationPlan:
        """Validate and carry out the relocation of ``source`` to ``destination``."""
        plan = self.plan(source, destination)
        layout = plan.layout
        logger.info(
            f"Relocating submodule '{layout.entry.name}' from {layout.source} to {layout.target}"
            + (" (dry run)" if self.config.dry_run else "")
        )
        self.executor.run(plan)
        return plan

    def status(self) -> str:
        """Repository status after a relocation, for the operator to review."""
        return self.gm.status()
