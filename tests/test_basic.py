"""
Basic tests for the git submodule relocation tool.
"""

import pytest
from submodule_mv import __version__
from submodule_mv import (
    SubmoduleRelocator, RelocationConfig, RelocationPlan, SubmoduleEntry,
    GitManager, GitModulesFile, RelocationPlanner, PlanExecutor
)


def test_version_format():
    assert isinstance(__version__, str)
    assert __version__ != ""

def test_version_matches_semver():
    import re
    semver_pattern = r"^\d+\.\d+\.\d+$"
    assert re.match(semver_pattern, __version__)

def test_import():
    """Test that the package can be imported."""
    import submodule_mv
    assert submodule_mv is not None


def test_all_imports():
    """Test that all main classes can be imported."""
    assert SubmoduleRelocator is not None
    assert RelocationConfig is not None
    assert RelocationPlan is not None
    assert SubmoduleEntry is not None
    assert GitManager is not None
    assert GitModulesFile is not None
    assert RelocationPlanner is not None
    assert PlanExecutor is not None


def test_package_structure():
    """Test package structure and __all__ exports."""
    import submodule_mv

    expected_exports = [
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

    for export in expected_exports:
        assert hasattr(submodule_mv, export), f"Missing export: {export}"
        assert export in submodule_mv.__all__
