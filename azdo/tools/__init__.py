"""
Read-only Azure DevOps tools, one table per domain area.

``ALL_TABLES`` fixes the order tools are advertised in.
"""

from ..registry import ToolRegistry
from .builds import build_tools
from .git import git_tools
from .pipelines import pipeline_tools
from .projects import project_tools
from .releases import release_tools
from .testresults import test_result_tools
from .work_items import work_item_tools

ALL_TABLES = (
    project_tools,
    git_tools,
    build_tools,
    work_item_tools,
    release_tools,
    pipeline_tools,
    test_result_tools,
)


def build_registry(on_conflict="error") -> ToolRegistry:
    """Merge every domain table into one registry."""
    return ToolRegistry.build(ALL_TABLES, on_conflict=on_conflict)


__all__ = ["ALL_TABLES", "build_registry"]
