"""Thin REST wrappers for the Azure DevOps areas the tools read from."""

from .builds import BuildOperations
from .core import CoreOperations
from .git import GitOperations
from .releases import ReleaseOperations
from .testresults import TestResultOperations
from .work_items import WorkItemOperations

__all__ = [
    "BuildOperations",
    "CoreOperations",
    "GitOperations",
    "ReleaseOperations",
    "TestResultOperations",
    "WorkItemOperations",
]
