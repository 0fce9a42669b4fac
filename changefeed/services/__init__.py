"""
Changefeed Services
===================

Tool layer shared by every interface (CLI, embedding applications).
"""

from .changelog_service import ChangelogService
from .tool_registry import ToolSpec, build_tool_registry

__all__ = [
    'ChangelogService',
    'ToolSpec',
    'build_tool_registry',
]
