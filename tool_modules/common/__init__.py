"""Common utilities for tool modules.

Usage in tool modules:
    from tool_modules.common import PROJECT_ROOT

    __project_root__ = PROJECT_ROOT
"""

from pathlib import Path

# This file is at: tool_modules/common/__init__.py
# Project root is 2 levels up
PROJECT_ROOT = Path(__file__).parent.parent.parent
