"""Tool Path Resolution - Shared utilities for tool module discovery.

Usage:
    from server.tool_paths import get_tools_file_path, get_tools_module_name

    path = get_tools_file_path("slack")         # aa_slack/src/tools_core.py or tools_basic.py
    name = get_tools_module_name("slack_basic")  # tool_modules.aa_slack.src.tools_basic
"""

from pathlib import Path

# Directory structure:
#   server/         <- This file is here
#     tool_paths.py
#   tool_modules/   <- Tool modules are here
#     aa_slack/
#       src/
#         tools_basic.py
PROJECT_DIR = Path(__file__).parent.parent
TOOL_MODULES_DIR = PROJECT_DIR / "tool_modules"

# Tool file naming conventions
TOOLS_CORE_FILE = "tools_core.py"
TOOLS_BASIC_FILE = "tools_basic.py"

_SUFFIX_FILES = {
    "_core": TOOLS_CORE_FILE,
    "_basic": TOOLS_BASIC_FILE,
}


def _split_suffix(module_name: str) -> tuple[str, str | None]:
    for suffix, filename in _SUFFIX_FILES.items():
        if module_name.endswith(suffix):
            return module_name[: -len(suffix)], filename
    return module_name, None


def get_tools_file_path(module_name: str) -> Path:
    """
    Determine the tools file for a tool module name.

    - slack_core -> aa_slack/src/tools_core.py
    - slack_basic -> aa_slack/src/tools_basic.py
    - slack -> aa_slack/src/tools_core.py if it exists, else tools_basic.py

    Args:
        module_name: Tool module name (e.g., "slack", "slack_basic")

    Returns:
        Path to the tools file (may not exist)
    """
    base_name, filename = _split_suffix(module_name)
    src_dir = TOOL_MODULES_DIR / f"aa_{base_name}" / "src"
    if filename:
        return src_dir / filename

    tools_core = src_dir / TOOLS_CORE_FILE
    if tools_core.exists():
        return tools_core
    return src_dir / TOOLS_BASIC_FILE


def get_tools_module_name(module_name: str) -> str:
    """Dotted import path of the tools file returned by ``get_tools_file_path``."""
    tools_file = get_tools_file_path(module_name)
    package = ".".join(tools_file.relative_to(PROJECT_DIR).parent.parts)
    return f"{package}.{tools_file.stem}"


def get_available_modules() -> list[str]:
    """List tool modules (``aa_<name>`` directories with a tools file)."""
    if not TOOL_MODULES_DIR.exists():
        return []

    modules = []
    for module_dir in sorted(TOOL_MODULES_DIR.glob("aa_*")):
        src_dir = module_dir / "src"
        if (src_dir / TOOLS_CORE_FILE).exists() or (src_dir / TOOLS_BASIC_FILE).exists():
            modules.append(module_dir.name[len("aa_") :])
    return modules
