"""Environment and platform detection.

- env_detector: Toolchain command, VS Code extension and Roblox Studio detection
- platform_info: OS, shell, architecture and privilege detection
"""

from yoblox_setup.system.env_detector import (
    DetectionResult,
    StudioInstall,
    ToolInfo,
    detect_tool,
    detect_tools,
    find_roblox_studio,
    list_vscode_extensions,
)

__all__ = [
    "DetectionResult",
    "StudioInstall",
    "ToolInfo",
    "detect_tool",
    "detect_tools",
    "find_roblox_studio",
    "list_vscode_extensions",
]
