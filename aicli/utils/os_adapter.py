# aicli/aicli/utils/os_adapter.py
from __future__ import annotations

import os
import platform
import re
import shutil
import sys
from typing import Dict, List, Optional

from .schema import OSInfo

_ALTERNATIVES: Dict[str, Dict[str, List[str]]] = {
    "windows": {
        "ls": ["dir"], "cat": ["type"], "cp": ["copy"], "mv": ["move", "ren"],
        "rm": ["del", "rmdir"], "clear": ["cls"], "grep": ["findstr"], "ps": ["tasklist"],
        "kill": ["taskkill"], "ifconfig": ["ipconfig"], "chmod": ["icacls"],
        "wget": ["curl", "bitsadmin"], "nano": ["notepad"], "vim": ["notepad"],
    },
    "linux": {
        "dir": ["ls"], "type": ["cat"], "copy": ["cp"], "move": ["mv"], "del": ["rm"],
        "cls": ["clear"], "findstr": ["grep"], "tasklist": ["ps"], "taskkill": ["kill"],
        "ipconfig": ["ifconfig", "ip addr"], "notepad": ["nano", "vim"], "attrib": ["chmod"],
    },
    "macos": {
        "dir": ["ls"], "type": ["cat"], "copy": ["cp"], "move": ["mv"], "del": ["rm"],
        "cls": ["clear"], "findstr": ["grep"], "tasklist": ["ps"], "taskkill": ["kill"],
        "ipconfig": ["ifconfig", "ip addr"], "notepad": ["nano", "vim", "open -e"], "attrib": ["chmod"],
    },
}

_TO_WINDOWS = {
    "ls -la": "dir", "ls -l": "dir", "ls": "dir", "cat": "type", "cp -r": "xcopy /E /I",
    "cp": "copy", "mv": "move", "rm": "del", "clear": "cls", "grep": "findstr",
    "ps aux": "tasklist", "kill": "taskkill", "nano": "notepad",
}

_TO_UNIX = {
    "dir": "ls -la", "type": "cat", "copy": "cp", "move": "mv", "del": "rm", "cls": "clear",
    "findstr": "grep", "tasklist": "ps aux", "taskkill": "kill", "icacls": "chmod",
    "attrib": "chmod", "notepad": "nano",
}

_WIN_RELATIVE = re.compile(r"^(\.{1,2}\\|[\w.-]+\\[\w.-])[\w.\\-]*$")


def _platform_name(sys_platform: str) -> str:
    if sys_platform.startswith("win"):
        return "windows"
    if sys_platform == "darwin":
        return "macos"
    return "linux"


def _detect_shell(plat: str) -> str:
    if plat == "windows":
        return os.environ.get("COMSPEC", "cmd.exe")
    return os.path.basename(os.environ.get("SHELL", "") or "bash")


def detect_os(shell_override: Optional[str] = None) -> OSInfo:
    plat = _platform_name(sys.platform)
    return OSInfo(
        platform=plat,
        arch=platform.machine().lower() or "unknown",
        shell=(shell_override or _detect_shell(plat)).strip(),
    )


def is_command_available(command: str) -> bool:
    return shutil.which(command) is not None


def alternative_commands(os_info: OSInfo, primary: str) -> List[str]:
    return list(_ALTERNATIVES.get(os_info.platform, {}).get(primary, []))


def _swap_leading(command: str, table: Dict[str, str]) -> str:
    # longest key first so "ls -la" wins over "ls"
    for key in sorted(table, key=len, reverse=True):
        if command == key or command.startswith(key + " "):
            return table[key] + command[len(key):]
    return command


def _windows_path(part: str) -> str:
    # URLs and switches like /E are left alone
    if "://" in part or part.startswith("/") or "/" not in part:
        return part
    return part.replace("/", "\\")


def _unix_path(part: str) -> str:
    # only bare relative windows paths; shell escapes like \n or \* stay intact
    if _WIN_RELATIVE.match(part):
        return part.replace("\\", "/")
    return part


def normalize_command(os_info: OSInfo, command: str) -> str:
    """Translate the leading verb and path separators to the target platform."""
    cmd = command.strip()
    if os_info.platform == "windows":
        cmd = _swap_leading(cmd, _TO_WINDOWS)
        return " ".join(_windows_path(part) for part in cmd.split(" "))
    cmd = " ".join(_unix_path(part) for part in cmd.split(" "))
    return _swap_leading(cmd, _TO_UNIX)
