# aicli/aicli/safety/validator.py
from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, List, Optional, Pattern, Tuple

from ..utils.schema import ResolvedCommand, SafetyResult

if TYPE_CHECKING:
    from ..plugins.manager import PluginManager

log = logging.getLogger(__name__)

GENERIC_BLOCK_REASON = "Command contains dangerous operations that could cause system damage"
GENERIC_WARNING = "This command performs potentially destructive operations. Proceed with caution."

# Commands are lower-cased before matching. (pattern, specific reason or None)
DANGEROUS_PATTERNS: List[Tuple[Pattern[str], Optional[str]]] = [
    # system destruction
    (re.compile(r"\brm\s+(-[a-z]*r[a-z]*f[a-z]*|-[a-z]*f[a-z]*r[a-z]*|(-r|-f|--recursive|--force)\s+(-r|-f|--recursive|--force))\s+(--no-preserve-root\s+)?/(\*)?(\s|$)"),
     "Attempting to delete root directory - extremely dangerous operation"),
    (re.compile(r"\brmdir\s*/s\s*/q\s+c:\\?(\s|$)"),
     "Attempting to delete the system drive - extremely dangerous operation"),
    (re.compile(r"\bremove-item\b(?=.*\s-r\w*\b).*\s['\"]?(c:|\$env:systemdrive)\\?\*?['\"]?(\s|$)"),
     "Attempting to delete the system drive - extremely dangerous operation"),
    (re.compile(r"\bformat(\.com)?\s+c:"),
     "Attempting to format system drive - data loss will occur"),
    (re.compile(r"\bformat-volume\b"),
     "Formatting a volume erases everything on it"),
    (re.compile(r"\b(clear-disk|initialize-disk)\b"),
     "Wiping or re-initialising a disk destroys its partitions and data"),
    (re.compile(r"\bmkfs(\.\w+)?\b"),
     "Creating a filesystem erases everything on the target device"),
    (re.compile(r"\bdd\s+.*\bof=/dev/(sd|hd|nvme|disk|mmcblk|vd|xvd)"),
     "Raw write to a block device will destroy its contents"),
    (re.compile(r">\s*/dev/(sd|hd|nvme|disk|mmcblk|vd|xvd)[a-z0-9]*"),
     "Redirecting output onto a block device will destroy its contents"),
    (re.compile(r":\(\)\s*\{\s*:\s*\|\s*:\s*&\s*\}\s*;\s*:"),
     "Fork bomb - will exhaust system resources"),
    # process killing
    (re.compile(r"\bkill\s+-(9|kill|sigkill)\s+1\s*$"),
     "Attempting to kill init process - system will become unstable"),
    (re.compile(r"\bkillall\s+-(9|kill|sigkill)\b"), None),
    # docker
    (re.compile(r"\bdocker\s+system\s+prune\s+(-af|-fa|-a\s+-f|-f\s+-a|--all\s+--force|--force\s+--all)\b"),
     "Docker system prune with -af will remove all containers, images, and networks"),
    (re.compile(r"\bdocker\s+rm\s+-(vf|fv)\b"), None),
    (re.compile(r"\bdocker\s+rmi\s+-f\b"), None),
    # network configuration
    (re.compile(r"\biptables\s+(-f|--flush)\b"), "Flushing firewall rules can drop or expose all traffic"),
    (re.compile(r"\bip\s+link\s+set\b.*\bdown\b"), "Taking a network interface down can cut remote access"),
    (re.compile(r"\bnetsh\b.*\breset\b"), None),
    # user management
    (re.compile(r"\buserdel\s+-r\b"), "Deleting a user together with their home directory"),
    (re.compile(r"\bdeluser\b.*--remove-home"), "Deleting a user together with their home directory"),
    # credential files
    (re.compile(r">\s*/etc/(passwd|shadow|sudoers|group)\b"),
     "Overwriting system credential files can lock every user out"),
    # boot management
    (re.compile(r"\bupdate-grub\b"), "Modifying the boot loader can leave the system unbootable"),
    (re.compile(r"\bgrub-install\b"), "Modifying the boot loader can leave the system unbootable"),
    (re.compile(r"\bbootsect\b"), "Modifying the boot loader can leave the system unbootable"),
    # permissions
    (re.compile(r"\bchmod\s+(-r|--recursive)\s+0?777\s+/(\s|$)"),
     "Making the whole filesystem world-writable breaks system security"),
]

WARNING_PATTERNS: List[Tuple[Pattern[str], str]] = [
    # file deletion
    (re.compile(r"\brm\s+(-[a-z]*r[a-z]*|--recursive)\b"),
     "This command will recursively delete files and directories. Review the target carefully."),
    (re.compile(r"\brmdir\s*/s\b"),
     "This command will recursively delete files and directories. Review the target carefully."),
    (re.compile(r"\b(del|erase)\b.*\s/s\b"),
     "This command deletes files in every subdirectory. Review the target carefully."),
    (re.compile(r"\bremove-item\b.*-recurse\b"),
     "This command will recursively delete files and directories. Review the target carefully."),
    # disk operations
    (re.compile(r"\b(fdisk|parted|diskpart)\b"), "Partitioning tools can destroy data on the target disk."),
    (re.compile(r"(^|[\s;&|])format(\.com)?\s+[a-z]:"), "Formatting operations will erase all data on the target device."),
    # process operations
    (re.compile(r"\bkill\s+-(9|kill|sigkill)\b"), "Force killing processes can cause data loss or system instability."),
    (re.compile(r"\bpkill\s+-(9|kill|sigkill)\b"), "Force killing processes can cause data loss or system instability."),
    (re.compile(r"\btaskkill\b.*\s/f\b"), "Force killing processes can cause data loss or system instability."),
    (re.compile(r"\bstop-process\b.*-force\b"), "Force killing processes can cause data loss or system instability."),
    # system services
    (re.compile(r"\bsystemctl\s+(stop|disable|mask)\b"), "Stopping system services may affect dependent applications."),
    (re.compile(r"\bservice\s+\S+\s+stop\b"), "Stopping system services may affect dependent applications."),
    (re.compile(r"\bnet\s+stop\b"), "Stopping system services may affect dependent applications."),
    (re.compile(r"\bstop-service\b"), "Stopping system services may affect dependent applications."),
    # package management
    (re.compile(r"\b(apt|apt-get)\s+(remove|purge|autoremove)\b"), "Removing packages may break software that depends on them."),
    (re.compile(r"\b(yum|dnf|zypper)\s+(remove|erase)\b"), "Removing packages may break software that depends on them."),
    (re.compile(r"\bpacman\s+-r"), "Removing packages may break software that depends on them."),
    (re.compile(r"\bbrew\s+(uninstall|remove)\b"), "Removing packages may break software that depends on them."),
    (re.compile(r"\b(npm|pip|pip3)\s+uninstall\b"), "Removing packages may break software that depends on them."),
    # permissions
    (re.compile(r"\bchmod\s+(-[a-z]+\s+)*0?777\b"), "Granting everyone full access to files is a security risk."),
    (re.compile(r"\bicacls\b.*\s/grant\b"), "Granting broad file permissions is a security risk."),
    (re.compile(r"\battrib\b.*\s-r\b"), "Removing read-only protection allows files to be modified or deleted."),
]

_ELEVATED = re.compile(r"\b(sudo|doas|runas)\b|start-process\b.*-verb\s+runas")
_DOWNLOAD = re.compile(r"\b(curl|wget|iwr|irm|invoke-webrequest|invoke-restmethod)\b")
_PIPE_TO_SHELL = re.compile(r"\|\s*(sudo\s+)?(sh|bash|zsh|dash|ksh|fish|python[0-9.]*|perl|ruby|powershell|pwsh|iex|invoke-expression)\b")
_RECURSIVE_PERMS = re.compile(r"\b(chmod|chown|chgrp)\b.*\s(-[a-z]*r[a-z]*|--recursive)\b|\bicacls\b.*\s/t\b")
_ENV_MUTATION = re.compile(r"\bexport\s+\w+=|\bunset\s+\w+|\bsetenv\b|\bsetx\b|(^|[\s;&|])set\s+\w+=|\$env:\w+\s*=")

# (command, flag that makes it a rehearsal, how to insert it)
_DRY_RUN = [
    ("rsync", "--dry-run", "rsync --dry-run"),
    ("ansible-playbook", "--check", "ansible-playbook --check"),
    ("helm", "--dry-run", None),
    ("kubectl", "--dry-run", None),
    ("apt-get", "--simulate", "apt-get --simulate"),
    ("make", "-n", "make -n"),
]


def _normalize(cmd: str) -> str:
    return (cmd or "").lower().strip()


class SafetyValidator:
    """
    Classifies a resolved command sequence by risk.

    Order: plugin verdict, dangerous table (block), warning table, contextual
    heuristics, then low risk. Every table is evaluated pattern-first across the
    whole sequence, so the first pattern in table order decides.
    """

    def __init__(self, plugins: Optional["PluginManager"] = None):
        self.plugins = plugins

    def validate(self, command: ResolvedCommand) -> SafetyResult:
        if self.plugins is not None:
            try:
                verdict = self.plugins.get_safety_checks(command)
            except Exception as e:
                log.warning("plugin safety lookup failed: %s", e)
                verdict = None
            if verdict is not None:
                return verdict

        commands = [_normalize(c) for c in command.commands]

        for pattern, reason in DANGEROUS_PATTERNS:
            if any(pattern.search(c) for c in commands):
                return SafetyResult(blocked=True, reason=reason or GENERIC_BLOCK_REASON, risk_level="high")

        for pattern, warning in WARNING_PATTERNS:
            if any(pattern.search(c) for c in commands):
                return SafetyResult(blocked=False, warning=warning or GENERIC_WARNING, risk_level="high")

        contextual = self.check_contextual_dangers(commands)
        if contextual is not None:
            return contextual

        return SafetyResult(blocked=False, risk_level="low")

    def check_contextual_dangers(self, commands: List[str]) -> Optional[SafetyResult]:
        if any(_ELEVATED.search(c) for c in commands):
            return SafetyResult(
                warning="This command requires elevated privileges. Ensure you trust the command execution.",
                risk_level="medium",
            )
        if any(_DOWNLOAD.search(c) and _PIPE_TO_SHELL.search(c) for c in commands):
            return SafetyResult(
                warning="Executing downloaded content directly can be dangerous. Verify the source first.",
                risk_level="high",
            )
        if any(_RECURSIVE_PERMS.search(c) for c in commands):
            return SafetyResult(
                warning="Recursive permission changes can affect many files. Review carefully.",
                risk_level="medium",
            )
        if any(_ENV_MUTATION.search(c) for c in commands):
            return SafetyResult(
                warning="Modifying environment variables can affect system behavior.",
                risk_level="low",
            )
        return None

    # ---- dry-run assistance (advisory only) -----------------------------

    @staticmethod
    def is_dry_run_possible(command: str) -> bool:
        cmd = _normalize(command)
        if cmd.startswith("terraform "):
            return cmd.split()[1:2] == ["apply"]
        if cmd.startswith("git clean"):
            return not re.search(r"\s(-[a-z]*n|--dry-run)\b", cmd)
        for base, flag, _ in _DRY_RUN:
            if cmd.startswith(base + " ") and flag not in cmd:
                return True
        return False

    @staticmethod
    def add_dry_run_flag(command: str) -> str:
        if not SafetyValidator.is_dry_run_possible(command):
            return command
        cmd = command.strip()
        lowered = cmd.lower()
        if lowered.startswith("terraform "):
            return re.sub(r"(?i)^terraform\s+apply\b", "terraform plan", cmd)
        if lowered.startswith("git clean"):
            return re.sub(r"(?i)^git\s+clean\b", "git clean --dry-run", cmd)
        if lowered.startswith("kubectl "):
            return cmd + " --dry-run=client"
        if lowered.startswith("helm "):
            return cmd + " --dry-run"
        for base, _, replacement in _DRY_RUN:
            if replacement and lowered.startswith(base + " "):
                return replacement + cmd[len(base):]
        return command
