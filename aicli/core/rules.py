# aicli/aicli/core/rules.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Pattern, Tuple

from ..utils.schema import OSInfo, ResolvedCommand


@dataclass(frozen=True)
class Rule:
    triggers: Tuple[str, ...]
    # platform -> command; "*" is the fallback for platforms not listed
    commands: Dict[str, str]
    explanation: str
    tags: Tuple[str, ...]
    confidence: float = 0.9
    variables: Optional[Dict[str, str]] = None
    _patterns: Tuple[Pattern[str], ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        pats = tuple(re.compile(r"(?<![\w-])" + re.escape(t) + r"(?![\w-])") for t in self.triggers)
        object.__setattr__(self, "_patterns", pats)

    def matches(self, text: str) -> bool:
        return any(p.search(text) for p in self._patterns)

    def command_for(self, platform: str) -> str:
        return self.commands.get(platform) or self.commands["*"]


BUILTIN_RULES: List[Rule] = [
    # git
    Rule(("git status", "check git"), {"*": "git status"},
         "Show working tree status", ("git", "status"), 0.95),
    Rule(("git add", "stage changes"), {"*": "git add ."},
         "Stage all changes for commit", ("git", "stage")),
    Rule(("git commit", "commit changes"), {"*": 'git commit -m "{message}"'},
         "Commit staged changes with a message", ("git", "commit"), variables={"message": ""}),
    Rule(("git push", "upload changes"), {"*": "git push"},
         "Push commits to remote repository", ("git", "push")),
    Rule(("git pull", "download changes"), {"*": "git pull"},
         "Pull latest changes from remote repository", ("git", "pull")),
    # node
    Rule(("install npm packages", "npm install"), {"*": "npm install"},
         "Install dependencies from package.json", ("node", "npm")),
    Rule(("run npm script", "npm start"), {"*": "npm start"},
         "Run the start script defined in package.json", ("node", "npm")),
    # docker
    Rule(("show containers", "docker ps"), {"*": "docker ps -a"},
         "List all Docker containers", ("docker", "list")),
    Rule(("show images", "docker images"), {"*": "docker images"},
         "List all Docker images", ("docker", "list")),
    # filesystem
    Rule(("list files", "show files", "ls"), {"windows": "dir", "*": "ls -la"},
         "List all files and directories with details", ("filesystem", "list")),
    Rule(("create folder", "make directory", "mkdir"), {"windows": "mkdir {name}", "*": "mkdir -p {name}"},
         "Create a new directory (parent directories created as needed)", ("filesystem", "create"),
         variables={"name": ""}),
    Rule(("remove file", "delete file", "rm file"), {"windows": "del {file}", "*": "rm {file}"},
         "Remove a file", ("filesystem", "delete"), 0.8, {"file": ""}),
    Rule(("remove folder", "delete directory", "rmdir"), {"windows": "rmdir /s {dir}", "*": "rm -rf {dir}"},
         "Remove a directory and all its contents recursively", ("filesystem", "delete"), 0.8, {"dir": ""}),
    # processes
    Rule(("show processes", "list processes", "ps"), {"windows": "tasklist", "*": "ps aux"},
         "Show all running processes", ("process", "list")),
    Rule(("kill process", "stop process"), {"windows": "taskkill /PID {pid}", "*": "kill -9 {pid}"},
         "Terminate a process by PID", ("process", "kill"), 0.8, {"pid": ""}),
    # network
    Rule(("check connection", "ping"), {"windows": "ping -n 4 8.8.8.8", "*": "ping -c 4 8.8.8.8"},
         "Test internet connectivity to Google DNS", ("network", "test")),
    Rule(("show ip", "get ip"), {"windows": "ipconfig", "macos": "ifconfig", "*": "ip addr show"},
         "Display IP address information", ("network", "info")),
    # system
    Rule(("show disk usage", "disk space"),
         {"windows": "wmic logicaldisk get size,freespace,caption", "*": "df -h"},
         "Display disk usage", ("system", "disk")),
    Rule(("show memory", "ram usage"),
         {"windows": "wmic OS get TotalVisibleMemorySize,FreePhysicalMemory", "macos": "vm_stat", "*": "free -h"},
         "Display memory usage", ("system", "memory")),
]


class BuiltinRules:
    """Keyword table for common single-command requests; first matching rule wins."""

    def __init__(self, rules: Optional[List[Rule]] = None):
        self.rules = list(BUILTIN_RULES if rules is None else rules)

    def apply(self, normalized_input: str, os_info: OSInfo) -> Optional[ResolvedCommand]:
        for rule in self.rules:
            if not rule.matches(normalized_input):
                continue
            return ResolvedCommand(
                commands=[rule.command_for(os_info.platform)],
                explanation=rule.explanation,
                tags=list(rule.tags),
                confidence=rule.confidence,
                source="rule",
                variables=dict(rule.variables) if rule.variables else None,
            )
        return None
