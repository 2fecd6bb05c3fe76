from ..core.parser import LEARNING_SENTINEL
from .schema import OSInfo

# bump whenever TEMPLATE or the rules change; part of the cache key
PROMPT_VERSION = "3"

TEMPLATE = """You are a shell command generator.

User request:
"{request}"

Target environment:
{environment}

STRICT RULES:
- Output ONLY a valid shell command
- NO explanations
- NO greetings
- NO markdown
- NO quotes around the whole command
- NO placeholders like command1
- NO sentences
- Use {{variableName}} for user inputs (e.g., git commit -m "{{message}}")
{chaining_rule}
- Prefer PowerShell-safe syntax on Windows

If there are 2 or more commands to achieve the user's goal, you MUST combine them into a single line using && or ;. If you cannot determine a clear command, return only one command.
{learning_rule}"""

LEARNING_RULE = """
LEARNING MODE:
After the command, on the same line, write {sentinel} immediately followed by a JSON object:
{{"explanation": "...", "concepts": ["..."], "flags": {{"-x": "what -x does"}}}}
"""

_ENVIRONMENTS = {
    "windows": "Windows PowerShell",
    "linux": "Linux Bash",
    "macos": "macOS Zsh",
}


def describe_environment(os_info: OSInfo) -> str:
    env = _ENVIRONMENTS.get(os_info.platform, "Linux Bash")
    if os_info.shell:
        env += f" (current shell: {os_info.shell}, arch: {os_info.arch or 'unknown'})"
    return env


def build_prompt(request: str, os_info: OSInfo, wants_multiple: bool, learning_mode: bool = False) -> str:
    chaining_rule = (
        "- You MUST combine ALL steps into ONE command using && or ;"
        if wants_multiple
        else "- Return the single most appropriate command"
    )
    learning_rule = LEARNING_RULE.format(sentinel=LEARNING_SENTINEL) if learning_mode else ""
    return TEMPLATE.format(
        request=request.replace('"', "'"),
        environment=describe_environment(os_info),
        chaining_rule=chaining_rule,
        learning_rule=learning_rule,
    ).strip()
