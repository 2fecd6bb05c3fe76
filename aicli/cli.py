# aicli/aicli/cli.py
from __future__ import annotations

import argparse
import logging
import subprocess
import sys
from typing import Callable, Dict, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm, Prompt
from rich.table import Table

from .context import AppContext, build_context
from .doctor import run_doctor
from .safety.validator import SafetyValidator
from .utils.config import load_config
from .utils.env import load_env
from .utils.logging import setup_logging
from .utils.os_adapter import detect_os, is_command_available, normalize_command
from .utils.schema import OSInfo, ResolvedCommand, SafetyResult

log = logging.getLogger(__name__)

_RISK_STYLE = {"low": "green", "medium": "yellow", "high": "red"}


def substitute_variables(commands: List[str], values: Dict[str, str]) -> List[str]:
    out = []
    for cmd in commands:
        for name, value in values.items():
            cmd = cmd.replace("{" + name + "}", value)
        out.append(cmd)
    return out


def run_shell(cmd: str, os_info: OSInfo) -> bool:
    """Run one confirmed step in the user's terminal; True on exit code 0."""
    if os_info.platform == "windows":
        proc = subprocess.run(["powershell", "-NoProfile", "-Command", cmd])
    else:
        proc = subprocess.run(cmd, shell=True)
    return proc.returncode == 0


def _localize(resolved: ResolvedCommand, os_info: OSInfo) -> ResolvedCommand:
    # vault entries may have been saved on another platform
    if resolved.source != "vault":
        return resolved
    commands = [
        c if is_command_available(c.split()[0]) else normalize_command(os_info, c)
        for c in resolved.commands
    ]
    if commands == resolved.commands:
        return resolved
    return resolved.model_copy(update={"commands": commands})


def _print_resolution(console: Console, resolved: ResolvedCommand, safety: SafetyResult, explain: bool) -> None:
    if explain or safety.warning:
        console.print("[blue]Command explanation:[/blue]")
        console.print(escape(resolved.explanation or "No explanation available"))
    if resolved.learning:
        _print_learning(console, resolved.learning)
    style = _RISK_STYLE.get(safety.risk_level, "white")
    console.print(f"[dim]source: {resolved.source}  confidence: {resolved.confidence:.2f}[/dim]  "
                  f"risk: [{style}]{safety.risk_level}[/{style}]")
    if safety.blocked:
        console.print(f"[red]SAFETY BLOCK:[/red] {escape(safety.reason or '')}")
    elif safety.warning:
        console.print(f"[yellow]SAFETY WARNING:[/yellow] {escape(safety.warning)}")


def _print_learning(console: Console, learning: dict) -> None:
    if learning.get("explanation"):
        console.print(f"[magenta]Learn:[/magenta] {escape(str(learning['explanation']))}")
    concepts = learning.get("concepts") or []
    if isinstance(concepts, list) and concepts:
        console.print("[magenta]Concepts:[/magenta] " + escape(", ".join(str(c) for c in concepts)))
    flags = learning.get("flags") or {}
    if isinstance(flags, dict) and flags:
        t = Table(show_header=True, header_style="magenta")
        t.add_column("flag")
        t.add_column("meaning")
        for k, v in flags.items():
            t.add_row(escape(str(k)), escape(str(v)))
        console.print(t)


def _print_commands(console: Console, commands: List[str], title: str = "Suggested commands:") -> None:
    console.print(f"[green]{title}[/green]")
    for i, cmd in enumerate(commands, 1):
        console.print(f"{i}. [cyan]{escape(cmd)}[/cyan]")


def _ask_variables(console: Console, variables: Optional[Dict[str, str]]) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for name, default in (variables or {}).items():
        values[name] = Prompt.ask(f"Enter value for [bold]{name}[/bold]", default=default or None, console=console) or ""
    return values


def execute_steps(
    console: Console,
    commands: List[str],
    os_info: OSInfo,
    runner: Optional[Callable[[str, OSInfo], bool]] = None,
) -> bool:
    """Confirm and run each step; returns True only if every step ran and succeeded."""
    if len(commands) > 1:
        console.print("\nThis is a multi-step workflow. Each step will be confirmed separately.")
    all_ok = True
    for i, cmd in enumerate(commands, 1):
        console.print(f"\n[blue]Step {i}:[/blue] [cyan]{escape(cmd)}[/cyan]")
        question = f"Execute step {i}?" if len(commands) > 1 else "Execute this command?"
        if not Confirm.ask(question, default=False, console=console):
            console.print("[yellow]Step skipped.[/yellow]")
            all_ok = False
            continue
        try:
            ok = (runner or run_shell)(cmd, os_info)
        except OSError as e:
            log.error("could not start %r: %s", cmd, e)
            ok = False
        if ok:
            console.print(f"[green]Step {i} completed successfully.[/green]")
            continue
        all_ok = False
        console.print(f"[red]Step {i} failed.[/red]")
        if i < len(commands) and not Confirm.ask("Continue with remaining steps?", default=False, console=console):
            break
    return all_ok


def cmd_run(ctx: AppContext, args: argparse.Namespace, console: Console, suggest: bool = False) -> int:
    user_input = " ".join(args.input).strip()
    os_info = detect_os(args.shell)
    resolved = ctx.resolver.resolve(user_input, os_info, learning_mode=args.learn, suggest_mode=suggest)
    if resolved is None:
        console.print("[yellow]Could not resolve your request to a command.[/yellow]")
        if not ctx.ai.is_configured():
            console.print("[dim]No AI provider configured; run `aicli doctor`.[/dim]")
        return 1

    resolved = _localize(resolved, os_info)
    safety = ctx.validator.validate(resolved)
    _print_resolution(console, resolved, safety, explain=getattr(args, "explain", False))
    if safety.blocked:
        return 2

    if suggest:
        _print_commands(console, resolved.commands)
        return 0

    commands = substitute_variables(resolved.commands, _ask_variables(console, resolved.variables))
    if commands != resolved.commands:
        # filled-in values can turn a warning into a block
        resolved = resolved.model_copy(update={"commands": commands})
        safety = ctx.validator.validate(resolved)
        if safety.blocked:
            console.print(f"[red]SAFETY BLOCK:[/red] {escape(safety.reason or '')}")
            return 2
    _print_commands(console, commands)

    if args.dry_run:
        rehearsals = [SafetyValidator.add_dry_run_flag(c) for c in commands]
        if rehearsals != commands:
            _print_commands(console, rehearsals, title="Dry-run variants:")
        return 0

    ok = execute_steps(console, commands, os_info)
    ctx.plugins.on_command_executed(resolved, ok)
    if ok and resolved.vault_id:
        ctx.vault.record_usage(resolved.vault_id)
    return 0 if ok else 1


def cmd_vault(ctx: AppContext, args: argparse.Namespace, console: Console) -> int:
    action = args.vaultcmd
    if action in ("list", "search"):
        entries = ctx.vault.get_all() if action == "list" else ctx.vault.search(args.query, limit=args.limit)
        if not entries:
            console.print("[dim]No commands stored.[/dim]" if action == "list" else "[dim]No matches.[/dim]")
            return 0
        t = Table(title="Command vault")
        for col in ("id", "name", "commands", "tags", "uses", "conf"):
            t.add_column(col)
        for e in entries:
            t.add_row(e.id[:8], escape(e.name or ""), escape(" && ".join(e.commands)),
                      escape(", ".join(e.tags)), str(e.usage_count), f"{e.confidence:.2f}")
        console.print(t)
        return 0
    if action == "add":
        tags = [t.strip() for t in (args.tags or "").split(",") if t.strip()]
        entry = ctx.vault.add_command(
            args.command, description=args.description or "", tags=tags,
            confidence=args.confidence, name=args.name,
        )
        console.print(f"[green]✓ Command added to vault[/green] ({entry.id[:8]})")
        return 0
    if action == "remove":
        matches = [e.id for e in ctx.vault.get_all() if e.id.startswith(args.id)]
        if len(matches) != 1:
            console.print(f"[red]{'No' if not matches else 'Ambiguous'} vault entry for id {escape(args.id)}[/red]")
            return 1
        ctx.vault.delete(matches[0])
        console.print("[green]✓ Removed[/green]")
        return 0
    if action == "clear":
        if args.yes or Confirm.ask("Delete every stored command?", default=False, console=console):
            ctx.vault.clear()
            console.print("[green]✓ Vault cleared[/green]")
        return 0
    return 1


def cmd_plugins(ctx: AppContext, console: Console) -> int:
    ctx.plugins.init()
    if not ctx.plugins.plugins:
        console.print("[dim]No plugins loaded.[/dim]")
        return 0
    t = Table(title="Plugins")
    t.add_column("name")
    t.add_column("version")
    t.add_column("hooks")
    for p in ctx.plugins.plugins:
        hooks = [h for h in ("get_rules", "get_safety_checks", "on_command_executed") if hasattr(p, h)]
        t.add_row(escape(p.name), escape(p.version), ", ".join(hooks))
    console.print(t)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="aicli", description="Natural language to vetted shell commands")
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging on stderr")
    sub = p.add_subparsers(dest="cmd", required=True)

    r = sub.add_parser("run", help="resolve a request, check it and run it step by step")
    r.add_argument("input", nargs="+")
    r.add_argument("--learn", action="store_true", help="ask the model to explain the command")
    r.add_argument("-d", "--dry-run", action="store_true", help="show what would run without running it")
    r.add_argument("-e", "--explain", action="store_true")
    r.add_argument("--shell", help="override detected shell (bash/zsh/powershell/cmd)")

    s = sub.add_parser("suggest", help="print a suggestion only (vault skipped)")
    s.add_argument("input", nargs="+")
    s.add_argument("--learn", action="store_true")
    s.add_argument("-e", "--explain", action="store_true")
    s.add_argument("--shell")

    v = sub.add_parser("vault", help="manage stored commands")
    vsub = v.add_subparsers(dest="vaultcmd", required=True)
    vsub.add_parser("list")
    vs = vsub.add_parser("search")
    vs.add_argument("query")
    vs.add_argument("--limit", type=int, default=10)
    va = vsub.add_parser("add")
    va.add_argument("command", nargs="+", help="one or more steps")
    va.add_argument("--name")
    va.add_argument("--description")
    va.add_argument("--tags", help="comma separated")
    va.add_argument("--confidence", type=float, default=0.9)
    vr = vsub.add_parser("remove")
    vr.add_argument("id", help="entry id or unique prefix")
    vc = vsub.add_parser("clear")
    vc.add_argument("-y", "--yes", action="store_true")

    c = sub.add_parser("cache", help="AI response cache")
    csub = c.add_subparsers(dest="cachecmd", required=True)
    csub.add_parser("clear")

    sub.add_parser("plugins", help="list loaded plugins")
    sub.add_parser("doctor", help="provider and environment diagnostics")
    return p


def main(argv: Optional[List[str]] = None, console: Optional[Console] = None) -> int:
    args = build_parser().parse_args(argv)
    console = console or Console()

    load_env()
    cfg = load_config()
    log_cfg = cfg.get("logging", {}) or {}
    setup_logging("DEBUG" if args.verbose else log_cfg.get("level", "WARNING"), log_cfg.get("file") or None)

    if args.cmd == "doctor":
        return run_doctor(cfg, console)

    ctx = build_context(cfg)
    try:
        if args.cmd == "run":
            return cmd_run(ctx, args, console)
        if args.cmd == "suggest":
            return cmd_run(ctx, args, console, suggest=True)
        if args.cmd == "vault":
            return cmd_vault(ctx, args, console)
        if args.cmd == "cache" and args.cachecmd == "clear":
            ctx.cache.clear()
            console.print("[green]✓ Cache cleared[/green]")
            return 0
        if args.cmd == "plugins":
            return cmd_plugins(ctx, console)
    except KeyboardInterrupt:
        console.print("\n[yellow]Aborted.[/yellow]")
        return 130
    except (OSError, ValueError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        return 1
    return 1


if __name__ == "__main__":
    sys.exit(main())
