# aicli/aicli/plugins/manager.py
from __future__ import annotations

import importlib.machinery
import importlib.metadata
import importlib.util
import logging
import os
from pathlib import Path
from types import ModuleType
from typing import Any, List, Optional, Protocol, Union, runtime_checkable

from pydantic import BaseModel, ValidationError

from ..utils.schema import OSInfo, ResolvedCommand, SafetyResult

log = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "aicli.plugins"


@runtime_checkable
class Plugin(Protocol):
    """
    Capability provider. Only `name` and `version` are required; hooks are optional:

        get_rules(input, os_info) -> ResolvedCommand | dict | None
        get_safety_checks(resolved) -> SafetyResult | dict | None
        on_command_executed(resolved, success) -> None
    """

    name: str
    version: str


def _coerce(value: Any, model: type[BaseModel]) -> Optional[BaseModel]:
    if value is None or isinstance(value, model):
        return value
    if isinstance(value, BaseModel):
        value = value.model_dump()
    return model.model_validate(value)


def _instantiate(obj: Any) -> Any:
    # entry points and modules may hand over a class, a factory or an instance
    if isinstance(obj, type) or (callable(obj) and not hasattr(obj, "name")):
        return obj()
    return obj


def _plugin_from_module(module: ModuleType) -> Any:
    if hasattr(module, "create_plugin"):
        return module.create_plugin()
    return getattr(module, "plugin", None)


class PluginManager:
    """Loads plugins once and dispatches hooks in load order, isolating faults per plugin."""

    def __init__(self, plugin_dir: Union[str, os.PathLike, None] = None, entry_point_group: str = ENTRY_POINT_GROUP):
        self.plugin_dir = Path(os.path.expanduser(str(plugin_dir))) if plugin_dir else None
        self.entry_point_group = entry_point_group
        self._plugins: List[Plugin] = []
        self._initialized = False

    @property
    def plugins(self) -> List[Plugin]:
        return list(self._plugins)

    def init(self) -> None:
        if self._initialized:
            return
        self._initialized = True
        self._load_entry_points()
        self._load_directory()
        if self._plugins:
            log.info("loaded %d plugin(s): %s", len(self._plugins), ", ".join(p.name for p in self._plugins))

    def register(self, plugin: Any) -> bool:
        name = getattr(plugin, "name", None)
        version = getattr(plugin, "version", None)
        if not isinstance(name, str) or not name or not isinstance(version, str):
            log.warning("rejecting plugin %r: string name and version are required", plugin)
            return False
        if any(p.name == name for p in self._plugins):
            log.warning("plugin %s already loaded; ignoring duplicate", name)
            return False
        self._plugins.append(plugin)
        return True

    # ---- discovery ------------------------------------------------------

    def _load_entry_points(self) -> None:
        try:
            eps = importlib.metadata.entry_points(group=self.entry_point_group)
        except Exception as e:
            log.warning("entry point discovery failed: %s", e)
            return
        for ep in eps:
            try:
                self.register(_instantiate(ep.load()))
            except Exception as e:
                log.warning("failed to load plugin entry point %s: %s", ep.name, e)

    def _load_directory(self) -> None:
        base = self.plugin_dir
        if base is None or not base.is_dir():
            return
        for src in sorted(base.glob("*.py")):
            log.info("skipping plugin source %s: only compiled .pyc modules are loaded", src.name)
        for pyc in sorted(base.glob("*.pyc")):
            try:
                module = self._import_compiled(pyc)
                plugin = _plugin_from_module(module)
                if plugin is None:
                    log.warning("plugin module %s exposes neither create_plugin() nor plugin", pyc.name)
                    continue
                self.register(plugin)
            except Exception as e:
                log.warning("failed to load plugin %s: %s", pyc.name, e)

    @staticmethod
    def _import_compiled(path: Path) -> ModuleType:
        mod_name = f"aicli_plugin_{path.stem.split('.')[0]}"
        loader = importlib.machinery.SourcelessFileLoader(mod_name, str(path))
        spec = importlib.util.spec_from_loader(mod_name, loader)
        if spec is None:
            raise ImportError(f"cannot build module spec for {path}")
        module = importlib.util.module_from_spec(spec)
        loader.exec_module(module)
        return module

    # ---- dispatch -------------------------------------------------------

    def get_rules(self, user_input: str, os_info: OSInfo) -> Optional[ResolvedCommand]:
        self.init()
        for p in self._plugins:
            hook = getattr(p, "get_rules", None)
            if hook is None:
                continue
            try:
                result = _coerce(hook(user_input, os_info), ResolvedCommand)
            except ValidationError as e:
                log.warning("plugin %s returned an invalid rule: %s", p.name, e.errors()[0].get("msg", e))
                continue
            except Exception as e:
                log.warning("plugin %s get_rules failed: %s", p.name, e)
                continue
            if result is not None:
                return result
        return None

    def get_safety_checks(self, command: ResolvedCommand) -> Optional[SafetyResult]:
        self.init()
        for p in self._plugins:
            hook = getattr(p, "get_safety_checks", None)
            if hook is None:
                continue
            try:
                result = _coerce(hook(command), SafetyResult)
            except ValidationError as e:
                log.warning("plugin %s returned an invalid safety result: %s", p.name, e.errors()[0].get("msg", e))
                continue
            except Exception as e:
                log.warning("plugin %s get_safety_checks failed: %s", p.name, e)
                continue
            if result is not None:
                return result
        return None

    def on_command_executed(self, command: ResolvedCommand, success: bool) -> None:
        self.init()
        for p in self._plugins:
            hook = getattr(p, "on_command_executed", None)
            if hook is None:
                continue
            try:
                hook(command, success)
            except Exception as e:
                log.warning("plugin %s on_command_executed failed: %s", p.name, e)
