import copy
import os
import pathlib

import yaml


def _home(*parts: str) -> str:
    return os.path.expanduser(os.path.join("~/.ai-cli", *parts))


# (env var, config keys, converter); applied over file values on every load
ENV_OVERRIDES = (
    ("AIC_PROVIDER", ("ai", "provider"), str),
    ("AIC_AI_TIMEOUT", ("ai", "timeout"), float),
    ("AIC_GEMINI_MODEL", ("ai", "gemini", "model"), str),
    ("AIC_OPENAI_MODEL", ("ai", "openai", "model"), str),
    ("AIC_ANTHROPIC_MODEL", ("ai", "anthropic", "model"), str),
    ("AIC_LOCAL_MODEL", ("ai", "local", "model"), str),
    ("OLLAMA_HOST", ("ai", "local", "host"), str),
    ("AIC_CACHE_PATH", ("cache", "path"), os.path.expanduser),
    ("AIC_VAULT_PATH", ("vault", "path"), os.path.expanduser),
    ("AIC_PLUGIN_DIR", ("plugins", "dir"), os.path.expanduser),
    ("AIC_LOG_LEVEL", ("logging", "level"), str),
    ("AIC_LOG_PATH", ("logging", "file"), os.path.expanduser),
)


def base_config() -> dict:
    """Built-in defaults, independent of the environment. This is what gets written on first run."""
    return {
        "ai": {
            "provider": "",
            "temperature": 0.2,
            "max_tokens": 256,
            "learning_max_tokens": 800,
            "timeout": 30.0,
            "redact": True,
            "gemini": {
                "model": "gemini-2.5-flash",
                "endpoint": "https://generativelanguage.googleapis.com/v1beta/models",
                "api_key": "",
            },
            "openai": {"model": "gpt-4o-mini", "api_key": ""},
            "anthropic": {"model": "claude-3-7-sonnet-20250219", "api_key": ""},
            "local": {"model": "llama3.2:1b", "host": "http://127.0.0.1:11434"},
        },
        "cache": {"path": _home("cache.json"), "ttl_seconds": 3600, "max_entries": 500},
        "vault": {"path": _home("vault.json"), "min_confidence": 0.6},
        "plugins": {"dir": _home("plugins"), "entry_point_group": "aicli.plugins"},
        "logging": {"level": "WARNING", "file": _home("aicli.log")},
    }


def apply_env(cfg: dict) -> dict:
    for name, keys, convert in ENV_OVERRIDES:
        raw = os.environ.get(name)
        if not raw:
            continue
        try:
            value = convert(raw)
        except ValueError:
            continue
        node = cfg
        for k in keys[:-1]:
            if not isinstance(node.get(k), dict):
                node[k] = {}
            node = node[k]
        node[keys[-1]] = value
    return cfg


def default_config() -> dict:
    """Defaults, with environment overrides applied at call time."""
    return apply_env(base_config())


def config_path() -> pathlib.Path:
    return pathlib.Path(os.path.expanduser(os.environ.get("AIC_CONFIG", _home("config.yaml"))))


def deepmerge(user: dict, defaults: dict) -> dict:
    """Fill keys missing from `user` with `defaults`, recursing into nested dicts."""
    for k, v in defaults.items():
        if k not in user or user[k] is None:
            user[k] = copy.deepcopy(v)
        elif isinstance(v, dict) and isinstance(user[k], dict):
            user[k] = deepmerge(user[k], v)
    return user


def load_config(path: pathlib.Path | None = None) -> dict:
    p = path or config_path()
    defaults = base_config()
    if p.exists():
        with p.open("r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
        if not isinstance(cfg, dict):
            cfg = {}
        return apply_env(deepmerge(cfg, defaults))
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        with p.open("w", encoding="utf-8") as f:
            yaml.safe_dump(defaults, f, sort_keys=False)
    except OSError:
        # read-only home; run with defaults
        pass
    return apply_env(defaults)
