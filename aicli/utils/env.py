# aicli/aicli/utils/env.py
import os
import pathlib
from typing import Dict, Iterable


def load_env(paths: Iterable[str] = ("~/.ai-cli/.env", "./.env")) -> Dict[str, str]:
    """
    Load KEY=VALUE files into the current process env (without clobbering
    anything already set in the real environment). Returns the merged dict;
    earlier files win over later ones.

    Rules:
      - Lines beginning with '#' are ignored.
      - Blank lines ignored.
      - An optional leading 'export ' is dropped.
      - First '=' splits KEY and VALUE; matching surrounding quotes are stripped.
    """
    env: Dict[str, str] = {}
    for path in paths:
        p = pathlib.Path(os.path.expanduser(path))
        if not p.is_file():
            continue
        for raw in p.read_text(encoding="utf-8", errors="ignore").splitlines():
            line = raw.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            if line.startswith("export "):
                line = line[len("export "):]
            k, v = line.split("=", 1)
            k, v = k.strip(), v.strip()
            if len(v) >= 2 and v[0] == v[-1] and v[0] in ("'", '"'):
                v = v[1:-1]
            env.setdefault(k, v)
            os.environ.setdefault(k, v)
    return env
