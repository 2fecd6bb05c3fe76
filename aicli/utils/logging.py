# aicli/aicli/utils/logging.py
from __future__ import annotations

import logging
import os
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str = "WARNING", log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the `aicli` logger tree once per process:
      - RichHandler on stderr at `level` (stdout stays clean for commands)
      - optional plain-text file handler at DEBUG
    Calling it again replaces the handlers instead of stacking them.
    """
    root = logging.getLogger("aicli")
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()

    console = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )
    console.setLevel(getattr(logging, str(level).upper(), logging.WARNING))
    root.addHandler(console)

    if log_file:
        try:
            os.makedirs(os.path.dirname(os.path.expanduser(log_file)) or ".", exist_ok=True)
            fh = logging.FileHandler(os.path.expanduser(log_file), encoding="utf-8")
        except OSError as e:
            root.warning("file logging disabled: %s", e)
        else:
            fh.setLevel(logging.DEBUG)
            fh.setFormatter(logging.Formatter(_FILE_FORMAT))
            root.addHandler(fh)

    root.propagate = False
    return root
