"""
Logging for the storefront: every module logs under the "storefront" tree.

Nothing is configured at import. `configure_logging` is called once the
Settings are known (app factory, CLI) and owns the level.
"""
import logging
import sys
from typing import Optional

ROOT = "storefront"
FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a stdout handler to the storefront logger (once) and set its level."""
    root = logging.getLogger(ROOT)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(FORMAT, datefmt=DATE_FORMAT))
        root.addHandler(handler)
        # Our handler prints it; don't print it twice via the root logger
        root.propagate = False
    root.setLevel(level.upper())
    return root


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(f"{ROOT}.{name}" if name else ROOT)
