"""Process-wide logging setup. Called once from the app lifespan."""

from __future__ import annotations

import logging

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """
    Install a single stream handler on the root logger.

    Safe to call more than once; later calls only adjust the level.
    """
    root = logging.getLogger()
    root.setLevel(level.upper())

    if any(getattr(h, "_chathub", False) for h in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler._chathub = True  # type: ignore[attr-defined]
    root.addHandler(handler)

    # Quiet the per-request noise from the HTTP clients used by the SDKs
    logging.getLogger("httpx").setLevel(logging.WARNING)
