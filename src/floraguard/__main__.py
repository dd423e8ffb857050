"""Entry point: python -m floraguard [chat|serve]

- No args / "chat": Interactive CLI REPL with reminders firing in the background
- "serve":          Daemon mode (reminder scheduler only)
"""

from __future__ import annotations

import asyncio
import logging
import sys

from floraguard.config import load_config


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _run(interactive: bool) -> None:
    config = load_config()
    _setup_logging(config.log_level)

    from floraguard.daemon import FloraGuardDaemon

    daemon = FloraGuardDaemon(config)
    try:
        asyncio.run(daemon.run(interactive=interactive))
    except KeyboardInterrupt:
        pass


def main() -> None:
    cmd = sys.argv[1] if len(sys.argv) > 1 else "chat"

    if cmd in ("chat", "repl"):
        _run(interactive=True)
    elif cmd == "serve":
        _run(interactive=False)
    else:
        print("Usage: python -m floraguard [chat|serve]")
        print("  chat   - Interactive plant assistant REPL (default)")
        print("  serve  - Daemon mode delivering care reminders")
        sys.exit(1)


if __name__ == "__main__":
    main()
