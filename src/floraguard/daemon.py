"""Daemon process: keeps the reminder scheduler alive.

Usage: python -m floraguard serve

Manages:
- Engine registration (primary + optional fallback)
- Reminder scheduler and its notification channel
- PID file (prevent duplicate instances)
- Graceful shutdown (SIGTERM/SIGINT)
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys

from floraguard.config import FloraGuardConfig, load_config
from floraguard.core import FloraGuard
from floraguard.engines.base import Engine
from floraguard.notifications import Capability, ConsoleNotifier, LogNotifier, Notifier
from floraguard.scheduler.jobs import DispatchMarkers, ReminderScheduler

logger = logging.getLogger(__name__)


class FloraGuardDaemon:
    """Always-on daemon process, or the backdrop of an interactive session."""

    def __init__(self, config: FloraGuardConfig | None = None) -> None:
        self.config = config or load_config()
        self._shutdown_event = asyncio.Event()

    # ── PID file management ──────────────────────────────────

    def _write_pid(self) -> None:
        self.config.pid_file.parent.mkdir(parents=True, exist_ok=True)
        self.config.pid_file.write_text(str(os.getpid()))
        logger.info("PID file written: %s (pid=%d)", self.config.pid_file, os.getpid())

    def _remove_pid(self) -> None:
        self.config.pid_file.unlink(missing_ok=True)

    def _check_existing(self) -> None:
        if not self.config.pid_file.exists():
            return
        try:
            pid = int(self.config.pid_file.read_text().strip())
            os.kill(pid, 0)
            print(f"FloraGuard daemon already running (pid={pid}). Exiting.", file=sys.stderr)
            sys.exit(1)
        except (ProcessLookupError, ValueError):
            # Stale PID file
            self._remove_pid()

    # ── Signal handling ──────────────────────────────────────

    def _setup_signals(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._handle_signal, sig)

    def _handle_signal(self, sig: signal.Signals) -> None:
        logger.info("Received %s, shutting down...", sig.name)
        self._shutdown_event.set()

    # ── Build components ─────────────────────────────────────

    def build_app(self) -> FloraGuard:
        app = FloraGuard(self.config)
        app.add_engine(self._build_engine())

        if self.config.engine.fallback:
            try:
                app.add_engine(self._build_engine(self.config.engine.fallback))
            except (ImportError, ValueError) as e:
                logger.warning("Failed to build fallback engine: %s", e)

        return app

    def _build_engine(self, name: str | None = None) -> Engine:
        name = name or self.config.engine.name
        if name == "anthropic_api":
            from floraguard.engines.anthropic_api import AnthropicAPIEngine

            return AnthropicAPIEngine(
                model=self.config.engine.model,
                max_tokens=self.config.engine.max_tokens,
                timeout=self.config.engine.timeout,
            )
        raise ValueError(f"Unknown engine: {name}")

    def _build_notifier(self) -> Notifier:
        enabled = self.config.notifications.enabled
        channel = self.config.notifications.channel
        if channel == "log":
            return LogNotifier(enabled=enabled)
        if channel != "console":
            logger.warning("Unknown notification channel %r, using console", channel)
        return ConsoleNotifier(enabled=enabled)

    # ── Main run loop ────────────────────────────────────────

    async def run(self, *, interactive: bool = False) -> None:
        if not interactive:
            self._check_existing()
            self._write_pid()
            self._setup_signals()

        app = self.build_app()
        notifier = self._build_notifier()

        capability = await notifier.request_permission()
        if capability is not Capability.GRANTED:
            logger.info("Notifications %s; reminders will not be delivered", capability.value)

        scheduler = ReminderScheduler(
            app.reminders,
            notifier,
            DispatchMarkers(app.store),
            interval=self.config.scheduler.check_interval,
        )
        handle = scheduler.start()

        logger.info(
            "FloraGuard starting (engine=%s, notifier=%s, data=%s)",
            self.config.engine.name,
            notifier.name,
            self.config.data_dir,
        )

        try:
            if interactive:
                from floraguard.connectors.cli import CLIConnector

                await CLIConnector(app).start()
            else:
                await self._shutdown_event.wait()
        except asyncio.CancelledError:
            pass
        finally:
            await handle.stop()
            await app.close()
            if not interactive:
                self._remove_pid()
            logger.info("FloraGuard stopped.")
