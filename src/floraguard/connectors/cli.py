"""Local CLI REPL connector for chatting and managing care reminders."""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from datetime import date, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from floraguard.imaging import load_image
from floraguard.models import Reminder, ReminderType, describe
from floraguard.translation import LANGUAGES

if TYPE_CHECKING:
    from floraguard.core import ChatSession, FloraGuard
    from floraguard.models import Message

logger = logging.getLogger(__name__)

ConfirmFn = Callable[[str], Awaitable[bool]]

HELP = """\
Commands:
  <text>                                 talk in the current view
  /chat                                  back to the botanist chat
  /image PATH [plant|soil|seed]          analyze a photo (default: plant)
  /soil [QUESTION]                       ask the soil expert about the last report
  /guide PLANT                           care guide for a plant (garden view)
  /translate N LANG                      translate message N of this view (hi, ml)
  /history                               list saved results
  /open N                                reopen history entry N
  /clear                                 delete all history (asks first)
  /remind YYYY-MM-DD TYPE TITLE [| PLANT]  schedule a care task
  /reminders [YYYY-MM]                   tasks for a month (default: this month)
  /done ID | /delete ID                  toggle or remove a task (id prefix ok)
  /login | /logout                       mocked account
  exit                                   quit"""


class CLIConnector:
    """Interactive REPL connector: reads from stdin, writes to stdout.

    One view is active at a time. Plain text and ``/translate`` act on it:
    the botanist chat, the garden guide view, or a soil-expert chat.
    """

    def __init__(self, app: FloraGuard, confirm: ConfirmFn | None = None) -> None:
        self._app = app
        self._chat = app.new_session()
        self._garden = app.new_garden_session()
        self._soil: ChatSession | None = None
        self._active = self._chat
        self._confirm = confirm or self._confirm_stdin
        self._running = False

    @property
    def name(self) -> str:
        return "cli"

    @property
    def active(self) -> ChatSession:
        return self._active

    async def start(self) -> None:
        self._running = True
        loop = asyncio.get_event_loop()

        user = self._app.identity.load()
        greeting = f", {user.name}" if user.is_logged_in else ""
        print(f"FloraGuard plant assistant{greeting} (type /help, 'exit' or Ctrl+C to quit)")
        print("-" * 48)

        while self._running:
            try:
                line = await loop.run_in_executor(None, self._read_input)
            except (EOFError, KeyboardInterrupt):
                print("\nBye!")
                break

            if line is None or line.strip().lower() in ("exit", "quit"):
                print("Bye!")
                break

            text = line.strip()
            if not text:
                continue

            output = await self.handle_line(text)
            if output:
                print(f"\n{output}")

    def _read_input(self) -> str | None:
        try:
            sys.stdout.write(f"\n[{self._active.kind}] You: ")
            sys.stdout.flush()
            raw = sys.stdin.buffer.readline()
            if not raw:
                return None
            return raw.decode("utf-8", errors="replace").rstrip("\n")
        except EOFError:
            return None

    async def _confirm_stdin(self, question: str) -> bool:
        loop = asyncio.get_event_loop()
        sys.stdout.write(f"{question} [y/N] ")
        sys.stdout.flush()
        answer = await loop.run_in_executor(None, sys.stdin.readline)
        return answer.strip().lower() in ("y", "yes")

    async def stop(self) -> None:
        self._running = False

    # ── Command dispatch ─────────────────────────────────────

    async def handle_line(self, text: str) -> str:
        if not text.startswith("/"):
            return await self._talk(text)

        command, _, arg = text[1:].partition(" ")
        arg = arg.strip()
        handler = {
            "help": self._cmd_help,
            "chat": self._cmd_chat,
            "image": self._cmd_image,
            "soil": self._cmd_soil,
            "guide": self._cmd_guide,
            "translate": self._cmd_translate,
            "history": self._cmd_history,
            "open": self._cmd_open,
            "clear": self._cmd_clear,
            "remind": self._cmd_remind,
            "reminders": self._cmd_reminders,
            "done": self._cmd_done,
            "delete": self._cmd_delete,
            "login": self._cmd_login,
            "logout": self._cmd_logout,
        }.get(command.lower())
        if handler is None:
            return f"Unknown command: /{command} (try /help)"
        return await handler(arg)

    async def _talk(self, text: str) -> str:
        session = self._active
        if session.kind == "garden":
            reply = await self._app.garden_guide(session, text)
        else:
            reply = await self._app.send_message(session, text)
        return self._format_message(reply)

    async def _cmd_help(self, arg: str) -> str:
        return HELP

    async def _cmd_chat(self, arg: str) -> str:
        self._active = self._chat
        return "Back to the botanist chat."

    async def _cmd_image(self, arg: str) -> str:
        parts = arg.split()
        if not parts:
            return "Usage: /image PATH [plant|soil|seed]"
        kind = parts[1].lower() if len(parts) > 1 else "plant"
        try:
            image = load_image(Path(parts[0]).expanduser())
        except OSError as e:
            logger.warning("Could not read image %s: %s", parts[0], e)
            return f"Could not read image: {e}"

        if kind == "plant":
            self._active = self._chat
            reply = await self._app.analyze_plant(self._chat, image)
            return self._format_message(reply)
        if kind == "soil":
            item = await self._app.analyze_soil(image)
            if item is None:
                return (
                    "Failed to analyze soil report. Please ensure the photo is clear "
                    "and contains text-based soil test data."
                )
            self._soil = self._app.open_soil_chat(item)
            self._active = self._soil
            soil = item.soil
            return (
                f"Soil: pH {soil.ph_value}, N {soil.nitrogen}, P {soil.phosphorus}, "
                f"K {soil.potassium}\nSuitable crops: {', '.join(soil.suitable_crops)}\n\n"
                f"{self._format_message(self._soil.messages[-1])}"
            )
        if kind == "seed":
            item = await self._app.analyze_seed(image)
            if item is None:
                return (
                    "Failed to identify the seed. Please try a clearer image or ensure "
                    "the seed is centered in the photo."
                )
            return f"Seed: {item.seed.seed_name} ({item.seed.plant_name})\n{item.seed.description}"
        return f"Unknown analysis kind: {kind}"

    async def _cmd_soil(self, arg: str) -> str:
        if self._soil is None:
            return "No soil report yet. Analyze one with /image PATH soil or /open N."
        self._active = self._soil
        if not arg:
            return "Talking to the soil expert. Ask your question."
        reply = await self._app.send_message(self._soil, arg)
        return self._format_message(reply)

    async def _cmd_guide(self, arg: str) -> str:
        if not arg:
            return "Usage: /guide PLANT"
        self._active = self._garden
        reply = await self._app.garden_guide(self._garden, arg)
        return self._format_message(reply)

    async def _cmd_translate(self, arg: str) -> str:
        parts = arg.split()
        if len(parts) != 2 or not parts[0].isdigit():
            return f"Usage: /translate N LANG ({', '.join(LANGUAGES)})"
        index, lang = int(parts[0]), parts[1].lower()
        session = self._active
        if not 0 <= index < len(session.messages):
            return f"No message {index}"
        if lang not in LANGUAGES:
            return f"Unsupported language: {lang}"
        translated = await self._app.translate_message(session, index, lang)
        if translated is None:
            return "Translation failed, please try again."
        return f"[{LANGUAGES[lang]}] {translated}"

    async def _cmd_history(self, arg: str) -> str:
        items = self._app.history.all()
        if not items:
            return "No history found yet."
        lines = []
        for n, item in enumerate(items):
            day = datetime.fromtimestamp(item.timestamp / 1000).date().isoformat()
            lines.append(f"{n}. {day} [{item.type}] {item.plant_name}: {describe(item)}")
        return "\n".join(lines)

    async def _cmd_open(self, arg: str) -> str:
        items = self._app.history.all()
        if not items:
            return "No history found yet."
        if not arg.isdigit() or not 0 <= int(arg) < len(items):
            return f"Usage: /open N (0-{len(items) - 1}, see /history)"
        session = self._app.reopen(items[int(arg)])
        if session.kind == "soil":
            self._soil = session
        self._active = session
        return self._format_message(session.messages[-1])

    async def _cmd_clear(self, arg: str) -> str:
        count = len(self._app.history)
        if not count:
            return "History is already empty."
        if not await self._confirm(f"Delete all {count} history items?"):
            return "Kept history."
        self._app.history.clear()
        return "History cleared."

    async def _cmd_remind(self, arg: str) -> str:
        head, _, plant = arg.partition("|")
        parts = head.split(maxsplit=2)
        if len(parts) < 3:
            return "Usage: /remind YYYY-MM-DD TYPE TITLE [| PLANT]"
        try:
            day = date.fromisoformat(parts[0])
            reminder = Reminder.create(
                title=parts[2],
                date=datetime(day.year, day.month, day.day, 9, 0),
                type=parts[1].lower(),
                plant_name=plant.strip() or None,
            )
        except ValueError as e:
            types = ", ".join(t.value for t in ReminderType)
            return f"Invalid reminder ({e}). Types: {types}"
        self._app.reminders.add(reminder)
        return f"Scheduled {reminder.type.value}: {reminder.title} on {day} [{reminder.id[:8]}]"

    async def _cmd_reminders(self, arg: str) -> str:
        today = date.today()
        year, month = today.year, today.month
        if arg:
            try:
                year_s, month_s = arg.split("-")
                year, month = int(year_s), int(month_s)
            except ValueError:
                return "Usage: /reminders [YYYY-MM]"
        try:
            month_view = self._app.reminders.for_month(year, month)
        except ValueError as e:
            return str(e)
        lines = [
            f"- [{'x' if r.completed else ' '}] {r.day} {r.title}"
            f"{f' ({r.plant_name})' if r.plant_name else ''} [{r.id[:8]}]"
            for r in month_view
        ]
        return "\n".join(lines) if lines else "No tasks scheduled"

    def _resolve_reminder(self, prefix: str) -> str | None:
        matches = [r.id for r in self._app.reminders.all() if r.id.startswith(prefix)]
        return matches[0] if prefix and len(matches) == 1 else None

    async def _cmd_done(self, arg: str) -> str:
        reminder_id = self._resolve_reminder(arg)
        if reminder_id is None:
            return f"No unique reminder matching {arg!r}"
        toggled = self._app.reminders.toggle_completion(reminder_id)
        state = "done" if toggled and toggled.completed else "open"
        return f"Marked {arg} as {state}."

    async def _cmd_delete(self, arg: str) -> str:
        reminder_id = self._resolve_reminder(arg)
        if reminder_id is None:
            return f"No unique reminder matching {arg!r}"
        self._app.reminders.delete(reminder_id)
        return f"Deleted {arg}."

    async def _cmd_login(self, arg: str) -> str:
        user = self._app.identity.sign_in()
        return f"Signed in as {user.name} <{user.email}>"

    async def _cmd_logout(self, arg: str) -> str:
        self._app.identity.sign_out()
        return "Signed out."

    # ── Output ───────────────────────────────────────────────

    def _format_message(self, message: Message) -> str:
        index = len(self._active.messages) - 1
        text = f"[{index}] FloraGuard: {message.text}"
        item = message.analysis
        if item is not None and item.type == "analysis":
            lines = [
                text,
                f"  Plant: {item.plant_name}",
                f"  Diagnosis: {item.disease_name} (severity: {item.severity})",
            ]
            if item.symptoms:
                lines.append(f"  Symptoms: {'; '.join(item.symptoms)}")
            if item.cures.organic:
                lines.append(f"  Organic cures: {'; '.join(item.cures.organic)}")
            if item.cures.chemical:
                lines.append(f"  Chemical cures: {'; '.join(item.cures.chemical)}")
            text = "\n".join(lines)
        return text
