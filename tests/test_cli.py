"""Tests for the CLI connector's command handling."""

import json
from datetime import datetime

import pytest

from floraguard.config import EngineConfig, FloraGuardConfig
from floraguard.connectors.cli import CLIConnector
from floraguard.core import SOIL_WELCOME, FloraGuard
from floraguard.engines.base import AgentResponse
from floraguard.models import GuideItem, Reminder
from floraguard.storage.kv import InMemoryKeyValueStore


class EchoEngine:
    """Echoes the prompt, or returns queued replies first."""

    def __init__(self):
        self.replies: list[str] = []
        self.images = []

    @property
    def name(self) -> str:
        return "echo"

    async def send(self, message, *, system_prompt=None, history=(), image=None) -> AgentResponse:
        self.images.append(image)
        if self.replies:
            return AgentResponse(text=self.replies.pop(0))
        return AgentResponse(text=f"echo: {message}")


def _confirm(answer: bool):
    async def confirm(question: str) -> bool:
        return answer

    return confirm


@pytest.fixture
def engine() -> EchoEngine:
    return EchoEngine()


@pytest.fixture
def app(engine) -> FloraGuard:
    app = FloraGuard(
        FloraGuardConfig(engine=EngineConfig(name="echo")), store=InMemoryKeyValueStore()
    )
    app.add_engine(engine)
    return app


class TestCLIConnector:
    @pytest.mark.asyncio
    async def test_chat_line(self, app):
        cli = CLIConnector(app)
        output = await cli.handle_line("Why are my leaves yellow?")
        assert output == "[1] FloraGuard: echo: Why are my leaves yellow?"

    @pytest.mark.asyncio
    async def test_unknown_command(self, app):
        assert "Unknown command" in await CLIConnector(app).handle_line("/prune")

    @pytest.mark.asyncio
    async def test_remind_and_list(self, app):
        cli = CLIConnector(app)
        output = await cli.handle_line("/remind 2024-06-03 watering Water the basil | Basil")
        assert output.startswith("Scheduled watering: Water the basil on 2024-06-03")

        reminder = app.reminders.all()[0]
        assert reminder.plant_name == "Basil"
        listing = await cli.handle_line("/reminders 2024-06")
        assert "Water the basil (Basil)" in listing
        assert await cli.handle_line("/reminders 2024-07") == "No tasks scheduled"

    @pytest.mark.asyncio
    async def test_remind_invalid(self, app):
        cli = CLIConnector(app)
        assert "Invalid reminder" in await cli.handle_line("/remind 2024-06-03 pruning Trim")
        assert "Invalid reminder" in await cli.handle_line("/remind 2024-13-03 other Trim")
        assert "Usage" in await cli.handle_line("/remind 2024-06-03")
        assert app.reminders.all() == []

    @pytest.mark.asyncio
    async def test_done_and_delete_by_prefix(self, app):
        reminder = Reminder.create("Spray", datetime(2024, 6, 3, 9))
        app.reminders.add(reminder)
        cli = CLIConnector(app)

        assert "done" in await cli.handle_line(f"/done {reminder.id[:8]}")
        assert app.reminders.get(reminder.id).completed
        assert "No unique reminder" in await cli.handle_line("/done zzzz")

        await cli.handle_line(f"/delete {reminder.id[:8]}")
        assert app.reminders.all() == []

    @pytest.mark.asyncio
    async def test_clear_requires_confirmation(self, app):
        app.history.append(GuideItem(id="g", timestamp=0, plant_name="Mint", guide_content="x"))

        assert await CLIConnector(app, confirm=_confirm(False)).handle_line("/clear") == "Kept history."
        assert len(app.history) == 1
        assert await CLIConnector(app, confirm=_confirm(True)).handle_line("/clear") == "History cleared."
        assert len(app.history) == 0

    @pytest.mark.asyncio
    async def test_history_listing(self, app):
        cli = CLIConnector(app)
        assert await cli.handle_line("/history") == "No history found yet."
        await cli.handle_line("/guide Mint")
        assert "Care Guide: Mint" in await cli.handle_line("/history")

    @pytest.mark.asyncio
    async def test_translate(self, app):
        cli = CLIConnector(app)
        await cli.handle_line("Hello")
        output = await cli.handle_line("/translate 1 hi")
        assert output.startswith("[Hindi] echo: Translate the following text to Hindi")
        assert "No message" in await cli.handle_line("/translate 9 hi")
        assert "Unsupported" in await cli.handle_line("/translate 1 fr")

    @pytest.mark.asyncio
    async def test_image_missing_file(self, app, tmp_path):
        output = await CLIConnector(app).handle_line(f"/image {tmp_path / 'nope.jpg'}")
        assert output.startswith("Could not read image")

    @pytest.mark.asyncio
    async def test_image_unusable_reply(self, app, tmp_path):
        photo = tmp_path / "leaf.jpg"
        photo.write_bytes(b"\xff\xd8\xff")
        output = await CLIConnector(app).handle_line(f"/image {photo} seed")
        assert output.startswith("Failed to identify the seed")

    @pytest.mark.asyncio
    async def test_login_logout(self, app):
        cli = CLIConnector(app)
        assert "Agro Enthusiast" in await cli.handle_line("/login")
        assert app.identity.load().is_logged_in
        await cli.handle_line("/logout")
        assert not app.identity.load().is_logged_in

    @pytest.mark.asyncio
    async def test_png_photo_keeps_media_type(self, app, engine, tmp_path):
        photo = tmp_path / "leaf.png"
        photo.write_bytes(b"\x89PNG\r\n\x1a\n")
        await CLIConnector(app).handle_line(f"/image {photo}")
        assert engine.images[0].media_type == "image/png"


class TestViews:
    @pytest.mark.asyncio
    async def test_soil_analysis_opens_soil_chat(self, app, engine, tmp_path):
        photo = tmp_path / "report.jpg"
        photo.write_bytes(b"\xff\xd8\xff")
        engine.replies = [
            json.dumps({"phValue": "5.5", "nitrogen": "Low", "phosphorus": "Medium",
                        "potassium": "High", "suitableCrops": ["Potato"]}),
            "Add agricultural lime.",
        ]
        cli = CLIConnector(app)

        output = await cli.handle_line(f"/image {photo} soil")
        assert "Suitable crops: Potato" in output
        assert SOIL_WELCOME in output
        assert cli.active.kind == "soil"

        answer = await cli.handle_line("How do I raise the pH?")
        assert answer == "[2] FloraGuard: Add agricultural lime."

        await cli.handle_line("/chat")
        assert cli.active.kind == "chat"
        output = await cli.handle_line("/soil Which crops suit it?")
        assert cli.active.kind == "soil"
        assert "User Soil Data: pH 5.5" in output

    @pytest.mark.asyncio
    async def test_soil_without_report(self, app):
        cli = CLIConnector(app)
        assert "No soil report yet" in await cli.handle_line("/soil hello")
        assert cli.active.kind == "chat"

    @pytest.mark.asyncio
    async def test_open_history_entry(self, app):
        app.history.append(GuideItem(id="g", timestamp=0, plant_name="Mint",
                                     guide_content="Keep the soil moist."))
        cli = CLIConnector(app)

        assert await cli.handle_line("/open 0") == "[0] FloraGuard: Keep the soil moist."
        assert cli.active.kind == "garden"
        assert "Usage: /open N" in await cli.handle_line("/open 5")

    @pytest.mark.asyncio
    async def test_open_soil_entry_enables_soil_chat(self, app):
        from floraguard.models import SoilAnalysisItem, SoilReading

        app.history.append(SoilAnalysisItem(id="s", timestamp=0, plant_name="Soil Test",
                                            soil=SoilReading(ph_value="7.9")))
        cli = CLIConnector(app)
        await cli.handle_line("/open 0")
        await cli.handle_line("/chat")

        output = await cli.handle_line("/soil Too alkaline?")
        assert "User Soil Data: pH 7.9" in output

    @pytest.mark.asyncio
    async def test_translate_guide_reply(self, app):
        cli = CLIConnector(app)
        await cli.handle_line("/guide Hibiscus")
        assert cli.active.kind == "garden"

        output = await cli.handle_line("/translate 1 ml")
        assert output.startswith("[Malayalam] echo: Translate the following text to Malayalam")
        assert "care guide for Hibiscus" in output

    @pytest.mark.asyncio
    async def test_plain_text_in_garden_view_asks_for_guide(self, app):
        cli = CLIConnector(app)
        await cli.handle_line("/guide Rose")
        await cli.handle_line("Tulsi")
        assert [item.plant_name for item in app.history.all()] == ["Tulsi", "Rose"]
