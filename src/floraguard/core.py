"""FloraGuard orchestrator: the hub between chat views, the engine and storage.

Responsibilities:
1. Chat sessions: ordered messages, per-session serialization of turns
2. Engine routing: primary engine + fallback on error
3. Image analyses (plant disease, soil report, seed): JSON reply -> history item
4. Write-through of results to the history ledger
5. Translations through each session's TranslationView
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Any

from floraguard.config import FloraGuardConfig
from floraguard.engines.base import AgentResponse, Turn
from floraguard.history import HistoryLedger
from floraguard.identity import IdentityStore
from floraguard.imaging import ImagePayload, parse_image
from floraguard.models import (
    AnalysisItem,
    GuideItem,
    HistoryItem,
    Message,
    SeedAnalysisItem,
    SeedProfile,
    SoilAnalysisItem,
    SoilReading,
    new_id,
    now_ms,
)
from floraguard.reminders import ReminderRegistry
from floraguard.storage.kv import FileKeyValueStore, KeyValueStore
from floraguard.translation import LANGUAGES, TranslationError, TranslationView

if TYPE_CHECKING:
    from floraguard.engines.base import Engine

logger = logging.getLogger(__name__)

BOTANIST_PROMPT = """\
You are FloraGuard, an expert plant pathologist and friendly botanist.
Help home gardeners with vegetables and fruit plants: identify pests, diseases
and bugs, and recommend organic treatments first, chemical ones second.
Answer in concise Markdown.
"""

GARDEN_PROMPT = """\
You are FloraGuard's Garden Master. For the plant the user names, give a care
guide in Markdown with sections: Potting Mix (soil/sand/compost ratio),
Watering, Sunlight, Flowering Season, Common Problems.
"""

SOIL_PROMPT = """\
You are FloraGuard's soil scientist. Interpret soil test data (pH, N, P, K,
organic matter) and give practical advice on amendments and suitable crops.
"""

TRANSLATOR_PROMPT = """\
You are a translator. Translate the user's text faithfully, keep the Markdown
formatting, and reply with the translation only.
"""

PLANT_ANALYSIS_REQUEST = """\
Diagnose the plant in this photo. Reply with one JSON object and nothing else:
{"plantName": str, "diseaseName": str, "severity": "Low"|"Medium"|"High",
 "symptoms": [str], "cures": {"organic": [str], "chemical": [str]},
 "prevention": [str], "purchaseLinks": [{"pesticideName": str, "url": str}]}
"""

SOIL_ANALYSIS_REQUEST = """\
Extract the soil test results from this report photo. Reply with one JSON
object and nothing else:
{"phValue": str, "nitrogen": str, "phosphorus": str, "potassium": str,
 "organicMatter": str, "suitableCrops": [str], "improvementTips": [str]}
"""

SEED_ANALYSIS_REQUEST = """\
Identify the seed in this photo. Reply with one JSON object and nothing else:
{"seedName": str, "plantName": str, "description": str,
 "cultivationPlaces": [str], "bestSoil": str, "growthTips": [str]}
"""

CHAT_FALLBACK = "I'm having trouble connecting right now. Please try again."
CHAT_EMPTY = "I'm sorry, I couldn't process that request."
ANALYSIS_DONE = "I've completed the diagnostic scan for your plant."
ANALYSIS_FALLBACK = (
    "I'm sorry, I couldn't identify any issues in that photo. Could you try a clearer image?"
)
GUIDE_FALLBACK = "I couldn't prepare a care guide right now. Please try again."
SOIL_CHAT_FALLBACK = "I'm having trouble connecting to my soil data bank. Please try again."
SOIL_WELCOME = (
    "I've analyzed your soil report. The parameters are extracted above. You can now ask "
    "me any specific doubts about fertilizing, adjusting pH, or crop selection for this soil!"
)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.MULTILINE)


def parse_json_reply(text: str) -> dict[str, Any]:
    """Pull the JSON object out of an engine reply, tolerating code fences."""
    cleaned = _FENCE_RE.sub("", text.strip())
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start == -1 or end < start:
        raise ValueError("no JSON object in reply")
    data = json.loads(cleaned[start : end + 1])
    if not isinstance(data, dict) or not data:
        raise ValueError("reply is not a non-empty JSON object")
    return data


class ChatSession:
    """Messages of one chat view, plus that view's translation state.

    ``kind`` names the view: ``chat`` (botanist), ``garden`` or ``soil``.
    """

    def __init__(
        self,
        system_prompt: str,
        translations: TranslationView,
        *,
        context: str | None = None,
        kind: str = "chat",
        fallback_text: str = CHAT_FALLBACK,
        messages: list[Message] | None = None,
    ) -> None:
        self.kind = kind
        self.system_prompt = system_prompt
        self.translations = translations
        self.context = context
        self.fallback_text = fallback_text
        self.messages: list[Message] = list(messages or [])
        self.lock = asyncio.Lock()

    def turns(self) -> list[Turn]:
        return [Turn(role=m.role, text=m.text) for m in self.messages]


class FloraGuard:
    """Core orchestrator: owns storage components and routes engine calls."""

    def __init__(self, config: FloraGuardConfig, store: KeyValueStore | None = None) -> None:
        self.config = config
        self.store = store if store is not None else FileKeyValueStore(config.data_dir)
        self.history = HistoryLedger(self.store)
        self.reminders = ReminderRegistry(self.store)
        self.identity = IdentityStore(self.store)
        self._engines: dict[str, Engine] = {}

    # ── Engine management ────────────────────────────────────

    def add_engine(self, engine: Engine) -> None:
        self._engines[engine.name] = engine
        logger.info("Registered engine: %s", engine.name)

    def _get_engine(self, name: str | None = None) -> Engine:
        name = name or self.config.engine.name
        engine = self._engines.get(name)
        if not engine:
            raise RuntimeError(f"Engine '{name}' not registered. Available: {list(self._engines)}")
        return engine

    async def _ask(
        self,
        message: str,
        *,
        system_prompt: str | None = None,
        history: Sequence[Turn] = (),
        image: ImagePayload | None = None,
    ) -> AgentResponse:
        engine = self._get_engine()
        response = await engine.send(
            message, system_prompt=system_prompt, history=history, image=image
        )

        if not response.ok:
            fallback_name = self.config.engine.fallback
            if fallback_name and fallback_name in self._engines and fallback_name != engine.name:
                logger.warning("Primary engine failed, trying fallback: %s", fallback_name)
                response = await self._engines[fallback_name].send(
                    message, system_prompt=system_prompt, history=history, image=image
                )
        return response

    # ── Sessions ──────────────────────────────────────────────

    def _translation_view(self) -> TranslationView:
        return TranslationView(self._fetch_translation)

    def new_session(self) -> ChatSession:
        return ChatSession(BOTANIST_PROMPT, self._translation_view())

    def new_garden_session(self) -> ChatSession:
        return ChatSession(
            GARDEN_PROMPT, self._translation_view(), kind="garden", fallback_text=GUIDE_FALLBACK
        )

    def new_soil_session(self, reading: SoilReading | None = None) -> ChatSession:
        context = None
        if reading is not None:
            context = (
                f"User Soil Data: pH {reading.ph_value}, N: {reading.nitrogen}, "
                f"P: {reading.phosphorus}, K: {reading.potassium}. "
            )
        return ChatSession(
            SOIL_PROMPT,
            self._translation_view(),
            context=context,
            kind="soil",
            fallback_text=SOIL_CHAT_FALLBACK,
        )

    def open_soil_chat(self, item: SoilAnalysisItem) -> ChatSession:
        """Soil-expert session for a fresh analysis, opened with the welcome text."""
        session = self.new_soil_session(item.soil)
        session.messages.append(Message(role="model", text=SOIL_WELCOME, analysis=item))
        return session

    def reopen(self, item: HistoryItem) -> ChatSession:
        """Start a session seeded from a stored history item."""
        match item:
            case AnalysisItem():
                session = self.new_session()
                session.messages.append(
                    Message(
                        role="model",
                        text=f"I've reloaded the analysis for your **{item.plant_name}**.",
                        image=item.image_url,
                        analysis=item,
                    )
                )
            case SoilAnalysisItem():
                session = self.new_soil_session(item.soil)
                day = datetime.fromtimestamp(item.timestamp / 1000).date().isoformat()
                session.messages.append(
                    Message(
                        role="model",
                        text=(
                            f"I've reloaded your soil analysis from {day}. You can continue "
                            "to ask questions about this specific report below."
                        ),
                        image=item.image_url,
                        analysis=item,
                    )
                )
            case SeedAnalysisItem():
                session = self.new_session()
                session.messages.append(
                    Message(
                        role="model",
                        text=f"I've reloaded the seed detection for **{item.seed.seed_name}**.",
                        image=item.image_url,
                        analysis=item,
                    )
                )
            case GuideItem():
                session = self.new_garden_session()
                session.messages.append(Message(role="model", text=item.guide_content))
            case _:
                raise TypeError(f"Not a history item: {item!r}")
        return session

    # ── Chat ──────────────────────────────────────────────────

    async def send_message(self, session: ChatSession, text: str) -> Message:
        """Send a user message and append the model's reply to the session."""
        async with session.lock:
            history = session.turns()
            session.messages.append(Message(role="user", text=text))
            prompt = f"{session.context}{text}" if session.context else text
            response = await self._ask(
                prompt, system_prompt=session.system_prompt, history=history
            )
            if not response.ok:
                reply = Message(role="model", text=session.fallback_text)
            else:
                reply = Message(role="model", text=response.text.strip() or CHAT_EMPTY)
            session.messages.append(reply)
            return reply

    async def garden_guide(self, session: ChatSession, plant_name: str) -> Message:
        """Ask for a care guide and record it in history when one comes back."""
        async with session.lock:
            history = session.turns()
            session.messages.append(Message(role="user", text=plant_name))
            response = await self._ask(
                f"Give me a complete care guide for {plant_name}.",
                system_prompt=GARDEN_PROMPT,
                history=history,
            )
            guide = response.text.strip() if response.ok else ""
            if not guide:
                reply = Message(role="model", text=GUIDE_FALLBACK)
            else:
                self.history.append(
                    GuideItem(
                        id=new_id(),
                        timestamp=now_ms(),
                        plant_name=plant_name,
                        guide_content=guide,
                    )
                )
                reply = Message(role="model", text=guide)
            session.messages.append(reply)
            return reply

    # ── Image analyses ───────────────────────────────────────

    async def _analyze(
        self,
        request: str,
        image: str | ImagePayload,
        build: Callable[[dict[str, Any], str], HistoryItem],
    ) -> HistoryItem | None:
        if isinstance(image, str):
            image = parse_image(image)
        response = await self._ask(request, system_prompt=BOTANIST_PROMPT, image=image)
        if not response.ok:
            logger.error("Image analysis failed: %s", response.error)
            return None
        try:
            return build(parse_json_reply(response.text), image.data)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Unusable analysis reply: %s", e)
            return None

    async def analyze_plant(self, session: ChatSession, image: str | ImagePayload) -> Message:
        """Diagnose a plant photo, save the result and reply in the session.

        ``image`` is a payload with its media type, a data URL, or bare base64
        (taken as JPEG).
        """
        async with session.lock:
            item = await self._analyze(PLANT_ANALYSIS_REQUEST, image, _plant_item)
            if item is None:
                reply = Message(role="model", text=ANALYSIS_FALLBACK)
            else:
                self.history.append(item)
                reply = Message(
                    role="model", text=ANALYSIS_DONE, image=item.image_url, analysis=item
                )
            session.messages.append(reply)
            return reply

    async def analyze_soil(self, image: str | ImagePayload) -> SoilAnalysisItem | None:
        item = await self._analyze(SOIL_ANALYSIS_REQUEST, image, _soil_item)
        if item is not None:
            self.history.append(item)
        return item

    async def analyze_seed(self, image: str | ImagePayload) -> SeedAnalysisItem | None:
        item = await self._analyze(SEED_ANALYSIS_REQUEST, image, _seed_item)
        if item is not None:
            self.history.append(item)
        return item

    # ── Translation ──────────────────────────────────────────

    async def _fetch_translation(self, message: Message, lang: str) -> str:
        language = LANGUAGES.get(lang)
        if language is None:
            raise TranslationError(f"Unsupported language: {lang}")
        response = await self._ask(
            f"Translate the following text to {language}:\n\n{message.text}",
            system_prompt=TRANSLATOR_PROMPT,
        )
        if not response.ok:
            raise TranslationError(response.error or "translation failed")
        return response.text.strip()

    async def translate_message(self, session: ChatSession, index: int, lang: str) -> str | None:
        return await session.translations.translate(session.messages, index, lang)

    # ── Lifecycle ─────────────────────────────────────────────

    async def close(self) -> None:
        """Close engines that hold resources."""
        for engine in self._engines.values():
            close = getattr(engine, "close", None)
            if close and callable(close):
                await close()


def _plant_item(payload: dict[str, Any], image: str) -> AnalysisItem:
    return AnalysisItem.from_dict(
        {
            **payload,
            "id": new_id(),
            "type": AnalysisItem.type,
            "timestamp": now_ms(),
            "imageUrl": image,
            "plantName": payload.get("plantName") or "Unknown Plant",
        }
    )


def _soil_item(payload: dict[str, Any], image: str) -> SoilAnalysisItem:
    return SoilAnalysisItem(
        id=new_id(),
        timestamp=now_ms(),
        plant_name="Soil Test",
        soil=SoilReading.from_dict(payload),
        image_url=image,
    )


def _seed_item(payload: dict[str, Any], image: str) -> SeedAnalysisItem:
    seed = SeedProfile.from_dict(payload)
    return SeedAnalysisItem(
        id=new_id(),
        timestamp=now_ms(),
        plant_name=seed.seed_name or "Unknown Seed",
        seed=seed,
        image_url=image,
    )
