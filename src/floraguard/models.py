"""Record types: history items, reminders, chat messages and the user.

History items form a tagged union on ``type``. Each variant is its own frozen
dataclass, so a payload field only exists on the variant that owns it.
Stored JSON keeps camelCase names so existing data directories stay readable.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, ClassVar, Literal, Union


def new_id() -> str:
    return str(uuid.uuid4())


def now_ms() -> int:
    return int(time.time() * 1000)


def parse_instant(value: str) -> datetime:
    """Parse an ISO-8601 instant, accepting a trailing ``Z``."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def calendar_day(moment: datetime) -> date:
    """Local calendar day of ``moment``. Aware values are converted first."""
    if moment.tzinfo is not None:
        moment = moment.astimezone()
    return moment.date()


def _strs(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(v) for v in value)


def _str(value: Any) -> str:
    return "" if value is None else str(value)


# ── History items ─────────────────────────────────────────────


@dataclass(frozen=True)
class PurchaseLink:
    pesticide_name: str
    url: str


@dataclass(frozen=True)
class Cures:
    organic: tuple[str, ...] = ()
    chemical: tuple[str, ...] = ()


@dataclass(frozen=True)
class AnalysisItem:
    """Disease diagnosis of a plant photo."""

    type: ClassVar[str] = "analysis"

    id: str
    timestamp: int
    plant_name: str
    disease_name: str = ""
    severity: str = ""
    symptoms: tuple[str, ...] = ()
    cures: Cures = field(default_factory=Cures)
    prevention: tuple[str, ...] = ()
    purchase_links: tuple[PurchaseLink, ...] = ()
    image_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "timestamp": self.timestamp,
            "type": self.type,
            "plantName": self.plant_name,
            "diseaseName": self.disease_name,
            "severity": self.severity,
            "symptoms": list(self.symptoms),
            "cures": {"organic": list(self.cures.organic), "chemical": list(self.cures.chemical)},
            "prevention": list(self.prevention),
            "purchaseLinks": [
                {"pesticideName": link.pesticide_name, "url": link.url}
                for link in self.purchase_links
            ],
        }
        if self.image_url is not None:
            data["imageUrl"] = self.image_url
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AnalysisItem:
        cures = data.get("cures") or {}
        links = data.get("purchaseLinks") or []
        return cls(
            id=data["id"],
            timestamp=int(data["timestamp"]),
            plant_name=_str(data.get("plantName")),
            disease_name=_str(data.get("diseaseName")),
            severity=_str(data.get("severity")),
            symptoms=_strs(data.get("symptoms")),
            cures=Cures(organic=_strs(cures.get("organic")), chemical=_strs(cures.get("chemical"))),
            prevention=_strs(data.get("prevention")),
            purchase_links=tuple(
                PurchaseLink(_str(link.get("pesticideName")), _str(link.get("url")))
                for link in links
                if isinstance(link, dict)
            ),
            image_url=data.get("imageUrl"),
        )


@dataclass(frozen=True)
class GuideItem:
    """Garden care guide text for a plant."""

    type: ClassVar[str] = "guide"

    id: str
    timestamp: int
    plant_name: str
    guide_content: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "type": self.type,
            "plantName": self.plant_name,
            "guideContent": self.guide_content,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GuideItem:
        return cls(
            id=data["id"],
            timestamp=int(data["timestamp"]),
            plant_name=_str(data.get("plantName")),
            guide_content=_str(data.get("guideContent")),
        )


@dataclass(frozen=True)
class SoilReading:
    ph_value: str = ""
    nitrogen: str = ""
    phosphorus: str = ""
    potassium: str = ""
    organic_matter: str = ""
    suitable_crops: tuple[str, ...] = ()
    improvement_tips: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "phValue": self.ph_value,
            "nitrogen": self.nitrogen,
            "phosphorus": self.phosphorus,
            "potassium": self.potassium,
            "organicMatter": self.organic_matter,
            "suitableCrops": list(self.suitable_crops),
            "improvementTips": list(self.improvement_tips),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SoilReading:
        return cls(
            ph_value=_str(data.get("phValue")),
            nitrogen=_str(data.get("nitrogen")),
            phosphorus=_str(data.get("phosphorus")),
            potassium=_str(data.get("potassium")),
            organic_matter=_str(data.get("organicMatter")),
            suitable_crops=_strs(data.get("suitableCrops")),
            improvement_tips=_strs(data.get("improvementTips")),
        )


@dataclass(frozen=True)
class SoilAnalysisItem:
    """pH/N/P/K readings extracted from a soil report photo."""

    type: ClassVar[str] = "soil-analysis"

    id: str
    timestamp: int
    plant_name: str
    soil: SoilReading = field(default_factory=SoilReading)
    image_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "timestamp": self.timestamp,
            "type": self.type,
            "plantName": self.plant_name,
            "soilData": self.soil.to_dict(),
        }
        if self.image_url is not None:
            data["imageUrl"] = self.image_url
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SoilAnalysisItem:
        return cls(
            id=data["id"],
            timestamp=int(data["timestamp"]),
            plant_name=_str(data.get("plantName")),
            soil=SoilReading.from_dict(data.get("soilData") or {}),
            image_url=data.get("imageUrl"),
        )


@dataclass(frozen=True)
class SeedProfile:
    seed_name: str = ""
    plant_name: str = ""
    description: str = ""
    cultivation_places: tuple[str, ...] = ()
    best_soil: str = ""
    growth_tips: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "seedName": self.seed_name,
            "plantName": self.plant_name,
            "description": self.description,
            "cultivationPlaces": list(self.cultivation_places),
            "bestSoil": self.best_soil,
            "growthTips": list(self.growth_tips),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SeedProfile:
        return cls(
            seed_name=_str(data.get("seedName")),
            plant_name=_str(data.get("plantName")),
            description=_str(data.get("description")),
            cultivation_places=_strs(data.get("cultivationPlaces")),
            best_soil=_str(data.get("bestSoil")),
            growth_tips=_strs(data.get("growthTips")),
        )


@dataclass(frozen=True)
class SeedAnalysisItem:
    """Seed identification with cultivation advice."""

    type: ClassVar[str] = "seed-analysis"

    id: str
    timestamp: int
    plant_name: str
    seed: SeedProfile = field(default_factory=SeedProfile)
    image_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "timestamp": self.timestamp,
            "type": self.type,
            "plantName": self.plant_name,
            "seedData": self.seed.to_dict(),
        }
        if self.image_url is not None:
            data["imageUrl"] = self.image_url
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SeedAnalysisItem:
        return cls(
            id=data["id"],
            timestamp=int(data["timestamp"]),
            plant_name=_str(data.get("plantName")),
            seed=SeedProfile.from_dict(data.get("seedData") or {}),
            image_url=data.get("imageUrl"),
        )


HistoryItem = Union[AnalysisItem, GuideItem, SoilAnalysisItem, SeedAnalysisItem]

_HISTORY_TYPES: dict[str, type[HistoryItem]] = {
    cls.type: cls for cls in (AnalysisItem, GuideItem, SoilAnalysisItem, SeedAnalysisItem)
}


def history_item_to_dict(item: HistoryItem) -> dict[str, Any]:
    return item.to_dict()


def history_item_from_dict(data: dict[str, Any]) -> HistoryItem:
    """Decode a stored history record, dispatching on its ``type``."""
    kind = data.get("type")
    cls = _HISTORY_TYPES.get(kind)
    if cls is None:
        raise ValueError(f"Unknown history item type: {kind!r}")
    return cls.from_dict(data)


def describe(item: HistoryItem) -> str:
    """One-line headline for a history card."""
    match item:
        case AnalysisItem(disease_name=disease):
            return disease or "Diagnosis"
        case SoilAnalysisItem(soil=soil):
            return f"Soil Health: pH {soil.ph_value}"
        case SeedAnalysisItem(seed=seed):
            return f"Seed: {seed.seed_name}"
        case GuideItem(plant_name=plant):
            return f"Care Guide: {plant}"
    raise TypeError(f"Not a history item: {item!r}")


# ── Reminders ─────────────────────────────────────────────────


class ReminderType(str, Enum):
    FERTILIZER = "fertilizer"
    PESTICIDE = "pesticide"
    WATERING = "watering"
    OTHER = "other"


@dataclass(frozen=True)
class Reminder:
    """A scheduled care task. Only ``completed`` changes after creation."""

    id: str
    title: str
    date: datetime
    type: ReminderType
    plant_name: str | None = None
    completed: bool = False

    @classmethod
    def create(
        cls,
        title: str,
        date: datetime,
        type: ReminderType | str = ReminderType.FERTILIZER,
        plant_name: str | None = None,
    ) -> Reminder:
        title = title.strip()
        if not title:
            raise ValueError("Reminder title must not be empty")
        return cls(
            id=new_id(),
            title=title,
            date=date,
            type=ReminderType(type),
            plant_name=plant_name or None,
        )

    @property
    def day(self) -> date:
        return calendar_day(self.date)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "date": self.date.isoformat(),
            "type": self.type.value,
            "completed": self.completed,
        }
        if self.plant_name is not None:
            data["plantName"] = self.plant_name
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Reminder:
        return cls(
            id=data["id"],
            title=data["title"],
            date=parse_instant(data["date"]),
            type=ReminderType(data.get("type", "other")),
            plant_name=data.get("plantName") or None,
            completed=data.get("completed") is True,
        )


# ── Chat & identity ───────────────────────────────────────────


@dataclass
class Message:
    """A chat turn. ``translations`` only holds completed translations."""

    role: Literal["user", "model"]
    text: str
    image: str | None = None
    analysis: HistoryItem | None = None
    translations: dict[str, str] = field(default_factory=dict)

    @property
    def is_analysis(self) -> bool:
        return self.analysis is not None


@dataclass(frozen=True)
class User:
    name: str = ""
    email: str = ""
    photo_url: str = ""
    is_logged_in: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "email": self.email,
            "photoUrl": self.photo_url,
            "isLoggedIn": self.is_logged_in,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> User:
        return cls(
            name=_str(data.get("name")),
            email=_str(data.get("email")),
            photo_url=_str(data.get("photoUrl")),
            is_logged_in=bool(data.get("isLoggedIn", False)),
        )
