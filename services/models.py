"""
Модели данных: сессия пользователя, сделка, запись журнала.

Хранилище работает со словарями (JSON), поэтому у каждой модели
есть to_dict / from_dict.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Optional


class Stage(str, Enum):
    """Шаги диалога с пользователем."""

    LANG_SELECT = "lang_select"
    MENU = "menu"
    CREATE_TITLE = "create_title"
    CREATE_DESC = "create_desc"
    CREATE_PRICE = "create_price"
    JOIN_WAIT_ID = "join_wait_id"


class DealStatus(str, Enum):
    OPEN = "open"
    DONE = "done"


@dataclass
class DealDraft:
    """Черновик сделки, который продавец заполняет по шагам."""
    title: str = ""
    description: str = ""
    price_buffer: str = ""  # цифры и разделитель, набранные на клавиатуре


@dataclass
class UserSession:
    """Состояние диалога одного пользователя."""
    user_id: int
    lang: Optional[str] = None
    stage: Stage = Stage.LANG_SELECT
    draft: Optional[DealDraft] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "lang": self.lang,
            "stage": self.stage.value,
            "draft": asdict(self.draft) if self.draft else None,
        }

    @classmethod
    def from_dict(cls, user_id: int, data: dict[str, Any]) -> "UserSession":
        draft = data.get("draft")
        return cls(
            user_id=user_id,
            lang=data.get("lang"),
            stage=Stage(data.get("stage", Stage.LANG_SELECT.value)),
            draft=DealDraft(**draft) if draft else None,
        )


@dataclass
class Deal:
    """Сделка между продавцом и покупателем."""
    id: str
    seller_id: int
    title: str
    description: str
    price: str
    status: DealStatus = DealStatus.OPEN
    buyer_id: Optional[int] = None
    created_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Deal":
        return cls(
            id=data["id"],
            seller_id=int(data["seller_id"]),
            title=data["title"],
            description=data["description"],
            price=data["price"],
            status=DealStatus(data.get("status", DealStatus.OPEN.value)),
            buyer_id=int(data["buyer_id"]) if data.get("buyer_id") is not None else None,
            created_at=data.get("created_at", ""),
        )


@dataclass(frozen=True)
class LogEntry:
    """Снимок сделки в момент завершения."""
    deal: Deal
    date: str  # ISO-8601, UTC

    def to_dict(self) -> dict[str, Any]:
        return {**self.deal.to_dict(), "date": self.date}


@dataclass
class TextOutcome:
    """Результат обработки текстового сообщения."""
    stage: Stage
    deal: Optional[Deal] = field(default=None)
    joined: bool = False  # покупатель назначен именно этим сообщением
