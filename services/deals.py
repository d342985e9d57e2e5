"""
Жизненный цикл сделки: создание, вход покупателя, завершение.
"""

import random
import string
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from services.errors import (
    AlreadyCompletedError,
    ConflictError,
    DealNotFoundError,
    IdExhaustionError,
    PermissionDeniedError,
    SelfTradeError,
    ValidationError,
)
from services.models import Deal, DealStatus, LogEntry
from services.storage import JsonStore, Transaction
from utils.logger import get_logger

logger = get_logger(__name__)

# Сколько раз пробуем подобрать свободный ID
MAX_ID_ATTEMPTS = 10

DEAL_ID_PREFIX = "#"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def generate_deal_id(rng: random.Random) -> str:
    """ID сделки: '#', заглавная буква и четыре цифры, например #K0427."""
    letter = rng.choice(string.ascii_uppercase)
    number = rng.randrange(10000)
    return f"{DEAL_ID_PREFIX}{letter}{number:04d}"


def normalize_deal_id(text: str) -> str:
    """Приводит введённый код к виду #X0000 (решётка необязательна)."""
    code = text.strip().upper()
    if not code.startswith(DEAL_ID_PREFIX):
        code = DEAL_ID_PREFIX + code
    return code


def parse_price(value: Any) -> Decimal:
    """
    Проверяет цену: конечное положительное число.

    Raises:
        ValidationError: если цена пустая, нечисловая или <= 0
    """
    text = str(value).strip().replace(",", ".")
    if not text:
        raise ValidationError("Цена не указана", key="invalid_price")
    try:
        price = Decimal(text)
    except InvalidOperation:
        raise ValidationError(f"Некорректная цена: {value}", key="invalid_price")
    if not price.is_finite() or price <= 0:
        raise ValidationError(f"Цена должна быть больше нуля: {value}", key="invalid_price")
    return price


def format_price(price: Decimal) -> str:
    """12.50 -> '12.5', 100 -> '100'."""
    text = format(price, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


class DealEngine:
    """Создание, вход и завершение сделок поверх хранилища."""

    def __init__(
        self,
        store: JsonStore,
        oversight_id: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._store = store
        self._oversight_id = oversight_id
        self._rng = rng or random.SystemRandom()

    @property
    def oversight_id(self) -> Optional[int]:
        return self._oversight_id

    async def get_deal(self, deal_id: str) -> Optional[Deal]:
        data = await self._store.get("deals", deal_id)
        return Deal.from_dict(data) if data else None

    # ==================== СОЗДАНИЕ ====================

    async def create_deal(self, seller_id: int, title: str, description: str, price: Any) -> Deal:
        """
        Создаёт открытую сделку.

        Raises:
            ValidationError: пустые название/описание или плохая цена
            IdExhaustionError: не нашлось свободного ID
        """
        async with self._store.transaction("deals") as tx:
            deal = self.insert_deal(tx, seller_id, title, description, price)
        logger.info(f"Сделка {deal.id} создана продавцом {seller_id}: {deal.title} за {deal.price}")
        return deal

    def insert_deal(self, tx: Transaction, seller_id: int, title: str, description: str, price: Any) -> Deal:
        """
        Добавляет сделку в транзакцию tx (коллекция deals должна в неё входить).

        Данные проверяются до генерации ID, чтобы не тратить ID
        на заведомо некорректный ввод. На диск сделка попадает
        вместе с остальными изменениями транзакции.
        """
        title = (title or "").strip()
        description = (description or "").strip()
        if not title:
            raise ValidationError("Пустое название", key="empty_title")
        if not description:
            raise ValidationError("Пустое описание", key="empty_desc")
        amount = format_price(parse_price(price))

        for attempt in range(1, MAX_ID_ATTEMPTS + 1):
            deal_id = generate_deal_id(self._rng)
            if tx.get("deals", deal_id) is not None:
                logger.warning(f"ID {deal_id} занят, попытка {attempt}/{MAX_ID_ATTEMPTS}")
                continue

            deal = Deal(
                id=deal_id,
                seller_id=seller_id,
                title=title,
                description=description,
                price=amount,
                created_at=_now(),
            )
            tx.set("deals", deal.id, deal.to_dict())
            return deal

        raise IdExhaustionError(MAX_ID_ATTEMPTS)

    # ==================== ВХОД ПОКУПАТЕЛЯ ====================

    async def join_deal(self, buyer_id: int, deal_id: str) -> tuple[Deal, bool]:
        """
        Назначает покупателя сделке.

        Повторный вход того же покупателя не считается ошибкой.

        Returns:
            (сделка, True если покупатель назначен этим вызовом)

        Raises:
            DealNotFoundError: сделки нет
            AlreadyCompletedError: сделка уже завершена
            SelfTradeError: продавец пытается войти в свою сделку
            ConflictError: покупатель уже назначен
        """
        async with self._store.transaction("deals") as tx:
            current = tx.get("deals", deal_id)
            if current is None:
                raise DealNotFoundError(deal_id)
            deal = Deal.from_dict(current)
            if deal.status is DealStatus.DONE:
                raise AlreadyCompletedError(deal_id)
            if deal.seller_id == buyer_id:
                raise SelfTradeError(deal_id)
            if deal.buyer_id is not None and deal.buyer_id != buyer_id:
                raise ConflictError(f"У сделки {deal_id} уже есть покупатель")

            assigned = deal.buyer_id is None
            if assigned:
                deal.buyer_id = buyer_id
                tx.set("deals", deal_id, deal.to_dict())

        if assigned:
            logger.info(f"Покупатель {buyer_id} вошёл в сделку {deal_id}")
        else:
            logger.info(f"Покупатель {buyer_id} повторно вошёл в сделку {deal_id}")
        return deal, assigned

    # ==================== ЗАВЕРШЕНИЕ ====================

    def can_complete(self, deal: Deal, actor_id: int) -> bool:
        """Завершить сделку могут продавец, покупатель или наблюдатель."""
        return actor_id in (deal.seller_id, deal.buyer_id, self._oversight_id)

    async def complete_deal(self, deal_id: str, actor_id: int) -> LogEntry:
        """
        Завершает сделку и пишет её снимок в журнал.

        Статус и запись журнала сохраняются одной транзакцией.

        Raises:
            DealNotFoundError, PermissionDeniedError, AlreadyCompletedError
        """
        async with self._store.transaction("deals", "logs") as tx:
            current = tx.get("deals", deal_id)
            if current is None:
                raise DealNotFoundError(deal_id)
            deal = Deal.from_dict(current)
            if not self.can_complete(deal, actor_id):
                raise PermissionDeniedError(deal_id, actor_id)
            if deal.status is DealStatus.DONE or tx.get("logs", deal_id) is not None:
                raise AlreadyCompletedError(deal_id)

            deal.status = DealStatus.DONE
            date = max(_now(), deal.created_at)
            entry = LogEntry(deal=deal, date=date)

            tx.set("deals", deal_id, deal.to_dict())
            tx.set("logs", deal_id, entry.to_dict())

        logger.info(f"Сделка {deal_id} завершена пользователем {actor_id}")
        return entry
