"""
Диалог с пользователем: шаги (Stage) и черновик сделки.

Каждое действие проверяет текущий шаг и сохраняет новое состояние
в коллекцию users до того, как бот ответит пользователю.
"""

import asyncio
import string
import weakref
from typing import Awaitable, Callable, Optional

from services.deals import DealEngine, normalize_deal_id, parse_price
from services.errors import InvalidStateError, UnexpectedInputError, ValidationError
from services.models import Deal, DealDraft, Stage, TextOutcome, UserSession
from services.storage import JsonStore
from utils.logger import get_logger

logger = get_logger(__name__)

SUPPORTED_LANGUAGES = ("ru", "en", "ar")

DECIMAL_SEPARATOR = "."


class SessionManager:
    """Шаги диалога и черновик сделки для каждого пользователя."""

    def __init__(self, store: JsonStore, deals: DealEngine) -> None:
        self._store = store
        self._deals = deals
        # Действия одного пользователя выполняются строго по очереди.
        # Блокировка живёт, пока её держат или ждут.
        self._user_locks: weakref.WeakValueDictionary[int, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock(self, user_id: int) -> asyncio.Lock:
        lock = self._user_locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._user_locks[user_id] = lock
        return lock

    async def get_session(self, user_id: int) -> Optional[UserSession]:
        data = await self._store.get("users", user_id)
        return UserSession.from_dict(user_id, data) if data else None

    async def _require(self, user_id: int, *stages: Stage) -> UserSession:
        session = await self.get_session(user_id)
        if session is None or session.stage not in stages:
            current = session.stage.value if session else None
            raise InvalidStateError(f"Пользователь {user_id} на шаге {current}, ожидался {[s.value for s in stages]}")
        return session

    async def _update(
        self,
        user_id: int,
        change: Callable[[UserSession], None],
        *stages: Stage,
    ) -> UserSession:
        """Атомарно меняет сессию, если она на одном из шагов stages."""
        def apply(current: Optional[dict]) -> dict:
            session = _session_at(user_id, current, stages)
            before = session.stage
            change(session)
            if session.stage is not before:
                logger.info(f"Пользователь {user_id}: {before.value} -> {session.stage.value}")
            return session.to_dict()

        data = await self._store.mutate("users", user_id, apply)
        return UserSession.from_dict(user_id, data)

    # ==================== ЯЗЫК И МЕНЮ ====================

    async def start_session(self, user_id: int) -> UserSession:
        """Создаёт или сбрасывает сессию: язык не выбран, шаг lang_select."""
        async with self._lock(user_id):
            session = UserSession(user_id=user_id)
            await self._store.mutate("users", user_id, lambda _: session.to_dict())
            logger.info(f"Пользователь {user_id} начал сессию")
            return session

    async def select_language(self, user_id: int, lang: str) -> UserSession:
        """
        Выбор языка.

        Доступен на шаге lang_select и повторно из меню.
        """
        if lang not in SUPPORTED_LANGUAGES:
            raise ValidationError(f"Неизвестный язык: {lang}")

        def change(session: UserSession) -> None:
            session.lang = lang
            session.stage = Stage.MENU

        async with self._lock(user_id):
            session = await self._update(user_id, change, Stage.LANG_SELECT, Stage.MENU)
        logger.info(f"Пользователь {user_id} выбрал язык {lang}")
        return session

    async def begin_deal_creation(self, user_id: int) -> UserSession:
        def change(session: UserSession) -> None:
            session.stage = Stage.CREATE_TITLE
            session.draft = DealDraft()

        async with self._lock(user_id):
            return await self._update(user_id, change, Stage.MENU)

    async def begin_join(self, user_id: int) -> UserSession:
        def change(session: UserSession) -> None:
            session.stage = Stage.JOIN_WAIT_ID

        async with self._lock(user_id):
            return await self._update(user_id, change, Stage.MENU)

    async def cancel(self, user_id: int) -> UserSession:
        """Прерывает текущий шаг и возвращает в меню, черновик удаляется."""
        def change(session: UserSession) -> None:
            session.stage = Stage.MENU
            session.draft = None

        stages = [stage for stage in Stage if stage is not Stage.LANG_SELECT]
        async with self._lock(user_id):
            return await self._update(user_id, change, *stages)

    # ==================== ТЕКСТОВЫЙ ВВОД ====================

    async def submit_text(self, user_id: int, text: str) -> TextOutcome:
        """
        Обрабатывает текст в зависимости от шага.

        Raises:
            UnexpectedInputError: на текущем шаге текст не ожидается
            ValidationError: пустое название/описание
            DealNotFoundError, ConflictError: при входе в сделку
                (шаг join_wait_id сохраняется)
        """
        async with self._lock(user_id):
            session = await self.get_session(user_id)
            handler = _TEXT_INPUT.get(session.stage) if session else None
            if handler is None:
                current = session.stage.value if session else None
                raise UnexpectedInputError(f"Текст от {user_id} на шаге {current}")
            return await handler(self, session, text)

    async def _submit_title(self, session: UserSession, text: str) -> TextOutcome:
        title = text.strip()
        if not title:
            raise ValidationError("Пустое название", key="empty_title")

        def change(session: UserSession) -> None:
            session.draft = session.draft or DealDraft()
            session.draft.title = title
            session.stage = Stage.CREATE_DESC

        updated = await self._update(session.user_id, change, Stage.CREATE_TITLE)
        return TextOutcome(stage=updated.stage)

    async def _submit_description(self, session: UserSession, text: str) -> TextOutcome:
        description = text.strip()
        if not description:
            raise ValidationError("Пустое описание", key="empty_desc")

        def change(session: UserSession) -> None:
            session.draft = session.draft or DealDraft()
            session.draft.description = description
            session.draft.price_buffer = ""
            session.stage = Stage.CREATE_PRICE

        updated = await self._update(session.user_id, change, Stage.CREATE_DESC)
        return TextOutcome(stage=updated.stage)

    async def _submit_deal_id(self, session: UserSession, text: str) -> TextOutcome:
        # При ошибке исключение уходит наверх, шаг join_wait_id остаётся
        deal, assigned = await self._deals.join_deal(session.user_id, normalize_deal_id(text))

        def change(session: UserSession) -> None:
            session.stage = Stage.MENU

        updated = await self._update(session.user_id, change, Stage.JOIN_WAIT_ID)
        return TextOutcome(stage=updated.stage, deal=deal, joined=assigned)

    # ==================== ВВОД ЦЕНЫ ====================

    async def append_digit(self, user_id: int, digit: str) -> str:
        """Добавляет цифру к набираемой цене, возвращает буфер."""
        if len(digit) != 1 or digit not in string.digits:
            raise ValidationError(f"Ожидалась цифра, получено: {digit!r}")

        def change(session: UserSession) -> None:
            session.draft = session.draft or DealDraft()
            session.draft.price_buffer += digit

        async with self._lock(user_id):
            session = await self._update(user_id, change, Stage.CREATE_PRICE)
        return session.draft.price_buffer

    async def append_decimal_separator(self, user_id: int) -> str:
        """Добавляет разделитель; второй разделитель игнорируется."""
        async with self._lock(user_id):
            session = await self._require(user_id, Stage.CREATE_PRICE)
            buffer = session.draft.price_buffer if session.draft else ""
            if DECIMAL_SEPARATOR in buffer:
                return buffer

            def change(session: UserSession) -> None:
                session.draft = session.draft or DealDraft()
                session.draft.price_buffer += DECIMAL_SEPARATOR

            session = await self._update(user_id, change, Stage.CREATE_PRICE)
        return session.draft.price_buffer

    async def commit_price(self, user_id: int) -> Deal:
        """
        Завершает ввод цены и создаёт сделку.

        Сделка и возврат сессии в меню сохраняются одной транзакцией:
        если запись не удалась, нет ни сделки, ни изменений в сессии.

        Returns:
            Созданная сделка (deal.id — её код)

        Raises:
            ValidationError: буфер пуст или не является положительным числом;
                буфер при этом не меняется
        """
        async with self._lock(user_id):
            async with self._store.transaction("deals", "users") as tx:
                session = _session_at(user_id, tx.get("users", user_id), (Stage.CREATE_PRICE,))
                draft = session.draft or DealDraft()
                price = parse_price(draft.price_buffer)

                deal = self._deals.insert_deal(tx, user_id, draft.title, draft.description, price)

                session.draft = None
                session.stage = Stage.MENU
                tx.set("users", user_id, session.to_dict())

        logger.info(f"Сделка {deal.id} создана продавцом {user_id}: {deal.title} за {deal.price}")
        logger.info(f"Пользователь {user_id}: {Stage.CREATE_PRICE.value} -> {Stage.MENU.value}")
        return deal


def _session_at(user_id: int, data: Optional[dict], stages: tuple[Stage, ...]) -> UserSession:
    """Сессия из сохранённых данных; InvalidStateError, если она не на одном из шагов stages."""
    if data is None:
        raise InvalidStateError(f"У пользователя {user_id} нет сессии")
    session = UserSession.from_dict(user_id, data)
    if session.stage not in stages:
        raise InvalidStateError(f"Пользователь {user_id} на шаге {session.stage.value}")
    return session


TextHandler = Callable[[SessionManager, UserSession, str], Awaitable[TextOutcome]]

# Для каждого шага — обработчик текста или None (текст не ожидается)
_TEXT_INPUT: dict[Stage, Optional[TextHandler]] = {
    Stage.LANG_SELECT: None,
    Stage.MENU: None,
    Stage.CREATE_TITLE: SessionManager._submit_title,
    Stage.CREATE_DESC: SessionManager._submit_description,
    Stage.CREATE_PRICE: None,
    Stage.JOIN_WAIT_ID: SessionManager._submit_deal_id,
}

if set(_TEXT_INPUT) != set(Stage):
    raise RuntimeError(f"Не описан текстовый ввод для шагов: {set(Stage) - set(_TEXT_INPUT)}")
