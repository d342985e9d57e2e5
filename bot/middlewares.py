"""
Middleware — промежуточные обработчики.
"""

from typing import Any, Awaitable, Callable

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject, Message, CallbackQuery

from bot.texts import render
from services.errors import PersistenceError
from utils.logger import get_logger

logger = get_logger(__name__)


class ErrorMiddleware(BaseMiddleware):
    """
    Middleware для ошибок хранилища.
    Ошибка пишется в лог, пользователь получает общее сообщение о сбое.
    Данные на диске при этом остаются в последнем согласованном состоянии.
    """

    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        try:
            return await handler(event, data)
        except PersistenceError as e:
            user = getattr(event, "from_user", None)
            user_id = user.id if user else None
            logger.exception(f"Ошибка хранилища при обработке события от {user_id}: {e}")

            if isinstance(event, Message):
                await event.answer(render("error"))
            elif isinstance(event, CallbackQuery):
                await event.answer(render("error"), show_alert=True)
            return None
