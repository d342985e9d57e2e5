"""
Отправка сообщений пользователям.

Если задан PHOTO_ID, ответы уходят картинкой с подписью,
иначе обычным текстом.
"""

from typing import Optional

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError, TelegramBadRequest
from aiogram.types import CallbackQuery, InlineKeyboardMarkup, Message

from utils.logger import get_logger

logger = get_logger(__name__)


class Notifier:
    """Доставка готовых текстов в Telegram."""

    def __init__(self, bot: Bot, photo_id: str = "") -> None:
        self._bot = bot
        self._photo_id = photo_id

    async def reply(
        self,
        message: Message,
        text: str,
        reply_markup: Optional[InlineKeyboardMarkup] = None,
    ) -> None:
        """Ответ на сообщение пользователя."""
        if self._photo_id:
            await message.answer_photo(photo=self._photo_id, caption=text, reply_markup=reply_markup)
        else:
            await message.answer(text, reply_markup=reply_markup)

    async def edit(
        self,
        callback: CallbackQuery,
        text: str,
        reply_markup: Optional[InlineKeyboardMarkup] = None,
    ) -> None:
        """Заменяет текст сообщения с кнопками, на которое нажал пользователь."""
        message = callback.message
        if not isinstance(message, Message):
            await self.send(callback.from_user.id, text, reply_markup)
            return

        try:
            if message.photo:
                await message.edit_caption(caption=text, reply_markup=reply_markup)
            else:
                await message.edit_text(text, reply_markup=reply_markup)
        except TelegramBadRequest as e:
            if "message is not modified" in str(e):
                return
            logger.warning(f"Не удалось изменить сообщение: {e}")
            await self.send(callback.from_user.id, text, reply_markup)

    async def send(
        self,
        chat_id: int,
        text: str,
        reply_markup: Optional[InlineKeyboardMarkup] = None,
    ) -> bool:
        """
        Сообщение по chat_id (уведомления участникам и наблюдателю).

        Returns:
            False, если Telegram отказал (например, бот заблокирован)
        """
        try:
            if self._photo_id:
                await self._bot.send_photo(chat_id, photo=self._photo_id, caption=text, reply_markup=reply_markup)
            else:
                await self._bot.send_message(chat_id, text, reply_markup=reply_markup)
        except TelegramAPIError as e:
            logger.warning(f"Не удалось отправить сообщение {chat_id}: {e}")
            return False
        return True
