"""
Конфигурация приложения.
Загружает переменные окружения из .env файла.
"""

import os
from typing import Optional

from dotenv import load_dotenv

# Загружаем переменные из .env
load_dotenv()


def parse_user_id(value: str) -> Optional[int]:
    """Парсит Telegram ID из строки (пустая или нечисловая строка — None)."""
    value = (value or "").strip()
    if value.lstrip("-").isdigit():
        return int(value)
    return None


class Config:
    """Основная конфигурация бота."""

    # Telegram
    BOT_TOKEN: str = os.getenv("BOT_TOKEN", "")

    # Наблюдатель: получает журнал завершённых сделок
    OWNER_ID: Optional[int] = parse_user_id(os.getenv("OWNER_ID", ""))

    # file_id картинки, которая прикладывается к ответам (необязательно)
    PHOTO_ID: str = os.getenv("PHOTO_ID", "")

    # Каталог с JSON-коллекциями
    DATA_DIR: str = os.getenv("DATA_DIR", "data")

    # Порт для проверки «жив ли бот»
    PORT: int = int(os.getenv("PORT", "10000"))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    @classmethod
    def validate(cls) -> bool:
        """Проверяет, что обязательные переменные заданы."""
        if not cls.BOT_TOKEN:
            raise ValueError("BOT_TOKEN не задан! Проверьте .env файл.")
        if cls.OWNER_ID is None:
            raise ValueError("OWNER_ID не задан! Укажите Telegram ID наблюдателя.")
        return True


# Создаём экземпляр конфигурации
config = Config()
