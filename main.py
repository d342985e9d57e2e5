"""
Gift Castle Bot — Telegram-бот для сделок через гаранта.

Точка входа приложения.
"""

import asyncio

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiohttp import web

from bot.handlers import router
from bot.middlewares import ErrorMiddleware
from bot.notifier import Notifier
from services.deals import DealEngine
from services.ledger import BalanceLedger
from services.sessions import SessionManager
from services.storage import JsonStore
from utils.config import config
from utils.logger import get_logger

# Инициализируем логгер
logger = get_logger(__name__)


async def health(request: web.Request) -> web.Response:
    """Проверка, что процесс жив (для хостинга)."""
    return web.Response(text="Gift Castle Bot is running")


async def start_health_server(port: int) -> web.AppRunner:
    app = web.Application()
    app.router.add_get("/", health)

    runner = web.AppRunner(app)
    await runner.setup()
    await web.TCPSite(runner, port=port).start()
    logger.info(f"Веб-сервер запущен на порту {port}")
    return runner


async def main() -> None:
    """Запуск бота."""
    # Проверяем конфигурацию
    config.validate()

    # Хранилище и сервисы
    store = JsonStore(config.DATA_DIR)
    await store.open()
    deals = DealEngine(store, oversight_id=config.OWNER_ID)
    sessions = SessionManager(store, deals)
    ledger = BalanceLedger(store)

    # Инициализируем бота с настройками по умолчанию
    bot = Bot(
        token=config.BOT_TOKEN,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )

    # Создаём диспетчер, сервисы доступны в обработчиках по имени аргумента
    dp = Dispatcher(
        sessions=sessions,
        deals=deals,
        ledger=ledger,
        notifier=Notifier(bot, config.PHOTO_ID),
    )

    # Ошибки хранилища — в лог и общий ответ пользователю
    dp.message.middleware(ErrorMiddleware())
    dp.callback_query.middleware(ErrorMiddleware())

    # Подключаем роутеры (обработчики)
    dp.include_router(router)

    runner = await start_health_server(config.PORT)

    # Запуск
    logger.info("Бот запущен...")

    try:
        # Удаляем вебхуки и запускаем polling
        await bot.delete_webhook(drop_pending_updates=True)
        await dp.start_polling(bot)
    finally:
        logger.info("Бот остановлен...")
        await runner.cleanup()
        await bot.session.close()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
