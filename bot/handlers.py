"""
Обработчики команд и сообщений бота.

Сервисы (sessions, deals, ledger, notifier) приходят из workflow data
диспетчера, см. main.py.
"""

from typing import Optional

from aiogram import Router, F
from aiogram.filters import CommandStart, Command, CommandObject
from aiogram.types import Message, CallbackQuery

from bot.keyboards import get_language_keyboard, get_main_menu, get_price_keyboard
from bot.notifier import Notifier
from bot.texts import render
from services.deals import DealEngine, normalize_deal_id
from services.errors import USER_ERRORS
from services.ledger import BalanceLedger
from services.models import Deal, LogEntry, Stage
from services.sessions import DECIMAL_SEPARATOR, SessionManager
from utils.logger import get_logger

# Инициализируем логгер
logger = get_logger(__name__)

# Создаём роутер для обработчиков
router = Router()


async def _lang(sessions: SessionManager, user_id: int) -> Optional[str]:
    """Язык пользователя (None — ещё не выбран)."""
    session = await sessions.get_session(user_id)
    return session.lang if session else None


def _deal_params(deal: Deal, lang: Optional[str]) -> dict:
    return {
        "id": deal.id,
        "title": deal.title,
        "desc": deal.description,
        "price": deal.price,
        "seller": deal.seller_id,
        "buyer": deal.buyer_id if deal.buyer_id is not None else render("no_buyer", lang),
        "status": render(f"status_{deal.status.value}", lang),
    }


# ==================== КОМАНДЫ ====================

@router.message(CommandStart())
async def cmd_start(message: Message, sessions: SessionManager, notifier: Notifier) -> None:
    """Обработчик команды /start — сброс сессии и выбор языка."""
    user = message.from_user
    logger.info(f"Пользователь {user.id} (@{user.username}) запустил бота")

    await sessions.start_session(user.id)
    await notifier.reply(message, render("lang_choose"), get_language_keyboard())


@router.message(Command("help"))
async def cmd_help(message: Message, sessions: SessionManager) -> None:
    """Обработчик команды /help — справка."""
    lang = await _lang(sessions, message.from_user.id)
    await message.answer(render("help", lang))


@router.message(Command("lang"))
async def cmd_lang(message: Message, notifier: Notifier) -> None:
    """Повторный выбор языка."""
    await notifier.reply(message, render("lang_choose"), get_language_keyboard())


@router.message(Command("cancel"))
async def cmd_cancel(message: Message, sessions: SessionManager, notifier: Notifier) -> None:
    """Отмена текущего действия и возврат в главное меню."""
    user_id = message.from_user.id
    lang = await _lang(sessions, user_id)

    try:
        session = await sessions.cancel(user_id)
    except USER_ERRORS as e:
        await message.answer(render(e.key, lang))
        return

    logger.info(f"Пользователь {user_id} отменил действие")
    await notifier.reply(message, render("cancelled", lang), get_main_menu(session.lang))


@router.message(Command("deal"))
async def cmd_deal(
    message: Message,
    command: CommandObject,
    sessions: SessionManager,
    deals: DealEngine,
) -> None:
    """Карточка сделки по коду."""
    lang = await _lang(sessions, message.from_user.id)
    if not command.args:
        await message.answer(render("deal_usage", lang))
        return

    deal = await deals.get_deal(normalize_deal_id(command.args))
    if deal is None:
        await message.answer(render("deal_not_found", lang))
        return

    await message.answer(render("deal_info", lang, **_deal_params(deal, lang)))


@router.message(Command("complete"))
async def cmd_complete(
    message: Message,
    command: CommandObject,
    sessions: SessionManager,
    deals: DealEngine,
    notifier: Notifier,
) -> None:
    """Завершение сделки: участник или наблюдатель пишет /complete <код>."""
    actor_id = message.from_user.id
    lang = await _lang(sessions, actor_id)
    if not command.args:
        await message.answer(render("complete_usage", lang))
        return

    deal_id = normalize_deal_id(command.args)
    try:
        entry = await deals.complete_deal(deal_id, actor_id)
    except USER_ERRORS as e:
        logger.info(f"Пользователь {actor_id} не смог завершить {deal_id}: {e}")
        await message.answer(render(e.key, lang))
        return

    # Уведомления раньше ответа: ошибка ответа не должна их отменить
    await _notify_completion(entry, actor_id, sessions, deals, notifier)
    await notifier.reply(message, render("deal_complete", lang, id=deal_id))


async def _notify_completion(
    entry: LogEntry,
    actor_id: int,
    sessions: SessionManager,
    deals: DealEngine,
    notifier: Notifier,
) -> None:
    """Рассылает итог сделки участникам и наблюдателю."""
    deal = entry.deal
    for user_id in (deal.seller_id, deal.buyer_id):
        if user_id is None or user_id == actor_id:
            continue
        lang = await _lang(sessions, user_id)
        await notifier.send(user_id, render("deal_complete", lang, id=deal.id))

    if deals.oversight_id is None:
        return
    lang = await _lang(sessions, deals.oversight_id)
    params = _deal_params(deal, lang)
    await notifier.send(
        deals.oversight_id,
        render(
            "admin_log",
            lang,
            id=deal.id,
            seller=params["seller"],
            buyer=params["buyer"],
            price=deal.price,
            date=entry.date,
        ),
    )


# ==================== ЯЗЫК И МЕНЮ ====================

@router.callback_query(F.data.startswith("lang_"))
async def cb_select_language(callback: CallbackQuery, sessions: SessionManager, notifier: Notifier) -> None:
    """Выбор языка — приветствие и главное меню."""
    user = callback.from_user
    lang = callback.data.removeprefix("lang_")

    try:
        session = await sessions.select_language(user.id, lang)
    except USER_ERRORS as e:
        await callback.answer(render(e.key, await _lang(sessions, user.id)), show_alert=True)
        return

    await notifier.edit(
        callback,
        render("welcome", session.lang, username=user.first_name),
        get_main_menu(session.lang),
    )
    await callback.answer()


@router.callback_query(F.data == "language")
async def cb_language(callback: CallbackQuery, notifier: Notifier) -> None:
    """Кнопка «Язык» в меню."""
    await notifier.edit(callback, render("lang_choose"), get_language_keyboard())
    await callback.answer()


@router.callback_query(F.data == "create_deal")
async def cb_create_deal(callback: CallbackQuery, sessions: SessionManager, notifier: Notifier) -> None:
    """Начало создания сделки (продавец)."""
    user_id = callback.from_user.id
    try:
        session = await sessions.begin_deal_creation(user_id)
    except USER_ERRORS as e:
        await callback.answer(render(e.key, await _lang(sessions, user_id)), show_alert=True)
        return

    logger.info(f"Пользователь {user_id} создаёт сделку")
    await notifier.edit(callback, render("seller_role", session.lang))
    await callback.answer()


@router.callback_query(F.data == "join_deal")
async def cb_join_deal(callback: CallbackQuery, sessions: SessionManager, notifier: Notifier) -> None:
    """Вход в сделку по коду (покупатель)."""
    user_id = callback.from_user.id
    try:
        session = await sessions.begin_join(user_id)
    except USER_ERRORS as e:
        await callback.answer(render(e.key, await _lang(sessions, user_id)), show_alert=True)
        return

    await notifier.edit(callback, render("buyer_role", session.lang))
    await callback.answer()


@router.callback_query(F.data == "balance")
async def cb_balance(
    callback: CallbackQuery,
    sessions: SessionManager,
    ledger: BalanceLedger,
    notifier: Notifier,
) -> None:
    """Показать баланс."""
    user_id = callback.from_user.id
    lang = await _lang(sessions, user_id)
    balance = await ledger.get_balance(user_id)

    await notifier.edit(callback, render("balance", lang, balance=balance), get_main_menu(lang))
    await callback.answer()


# ==================== ВВОД ЦЕНЫ ====================

@router.callback_query(F.data.startswith("num_"))
async def cb_price_key(callback: CallbackQuery, sessions: SessionManager, notifier: Notifier) -> None:
    """Кнопки цифровой клавиатуры: цифра, разделитель или готово."""
    user_id = callback.from_user.id
    key = callback.data.removeprefix("num_")

    try:
        if key == "done":
            deal = await sessions.commit_price(user_id)
        elif key == "dot":
            buffer = await sessions.append_decimal_separator(user_id)
        else:
            buffer = await sessions.append_digit(user_id, key)
    except USER_ERRORS as e:
        await callback.answer(render(e.key, await _lang(sessions, user_id)), show_alert=True)
        return

    if key != "done":
        # На клавиатуре разделитель — запятая
        await callback.answer(buffer.replace(DECIMAL_SEPARATOR, ","))
        return

    lang = await _lang(sessions, user_id)
    await notifier.edit(
        callback,
        render("deal_created", lang, **_deal_params(deal, lang)),
        get_main_menu(lang),
    )
    await callback.answer()


# ==================== ТЕКСТ ====================

@router.message(F.text)
async def handle_text(message: Message, sessions: SessionManager, notifier: Notifier) -> None:
    """Название, описание или код сделки — в зависимости от шага."""
    user_id = message.from_user.id
    lang = await _lang(sessions, user_id)

    try:
        outcome = await sessions.submit_text(user_id, message.text)
    except USER_ERRORS as e:
        await message.answer(render(e.key, lang))
        return

    if outcome.stage is Stage.CREATE_DESC:
        await notifier.reply(message, render("ask_desc", lang))
    elif outcome.stage is Stage.CREATE_PRICE:
        await notifier.reply(message, render("ask_price", lang), get_price_keyboard())
    elif outcome.deal is not None:
        deal = outcome.deal
        await notifier.reply(
            message,
            render("deal_joined", lang, **_deal_params(deal, lang)),
            get_main_menu(lang),
        )
        if outcome.joined:
            seller_lang = await _lang(sessions, deal.seller_id)
            await notifier.send(deal.seller_id, render("buyer_joined", seller_lang, id=deal.id, buyer=user_id))
