"""
Клавиатуры и меню бота.
"""

from typing import Optional

from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton

from bot.texts import LANGUAGE_BUTTONS, text


def get_language_keyboard() -> InlineKeyboardMarkup:
    """Выбор языка."""
    keyboard = InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text=title, callback_data=f"lang_{code}")]
            for code, title in LANGUAGE_BUTTONS.items()
        ]
    )
    return keyboard


def get_main_menu(lang: Optional[str]) -> InlineKeyboardMarkup:
    """Главное меню бота."""
    keyboard = InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text=text("btn_create", lang), callback_data="create_deal")],
            [InlineKeyboardButton(text=text("btn_join", lang), callback_data="join_deal")],
            [
                InlineKeyboardButton(text=text("btn_balance", lang), callback_data="balance"),
                InlineKeyboardButton(text=text("btn_language", lang), callback_data="language"),
            ],
        ]
    )
    return keyboard


def get_price_keyboard() -> InlineKeyboardMarkup:
    """Цифровая клавиатура для ввода цены."""
    rows = [
        [InlineKeyboardButton(text=n, callback_data=f"num_{n}") for n in row]
        for row in (("1", "2", "3"), ("4", "5", "6"), ("7", "8", "9"))
    ]
    rows.append([
        InlineKeyboardButton(text="0", callback_data="num_0"),
        InlineKeyboardButton(text=",", callback_data="num_dot"),
        InlineKeyboardButton(text="↩️", callback_data="num_done"),
    ])
    return InlineKeyboardMarkup(inline_keyboard=rows)
