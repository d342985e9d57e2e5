"""
Тексты бота на трёх языках и подстановка параметров.

Ядро отдаёт только ключ шаблона и параметры, текст собирается здесь.
"""

import html
from typing import Any, Optional

DEFAULT_LANG = "ru"

LANGUAGE_BUTTONS = {
    "ru": "🇷🇺 Русский",
    "en": "🇬🇧 English",
    "ar": "🇸🇦 العربية",
}

TEXTS: dict[str, dict[str, str]] = {
    "ru": {
        "lang_choose": "🌐 <b>Выберите язык</b> / Choose your language / اختر لغتك",
        "welcome": (
            "👋 Добро пожаловать в <b>Gift Castle</b>, {username}!\n\n"
            "Здесь можно безопасно продать или купить товар через гаранта."
        ),
        "btn_create": "💼 Создать сделку",
        "btn_join": "🛍 Войти в сделку",
        "btn_balance": "💰 Баланс",
        "btn_language": "🌐 Язык",
        "seller_role": "💼 <b>Вы продавец.</b>\n\nОтправьте название товара.",
        "ask_desc": "🖋 Теперь добавьте описание товара.",
        "ask_price": "💰 Введите стоимость в TON (используйте кнопки).",
        "buyer_role": "🛍 <b>Вы покупатель.</b>\n\nОтправьте код сделки, например <code>#A1234</code>.",
        "deal_created": (
            "✅ <b>Сделка создана!</b>\n\n"
            "🆔 Код: <code>{id}</code>\n"
            "📦 Товар: <b>{title}</b>\n"
            "📝 Описание: {desc}\n"
            "💰 Цена: <b>{price} TON</b>\n\n"
            "Передайте код покупателю."
        ),
        "deal_joined": (
            "🤝 Вы вошли в сделку <code>{id}</code>\n\n"
            "📦 {title}\n"
            "💰 {price} TON"
        ),
        "buyer_joined": "🔔 В вашу сделку <code>{id}</code> вошёл покупатель {buyer}.",
        "deal_complete": "🏁 Сделка <code>{id}</code> завершена.",
        "admin_log": (
            "📒 <b>Сделка завершена</b>\n\n"
            "🆔 {id}\n"
            "👤 Продавец: {seller}\n"
            "👤 Покупатель: {buyer}\n"
            "💰 Цена: {price} TON\n"
            "📅 {date}"
        ),
        "deal_info": (
            "🆔 <code>{id}</code> — {status}\n"
            "📦 <b>{title}</b>\n"
            "📝 {desc}\n"
            "💰 {price} TON\n"
            "👤 Продавец: {seller}\n"
            "👤 Покупатель: {buyer}"
        ),
        "status_open": "открыта",
        "status_done": "завершена",
        "no_buyer": "❌ нет данных",
        "balance": "💰 Ваш баланс: <b>{balance} TON</b>",
        "help": (
            "ℹ️ <b>Как это работает</b>\n\n"
            "/start — начать заново\n"
            "/lang — сменить язык\n"
            "/cancel — отменить текущее действие\n"
            "/deal &lt;код&gt; — информация о сделке\n"
            "/complete &lt;код&gt; — завершить сделку"
        ),
        "cancelled": "❌ Действие отменено.",
        "complete_usage": "Использование: /complete &lt;код&gt;",
        "deal_usage": "Использование: /deal &lt;код&gt;",
        "error": "⚠️ Что-то пошло не так. Попробуйте ещё раз позже.",
        "invalid_input": "⚠️ Некорректный ввод.",
        "invalid_price": "⚠️ Введите цену больше нуля.",
        "empty_title": "⚠️ Название не может быть пустым.",
        "empty_desc": "⚠️ Описание не может быть пустым.",
        "not_found": "❌ Не найдено.",
        "deal_not_found": "❌ Сделка не найдена.",
        "deal_taken": "❌ В сделке уже есть покупатель.",
        "self_trade": "❌ Нельзя войти в собственную сделку.",
        "already_completed": "❌ Сделка уже завершена.",
        "id_exhausted": "⚠️ Не удалось создать сделку, попробуйте ещё раз.",
        "invalid_state": "🤷 Сейчас это действие недоступно. Нажмите /start.",
        "unexpected_input": "🤷 Используйте кнопки меню.",
        "not_allowed": "⛔ Завершить сделку может только её участник.",
    },
    "en": {
        "lang_choose": "🌐 <b>Choose your language</b>",
        "welcome": (
            "👋 Welcome to <b>Gift Castle</b>, {username}!\n\n"
            "Sell or buy items safely through an escrow."
        ),
        "btn_create": "💼 Create deal",
        "btn_join": "🛍 Join deal",
        "btn_balance": "💰 Balance",
        "btn_language": "🌐 Language",
        "seller_role": "💼 <b>You are the seller.</b>\n\nSend the item title.",
        "ask_desc": "🖋 Now add the item description.",
        "ask_price": "💰 Enter the price in TON (use the buttons).",
        "buyer_role": "🛍 <b>You are the buyer.</b>\n\nSend the deal code, e.g. <code>#A1234</code>.",
        "deal_created": (
            "✅ <b>Deal created!</b>\n\n"
            "🆔 Code: <code>{id}</code>\n"
            "📦 Item: <b>{title}</b>\n"
            "📝 Description: {desc}\n"
            "💰 Price: <b>{price} TON</b>\n\n"
            "Share the code with the buyer."
        ),
        "deal_joined": (
            "🤝 You joined deal <code>{id}</code>\n\n"
            "📦 {title}\n"
            "💰 {price} TON"
        ),
        "buyer_joined": "🔔 Buyer {buyer} joined your deal <code>{id}</code>.",
        "deal_complete": "🏁 Deal <code>{id}</code> is complete.",
        "admin_log": (
            "📒 <b>Deal complete</b>\n\n"
            "🆔 {id}\n"
            "👤 Seller: {seller}\n"
            "👤 Buyer: {buyer}\n"
            "💰 Price: {price} TON\n"
            "📅 {date}"
        ),
        "deal_info": (
            "🆔 <code>{id}</code> — {status}\n"
            "📦 <b>{title}</b>\n"
            "📝 {desc}\n"
            "💰 {price} TON\n"
            "👤 Seller: {seller}\n"
            "👤 Buyer: {buyer}"
        ),
        "status_open": "open",
        "status_done": "complete",
        "no_buyer": "❌ none",
        "balance": "💰 Your balance: <b>{balance} TON</b>",
        "help": (
            "ℹ️ <b>How it works</b>\n\n"
            "/start — start over\n"
            "/lang — change language\n"
            "/cancel — cancel the current action\n"
            "/deal &lt;code&gt; — deal details\n"
            "/complete &lt;code&gt; — complete a deal"
        ),
        "cancelled": "❌ Cancelled.",
        "complete_usage": "Usage: /complete &lt;code&gt;",
        "deal_usage": "Usage: /deal &lt;code&gt;",
        "error": "⚠️ Something went wrong. Please try again later.",
        "invalid_input": "⚠️ Invalid input.",
        "invalid_price": "⚠️ Enter a price greater than zero.",
        "empty_title": "⚠️ The title can not be empty.",
        "empty_desc": "⚠️ The description can not be empty.",
        "not_found": "❌ Not found.",
        "deal_not_found": "❌ Deal not found.",
        "deal_taken": "❌ This deal already has a buyer.",
        "self_trade": "❌ You can not join your own deal.",
        "already_completed": "❌ The deal is already complete.",
        "id_exhausted": "⚠️ Could not create the deal, please try again.",
        "invalid_state": "🤷 This action is not available now. Press /start.",
        "unexpected_input": "🤷 Please use the menu buttons.",
        "not_allowed": "⛔ Only a deal participant can complete it.",
    },
    "ar": {
        "lang_choose": "🌐 <b>اختر لغتك</b>",
        "welcome": "👋 مرحباً بك في <b>Gift Castle</b>، {username}!",
        "btn_create": "💼 إنشاء صفقة",
        "btn_join": "🛍 الانضمام إلى صفقة",
        "btn_balance": "💰 الرصيد",
        "btn_language": "🌐 اللغة",
        "seller_role": "💼 <b>أنت البائع.</b>\n\nأرسل اسم المنتج.",
        "ask_desc": "🖋 أضف وصف المنتج.",
        "ask_price": "💰 أدخل السعر بعملة TON (استخدم الأزرار).",
        "buyer_role": "🛍 <b>أنت المشتري.</b>\n\nأرسل رمز الصفقة، مثل <code>#A1234</code>.",
        "deal_created": (
            "✅ <b>تم إنشاء الصفقة!</b>\n\n"
            "🆔 <code>{id}</code>\n"
            "📦 <b>{title}</b>\n"
            "📝 {desc}\n"
            "💰 <b>{price} TON</b>"
        ),
        "deal_joined": "🤝 انضممت إلى الصفقة <code>{id}</code>\n\n📦 {title}\n💰 {price} TON",
        "buyer_joined": "🔔 انضم المشتري {buyer} إلى صفقتك <code>{id}</code>.",
        "deal_complete": "🏁 اكتملت الصفقة <code>{id}</code>.",
        "admin_log": "📒 <b>اكتملت الصفقة</b>\n\n🆔 {id}\n👤 {seller}\n👤 {buyer}\n💰 {price} TON\n📅 {date}",
        "deal_info": "🆔 <code>{id}</code> — {status}\n📦 <b>{title}</b>\n📝 {desc}\n💰 {price} TON\n👤 {seller}\n👤 {buyer}",
        "status_open": "مفتوحة",
        "status_done": "مكتملة",
        "no_buyer": "❌ لا يوجد",
        "balance": "💰 رصيدك: <b>{balance} TON</b>",
        "help": "ℹ️ /start /lang /cancel /deal /complete",
        "cancelled": "❌ تم الإلغاء.",
        "complete_usage": "/complete &lt;code&gt;",
        "deal_usage": "/deal &lt;code&gt;",
        "error": "⚠️ حدث خطأ. حاول لاحقاً.",
        "invalid_input": "⚠️ إدخال غير صالح.",
        "invalid_price": "⚠️ أدخل سعراً أكبر من صفر.",
        "empty_title": "⚠️ لا يمكن أن يكون الاسم فارغاً.",
        "empty_desc": "⚠️ لا يمكن أن يكون الوصف فارغاً.",
        "not_found": "❌ غير موجود.",
        "deal_not_found": "❌ الصفقة غير موجودة.",
        "deal_taken": "❌ لهذه الصفقة مشترٍ بالفعل.",
        "self_trade": "❌ لا يمكنك الانضمام إلى صفقتك.",
        "already_completed": "❌ الصفقة مكتملة بالفعل.",
        "id_exhausted": "⚠️ تعذر إنشاء الصفقة، حاول مرة أخرى.",
        "invalid_state": "🤷 هذا الإجراء غير متاح الآن. اضغط /start.",
        "unexpected_input": "🤷 استخدم أزرار القائمة.",
        "not_allowed": "⛔ يمكن لأطراف الصفقة فقط إكمالها.",
    },
}


def text(key: str, lang: Optional[str] = None) -> str:
    """Шаблон по ключу; если языка или ключа нет — берём русский."""
    templates = TEXTS.get(lang or DEFAULT_LANG, TEXTS[DEFAULT_LANG])
    return templates.get(key, TEXTS[DEFAULT_LANG][key])


def render(key: str, lang: Optional[str] = None, **params: Any) -> str:
    """Подставляет параметры в шаблон, экранируя их для HTML."""
    safe = {name: html.escape(str(value)) for name, value in params.items()}
    return text(key, lang).format(**safe)
