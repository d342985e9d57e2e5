"""
Ошибки предметной области.

Каждая ошибка несёт ключ шаблона (key), по которому обработчик
показывает пользователю сообщение. Сам текст ядро не формирует.
"""

from typing import Optional


class DealBotError(Exception):
    """Базовая ошибка бота."""

    key = "error"

    def __init__(self, message: str = "", key: Optional[str] = None) -> None:
        if key is not None:
            self.key = key
        super().__init__(message or self.key)


# --- Ввод пользователя ---

class ValidationError(DealBotError):
    """Пустое название/описание или некорректная цена."""

    key = "invalid_input"


# --- Поиск ---

class NotFoundError(DealBotError):
    key = "not_found"


class DealNotFoundError(NotFoundError):
    key = "deal_not_found"

    def __init__(self, deal_id: str) -> None:
        self.deal_id = deal_id
        super().__init__(f"Сделка не найдена: {deal_id}")


# --- Конфликты ---

class ConflictError(DealBotError):
    """Покупатель уже назначен и т.п."""

    key = "deal_taken"


class IdExhaustionError(ConflictError):
    key = "id_exhausted"

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(f"Не удалось подобрать свободный ID за {attempts} попыток")


class SelfTradeError(ConflictError):
    key = "self_trade"

    def __init__(self, deal_id: str) -> None:
        self.deal_id = deal_id
        super().__init__(f"Продавец не может войти в свою сделку {deal_id}")


class AlreadyCompletedError(ConflictError):
    key = "already_completed"

    def __init__(self, deal_id: str) -> None:
        self.deal_id = deal_id
        super().__init__(f"Сделка {deal_id} уже завершена")


# --- Состояние диалога ---

class InvalidStateError(DealBotError):
    """Действие недоступно на текущем шаге диалога."""

    key = "invalid_state"


class UnexpectedInputError(InvalidStateError):
    """Текст пришёл, когда бот его не ждёт."""

    key = "unexpected_input"


# --- Права ---

class PermissionDeniedError(DealBotError):
    key = "not_allowed"

    def __init__(self, deal_id: str, actor_id: int) -> None:
        self.deal_id = deal_id
        self.actor_id = actor_id
        super().__init__(f"Пользователь {actor_id} не может завершить сделку {deal_id}")


# --- Хранилище ---

class PersistenceError(DealBotError):
    """Ошибка чтения/записи файлов данных (не путать с «файла ещё нет»)."""

    key = "error"


# Ошибки, о которых сообщаем пользователю; шаг диалога при этом не меняется
USER_ERRORS = (
    ValidationError,
    NotFoundError,
    ConflictError,
    InvalidStateError,
    PermissionDeniedError,
)
