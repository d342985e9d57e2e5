"""
Балансы пользователей (только чтение).
"""

from decimal import Decimal

from services.storage import JsonStore


class BalanceLedger:
    """Чтение балансов. Пополнения и списания пока не предусмотрены."""

    def __init__(self, store: JsonStore) -> None:
        self._store = store

    async def get_balance(self, user_id: int) -> Decimal:
        """Баланс пользователя; для неизвестного пользователя — 0."""
        amount = await self._store.get("balances", user_id)
        if amount is None:
            return Decimal(0)
        return Decimal(str(amount))
