"""Unit tests for BalanceLedger."""
from decimal import Decimal

import pytest

from services.ledger import BalanceLedger
from services.storage import JsonStore


@pytest.mark.asyncio
async def test_unknown_user_has_zero_balance(ledger: BalanceLedger) -> None:
    assert await ledger.get_balance(12345) == Decimal(0)


@pytest.mark.asyncio
async def test_reads_stored_balance(ledger: BalanceLedger, store: JsonStore) -> None:
    await store.mutate("balances", 7, lambda _: "15.5")
    assert await ledger.get_balance(7) == Decimal("15.5")


@pytest.mark.asyncio
async def test_numeric_balance(ledger: BalanceLedger, store: JsonStore) -> None:
    await store.mutate("balances", 8, lambda _: 3)
    assert await ledger.get_balance(8) == Decimal(3)
