"""Shared test fixtures."""

import random

import pytest

from services.deals import DealEngine
from services.ledger import BalanceLedger
from services.models import UserSession
from services.sessions import SessionManager
from services.storage import JsonStore

OWNER_ID = 999


@pytest.fixture
async def store(tmp_path) -> JsonStore:
    """Хранилище во временном каталоге."""
    store = JsonStore(tmp_path / "data")
    await store.open()
    return store


@pytest.fixture
def deals(store: JsonStore) -> DealEngine:
    return DealEngine(store, oversight_id=OWNER_ID, rng=random.Random(42))


@pytest.fixture
def sessions(store: JsonStore, deals: DealEngine) -> SessionManager:
    return SessionManager(store, deals)


@pytest.fixture
def ledger(store: JsonStore) -> BalanceLedger:
    return BalanceLedger(store)


@pytest.fixture
def open_menu(sessions: SessionManager):
    """Пользователь прошёл /start и выбор языка."""
    async def _open(user_id: int, lang: str = "ru") -> UserSession:
        await sessions.start_session(user_id)
        return await sessions.select_language(user_id, lang)
    return _open
