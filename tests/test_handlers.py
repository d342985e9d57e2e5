"""Handler tests with mocked aiogram objects."""
from decimal import Decimal
from unittest.mock import ANY, AsyncMock, MagicMock

import pytest
from aiogram.exceptions import TelegramAPIError
from aiogram.types import Message

from bot.handlers import (
    cb_balance,
    cb_create_deal,
    cb_price_key,
    cb_select_language,
    cmd_cancel,
    cmd_complete,
    cmd_start,
    handle_text,
)
from bot.middlewares import ErrorMiddleware
from bot.notifier import Notifier
from bot.texts import render
from services.deals import DealEngine
from services.errors import PersistenceError
from services.ledger import BalanceLedger
from services.models import Stage
from services.sessions import SessionManager

SELLER = 1
BUYER = 2
STRANGER = 3
OWNER = 999


def _message(user_id: int, text: str = "") -> MagicMock:
    message = MagicMock()
    message.from_user.id = user_id
    message.from_user.username = f"user{user_id}"
    message.from_user.first_name = f"User {user_id}"
    message.text = text
    message.answer = AsyncMock()
    return message


def _callback(user_id: int, data: str) -> MagicMock:
    callback = MagicMock()
    callback.from_user.id = user_id
    callback.from_user.first_name = f"User {user_id}"
    callback.data = data
    callback.answer = AsyncMock()
    return callback


def _command(args):
    command = MagicMock()
    command.args = args
    return command


@pytest.fixture
def notifier() -> AsyncMock:
    return AsyncMock()


class TestStartAndMenu:
    @pytest.mark.asyncio
    async def test_start_asks_language(self, sessions: SessionManager, notifier: AsyncMock) -> None:
        message = _message(SELLER)
        await cmd_start(message, sessions, notifier)

        assert (await sessions.get_session(SELLER)).stage is Stage.LANG_SELECT
        notifier.reply.assert_awaited_once_with(message, render("lang_choose"), ANY)

    @pytest.mark.asyncio
    async def test_language_button_shows_welcome(self, sessions: SessionManager, notifier: AsyncMock) -> None:
        await sessions.start_session(SELLER)
        callback = _callback(SELLER, "lang_en")

        await cb_select_language(callback, sessions, notifier)

        session = await sessions.get_session(SELLER)
        assert session.lang == "en"
        notifier.edit.assert_awaited_once_with(
            callback, render("welcome", "en", username="User 1"), ANY
        )

    @pytest.mark.asyncio
    async def test_menu_button_in_wrong_stage_alerts(self, sessions: SessionManager, notifier: AsyncMock) -> None:
        await sessions.start_session(SELLER)
        callback = _callback(SELLER, "create_deal")

        await cb_create_deal(callback, sessions, notifier)

        callback.answer.assert_awaited_once_with(render("invalid_state"), show_alert=True)
        notifier.edit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_text_in_menu(self, sessions: SessionManager, notifier: AsyncMock, open_menu) -> None:
        await open_menu(SELLER)
        message = _message(SELLER, "привет")

        await handle_text(message, sessions, notifier)

        message.answer.assert_awaited_once_with(render("unexpected_input", "ru"))

    @pytest.mark.asyncio
    async def test_balance(
        self, sessions: SessionManager, ledger: BalanceLedger, notifier: AsyncMock, open_menu
    ) -> None:
        await open_menu(SELLER, "en")
        callback = _callback(SELLER, "balance")

        await cb_balance(callback, sessions, ledger, notifier)

        notifier.edit.assert_awaited_once_with(callback, render("balance", "en", balance=Decimal(0)), ANY)

    @pytest.mark.asyncio
    async def test_cancel(self, sessions: SessionManager, notifier: AsyncMock, open_menu) -> None:
        await open_menu(SELLER)
        await sessions.begin_join(SELLER)
        message = _message(SELLER, "/cancel")

        await cmd_cancel(message, sessions, notifier)

        assert (await sessions.get_session(SELLER)).stage is Stage.MENU
        notifier.reply.assert_awaited_once_with(message, render("cancelled", "ru"), ANY)


class TestDealFlow:
    @pytest.mark.asyncio
    async def test_create_deal_through_keypad(
        self, sessions: SessionManager, deals: DealEngine, notifier: AsyncMock, open_menu
    ) -> None:
        await open_menu(SELLER)
        await cb_create_deal(_callback(SELLER, "create_deal"), sessions, notifier)
        await handle_text(_message(SELLER, "Кружка"), sessions, notifier)

        message = _message(SELLER, "Керамика")
        await handle_text(message, sessions, notifier)
        notifier.reply.assert_awaited_with(message, render("ask_price", "ru"), ANY)

        for data in ("num_1", "num_2", "num_dot"):
            callback = _callback(SELLER, data)
            await cb_price_key(callback, sessions, notifier)
        callback.answer.assert_awaited_once_with("12,")

        await cb_price_key(_callback(SELLER, "num_5"), sessions, notifier)
        done = _callback(SELLER, "num_done")
        await cb_price_key(done, sessions, notifier)

        text = notifier.edit.await_args.args[1]
        assert "12.5" in text
        assert "Кружка" in text
        assert (await sessions.get_session(SELLER)).stage is Stage.MENU

    @pytest.mark.asyncio
    async def test_commit_empty_price_alerts(self, sessions: SessionManager, notifier: AsyncMock, open_menu) -> None:
        await open_menu(SELLER)
        await sessions.begin_deal_creation(SELLER)
        await sessions.submit_text(SELLER, "Кружка")
        await sessions.submit_text(SELLER, "Керамика")
        callback = _callback(SELLER, "num_done")

        await cb_price_key(callback, sessions, notifier)

        callback.answer.assert_awaited_once_with(render("invalid_price", "ru"), show_alert=True)

    @pytest.mark.asyncio
    async def test_join_notifies_seller(
        self, sessions: SessionManager, deals: DealEngine, notifier: AsyncMock, open_menu
    ) -> None:
        deal = await deals.create_deal(SELLER, "Кружка", "Керамика", "5")
        await open_menu(BUYER)
        await sessions.begin_join(BUYER)

        await handle_text(_message(BUYER, deal.id), sessions, notifier)

        notifier.send.assert_awaited_once_with(
            SELLER, render("buyer_joined", None, id=deal.id, buyer=BUYER)
        )

    @pytest.mark.asyncio
    async def test_repeated_join_does_not_notify_seller_again(
        self, sessions: SessionManager, deals: DealEngine, notifier: AsyncMock, open_menu
    ) -> None:
        deal = await deals.create_deal(SELLER, "Кружка", "Керамика", "5")
        await open_menu(BUYER)

        for _ in range(2):
            await sessions.begin_join(BUYER)
            message = _message(BUYER, deal.id)
            await handle_text(message, sessions, notifier)

        assert notifier.reply.await_count == 2
        notifier.send.assert_awaited_once_with(
            SELLER, render("buyer_joined", None, id=deal.id, buyer=BUYER)
        )

    @pytest.mark.asyncio
    async def test_join_unknown_code(self, sessions: SessionManager, notifier: AsyncMock, open_menu) -> None:
        await open_menu(BUYER)
        await sessions.begin_join(BUYER)
        message = _message(BUYER, "#Z0000")

        await handle_text(message, sessions, notifier)

        message.answer.assert_awaited_once_with(render("deal_not_found", "ru"))
        assert (await sessions.get_session(BUYER)).stage is Stage.JOIN_WAIT_ID


class TestComplete:
    @pytest.mark.asyncio
    async def test_seller_completes_and_everyone_is_notified(
        self, sessions: SessionManager, deals: DealEngine, notifier: AsyncMock
    ) -> None:
        deal = await deals.create_deal(SELLER, "Кружка", "Керамика", "5")
        await deals.join_deal(BUYER, deal.id)
        message = _message(SELLER, f"/complete {deal.id}")

        await cmd_complete(message, _command(deal.id), sessions, deals, notifier)

        notifier.reply.assert_awaited_once_with(message, render("deal_complete", None, id=deal.id))
        recipients = {call.args[0] for call in notifier.send.await_args_list}
        assert recipients == {BUYER, OWNER}

    @pytest.mark.asyncio
    async def test_failed_reply_still_notifies_participants(
        self, sessions: SessionManager, deals: DealEngine, notifier: AsyncMock
    ) -> None:
        deal = await deals.create_deal(SELLER, "Кружка", "Керамика", "5")
        await deals.join_deal(BUYER, deal.id)
        notifier.reply.side_effect = TelegramAPIError(method=MagicMock(), message="chat not found")
        message = _message(SELLER, f"/complete {deal.id}")

        with pytest.raises(TelegramAPIError):
            await cmd_complete(message, _command(deal.id), sessions, deals, notifier)

        recipients = {call.args[0] for call in notifier.send.await_args_list}
        assert recipients == {BUYER, OWNER}

    @pytest.mark.asyncio
    async def test_without_args(self, sessions: SessionManager, deals: DealEngine, notifier: AsyncMock) -> None:
        message = _message(SELLER, "/complete")
        await cmd_complete(message, _command(None), sessions, deals, notifier)
        message.answer.assert_awaited_once_with(render("complete_usage"))

    @pytest.mark.asyncio
    async def test_stranger_is_refused(self, sessions: SessionManager, deals: DealEngine, notifier: AsyncMock) -> None:
        deal = await deals.create_deal(SELLER, "Кружка", "Керамика", "5")
        message = _message(STRANGER, f"/complete {deal.id}")

        await cmd_complete(message, _command(deal.id), sessions, deals, notifier)

        message.answer.assert_awaited_once_with(render("not_allowed"))
        notifier.send.assert_not_awaited()


class TestErrorMiddleware:
    @pytest.mark.asyncio
    async def test_persistence_error_gets_generic_reply(self) -> None:
        event = MagicMock(spec=Message)
        event.from_user = MagicMock(id=SELLER)
        event.answer = AsyncMock()
        handler = AsyncMock(side_effect=PersistenceError("disk full"))

        result = await ErrorMiddleware()(handler, event, {})

        assert result is None
        event.answer.assert_awaited_once_with(render("error"))

    @pytest.mark.asyncio
    async def test_other_results_pass_through(self) -> None:
        handler = AsyncMock(return_value="ok")
        assert await ErrorMiddleware()(handler, MagicMock(), {}) == "ok"


class TestNotifier:
    @pytest.mark.asyncio
    async def test_reply_with_text(self) -> None:
        message = _message(SELLER)
        await Notifier(MagicMock()).reply(message, "hello")
        message.answer.assert_awaited_once_with("hello", reply_markup=None)

    @pytest.mark.asyncio
    async def test_reply_with_photo(self) -> None:
        message = _message(SELLER)
        message.answer_photo = AsyncMock()
        await Notifier(MagicMock(), photo_id="photo").reply(message, "hello")
        message.answer_photo.assert_awaited_once_with(photo="photo", caption="hello", reply_markup=None)

    @pytest.mark.asyncio
    async def test_send_failure_is_reported(self) -> None:
        bot = MagicMock()
        bot.send_message = AsyncMock(side_effect=TelegramAPIError(method=MagicMock(), message="blocked"))
        assert await Notifier(bot).send(BUYER, "hello") is False
