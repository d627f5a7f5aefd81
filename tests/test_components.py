from datetime import datetime, timedelta, timezone

import httpx
import pytest

from coucou.commands.types import (
    CancerCommand,
    CryptoCommand,
    HelpCommand,
    JokeCommand,
    ShoutCoucouCommand,
    UrlCommand,
)
from coucou.components.cancer import CANCER_LIST_URL, handle_cancer, pick_entry
from coucou.components.crypto import handle_crypto
from coucou.components.help import GENERAL_HELP, HELP_TOPICS, handle_help
from coucou.components.joke import handle_joke
from coucou.components.shout import handle_shout
from coucou.components.url import extract_title, handle_url
from coucou.core.dispatcher import Dispatcher
from coucou.core.messages import InboundMessage

MSG = InboundMessage(channel="#c", nick="alice", text="")


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_extract_title() -> None:
    assert extract_title("<html><title>\n  Hello &amp; bye </title></html>") == "Hello & bye"
    assert extract_title("<html></html>") is None


class TestUrl:
    @pytest.mark.anyio
    async def test_no_url_yet(self, make_ctx) -> None:
        assert await handle_url(make_ctx(), MSG, UrlCommand()) == "Pas d'url"

    @pytest.mark.anyio
    async def test_title_of_nth_url(self, make_ctx, state) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                headers={"content-type": "text/html; charset=utf-8"},
                text=f"<title>page {request.url.path}</title>",
            )

        await state.push_url("#c", "https://example.com/old")
        await state.push_url("#c", "https://example.com/new")

        async with mock_client(handler) as http:
            ctx = make_ctx(http=http)
            assert await handle_url(ctx, MSG, UrlCommand()) == "page /new [https://example.com/new]"
            assert (
                await handle_url(ctx, MSG, UrlCommand(offset=1))
                == "page /old [https://example.com/old]"
            )

    @pytest.mark.anyio
    async def test_failed_fetch_falls_back_to_url(self, make_ctx, state) -> None:
        await state.push_url("#c", "https://example.com/gone")
        async with mock_client(lambda request: httpx.Response(500)) as http:
            assert await handle_url(make_ctx(http=http), MSG, UrlCommand()) == (
                "https://example.com/gone"
            )


class TestCrypto:
    @pytest.mark.anyio
    async def test_price(self, make_ctx) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v2/prices/BTC-EUR/spot"
            return httpx.Response(
                200, json={"data": {"base": "BTC", "currency": "EUR", "amount": "54321.987"}}
            )

        async with mock_client(handler) as http:
            reply = await handle_crypto(make_ctx(http=http), MSG, CryptoCommand(coin="btc"))
        assert reply == "1 BTC = 54321.99 EUR"

    @pytest.mark.anyio
    async def test_unknown_coin(self, make_ctx) -> None:
        async with mock_client(lambda request: httpx.Response(404)) as http:
            reply = await handle_crypto(make_ctx(http=http), MSG, CryptoCommand(coin="zzz"))
        assert reply == "Unknown coin: zzz"


class TestCancer:
    def test_pick_entry(self) -> None:
        entries = ["Chat: https://a", "Chien: https://b"]
        assert pick_entry(entries, "chien") == "Chien: https://b"
        assert pick_entry(entries, "poney") is None
        assert pick_entry(entries, None) in entries
        assert pick_entry([], None) is None

    @pytest.mark.anyio
    async def test_matching_entry(self, make_ctx) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert str(request.url) == CANCER_LIST_URL
            return httpx.Response(200, text="Chat: https://a\n\nChien: https://b\n")

        async with mock_client(handler) as http:
            ctx = make_ctx(http=http)
            assert await handle_cancer(ctx, MSG, CancerCommand(pattern="CHIEN")) == (
                "Chien: https://b"
            )
            assert await handle_cancer(ctx, MSG, CancerCommand(pattern="poney")) == (
                "Rien trouvé pour « poney »"
            )


@pytest.mark.anyio
async def test_joke(make_ctx) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["accept"] == "application/json"
        return httpx.Response(200, json={"id": "x", "joke": "Why?\n Because.", "status": 200})

    async with mock_client(handler) as http:
        assert await handle_joke(make_ctx(http=http), MSG, JokeCommand()) == "Why? Because."


@pytest.mark.anyio
async def test_shout_skips_sender_and_bot(make_ctx, state) -> None:
    for nick in ["coucoubot", "bob", "alice"]:
        await state.record_nick("#c", nick)
    assert await handle_shout(make_ctx(), MSG, ShoutCoucouCommand()) == "coucou bob"


@pytest.mark.anyio
async def test_shout_with_nobody_around(make_ctx) -> None:
    assert await handle_shout(make_ctx(), MSG, ShoutCoucouCommand()) is None


class TestHelp:
    @pytest.mark.anyio
    async def test_general(self, make_ctx) -> None:
        assert await handle_help(make_ctx(), MSG, HelpCommand()) == GENERAL_HELP

    @pytest.mark.anyio
    async def test_topic(self, make_ctx) -> None:
        assert await handle_help(make_ctx(), MSG, HelpCommand(topic="remind")) == (
            HELP_TOPICS["remind"]
        )

    @pytest.mark.anyio
    async def test_unknown_topic(self, make_ctx) -> None:
        reply = await handle_help(make_ctx(), MSG, HelpCommand(topic="nope"))
        assert reply == f"Unknown command: nope. {GENERAL_HELP}"


class TestSettings:
    @pytest.mark.anyio
    async def test_set_and_unset_timezone(self, make_ctx, state) -> None:
        dispatcher = Dispatcher(make_ctx())

        reply = await dispatcher.handle(InboundMessage("#c", "alice", "&usr set tz Europe/Paris"))
        assert reply == "alice: tz set to Europe/Paris"
        assert await state.get_setting("alice", "tz") == "Europe/Paris"

        reply = await dispatcher.handle(InboundMessage("#c", "alice", "&usr unset tz"))
        assert reply == "alice: tz unset"
        assert await state.get_setting("alice", "tz") is None

    @pytest.mark.anyio
    async def test_invalid_timezone(self, make_ctx, state) -> None:
        dispatcher = Dispatcher(make_ctx())
        reply = await dispatcher.handle(InboundMessage("#c", "alice", "&usr set tz Mars/Olympus"))
        assert reply == "alice: unknown timezone Mars/Olympus"
        assert await state.get_setting("alice", "tz") is None

    @pytest.mark.anyio
    async def test_unknown_key(self, make_ctx) -> None:
        dispatcher = Dispatcher(make_ctx())
        reply = await dispatcher.handle(InboundMessage("#c", "alice", "&usr set color blue"))
        assert reply == "alice: unknown setting color. Available: tz"


class TestReminderCommands:
    @pytest.mark.anyio
    async def test_create_list_delete(self, make_ctx, clock, reminder_repo) -> None:
        dispatcher = Dispatcher(make_ctx())

        reply = await dispatcher.handle(InboundMessage("#c", "alice", "&remind in 2h thé"))
        assert reply == "alice: reminder 1 set for 2024-03-04 14:00 UTC"
        assert reminder_repo.rows[1].due_at == clock.now + timedelta(hours=2)

        reply = await dispatcher.handle(InboundMessage("#c", "alice", "&remind list"))
        assert reply == "alice: [1] 2024-03-04 14:00: thé"

        # someone else cannot delete it
        reply = await dispatcher.handle(InboundMessage("#c", "bob", "&remind del 1"))
        assert reply == "bob: no reminder 1"

        reply = await dispatcher.handle(InboundMessage("#c", "alice", "&remind del 1"))
        assert reply == "alice: reminder 1 deleted"
        reply = await dispatcher.handle(InboundMessage("#c", "alice", "&remind list"))
        assert reply == "alice: no pending reminder"

    @pytest.mark.anyio
    async def test_uses_user_timezone(self, make_ctx, state, reminder_repo) -> None:
        await state.set_setting("alice", "tz", "Europe/Paris")
        dispatcher = Dispatcher(make_ctx())

        reply = await dispatcher.handle(InboundMessage("#c", "alice", "&remind à 19:00 apéro"))
        assert reply == "alice: reminder 1 set for 2024-03-04 19:00 CET"
        assert reminder_repo.rows[1].due_at == datetime(2024, 3, 4, 18, 0, tzinfo=timezone.utc)

    @pytest.mark.anyio
    async def test_date_in_the_past_is_refused(self, make_ctx, reminder_repo) -> None:
        dispatcher = Dispatcher(make_ctx())
        reply = await dispatcher.handle(
            InboundMessage("#c", "alice", "&remind at 2020-01-01 10:00 trop tard")
        )
        assert reply == "alice: 2020-01-01 10:00 is in the past"
        assert reminder_repo.rows == {}
