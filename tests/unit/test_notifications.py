"""Tests for post-commit dispatch, the inbox and the e-mail sink."""

import logging
from unittest.mock import AsyncMock, patch

import pytest

from rwa_ledger.common.exceptions import NotFoundError
from rwa_ledger.notifications.base import Notification, NotificationDispatcher
from rwa_ledger.notifications.inbox import InboxService, InboxSink
from rwa_ledger.notifications.sinks import EmailSink, LoggingSink


def _note(event_type="asset.created", user_id=None, email=None, **data) -> Notification:
    return Notification(
        event_type=event_type,
        title="Title",
        message="Message",
        user_id=user_id,
        email=email,
        data=data,
    )


class FailingSink:
    async def send(self, notification: Notification) -> None:
        raise RuntimeError("sink down")


class TestDispatcher:
    async def test_delivered_only_after_commit(self, db, svc):
        async with db.get_session() as session:
            svc.dispatcher.publish(session, _note())
            await svc.dispatcher.drain()
            assert svc.sink.sent == []
        await svc.dispatcher.drain()
        assert svc.sink.events() == ["asset.created"]

    async def test_rollback_discards(self, db, svc):
        with pytest.raises(ValueError):
            async with db.get_session() as session:
                svc.dispatcher.publish(session, _note())
                raise ValueError("abort")
        await svc.dispatcher.drain()
        assert svc.sink.sent == []

    async def test_failed_operation_sends_nothing(self, db, svc, people, asset):
        from rwa_ledger.common.exceptions import InsufficientSupplyError

        with pytest.raises(InsufficientSupplyError):
            async with db.get_session() as session:
                await svc.ledger.mint(session, people["admin"], asset.id, people["alice"], 5000)
        await svc.dispatcher.drain()
        assert svc.sink.sent == []

    async def test_preserves_publish_order(self, db, svc):
        async with db.get_session() as session:
            svc.dispatcher.publish(session, _note("order.created"))
            svc.dispatcher.publish(session, _note("order.approved"))
        await svc.dispatcher.drain()
        assert svc.sink.events() == ["order.created", "order.approved"]

    async def test_failing_sink_is_logged_and_isolated(self, db, svc, ledger_logs):
        svc.dispatcher.add_sink(FailingSink())
        with ledger_logs.at_level(logging.ERROR, logger="rwa_ledger.notifications.base"):
            async with db.get_session() as session:
                svc.dispatcher.publish(session, _note())
            await svc.dispatcher.drain()
        assert svc.sink.events() == ["asset.created"]
        assert "FailingSink failed for asset.created" in ledger_logs.text

    async def test_one_registration_per_session(self, db):
        dispatcher = NotificationDispatcher()
        send = AsyncMock()
        dispatcher.add_sink(type("Sink", (), {"send": send})())
        async with db.get_session() as session:
            for _ in range(3):
                dispatcher.publish(session, _note())
        await dispatcher.drain()
        assert send.await_count == 3


class TestLoggingSink:
    async def test_logs_event(self, ledger_logs):
        with ledger_logs.at_level(logging.INFO, logger="rwa_ledger.notifications.sinks"):
            await LoggingSink().send(_note("tokens.minted", user_id="u-1"))
        assert "tokens.minted" in ledger_logs.text
        assert "u-1" in ledger_logs.text


class TestEmailSink:
    async def test_skips_without_address(self):
        sink = EmailSink(provider="sendgrid", api_key="k")
        with patch.object(sink, "_send_sendgrid", new_callable=AsyncMock) as send:
            await sink.send(_note(user_id="u-1"))
        send.assert_not_awaited()

    async def test_sendgrid(self):
        sink = EmailSink(provider="SendGrid", api_key="k", from_name="Ledger")
        with patch.object(sink, "_send_sendgrid", new_callable=AsyncMock) as send:
            await sink.send(_note(email="alice@example.com"))
        to, subject, body = send.await_args.args
        assert to == "alice@example.com"
        assert subject == "[Ledger] Title"
        assert "Event: asset.created" in body

    async def test_resend(self):
        sink = EmailSink(provider="resend", api_key="k")
        with patch.object(sink, "_send_resend", new_callable=AsyncMock) as send:
            await sink.send(_note(email="bob@example.com"))
        assert send.await_args.args[0] == "bob@example.com"

    async def test_unconfigured_logs(self, ledger_logs):
        with ledger_logs.at_level(logging.INFO, logger="rwa_ledger.notifications.sinks"):
            await EmailSink().send(_note(email="carol@example.com"))
        assert "No email provider configured" in ledger_logs.text


class TestInbox:
    async def test_sink_persists_user_notifications(self, db, people):
        sink = InboxSink(db)
        await sink.send(_note("tokens.minted", user_id=people["alice"], amount=5))
        await sink.send(_note("asset.created"))
        inbox = InboxService()
        async with db.get_session() as session:
            items = await inbox.list_notifications(session, people["alice"])
            assert len(items) == 1
            assert items[0].event_type == "tokens.minted"
            assert items[0].data == {"amount": 5}
            assert items[0].read is False

    async def test_read_tracking(self, db, people):
        sink = InboxSink(db)
        for event_type in ("tokens.minted", "order.filled", "order.cancelled"):
            await sink.send(_note(event_type, user_id=people["alice"]))
        inbox = InboxService()
        async with db.get_session() as session:
            assert await inbox.unread_count(session, people["alice"]) == 3
            first = (await inbox.list_notifications(session, people["alice"]))[0]
            await inbox.mark_read(session, first.id, people["alice"])
        async with db.get_session() as session:
            assert await inbox.unread_count(session, people["alice"]) == 2
            unread = await inbox.list_notifications(session, people["alice"], unread_only=True)
            assert first.id not in {n.id for n in unread}
            assert await inbox.mark_all_read(session, people["alice"]) == 2
        async with db.get_session() as session:
            assert await inbox.unread_count(session, people["alice"]) == 0

    async def test_cannot_read_someone_elses(self, db, people):
        await InboxSink(db).send(_note(user_id=people["alice"]))
        inbox = InboxService()
        async with db.get_session() as session:
            [item] = await inbox.list_notifications(session, people["alice"])
        with pytest.raises(NotFoundError):
            async with db.get_session() as session:
                await inbox.mark_read(session, item.id, people["bob"])
