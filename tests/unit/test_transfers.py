"""Tests for the hash-chained transfer log."""

import pytest
from sqlalchemy import select, text

from rwa_ledger.common.enums import TransferReason
from rwa_ledger.common.exceptions import ImmutableRecordError, InvariantViolation
from rwa_ledger.transfers.models import TransferModel


async def _activity(db, svc, people, asset):
    """Mint, revoke, trade and freeze: one of each entry type on one asset."""
    async with db.get_session() as session:
        token = await svc.ledger.mint(session, people["admin"], asset.id, people["alice"], 100)
    async with db.get_session() as session:
        await svc.ledger.revoke(session, people["admin"], token.id, 10)
    async with db.get_session() as session:
        order = await svc.orders.create_order(session, people["alice"], asset.id, 20, "101")
    async with db.get_session() as session:
        await svc.orders.approve_order(session, people["admin"], order.id)
    async with db.get_session() as session:
        await svc.orders.fill_order(session, people["bob"], order.id)
    async with db.get_session() as session:
        await svc.users.freeze_user(session, people["admin"], people["bob"])


class TestChain:
    async def test_sequences_and_links(self, db, svc, people, asset):
        await _activity(db, svc, people, asset)
        async with db.get_session() as session:
            rows = (await session.execute(
                select(TransferModel)
                .where(TransferModel.asset_id == asset.id)
                .order_by(TransferModel.sequence)
            )).scalars().all()
        assert [r.sequence for r in rows] == [1, 2, 3, 4]
        assert [r.reason for r in rows] == [
            TransferReason.MINT,
            TransferReason.ADMIN_REVOKE,
            TransferReason.TRADE,
            TransferReason.FREEZE,
        ]
        assert rows[0].prev_hash is None
        for prev, entry in zip(rows, rows[1:]):
            assert entry.prev_hash == prev.entry_hash
        assert all(len(r.signature) == 64 for r in rows)

    async def test_verify_clean_chain(self, db, svc, people, asset):
        await _activity(db, svc, people, asset)
        async with db.get_session() as session:
            result = await svc.transfers.verify_chain(session, asset.id)
        assert result == {"valid": True, "entries_checked": 4, "break_at": None}

    async def test_verify_empty_chain(self, db, svc, asset):
        async with db.get_session() as session:
            result = await svc.transfers.verify_chain(session, asset.id)
        assert result["valid"] is True
        assert result["entries_checked"] == 0

    async def test_chains_are_per_asset(self, db, svc, people, asset):
        async with db.get_session() as session:
            other = await svc.assets.create_asset(
                session, people["admin"], type="loan", title="Loan", total_supply=50, nav_price="1",
            )
        async with db.get_session() as session:
            await svc.ledger.mint(session, people["admin"], asset.id, people["alice"], 5)
        async with db.get_session() as session:
            first = await svc.ledger.mint(session, people["admin"], other.id, people["alice"], 5)
        async with db.get_session() as session:
            head = await svc.transfers.get_chain_head(session, other.id)
        assert head.sequence == 1
        assert head.prev_hash is None
        assert first.asset_id == other.id

    async def test_tampered_amount_breaks_chain(self, db, svc, people, asset):
        await _activity(db, svc, people, asset)
        async with db.get_session() as session:
            head = await svc.transfers.get_chain_head(session, asset.id)
            second = (await session.execute(
                select(TransferModel).where(
                    TransferModel.asset_id == asset.id, TransferModel.sequence == 2,
                )
            )).scalar_one()
            await session.execute(
                text("UPDATE transfers SET token_amount = 999 WHERE id = :id"),
                {"id": second.id},
            )
        async with db.get_session() as session:
            result = await svc.transfers.verify_chain(session, asset.id)
        assert result["valid"] is False
        assert result["break_at"] == second.id
        assert result["entries_checked"] == 1
        assert head.sequence == 4

    async def test_foreign_signature_rejected(self, db, people, asset, make_services):
        rogue = make_services(hmac_key="some-other-key")
        async with db.get_session() as session:
            await rogue.ledger.mint(session, people["admin"], asset.id, people["alice"], 5)
        verifier = make_services()
        async with db.get_session() as session:
            result = await verifier.transfers.verify_chain(session, asset.id)
        assert result["valid"] is False
        assert result["entries_checked"] == 0

    async def test_rotated_key_still_verifies(self, db, people, asset, make_services):
        old = make_services(hmac_key="old-key")
        async with db.get_session() as session:
            await old.ledger.mint(session, people["admin"], asset.id, people["alice"], 5)
        rotated = make_services(hmac_keys='{"0": "old-key", "1": "new-key"}')
        async with db.get_session() as session:
            await rotated.ledger.mint(session, people["admin"], asset.id, people["alice"], 5)
        async with db.get_session() as session:
            result = await rotated.transfers.verify_chain(session, asset.id)
        assert result == {"valid": True, "entries_checked": 2, "break_at": None}


class TestImmutability:
    async def test_orm_update_refused(self, db, svc, people, asset):
        await _activity(db, svc, people, asset)
        with pytest.raises(ImmutableRecordError):
            async with db.get_session() as session:
                entry = await svc.transfers.get_chain_head(session, asset.id)
                entry.note = "edited"
                await session.flush()

    async def test_orm_delete_refused(self, db, svc, people, asset):
        await _activity(db, svc, people, asset)
        with pytest.raises(ImmutableRecordError):
            async with db.get_session() as session:
                entry = await svc.transfers.get_chain_head(session, asset.id)
                await session.delete(entry)
                await session.flush()

    async def test_nav_history_is_append_only(self, db, svc, asset):
        with pytest.raises(ImmutableRecordError):
            async with db.get_session() as session:
                [initial] = await svc.valuation.nav_history(session, asset.id)
                initial.reason = "rewritten"
                await session.flush()

    async def test_non_positive_amount_refused(self, db, svc, asset):
        with pytest.raises(InvariantViolation):
            async with db.get_session() as session:
                await svc.transfers.record(session, asset.id, TransferReason.MINT, 0)


class TestAuditCompleteness:
    async def test_balances_match_replayed_transfers(self, db, svc, people, asset):
        """Every balance change is explained by the log once escrow is accounted for."""
        await _activity(db, svc, people, asset)
        async with db.get_session() as session:
            entries = await svc.transfers.list_transfers(session, asset_id=asset.id, limit=100)
            tokens = await svc.ledger.list_tokens(session, asset_id=asset.id)

        replayed: dict[str, int] = {}
        for entry in entries:
            if entry.reason in (TransferReason.FREEZE, TransferReason.UNFREEZE):
                continue
            if entry.from_user_id:
                replayed[entry.from_user_id] = replayed.get(entry.from_user_id, 0) - entry.token_amount
            if entry.to_user_id:
                replayed[entry.to_user_id] = replayed.get(entry.to_user_id, 0) + entry.token_amount

        actual = {t.owner_id: t.amount for t in tokens}
        assert replayed == actual
        assert actual == {people["alice"]: 70, people["bob"]: 20}


class TestListTransfers:
    async def test_newest_first_and_filters(self, db, svc, people, asset):
        await _activity(db, svc, people, asset)
        async with db.get_session() as session:
            everything = await svc.transfers.list_transfers(session, asset_id=asset.id)
            bobs = await svc.transfers.list_transfers(session, user_id=people["bob"])
            trades = await svc.transfers.list_transfers(session, reason=TransferReason.TRADE)
            page = await svc.transfers.list_transfers(session, asset_id=asset.id, limit=2, offset=1)
        assert [t.sequence for t in everything] == [4, 3, 2, 1]
        assert {t.reason for t in bobs} == {TransferReason.TRADE, TransferReason.FREEZE}
        assert len(trades) == 1
        assert [t.sequence for t in page] == [3, 2]
