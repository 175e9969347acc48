"""Tests for investor token requests and their admin resolution."""

import pytest

from rwa_ledger.common.enums import RequestStatus, TransferReason
from rwa_ledger.common.exceptions import (
    AuthorizationError,
    ComplianceError,
    InsufficientSupplyError,
    ValidationError,
)


async def _request(db, svc, people, asset, user="alice", amount=40):
    async with db.get_session() as session:
        return await svc.requests.request_tokens(session, people[user], asset.id, amount)


class TestRequestTokens:
    async def test_request_is_pending(self, db, svc, people, asset):
        request = await _request(db, svc, people, asset)
        assert request.status == RequestStatus.PENDING
        assert request.amount == 40
        async with db.get_session() as session:
            refreshed = await svc.assets.get_asset(session, asset.id)
        assert refreshed.remaining_supply == 1000

    async def test_requires_kyc(self, db, svc, people, asset):
        with pytest.raises(ComplianceError):
            await _request(db, svc, people, asset, user="carol")

    async def test_more_than_remaining(self, db, svc, people, asset):
        with pytest.raises(InsufficientSupplyError):
            await _request(db, svc, people, asset, amount=1001)

    async def test_invalid_amount(self, db, svc, people, asset):
        with pytest.raises(ValidationError):
            await _request(db, svc, people, asset, amount=0)


class TestResolve:
    async def test_approve_mints(self, db, svc, people, asset):
        request = await _request(db, svc, people, asset)
        async with db.get_session() as session:
            resolved = await svc.requests.approve_request(
                session, people["admin"], request.id, notes="welcome",
            )
        assert resolved.status == RequestStatus.APPROVED
        assert resolved.admin_notes == "welcome"
        assert resolved.resolved_at is not None
        async with db.get_session() as session:
            holding = await svc.ledger.get_holding(session, asset.id, people["alice"])
            [mint] = await svc.transfers.list_transfers(session, asset_id=asset.id)
        assert holding.amount == 40
        assert mint.reason == TransferReason.MINT
        assert mint.note == f"token request {request.id}"

    async def test_approve_fails_when_supply_ran_out(self, db, svc, people, asset):
        request = await _request(db, svc, people, asset, amount=600)
        async with db.get_session() as session:
            await svc.ledger.mint(session, people["admin"], asset.id, people["bob"], 500)
        with pytest.raises(InsufficientSupplyError):
            async with db.get_session() as session:
                await svc.requests.approve_request(session, people["admin"], request.id)
        async with db.get_session() as session:
            still = await svc.requests.get_request(session, request.id)
        assert still.status == RequestStatus.PENDING

    async def test_reject(self, db, svc, people, asset):
        request = await _request(db, svc, people, asset)
        async with db.get_session() as session:
            resolved = await svc.requests.reject_request(session, people["admin"], request.id)
        assert resolved.status == RequestStatus.REJECTED
        async with db.get_session() as session:
            assert await svc.ledger.get_holding(session, asset.id, people["alice"]) is None

    async def test_cannot_resolve_twice(self, db, svc, people, asset):
        request = await _request(db, svc, people, asset)
        async with db.get_session() as session:
            await svc.requests.reject_request(session, people["admin"], request.id)
        with pytest.raises(ValidationError, match="already REJECTED"):
            async with db.get_session() as session:
                await svc.requests.approve_request(session, people["admin"], request.id)

    async def test_only_admin_resolves(self, db, svc, people, asset):
        request = await _request(db, svc, people, asset)
        with pytest.raises(AuthorizationError):
            async with db.get_session() as session:
                await svc.requests.approve_request(session, people["alice"], request.id)

    async def test_resolution_notifies_requester(self, db, svc, people, asset):
        request = await _request(db, svc, people, asset)
        async with db.get_session() as session:
            await svc.requests.reject_request(session, people["admin"], request.id, notes="later")
        await svc.dispatcher.drain()
        assert svc.sink.events() == ["token_request.created", "token_request.resolved"]
        assert "Notes: later" in svc.sink.sent[-1].message


class TestListRequests:
    async def test_filters(self, db, svc, people, asset):
        first = await _request(db, svc, people, asset)
        await _request(db, svc, people, asset, user="bob", amount=5)
        async with db.get_session() as session:
            await svc.requests.reject_request(session, people["admin"], first.id)
        async with db.get_session() as session:
            pending = await svc.requests.list_requests(session, status=RequestStatus.PENDING)
            alices = await svc.requests.list_requests(session, user_id=people["alice"])
        assert [r.user_id for r in pending] == [people["bob"]]
        assert [r.id for r in alices] == [first.id]
