"""Transfer log — append, query and verify the per-asset hash chain."""

import hashlib
import hmac as hmac_mod
import json
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from rwa_ledger.common.config import LedgerSettings
from rwa_ledger.common.enums import TransferReason
from rwa_ledger.common.exceptions import InvariantViolation
from rwa_ledger.transfers.models import TransferModel


class TransferLog:
    """Immutable, hash-chained record of every ledger event, one chain per asset.

    Callers must hold the asset row lock while recording so that sequence
    numbers are assigned without gaps or duplicates.
    """

    def __init__(self, settings: LedgerSettings):
        self.settings = settings

    # ── Write ──

    async def record(
        self,
        session: AsyncSession,
        asset_id: str,
        reason: TransferReason,
        token_amount: int,
        from_user_id: str | None = None,
        to_user_id: str | None = None,
        actor_id: str | None = None,
        order_id: str | None = None,
        note: str | None = None,
        detail: dict[str, Any] | None = None,
    ) -> TransferModel:
        """Append a new entry to the asset's chain."""
        if token_amount <= 0:
            raise InvariantViolation(
                f"Transfer amount must be positive, got {token_amount} ({reason.value})"
            )
        detail = detail or {}

        head = await self.get_chain_head(session, asset_id)
        sequence = head.sequence + 1 if head else 1
        prev_hash = head.entry_hash if head else None

        fields = {
            "asset_id": asset_id,
            "sequence": sequence,
            "reason": reason.value,
            "token_amount": token_amount,
            "from_user_id": from_user_id,
            "to_user_id": to_user_id,
            "actor_id": actor_id,
            "order_id": order_id,
            "note": note,
            "detail": detail,
        }
        entry_hash = self._compute_entry_hash(fields, prev_hash)

        transfer = TransferModel(
            asset_id=asset_id,
            reason=reason,
            token_amount=token_amount,
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            actor_id=actor_id,
            order_id=order_id,
            note=note,
            detail=detail,
            sequence=sequence,
            prev_hash=prev_hash,
            entry_hash=entry_hash,
            signature=self._sign(entry_hash),
        )
        session.add(transfer)
        await session.flush()
        return transfer

    # ── Read ──

    async def get_chain_head(
        self, session: AsyncSession, asset_id: str,
    ) -> TransferModel | None:
        result = await session.execute(
            select(TransferModel)
            .where(TransferModel.asset_id == asset_id)
            .order_by(TransferModel.sequence.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_transfers(
        self,
        session: AsyncSession,
        asset_id: str | None = None,
        user_id: str | None = None,
        reason: TransferReason | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[TransferModel]:
        """Paginated transfers, newest first."""
        query = select(TransferModel)
        if asset_id:
            query = query.where(TransferModel.asset_id == asset_id)
        if user_id:
            query = query.where(
                or_(TransferModel.from_user_id == user_id, TransferModel.to_user_id == user_id)
            )
        if reason:
            query = query.where(TransferModel.reason == reason)
        query = (
            query.order_by(TransferModel.created_at.desc(), TransferModel.sequence.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await session.execute(query)
        return list(result.scalars().all())

    # ── Verify ──

    async def verify_chain(
        self, session: AsyncSession, asset_id: str,
    ) -> dict[str, Any]:
        """Walk the chain oldest→newest, verify linkage, hashes and signatures."""
        result = await session.execute(
            select(TransferModel)
            .where(TransferModel.asset_id == asset_id)
            .order_by(TransferModel.sequence.asc())
        )
        entries = list(result.scalars().all())

        prev_hash = None
        for index, entry in enumerate(entries):
            expected_hash = self._compute_entry_hash(
                {
                    "asset_id": entry.asset_id,
                    "sequence": entry.sequence,
                    "reason": entry.reason.value,
                    "token_amount": entry.token_amount,
                    "from_user_id": entry.from_user_id,
                    "to_user_id": entry.to_user_id,
                    "actor_id": entry.actor_id,
                    "order_id": entry.order_id,
                    "note": entry.note,
                    "detail": entry.detail or {},
                },
                entry.prev_hash,
            )
            if (
                entry.sequence != index + 1
                or entry.prev_hash != prev_hash
                or entry.entry_hash != expected_hash
                or not self._verify_signature(entry.entry_hash, entry.signature)
            ):
                return {"valid": False, "entries_checked": index, "break_at": entry.id}
            prev_hash = entry.entry_hash

        return {"valid": True, "entries_checked": len(entries), "break_at": None}

    # ── Internal helpers ──

    @staticmethod
    def _compute_entry_hash(fields: dict[str, Any], prev_hash: str | None) -> str:
        """SHA-256 of canonical JSON of the entry fields."""
        canonical = json.dumps(
            {**fields, "prev_hash": prev_hash},
            sort_keys=True,
            separators=(",", ":"),
            default=str,
        )
        return hashlib.sha256(canonical.encode()).hexdigest()

    def _sign(self, entry_hash: str) -> str:
        return hmac_mod.new(
            self.settings.current_hmac_key.encode(),
            entry_hash.encode(),
            hashlib.sha256,
        ).hexdigest()

    def _verify_signature(self, entry_hash: str, signature: str) -> bool:
        """Accept a signature made with any key in the keyring (rotation)."""
        for key in self.settings.hmac_keyring.values():
            expected = hmac_mod.new(
                key.encode(), entry_hash.encode(), hashlib.sha256,
            ).hexdigest()
            if hmac_mod.compare_digest(expected, signature):
                return True
        return False
