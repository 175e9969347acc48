"""In-app notification inbox: a sink that persists, and the queries that read it."""

import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rwa_ledger.common.database import DatabaseManager
from rwa_ledger.common.exceptions import NotFoundError
from rwa_ledger.notifications.base import Notification
from rwa_ledger.notifications.models import NotificationModel

logger = logging.getLogger(__name__)


class InboxSink:
    """Stores user-addressed notifications in their own transaction."""

    def __init__(self, db: DatabaseManager):
        self._db = db

    async def send(self, notification: Notification) -> None:
        if not notification.user_id:
            return
        async with self._db.get_session() as session:
            session.add(NotificationModel(
                user_id=notification.user_id,
                event_type=notification.event_type,
                title=notification.title,
                message=notification.message,
                data=notification.data,
            ))


class InboxService:
    async def list_notifications(
        self,
        session: AsyncSession,
        user_id: str,
        unread_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> list[NotificationModel]:
        query = select(NotificationModel).where(NotificationModel.user_id == user_id)
        if unread_only:
            query = query.where(NotificationModel.read.is_(False))
        query = query.order_by(NotificationModel.created_at.desc()).offset(offset).limit(limit)
        result = await session.execute(query)
        return list(result.scalars().all())

    async def unread_count(self, session: AsyncSession, user_id: str) -> int:
        result = await session.execute(
            select(func.count(NotificationModel.id)).where(
                NotificationModel.user_id == user_id,
                NotificationModel.read.is_(False),
            )
        )
        return result.scalar_one()

    async def mark_read(
        self, session: AsyncSession, notification_id: str, user_id: str,
    ) -> NotificationModel:
        result = await session.execute(
            select(NotificationModel).where(
                NotificationModel.id == notification_id,
                NotificationModel.user_id == user_id,
            )
        )
        notification = result.scalar_one_or_none()
        if notification is None:
            raise NotFoundError(f"Notification '{notification_id}' not found")
        notification.read = True
        await session.flush()
        return notification

    async def mark_all_read(self, session: AsyncSession, user_id: str) -> int:
        result = await session.execute(
            update(NotificationModel)
            .where(NotificationModel.user_id == user_id, NotificationModel.read.is_(False))
            .values(read=True)
        )
        return result.rowcount or 0
