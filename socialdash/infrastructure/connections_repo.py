# socialdash/infrastructure/connections_repo.py
from typing import Any, Dict, List, Optional
from datetime import datetime

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from socialdash.models.platform_connection import ConnectionStatus, PlatformConnection, utcnow

# Display metadata is only written when the row is first created.
_INSERT_ONLY_COLUMNS = {"id", "user_id", "platform_id", "created_at", "name", "color", "description", "icon_name"}


class ConnectionsRepository:
    """
    Repository for PlatformConnection rows.
    All methods are async and expect an AsyncSession to be injected from the outside.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    def _insert(self):
        dialect = self.session.bind.dialect.name
        if dialect == "postgresql":
            return pg_insert(PlatformConnection)
        if dialect == "sqlite":
            return sqlite_insert(PlatformConnection)
        raise NotImplementedError(f"upsert not supported for dialect {dialect}")

    async def get_by_user_and_platform(self, user_id: str, platform_id: str) -> Optional[PlatformConnection]:
        q = (
            select(PlatformConnection)
            .where(
                PlatformConnection.user_id == user_id,
                PlatformConnection.platform_id == platform_id,
            )
            .execution_options(populate_existing=True)
        )
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def list_by_user(self, user_id: str) -> List[PlatformConnection]:
        q = select(PlatformConnection).where(PlatformConnection.user_id == user_id).order_by(PlatformConnection.id)
        res = await self.session.execute(q)
        return list(res.scalars().all())

    async def upsert(self, values: Dict[str, Any]) -> PlatformConnection:
        """
        Insert or update the row keyed on (user_id, platform_id).
        On conflict every column except identity and display metadata is overwritten.
        """
        now = utcnow()
        row = {**values, "created_at": now, "updated_at": now}
        stmt = self._insert().values(**row)
        update_cols = {
            key: getattr(stmt.excluded, key)
            for key in row
            if key not in _INSERT_ONLY_COLUMNS
        }
        stmt = stmt.on_conflict_do_update(index_elements=["user_id", "platform_id"], set_=update_cols)
        try:
            await self.session.execute(stmt)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return await self.get_by_user_and_platform(values["user_id"], values["platform_id"])

    async def update_tokens(
        self,
        cp: PlatformConnection,
        access_token: str,
        refresh_token: Optional[str],
        expires_at: Optional[datetime],
        scope: Optional[str] = None,
    ) -> PlatformConnection:
        """
        Replace the token fields after a refresh. A missing refresh token or scope keeps the stored one.
        """
        cp.access_token = access_token
        if refresh_token is not None:
            cp.refresh_token = refresh_token
        cp.token_expires_at = expires_at
        if scope is not None:
            cp.scope = scope
        now = utcnow()
        cp.last_synced = now
        cp.updated_at = now
        self.session.add(cp)
        await self.session.commit()
        await self.session.refresh(cp)
        return cp

    async def mark_disconnected(self, cp: PlatformConnection) -> PlatformConnection:
        cp.status = ConnectionStatus.DISCONNECTED.value
        cp.access_token = None
        cp.refresh_token = None
        cp.token_expires_at = None
        cp.scope = None
        cp.updated_at = utcnow()
        self.session.add(cp)
        await self.session.commit()
        await self.session.refresh(cp)
        return cp
