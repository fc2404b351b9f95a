"""Session helper shared by the repositories."""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from galleria.db.session import Database


@asynccontextmanager
async def use_session(
    database: Database,
    session: Optional[AsyncSession] = None,
) -> AsyncIterator[AsyncSession]:
    """Yield ``session`` if the caller supplied one, else a fresh one.

    A supplied session belongs to the caller's transaction; it is neither
    committed nor closed here.
    """
    if session is not None:
        yield session
        return
    async with database.session() as own:
        yield own
