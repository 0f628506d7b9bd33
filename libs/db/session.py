from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession


async def get_async_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that yields an async database session.

    The session factory is created by the app lifespan and kept on ``app.state``.
    """
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def insert_and_catch_conflict(session: AsyncSession, row: object) -> bool:
    """
    Add ``row`` inside a SAVEPOINT and commit, letting the store's unique
    constraints decide.

    Returns False when a unique constraint rejects the insert (someone else
    already wrote it). Only the savepoint is rolled back, so objects already
    loaded in the session stay usable. Any other pending work in the session
    is committed either way.
    """
    try:
        async with session.begin_nested():
            session.add(row)
            await session.flush()
        inserted = True
    except IntegrityError:
        inserted = False
    await session.commit()
    return inserted
