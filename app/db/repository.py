"""Shared repository base helpers."""
import logging
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.exceptions import TransientStorageException

logger = logging.getLogger(__name__)


class BaseRepository:
    """Base repository with common DB helpers."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _execute(self, stmt, operation: str = None):
        """Execute a statement, mapping contention/connectivity errors to a retriable error."""
        try:
            return await self.db.execute(stmt)
        except OperationalError as e:
            await self.db.rollback()
            logger.warning(f"Transient storage error during {operation or 'execute'}: {e}")
            raise TransientStorageException(operation) from e

    async def commit(self, operation: str = None):
        """Commit the current transaction, mapping contention/connectivity errors to a retriable error."""
        try:
            await self.db.commit()
        except OperationalError as e:
            await self.db.rollback()
            logger.warning(f"Transient storage error during {operation or 'commit'}: {e}")
            raise TransientStorageException(operation) from e

    async def rollback(self):
        """Roll back the current transaction"""
        await self.db.rollback()
