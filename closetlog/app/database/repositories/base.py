"""Base repository implementation for database operations.

This module provides a generic repository pattern implementation with common
database operations that can be inherited by specific repositories.

Features:
- Generic create and count operations
- Type-safe queries
- Common filters and operations
- SAVEPOINT scoping for best-effort batch steps
"""

from typing import Generic, TypeVar, Type, Optional, Any, Dict
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction
from sqlalchemy.sql import Select

from app.models.database.base import Base
from app.core.logging import get_logger

# Type variable for models
ModelType = TypeVar("ModelType", bound=Base)
logger = get_logger(__name__)

class BaseRepository(Generic[ModelType]):
    """Base repository providing common database operations."""

    model: Type[ModelType]

    def __init__(self, session: AsyncSession, model: Optional[Type[ModelType]] = None):
        """Initialize repository with session and model.

        Args:
            session: AsyncSession instance
            model: SQLAlchemy model class, defaults to the subclass' ``model``
        """
        if model is not None:
            self.model = model
        self.session = session

    def savepoint(self) -> AsyncSessionTransaction:
        """Open a nested transaction; failures inside roll back only this scope."""
        return self.session.begin_nested()

    async def create(self, **kwargs) -> ModelType:
        """Create a new record.

        Args:
            **kwargs: Model field values

        Returns:
            Created model instance
        """
        try:
            instance = self.model(**kwargs)
            self.session.add(instance)
            await self.session.flush()
            await self.session.refresh(instance)
            return instance
        except Exception as e:
            logger.error(f"Create failed for {self.model.__name__}", error=str(e))
            raise

    async def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        """Get count of records matching filters.

        Args:
            filters: Optional filter criteria

        Returns:
            Count of matching records
        """
        try:
            query = select(func.count()).select_from(self.model)
            if filters:
                query = query.filter_by(**filters)
            result = await self.session.execute(query)
            return result.scalar_one()
        except Exception as e:
            logger.error(f"Count failed for {self.model.__name__}", error=str(e))
            raise

    def filter(self, query: Select, filters: Dict[str, Any]) -> Select:
        """Apply non-null equality filters to query."""
        for field, value in filters.items():
            if value is not None:
                query = query.where(getattr(self.model, field) == value)
        return query
