"""
Base Repository Pattern

Generic async row access shared by the SQLAlchemy repositories.
Concrete repositories implement the domain repository interfaces
and translate rows to domain objects; rows never leave this package.
"""

from typing import Any, Generic, Optional, Sequence, Type, TypeVar
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from vrtherapy.infrastructure.database.connection import Base

# Type variable for model types
ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """
    Generic base repository with async row operations.
    
    Usage:
        class PatientSqlRepository(BaseRepository[PatientModel], PatientRepository):
            ...
            
        repo = PatientSqlRepository(session)
        row = await repo._get_row(patient_id)
    """
    
    def __init__(self, model: Type[ModelT], session: AsyncSession) -> None:
        """
        Initialize repository with model class and session.
        
        Args:
            model: SQLAlchemy model class
            session: Async database session (one unit of work)
        """
        self._model = model
        self._session = session
    
    async def _get_row(self, id: UUID, *, refresh: bool = False) -> Optional[ModelT]:
        """
        Get a row by primary key.
        
        Args:
            id: Row UUID
            refresh: Overwrite any stale identity-map copy with the stored values
        """
        query = select(self._model).where(self._model.id == id)
        if refresh:
            query = query.execution_options(populate_existing=True)
        result = await self._session.execute(query)
        return result.scalar_one_or_none()
    
    async def _find_one(self, *conditions: Any) -> Optional[ModelT]:
        result = await self._session.execute(select(self._model).where(*conditions))
        return result.scalar_one_or_none()
    
    async def _find_all(
        self,
        *conditions: Any,
        order_by: Sequence[Any] = (),
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> Sequence[ModelT]:
        query = select(self._model).where(*conditions).order_by(*order_by).offset(skip)
        if limit is not None:
            query = query.limit(limit)
        result = await self._session.execute(query)
        return result.scalars().all()
    
    async def _count(self, *conditions: Any) -> int:
        result = await self._session.execute(
            select(func.count()).select_from(self._model).where(*conditions)
        )
        return result.scalar_one()
    
    async def _insert(self, row: ModelT) -> ModelT:
        """
        Insert a row inside a savepoint.
        
        A constraint violation rolls back only the savepoint, leaving
        the surrounding unit of work usable.
        
        Raises:
            sqlalchemy.exc.IntegrityError: On constraint violation
        """
        async with self._session.begin_nested():
            self._session.add(row)
            await self._session.flush()
        return row
