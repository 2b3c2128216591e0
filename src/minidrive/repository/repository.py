"""Base repository with generic CRUD operations."""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional, Sequence, Type

from sqlalchemy import Column, Executable, Result, Select, func, inspect, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from minidrive import db
from minidrive.models import Base


class Repository[T: Base]:
    """Base repository implementation with generic CRUD operations.

    Every method opens its own scoped session unless an open ``session`` is
    passed in, in which case the caller owns the transaction.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession], Model: Type[T]):
        self.session_maker = session_maker
        self.Model = Model
        self.primary_key: Column[Any] = inspect(self.Model).mapper.primary_key[0]
        self.valid_columns = [column.key for column in inspect(self.Model).columns]

    @asynccontextmanager
    async def session_scope(
        self, session: Optional[AsyncSession] = None
    ) -> AsyncGenerator[AsyncSession, None]:
        if session is not None:
            yield session
        else:
            async with db.scoped_session(self.session_maker) as new_session:
                yield new_session

    def select(self, *entities: Any) -> Select:
        if not entities:
            entities = (self.Model,)
        return select(*entities)

    async def find_all(
        self, skip: int = 0, limit: Optional[int] = None, session: Optional[AsyncSession] = None
    ) -> Sequence[T]:
        """Fetch records from the database with optional pagination."""
        query = self.select().order_by(self.primary_key).offset(skip)
        if limit is not None:
            query = query.limit(limit)
        result = await self.execute_query(query, session=session)
        return result.scalars().all()

    async def find_by_id(self, entity_id: int, session: Optional[AsyncSession] = None) -> Optional[T]:
        """Fetch an entity by its unique identifier."""
        query = self.select().filter(self.primary_key == entity_id)
        return await self.find_one(query, session=session)

    async def find_one(self, query: Select, session: Optional[AsyncSession] = None) -> Optional[T]:
        """Execute a query and retrieve a single record."""
        result = await self.execute_query(query, session=session)
        return result.scalars().one_or_none()

    async def add(self, model: T, session: Optional[AsyncSession] = None) -> T:
        """Add a model instance and flush so it gets its id."""
        async with self.session_scope(session) as s:
            s.add(model)
            await s.flush()
            return model

    async def create(self, entity_data: dict, session: Optional[AsyncSession] = None) -> T:
        """Create a new entity in the database from the provided data."""
        model_data = {k: v for k, v in entity_data.items() if k in self.valid_columns}
        return await self.add(self.Model(**model_data), session=session)

    async def update(
        self, entity_id: int, entity_data: dict, session: Optional[AsyncSession] = None
    ) -> Optional[T]:
        """Update an entity with the given data."""
        async with self.session_scope(session) as s:
            entity = await self.find_by_id(entity_id, session=s)
            if entity is None:
                return None
            for key, value in entity_data.items():
                if key in self.valid_columns:
                    setattr(entity, key, value)
            await s.flush()
            return entity

    async def delete(self, entity_id: int, session: Optional[AsyncSession] = None) -> bool:
        """Delete an entity from the database."""
        async with self.session_scope(session) as s:
            entity = await self.find_by_id(entity_id, session=s)
            if entity is None:
                return False
            await s.delete(entity)
            await s.flush()
            return True

    async def count(
        self, query: Executable | None = None, session: Optional[AsyncSession] = None
    ) -> int:
        """Count entities in the database table."""
        if query is None:
            query = select(func.count()).select_from(self.Model)
        result = await self.execute_query(query, session=session)
        scalar = result.scalar()
        return scalar if scalar is not None else 0

    async def execute_query(
        self, query: Executable, session: Optional[AsyncSession] = None
    ) -> Result[Any]:
        """Execute a query asynchronously."""
        async with self.session_scope(session) as s:
            return await s.execute(query)
