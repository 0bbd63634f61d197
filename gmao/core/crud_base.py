# gmao/core/crud_base.py

"""
Generic asynchronous CRUD base class shared by every domain.
"""

import logging
from typing import Generic, List, Optional, Type, TypeVar, Any, Dict, Tuple
from datetime import date, timedelta

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession
from pydantic import BaseModel

from gmao.core.exceptions import ConflictError

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=SQLModel)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class CRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    Default Create, Read, Update and Delete operations for one table model.
    """
    def __init__(self, model: Type[ModelType]):
        self.model = model

    async def get(self, db: AsyncSession, id: Any) -> Optional[ModelType]:
        """Fetches one record by primary key."""
        return await db.get(self.model, id)

    async def get_multi(
        self, db: AsyncSession, *, skip: int = 0, limit: int = 100, **kwargs: Any
    ) -> List[ModelType]:
        """
        Fetches several records. Keyword arguments naming a model column are
        applied as equality filters.
        """
        query = select(self.model)
        for field, value in kwargs.items():
            if hasattr(self.model, field):
                query = query.where(getattr(self.model, field) == value)
        if hasattr(self.model, "id"):
            query = query.order_by(self.model.id)
        query = query.offset(skip).limit(limit)

        result = await db.execute(query)
        return result.scalars().all()

    async def get_by_attribute(
        self, db: AsyncSession, *, attribute: str, value: Any
    ) -> Optional[ModelType]:
        statement = select(self.model).where(getattr(self.model, attribute) == value)
        response = await db.execute(statement)
        return response.scalar_one_or_none()

    def _build_conditions(
        self,
        filters: Optional[Dict[str, Any]],
        date_range_field: Optional[str],
        start_date: Optional[date],
        end_date: Optional[date],
    ) -> List[Any]:
        conditions = []
        if filters:
            for attribute, value in filters.items():
                if value is None:
                    continue
                if hasattr(self.model, attribute):
                    conditions.append(getattr(self.model, attribute) == value)
                else:
                    logger.warning("Model %s has no attribute '%s'", self.model.__name__, attribute)

        if date_range_field and hasattr(self.model, date_range_field):
            date_field = getattr(self.model, date_range_field)
            if start_date is not None:
                conditions.append(date_field >= start_date)
            if end_date is not None:
                # end_date is inclusive
                conditions.append(date_field < end_date + timedelta(days=1))
        return conditions

    async def get_filtered(
        self,
        db: AsyncSession,
        *,
        filters: Optional[Dict[str, Any]] = None,
        extra_conditions: Optional[List[Any]] = None,
        date_range_field: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        order_by_field: Optional[str] = None,
        order_desc: bool = True,
        skip: int = 0,
        limit: int = 100
    ) -> Tuple[List[ModelType], int]:
        """
        Filtered listing with optional date range and ordering.
        Returns the requested page and the total number of matching rows.
        """
        conditions = self._build_conditions(filters, date_range_field, start_date, end_date)
        conditions.extend(extra_conditions or [])

        query = select(self.model)
        count_query = select(func.count()).select_from(self.model)
        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        if order_by_field and hasattr(self.model, order_by_field):
            column = getattr(self.model, order_by_field)
            query = query.order_by(column.desc() if order_desc else column)
        if hasattr(self.model, "id"):
            query = query.order_by(self.model.id.desc() if order_desc else self.model.id)

        query = query.offset(skip).limit(limit)

        total = (await db.execute(count_query)).scalar_one()
        result = await db.execute(query)
        return result.scalars().all(), total

    async def create(self, db: AsyncSession, *, obj_in: CreateSchemaType) -> ModelType:
        """Inserts a new record. A unique constraint violation becomes ConflictError."""
        db_obj = self.model.model_validate(obj_in.model_dump())
        db.add(db_obj)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            raise ConflictError(f"{self.model.__name__} violates a unique constraint") from e
        await db.refresh(db_obj)
        return db_obj

    async def update(
        self, db: AsyncSession, *, db_obj: ModelType, obj_in: UpdateSchemaType
    ) -> ModelType:
        """Applies the fields explicitly set on `obj_in`."""
        update_data = obj_in.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            setattr(db_obj, key, value)

        db.add(db_obj)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            raise ConflictError(f"{self.model.__name__} violates a unique constraint") from e
        await db.refresh(db_obj)
        return db_obj

    async def delete(self, db: AsyncSession, *, id: Any) -> Optional[ModelType]:
        """Deletes a record by primary key and returns it, or None when absent."""
        db_obj = await db.get(self.model, id)
        if db_obj:
            await db.delete(db_obj)
            try:
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                raise ConflictError(f"{self.model.__name__} {id} is still referenced") from e
        return db_obj
