"""
Persistence collaborator for bills, budgets and goals.

A thin wrapper over a SQLAlchemy session exposing the three operations the
engines' callers need: load one entity, save (upsert) one entity, and an
atomic in-database increment for the hot counters (budget ``spent`` and goal
``current_amount``) so concurrent contributions never lose updates.
"""
from decimal import Decimal
from typing import Generic, Optional, Type, TypeVar

from sqlalchemy import case, update
from sqlalchemy.orm import Session

from src.db.core import Base, NotFoundError

ModelT = TypeVar("ModelT", bound=Base)


class DocumentStore(Generic[ModelT]):
    def __init__(self, db: Session, model: Type[ModelT]):
        self.db = db
        self.model = model

    def get(self, entity_id: int, user_id: Optional[int] = None) -> Optional[ModelT]:
        query = self.db.query(self.model).filter(self.model.id == entity_id)
        if user_id is not None:
            query = query.filter(self.model.user_id == user_id)
        return query.first()

    def save(self, entity: ModelT) -> ModelT:
        """Insert or update the entity and commit."""
        try:
            self.db.add(entity)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(entity)
        return entity

    def atomic_increment(
        self,
        entity_id: int,
        field: str,
        delta: Decimal,
        ceiling_field: Optional[str] = None,
    ) -> ModelT:
        """
        Add ``delta`` to ``field`` in a single UPDATE statement and commit.

        When ``ceiling_field`` is given the result is capped at that column's
        value within the same statement.
        """
        column = getattr(self.model, field)
        new_value = column + delta
        if ceiling_field is not None:
            ceiling = getattr(self.model, ceiling_field)
            new_value = case((column + delta > ceiling, ceiling), else_=column + delta)

        statement = (
            update(self.model)
            .where(self.model.id == entity_id)
            .values({field: new_value})
            .execution_options(synchronize_session=False)
        )

        try:
            result = self.db.execute(statement)
            if result.rowcount == 0:
                raise NotFoundError(f"{self.model.__name__} with id {entity_id} not found")
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        entity = self.db.get(self.model, entity_id)
        self.db.refresh(entity)
        return entity
