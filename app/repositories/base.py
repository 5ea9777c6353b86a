"""
Base repository class for data access layer.

This is the pipeline's only contract with storage: select by filter, upsert
with an explicit natural conflict key, delete by filter.

Example:
    class SyncLogRepository(BaseRepository[SyncLog]):
        def latest_success(self, sync_type: str) -> Optional[SyncLog]:
            return self.query().filter(...).first()
"""
from typing import TypeVar, Generic, Type, Optional, List, Any, Dict, Sequence
from sqlalchemy import desc
from sqlalchemy.orm import Query, Session

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Base repository class providing common data access methods.

    Attributes:
        model_type: The SQLAlchemy model class this repository manages
        db: The database session
    """

    def __init__(self, model_type: Type[T], db: Session):
        self.model_type = model_type
        self.db = db

    # ========================================================================
    # Reads
    # ========================================================================

    def query(self) -> Query:
        """Get a new query object for this model."""
        return self.db.query(self.model_type)

    def find_by(self, order_by: Optional[str] = None, limit: Optional[int] = None, **filters) -> List[T]:
        """
        Select records by equality filters.

        Args:
            order_by: Column name to order by (prefix with '-' for descending)
            limit: Maximum number of records to return
            **filters: column=value equality filters

        Returns:
            List of matching records
        """
        query = self.db.query(self.model_type).filter_by(**filters)

        if order_by:
            if order_by.startswith('-'):
                query = query.order_by(desc(getattr(self.model_type, order_by[1:])))
            else:
                query = query.order_by(getattr(self.model_type, order_by))

        if limit is not None:
            query = query.limit(limit)

        return query.all()

    def find_one_by(self, **filters) -> Optional[T]:
        """Select the first record matching equality filters."""
        return self.db.query(self.model_type).filter_by(**filters).first()

    # ========================================================================
    # Writes
    # ========================================================================

    def create(self, **kwargs) -> T:
        """
        Create a new record.

        Returns:
            The created record (not yet committed to database)
        """
        instance = self.model_type(**kwargs)
        self.db.add(instance)
        return instance

    def create_many(self, items: List[Dict[str, Any]]) -> List[T]:
        """Create multiple records (not yet committed)."""
        instances = [self.model_type(**item) for item in items]
        self.db.add_all(instances)
        return instances

    def upsert(self, conflict_keys: Sequence[str], values: Dict[str, Any]) -> T:
        """
        Insert-or-update keyed on a natural composite key.

        The record whose ``conflict_keys`` columns equal those in ``values`` is
        updated in place; otherwise a new record is inserted. Repeated calls with
        the same key never create a second row.

        Args:
            conflict_keys: Column names forming the natural key
            values: Full column values, including the key columns

        Returns:
            The updated or created record (flushed, not committed)
        """
        key = {k: values[k] for k in conflict_keys}
        instance = self.db.query(self.model_type).filter_by(**key).first()

        if instance is None:
            instance = self.model_type(**values)
            self.db.add(instance)
        else:
            for field, value in values.items():
                if field not in key:
                    setattr(instance, field, value)

        self.db.flush()
        return instance

    def delete_where(self, *criterion, **filters) -> int:
        """
        Delete records matching filters.

        Returns:
            Number of rows deleted
        """
        query = self.db.query(self.model_type)
        if filters:
            query = query.filter_by(**filters)
        if criterion:
            query = query.filter(*criterion)
        return query.delete(synchronize_session="fetch")

    # ========================================================================
    # Transaction control
    # ========================================================================

    def save(self) -> None:
        """Commit pending changes to the database."""
        self.db.commit()
