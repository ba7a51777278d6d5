"""SQLite database for persisting machine pool status."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    DateTime,
    Integer,
    String,
    Text,
    create_engine,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    Session,
    mapped_column,
    sessionmaker,
)


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""

    pass


class MachinePoolStatusRecord(Base):
    """Database model for the conditions of a machine pool."""

    __tablename__ = "machine_pool_status"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pool_key: Mapped[str] = mapped_column(String(300), nullable=False, unique=True, index=True)
    conditions: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class Database:
    """Database connection and operations."""

    def __init__(self, database_url: str = "sqlite:///./machinepools.db"):
        """Initialize database connection."""
        self.engine = create_engine(database_url, echo=False)
        self.SessionLocal = sessionmaker(bind=self.engine)
        Base.metadata.create_all(self.engine)

    def get_session(self) -> Session:
        """Get a new database session."""
        return self.SessionLocal()

    def upsert_pool_status(self, pool_key: str, conditions: str) -> MachinePoolStatusRecord:
        """Create or replace the stored conditions of a pool."""
        with self.get_session() as session:
            record = session.query(MachinePoolStatusRecord).filter_by(pool_key=pool_key).first()
            if record is None:
                record = MachinePoolStatusRecord(pool_key=pool_key, conditions=conditions)
                session.add(record)
            else:
                record.conditions = conditions
                record.updated_at = datetime.now(timezone.utc)

            session.commit()
            session.refresh(record)
            return record

    def get_pool_status(self, pool_key: str) -> Optional[MachinePoolStatusRecord]:
        """Get the stored status of a pool."""
        with self.get_session() as session:
            return session.query(MachinePoolStatusRecord).filter_by(pool_key=pool_key).first()

    def delete_pool_status(self, pool_key: str) -> bool:
        """Delete the stored status of a pool."""
        with self.get_session() as session:
            record = session.query(MachinePoolStatusRecord).filter_by(pool_key=pool_key).first()
            if record is None:
                return False
            session.delete(record)
            session.commit()
            return True
