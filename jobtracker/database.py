"""
Database schema and connection management.

Uses SQLite with SQLAlchemy for job and tag storage.
"""

from pathlib import Path

from sqlalchemy import (
    JSON,
    BigInteger,
    Column,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

Base = declarative_base()


class JobRow(Base):
    """Job application row. Tags are embedded as value copies."""

    __tablename__ = "jobs"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    company = Column(String, nullable=False, index=True)
    location = Column(String, nullable=False)
    application_date = Column(String, nullable=False, index=True)  # YYYY-MM-DD
    status = Column(String, nullable=False, index=True)
    notes = Column(Text, nullable=False, default="")
    tags = Column(JSON, nullable=False, default=list)
    created_at = Column(BigInteger, nullable=False)  # epoch ms
    updated_at = Column(BigInteger, nullable=False)

    # Deleting a job deletes its images
    images = relationship(
        "ImageRow",
        back_populates="job",
        order_by="ImageRow.position",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<JobRow {self.id} - {self.title}>"


class ImageRow(Base):
    """Image attached to a job; ``position`` keeps upload order."""

    __tablename__ = "job_images"

    job_id = Column(String, ForeignKey("jobs.id", ondelete="CASCADE"), primary_key=True)
    id = Column(String, primary_key=True)
    position = Column(Integer, nullable=False)
    name = Column(String, nullable=False)
    data = Column(Text, nullable=False)
    created_at = Column(BigInteger, nullable=False)

    job = relationship("JobRow", back_populates="images")


class TagRow(Base):
    __tablename__ = "tags"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    color = Column(String, nullable=False)


def get_engine(db_path: Path) -> Engine:
    return create_engine(f"sqlite:///{db_path}", future=True)


def init_database(db_path: Path) -> Engine:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file

    Returns:
        Engine bound to the database
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(db_path)
    Base.metadata.create_all(engine)
    return engine


def get_session(db_path: Path):
    """
    Get database session.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    Session = sessionmaker(bind=get_engine(db_path), future=True)
    return Session()
