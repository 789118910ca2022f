"""
SQLAlchemy ORM Models for the artifact store

One row per store key; a put replaces the whole row.
"""
from datetime import datetime, timezone
from sqlalchemy import String, LargeBinary, DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models"""
    pass


class Artifact(Base):
    """Stored artifact bytes with their HTTP metadata"""
    __tablename__ = "artifacts"

    key: Mapped[str] = mapped_column(String, primary_key=True)
    body: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    content_type: Mapped[str | None] = mapped_column(String, nullable=True)
    etag: Mapped[str] = mapped_column(String, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(timezone.utc))

    def __repr__(self) -> str:
        return f"<Artifact(key={self.key}, size={len(self.body)}, etag={self.etag})>"
