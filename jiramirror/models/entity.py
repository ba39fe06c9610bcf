"""Columns shared by every mirrored Jira entity table"""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import declared_attr

from jiramirror.models.base import utcnow


class EntityMixin:
    """Owning account, raw payload and upsert timestamp.

    Subclasses set ``__natural_key__`` to the column holding Jira's identifier;
    ``(account_id, natural key)`` is unique per table.
    """

    __natural_key__: str = ""

    id = Column(Integer, primary_key=True, index=True)

    @declared_attr
    def account_id(cls):
        return Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)

    @declared_attr
    def __table_args__(cls):
        return (
            UniqueConstraint(
                "account_id",
                cls.__natural_key__,
                name=f"uq_{cls.__tablename__}_account_{cls.__natural_key__}",
            ),
        )

    # Full source representation, kept for fields we don't decompose.
    raw_data = Column(JSON, nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        key = getattr(self, self.__natural_key__, None)
        return f"<{type(self).__name__}(account_id={self.account_id}, key={key!r})>"
