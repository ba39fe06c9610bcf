"""Account (Jira integration) model"""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from jiramirror.models.base import Base, utcnow


class Account(Base):
    """One authorized connection to a Jira Cloud site, with its credential"""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    label = Column(String, nullable=False, default="web-auth")
    account_name = Column(String, nullable=True)
    account_email = Column(String, nullable=True)
    jira_domain = Column(String, nullable=True)
    # Jira Cloud site id, resolved from accessible-resources on first sync.
    cloud_id = Column(String, nullable=True)

    # Credential
    access_token = Column(Text, nullable=True)
    refresh_token = Column(Text, nullable=True)
    expires_at = Column(DateTime, nullable=True)
    last_refresh_at = Column(DateTime, nullable=True)
    refresh_failures = Column(Integer, nullable=False, default=0)

    is_active = Column(Boolean, nullable=False, default=True)
    is_primary = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Account(id={self.id}, name='{self.account_name}', active={self.is_active})>"
