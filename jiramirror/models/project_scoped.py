"""Per-project Jira data (components, versions)"""

from sqlalchemy import Boolean, Column, String, Text

from jiramirror.models.base import Base
from jiramirror.models.entity import EntityMixin


class JiraComponent(EntityMixin, Base):
    __tablename__ = "jira_components"
    __natural_key__ = "component_id"

    component_id = Column(String, nullable=False)
    project_key = Column(String, nullable=True, index=True)
    name = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    lead_account_id = Column(String, nullable=True)
    assignee_type = Column(String, nullable=True)


class JiraVersion(EntityMixin, Base):
    __tablename__ = "jira_versions"
    __natural_key__ = "version_id"

    version_id = Column(String, nullable=False)
    project_key = Column(String, nullable=True, index=True)
    name = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    archived = Column(Boolean, nullable=True)
    released = Column(Boolean, nullable=True)
    start_date = Column(String, nullable=True)
    release_date = Column(String, nullable=True)
