"""Account-global Jira reference data (projects, classification, people, config)"""

from sqlalchemy import Boolean, Column, Integer, String, Text

from jiramirror.models.base import Base
from jiramirror.models.entity import EntityMixin


class JiraProject(EntityMixin, Base):
    __tablename__ = "jira_projects"
    __natural_key__ = "project_key"

    project_key = Column(String, nullable=False)
    project_id = Column(String, nullable=True)
    name = Column(String, nullable=True)
    project_type = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    lead_account_id = Column(String, nullable=True)
    lead_display_name = Column(String, nullable=True)
    category_name = Column(String, nullable=True)
    url = Column(String, nullable=True)
    is_private = Column(Boolean, nullable=True)


class JiraIssueType(EntityMixin, Base):
    __tablename__ = "jira_issue_types"
    __natural_key__ = "issue_type_id"

    issue_type_id = Column(String, nullable=False)
    name = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    icon_url = Column(String, nullable=True)
    subtask = Column(Boolean, nullable=True)
    hierarchy_level = Column(Integer, nullable=True)


class JiraPriority(EntityMixin, Base):
    __tablename__ = "jira_priorities"
    __natural_key__ = "priority_id"

    priority_id = Column(String, nullable=False)
    name = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    icon_url = Column(String, nullable=True)
    status_color = Column(String, nullable=True)


class JiraStatus(EntityMixin, Base):
    __tablename__ = "jira_statuses"
    __natural_key__ = "status_id"

    status_id = Column(String, nullable=False)
    name = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    icon_url = Column(String, nullable=True)
    status_category = Column(String, nullable=True)


class JiraResolution(EntityMixin, Base):
    __tablename__ = "jira_resolutions"
    __natural_key__ = "resolution_id"

    resolution_id = Column(String, nullable=False)
    name = Column(String, nullable=True)
    description = Column(Text, nullable=True)


class JiraUser(EntityMixin, Base):
    __tablename__ = "jira_users"
    __natural_key__ = "jira_account_id"

    # Jira's accountId; `account_id` is the owning integration.
    jira_account_id = Column(String, nullable=False)
    account_type = Column(String, nullable=True)
    display_name = Column(String, nullable=True)
    email_address = Column(String, nullable=True)
    active = Column(Boolean, nullable=True)
    time_zone = Column(String, nullable=True)
    locale = Column(String, nullable=True)


class JiraGroup(EntityMixin, Base):
    __tablename__ = "jira_groups"
    __natural_key__ = "group_id"

    group_id = Column(String, nullable=False)
    name = Column(String, nullable=True)


class JiraField(EntityMixin, Base):
    __tablename__ = "jira_fields"
    __natural_key__ = "field_id"

    field_id = Column(String, nullable=False)
    name = Column(String, nullable=True)
    field_type = Column(String, nullable=True)
    is_custom = Column(Boolean, nullable=True)
    orderable = Column(Boolean, nullable=True)
    navigable = Column(Boolean, nullable=True)
    searchable = Column(Boolean, nullable=True)


class JiraLabel(EntityMixin, Base):
    __tablename__ = "jira_labels"
    __natural_key__ = "label_name"

    label_name = Column(String, nullable=False)


class JiraWorkflow(EntityMixin, Base):
    __tablename__ = "jira_workflows"
    __natural_key__ = "workflow_id"

    workflow_id = Column(String, nullable=False)
    name = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    is_default = Column(Boolean, nullable=True)


class JiraDashboard(EntityMixin, Base):
    __tablename__ = "jira_dashboards"
    __natural_key__ = "dashboard_id"

    dashboard_id = Column(String, nullable=False)
    name = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    owner_account_id = Column(String, nullable=True)
    view_url = Column(String, nullable=True)
    is_favourite = Column(Boolean, nullable=True)


class JiraFilter(EntityMixin, Base):
    __tablename__ = "jira_filters"
    __natural_key__ = "filter_id"

    filter_id = Column(String, nullable=False)
    name = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    jql = Column(Text, nullable=True)
    owner_account_id = Column(String, nullable=True)
    view_url = Column(String, nullable=True)
    search_url = Column(String, nullable=True)


class JiraPermission(EntityMixin, Base):
    __tablename__ = "jira_permissions"
    __natural_key__ = "permission_key"

    permission_key = Column(String, nullable=False)
    name = Column(String, nullable=True)
    type = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    have_permission = Column(Boolean, nullable=True)
