"""Issues and issue-scoped sub-resources"""

from sqlalchemy import BigInteger, Column, Float, Integer, String, Text

from jiramirror.models.base import Base
from jiramirror.models.entity import EntityMixin


class JiraIssue(EntityMixin, Base):
    """Issue with denormalized status/priority/type names.

    Classification entities don't have to be synced first; the names travel
    with the issue.
    """

    __tablename__ = "jira_issues"
    __natural_key__ = "issue_key"

    issue_key = Column(String, nullable=False)
    issue_id = Column(String, nullable=True)
    project_key = Column(String, nullable=True, index=True)
    summary = Column(Text, nullable=True)

    status_id = Column(String, nullable=True)
    status_name = Column(String, nullable=True)
    priority_id = Column(String, nullable=True)
    priority_name = Column(String, nullable=True)
    issue_type_id = Column(String, nullable=True)
    issue_type_name = Column(String, nullable=True)
    resolution_id = Column(String, nullable=True)
    resolution_name = Column(String, nullable=True)

    assignee_account_id = Column(String, nullable=True)
    assignee_display_name = Column(String, nullable=True)
    reporter_account_id = Column(String, nullable=True)
    reporter_display_name = Column(String, nullable=True)

    # Soft references, may point at issues we never synced.
    parent_key = Column(String, nullable=True)
    epic_key = Column(String, nullable=True)
    story_points = Column(Float, nullable=True)

    created = Column(String, nullable=True)
    updated = Column(String, nullable=True)


class JiraComment(EntityMixin, Base):
    __tablename__ = "jira_comments"
    __natural_key__ = "comment_id"

    comment_id = Column(String, nullable=False)
    issue_key = Column(String, nullable=True, index=True)
    author_account_id = Column(String, nullable=True)
    author_display_name = Column(String, nullable=True)
    created = Column(String, nullable=True)
    updated = Column(String, nullable=True)


class JiraWorklog(EntityMixin, Base):
    __tablename__ = "jira_worklogs"
    __natural_key__ = "worklog_id"

    worklog_id = Column(String, nullable=False)
    issue_key = Column(String, nullable=True, index=True)
    author_account_id = Column(String, nullable=True)
    author_display_name = Column(String, nullable=True)
    time_spent = Column(String, nullable=True)
    time_spent_seconds = Column(Integer, nullable=True)
    started = Column(String, nullable=True)
    created = Column(String, nullable=True)
    updated = Column(String, nullable=True)


class JiraAttachment(EntityMixin, Base):
    __tablename__ = "jira_attachments"
    __natural_key__ = "attachment_id"

    attachment_id = Column(String, nullable=False)
    issue_key = Column(String, nullable=True, index=True)
    filename = Column(String, nullable=True)
    author_account_id = Column(String, nullable=True)
    author_display_name = Column(String, nullable=True)
    created = Column(String, nullable=True)
    size = Column(BigInteger, nullable=True)
    mime_type = Column(String, nullable=True)
    content_url = Column(String, nullable=True)


class JiraIssueLink(EntityMixin, Base):
    __tablename__ = "jira_issue_links"
    __natural_key__ = "link_id"

    link_id = Column(String, nullable=False)
    # The issue the link was read from; the same link shows up on both ends.
    issue_key = Column(String, nullable=True, index=True)
    outward_issue_key = Column(String, nullable=True)
    inward_issue_key = Column(String, nullable=True)
    link_type_id = Column(String, nullable=True)
    link_type_name = Column(String, nullable=True)
