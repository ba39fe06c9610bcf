"""Application configuration"""

from pydantic_settings import BaseSettings


DEFAULT_JIRA_SCOPES = (
    "read:jira-work,read:jira-user,manage:jira-project,manage:jira-configuration,"
    "write:jira-work,manage:jira-webhook,manage:jira-data-provider,offline_access"
)


class Settings(BaseSettings):
    """Application settings"""

    # Database
    database_url: str = "sqlite:///./jiramirror.db"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Jira OAuth (3LO) app
    jira_client_id: str = ""
    jira_client_secret: str = ""
    jira_redirect_uri: str = "http://localhost:8000/auth/callback"
    jira_auth_url: str = "https://auth.atlassian.com/authorize"
    jira_token_url: str = "https://auth.atlassian.com/oauth/token"
    jira_api_base_url: str = "https://api.atlassian.com"
    jira_audience: str = "api.atlassian.com"
    # Comma-separated; offline_access is what makes Atlassian hand out refresh tokens.
    jira_scopes: str = DEFAULT_JIRA_SCOPES

    # Token lifecycle
    token_refresh_buffer_seconds: int = 300
    max_refresh_failures: int = 3
    # When an account has no refresh token and its access token has expired,
    # the refresh cycle deactivates it (a fresh authorization is then required).
    deactivate_without_refresh_token: bool = True
    auth_state_ttl_seconds: int = 600

    # Scheduler
    scheduler_enabled: bool = True
    refresh_interval_minutes: int = 30
    sync_interval_minutes: int = 60
    health_check_interval_minutes: int = 5

    # Sync
    issue_page_size: int = 100
    # Offset-paginated issue search (startAt/maxResults in the POST body). Atlassian is
    # retiring /search in favour of /search/jql; point this at a compatible endpoint.
    jira_issue_search_path: str = "/search"
    request_timeout_seconds: float = 30.0

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def scope_list(self) -> list[str]:
        return [s.strip() for s in (self.jira_scopes or "").split(",") if s.strip()]


settings = Settings()
