"""Error taxonomy for the credential lifecycle and the sync engine"""

from typing import Optional


class JiraMirrorError(Exception):
    """Base class for all service errors"""

    def __init__(self, message: str, details: Optional[dict] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class AccountNotFound(JiraMirrorError, ValueError):
    """Raised when an account id does not exist"""

    def __init__(self, account_id: int) -> None:
        super().__init__(f"Account {account_id} not found")
        self.account_id = account_id


class CredentialUnavailable(JiraMirrorError):
    """No usable credential for the account; a sync run cannot start."""

    def __init__(self, account_id: int, reason: str) -> None:
        super().__init__(f"Credential unavailable for account {account_id}: {reason}")
        self.account_id = account_id
        self.reason = reason


class NoRefreshCapability(JiraMirrorError):
    """The account has no refresh token; re-authorization is required."""

    def __init__(self, account_id: int) -> None:
        super().__init__(
            f"No refresh token available for account {account_id} - re-authentication required"
        )
        self.account_id = account_id


class RefreshFailed(JiraMirrorError):
    """The token endpoint rejected (or never answered) a refresh attempt."""

    def __init__(self, account_id: int, reason: str, status_code: Optional[int] = None) -> None:
        super().__init__(f"Token refresh failed for account {account_id}: {reason}")
        self.account_id = account_id
        self.reason = reason
        self.status_code = status_code


class ExchangeFailed(JiraMirrorError):
    """Authorization-code exchange returned a non-2xx response."""

    def __init__(self, status_code: Optional[int], body: str = "") -> None:
        super().__init__(f"Token exchange failed: {status_code} {body}".strip())
        self.status_code = status_code
        self.body = body


class JiraApiError(JiraMirrorError):
    """Non-2xx response (or transport failure when status_code is None) from Jira."""

    def __init__(self, status_code: Optional[int], body: str = "", url: str = "") -> None:
        super().__init__(f"Jira API error {status_code}: {body}".strip())
        self.status_code = status_code
        self.body = body
        self.url = url

    @property
    def response_code(self) -> Optional[int]:
        return self.status_code


class EntityFetchFailed(JiraMirrorError):
    """Fetching one entity collection failed; scoped to that entity type."""

    def __init__(self, entity_type: str, reason: str, status_code: Optional[int] = None) -> None:
        super().__init__(f"Failed to fetch {entity_type}: {reason}")
        self.entity_type = entity_type
        self.reason = reason
        self.status_code = status_code

    @property
    def forbidden(self) -> bool:
        return self.status_code == 403


class NormalizationSkipped(JiraMirrorError):
    """A raw record could not be turned into an entity record (missing natural key)."""

    def __init__(self, entity_type: str, reason: str = "missing natural key") -> None:
        super().__init__(f"Skipped {entity_type} record: {reason}")
        self.entity_type = entity_type
        self.reason = reason


class SyncAlreadyInProgress(JiraMirrorError):
    """Another sync run holds the lease for this account."""

    def __init__(self, account_id: int) -> None:
        super().__init__(f"A sync is already running for account {account_id}")
        self.account_id = account_id
