"""OAuth credential lifecycle for Jira accounts"""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlencode

import requests

from jiramirror.config import Settings, settings as default_settings
from jiramirror.errors import (
    AccountNotFound,
    CredentialUnavailable,
    ExchangeFailed,
    JiraApiError,
    NoRefreshCapability,
    RefreshFailed,
)
from jiramirror.models import Account
from jiramirror.models.base import Store, utcnow

logger = logging.getLogger(__name__)


class CredentialState(str, enum.Enum):
    """Where an account's credential sits in its lifecycle"""
    VALID = "valid"
    NEAR_EXPIRY = "near_expiry"
    EXPIRED = "expired"
    REAUTH_REQUIRED = "reauth_required"
    DEACTIVATED = "deactivated"


@dataclass(frozen=True)
class TokenSet:
    access_token: str
    refresh_token: Optional[str]
    expires_at: datetime


@dataclass(frozen=True)
class Credential:
    """A token guaranteed valid for at least the refresh buffer when handed out"""
    account_id: int
    access_token: str
    expires_at: Optional[datetime]
    cloud_id: Optional[str] = None


class TokenLifecycleManager:
    """Owns every credential state transition.

    Refresh failures are never retried inside a call; the next refresh cycle
    (or the next sync) decides whether to try again. Deactivation after
    ``max_refresh_failures`` consecutive failures is a one-way latch: only a
    fresh authorization (a new account row) brings the integration back.
    """

    def __init__(
        self,
        store: Store,
        settings: Optional[Settings] = None,
        *,
        http: Optional[requests.Session] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.settings = settings or default_settings
        self.http = http or requests.Session()
        self._clock = clock or utcnow

    @property
    def buffer(self) -> timedelta:
        return timedelta(seconds=self.settings.token_refresh_buffer_seconds)

    def now(self) -> datetime:
        return self._clock()

    # ------------------------------------------------------------------
    # Pure predicates
    # ------------------------------------------------------------------

    def needs_refresh(self, account: Any, now: Optional[datetime] = None) -> bool:
        """True when the token is missing an expiry or expires within the buffer."""
        expires_at = getattr(account, "expires_at", None)
        if expires_at is None:
            return True
        now = now or self.now()
        return expires_at <= now + self.buffer

    def state_of(self, account: Any, now: Optional[datetime] = None) -> CredentialState:
        if not getattr(account, "is_active", False):
            return CredentialState.DEACTIVATED
        now = now or self.now()
        if not self.needs_refresh(account, now):
            return CredentialState.VALID
        if not getattr(account, "refresh_token", None):
            return CredentialState.REAUTH_REQUIRED
        expires_at = getattr(account, "expires_at", None)
        if expires_at is None or expires_at <= now:
            return CredentialState.EXPIRED
        return CredentialState.NEAR_EXPIRY

    def token_status(self, account: Any, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Summary used by the accounts API and the token inspection script."""
        now = now or self.now()
        expires_at = getattr(account, "expires_at", None)
        seconds_left = int((expires_at - now).total_seconds()) if expires_at else None
        return {
            "state": self.state_of(account, now).value,
            "expires_at": expires_at,
            "seconds_until_expiry": seconds_left,
            "last_refresh_at": getattr(account, "last_refresh_at", None),
            "refresh_failures": getattr(account, "refresh_failures", 0) or 0,
            "has_refresh_token": bool(getattr(account, "refresh_token", None)),
        }

    # ------------------------------------------------------------------
    # Authorization server calls
    # ------------------------------------------------------------------

    def build_authorization_url(self, state: str) -> str:
        params = {
            "audience": self.settings.jira_audience,
            "client_id": self.settings.jira_client_id,
            "scope": " ".join(self.settings.scope_list),
            "redirect_uri": self.settings.jira_redirect_uri,
            "state": state,
            "response_type": "code",
            "prompt": "consent",
        }
        return f"{self.settings.jira_auth_url}?{urlencode(params)}"

    def _token_request(self, data: Dict[str, str]) -> Dict[str, Any]:
        """POST to the token endpoint; JiraApiError on anything but a usable 2xx body."""
        body = dict(data)
        body["client_id"] = self.settings.jira_client_id
        body["client_secret"] = self.settings.jira_client_secret
        url = self.settings.jira_token_url
        try:
            response = self.http.post(
                url,
                json=body,
                headers={"Accept": "application/json"},
                timeout=self.settings.request_timeout_seconds,
            )
        except requests.exceptions.RequestException as e:
            raise JiraApiError(None, str(e), url=url) from e

        if not response.ok:
            raise JiraApiError(response.status_code, response.text[:500], url=url)
        try:
            payload = response.json()
        except ValueError as e:
            raise JiraApiError(response.status_code, "Malformed token response", url=url) from e
        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise JiraApiError(response.status_code, "Token response has no access_token", url=url)
        return payload

    def _token_set(self, payload: Dict[str, Any], fallback_refresh: Optional[str] = None) -> TokenSet:
        try:
            expires_in = int(payload.get("expires_in") or 0)
        except (TypeError, ValueError):
            expires_in = 0
        return TokenSet(
            access_token=payload["access_token"],
            # Atlassian rotates refresh tokens; keep the old one if none came back.
            refresh_token=payload.get("refresh_token") or fallback_refresh,
            expires_at=self.now() + timedelta(seconds=expires_in),
        )

    def exchange_authorization_code(self, code: str) -> TokenSet:
        """Exchange an authorization code for tokens (one-shot)."""
        logger.info("Exchanging authorization code for tokens")
        try:
            payload = self._token_request(
                {
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": self.settings.jira_redirect_uri,
                }
            )
        except JiraApiError as e:
            logger.error(f"Token exchange failed: {e.status_code}")
            raise ExchangeFailed(e.status_code, e.body) from e
        tokens = self._token_set(payload)
        if not tokens.refresh_token:
            logger.warning("Authorization server returned no refresh token (offline_access missing?)")
        return tokens

    def refresh(self, account_id: int) -> TokenSet:
        """Refresh one account's access token.

        Raises NoRefreshCapability when there is no refresh token and
        RefreshFailed for every other failure. Each failure is persisted
        before raising; reaching ``max_refresh_failures`` deactivates the
        account in the same commit.
        """
        db = self.store.session()
        try:
            account = db.get(Account, account_id)
            if account is None:
                raise AccountNotFound(account_id)
            if not account.refresh_token:
                logger.warning(f"No refresh token available for account {account_id}")
                raise NoRefreshCapability(account_id)
            if not account.is_active:
                raise RefreshFailed(account_id, "account is deactivated; re-authorization required")

            try:
                payload = self._token_request(
                    {"grant_type": "refresh_token", "refresh_token": account.refresh_token}
                )
            except JiraApiError as e:
                account.refresh_failures = (account.refresh_failures or 0) + 1
                if account.refresh_failures >= self.settings.max_refresh_failures:
                    account.is_active = False
                    account.is_primary = False
                    logger.error(
                        f"Deactivated account {account_id} after "
                        f"{account.refresh_failures} consecutive refresh failures"
                    )
                db.commit()
                logger.error(f"Token refresh failed for account {account_id}: {e.status_code}")
                raise RefreshFailed(account_id, e.body or str(e), e.status_code) from e

            tokens = self._token_set(payload, fallback_refresh=account.refresh_token)
            account.access_token = tokens.access_token
            account.refresh_token = tokens.refresh_token
            account.expires_at = tokens.expires_at
            account.last_refresh_at = self.now()
            account.refresh_failures = 0
            db.commit()
            logger.info(f"Access token refreshed for account {account_id}")
            return tokens
        finally:
            db.close()

    # ------------------------------------------------------------------
    # Account records
    # ------------------------------------------------------------------

    def store_tokens(
        self, label: str, tokens: TokenSet, account_info: Optional[Dict[str, Any]] = None
    ) -> int:
        """Persist a freshly authorized account and return its id.

        The first account on an installation with no active accounts becomes primary.
        """
        info = account_info or {}
        with self.store.session_scope() as db:
            is_first = db.query(Account).filter(Account.is_active == True).count() == 0  # noqa: E712
            account = Account(
                label=label or "web-auth",
                account_name=info.get("account_name") or "New Account",
                account_email=info.get("account_email"),
                jira_domain=info.get("jira_domain"),
                cloud_id=info.get("cloud_id"),
                access_token=tokens.access_token,
                refresh_token=tokens.refresh_token,
                expires_at=tokens.expires_at,
                last_refresh_at=self.now(),
                refresh_failures=0,
                is_active=True,
                is_primary=is_first,
            )
            db.add(account)
            db.flush()
            account_id = account.id
        logger.info(
            f"Stored tokens for account {account_id} ({'PRIMARY' if is_first else 'SECONDARY'})"
        )
        return account_id

    def get_account(self, account_id: int) -> Account:
        db = self.store.session()
        try:
            account = db.get(Account, account_id)
            if account is None:
                raise AccountNotFound(account_id)
            return account
        finally:
            db.close()

    def list_accounts(self, active_only: bool = False) -> List[Account]:
        db = self.store.session()
        try:
            query = db.query(Account)
            if active_only:
                query = query.filter(Account.is_active == True)  # noqa: E712
            return query.order_by(Account.is_primary.desc(), Account.created_at.desc()).all()
        finally:
            db.close()

    def primary_account(self) -> Optional[Account]:
        db = self.store.session()
        try:
            return (
                db.query(Account)
                .filter(Account.is_primary == True, Account.is_active == True)  # noqa: E712
                .order_by(Account.created_at.desc())
                .first()
            )
        finally:
            db.close()

    def set_primary(self, account_id: int) -> None:
        with self.store.session_scope() as db:
            account = db.get(Account, account_id)
            if account is None or not account.is_active:
                raise AccountNotFound(account_id)
            db.query(Account).filter(Account.id != account_id).update(
                {Account.is_primary: False}, synchronize_session=False
            )
            account.is_primary = True
        logger.info(f"Account {account_id} set as primary")

    def deactivate(self, account_id: int) -> None:
        with self.store.session_scope() as db:
            account = db.get(Account, account_id)
            if account is None:
                raise AccountNotFound(account_id)
            account.is_active = False
            account.is_primary = False
        logger.info(f"Account {account_id} deactivated")

    # ------------------------------------------------------------------
    # Callers
    # ------------------------------------------------------------------

    def ensure_valid(self, account_id: int) -> Credential:
        """Return a credential valid past the buffer, refreshing if needed."""
        db = self.store.session()
        try:
            account = db.get(Account, account_id)
        finally:
            db.close()

        if account is None or not account.is_active:
            raise CredentialUnavailable(account_id, "no active account")
        if not account.access_token:
            raise CredentialUnavailable(account_id, "no access token")

        if not self.needs_refresh(account):
            return Credential(account.id, account.access_token, account.expires_at, account.cloud_id)

        try:
            tokens = self.refresh(account_id)
        except (NoRefreshCapability, RefreshFailed) as e:
            raise CredentialUnavailable(account_id, e.message) from e
        return Credential(account.id, tokens.access_token, tokens.expires_at, account.cloud_id)

    def refresh_due_accounts(self) -> Dict[int, str]:
        """One refresh cycle over every active account. Returns outcome per account."""
        outcomes: Dict[int, str] = {}
        now = self.now()
        for account in self.list_accounts(active_only=True):
            if not self.needs_refresh(account, now):
                outcomes[account.id] = "valid"
                continue
            try:
                self.refresh(account.id)
                outcomes[account.id] = "refreshed"
            except NoRefreshCapability:
                expired = account.expires_at is None or account.expires_at <= now
                if expired and self.settings.deactivate_without_refresh_token:
                    self.deactivate(account.id)
                    outcomes[account.id] = "deactivated"
                else:
                    outcomes[account.id] = "reauth_required"
            except RefreshFailed as e:
                logger.error(f"Failed to refresh tokens for account {account.id}: {e.reason}")
                outcomes[account.id] = "failed"
        return outcomes
