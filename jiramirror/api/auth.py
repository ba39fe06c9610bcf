"""OAuth authorization flow endpoints"""
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel

from jiramirror.api.deps import get_auth_states, get_tokens
from jiramirror.errors import ExchangeFailed, JiraApiError
from jiramirror.security import AuthStateRegistry
from jiramirror.services.jira_client import JiraClient
from jiramirror.services.token_manager import TokenLifecycleManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class AuthStartRequest(BaseModel):
    account_name: Optional[str] = None
    account_email: Optional[str] = None
    jira_domain: Optional[str] = None


class AuthStartResponse(BaseModel):
    authorization_url: str
    state: str


@router.post("/start", response_model=AuthStartResponse)
def start_authorization(
    info: Optional[AuthStartRequest] = Body(None),
    tokens: TokenLifecycleManager = Depends(get_tokens),
    states: AuthStateRegistry = Depends(get_auth_states),
):
    """Begin an authorization; the returned URL sends the user to Atlassian"""
    if not tokens.settings.jira_client_id:
        raise HTTPException(status_code=500, detail="JIRA_CLIENT_ID is not configured")
    state = states.issue(info.model_dump() if info else None)
    return AuthStartResponse(authorization_url=tokens.build_authorization_url(state), state=state)


def _site_info(tokens: TokenLifecycleManager, access_token: str) -> dict:
    """Best-effort lookup of the first accessible site and the user's profile."""
    s = tokens.settings
    client = JiraClient(access_token, api_base_url=s.jira_api_base_url, timeout=s.request_timeout_seconds)
    info = {}
    try:
        resources = client.get_accessible_resources()
        if resources:
            site = resources[0]
            info["cloud_id"] = site.get("id")
            if site.get("url"):
                info["jira_domain"] = site["url"].replace("https://", "").rstrip("/")
            info["account_name"] = site.get("name")
            me = client.for_site(site["id"]).get_myself()
            info["account_email"] = me.get("emailAddress")
            if me.get("displayName"):
                info["account_name"] = me["displayName"]
    except (JiraApiError, KeyError) as e:
        logger.warning(f"Could not look up Jira site details after authorization: {e}")
    return info


@router.get("/callback")
def authorization_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    tokens: TokenLifecycleManager = Depends(get_tokens),
    states: AuthStateRegistry = Depends(get_auth_states),
):
    """Exchange the authorization code and store the new account"""
    if error:
        raise HTTPException(status_code=400, detail=f"Authorization denied: {error}")
    typed_info = states.consume(state)
    if typed_info is None:
        raise HTTPException(status_code=400, detail="Invalid or expired state parameter")
    if not code:
        raise HTTPException(status_code=400, detail="Missing authorization code")

    try:
        token_set = tokens.exchange_authorization_code(code)
    except ExchangeFailed as e:
        raise HTTPException(status_code=400, detail=e.message)

    # What the user typed wins over what Jira reports.
    account_info = _site_info(tokens, token_set.access_token)
    account_info.update(typed_info)
    account_id = tokens.store_tokens("web-auth", token_set, account_info)
    account = tokens.get_account(account_id)
    return {
        "success": True,
        "account_id": account_id,
        "account_name": account.account_name,
        "is_primary": account.is_primary,
        "has_refresh_token": bool(token_set.refresh_token),
        "expires_at": token_set.expires_at,
    }
