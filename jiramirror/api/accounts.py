"""Account management endpoints"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from jiramirror.api.deps import get_tokens
from jiramirror.errors import NoRefreshCapability, RefreshFailed
from jiramirror.services.token_manager import TokenLifecycleManager

router = APIRouter(prefix="/api/accounts", tags=["accounts"])


class AccountResponse(BaseModel):
    id: int
    label: str
    account_name: Optional[str] = None
    account_email: Optional[str] = None
    jira_domain: Optional[str] = None
    cloud_id: Optional[str] = None
    expires_at: Optional[datetime] = None
    last_refresh_at: Optional[datetime] = None
    refresh_failures: int = 0
    is_active: bool
    is_primary: bool
    created_at: Optional[datetime] = None
    credential_state: Optional[str] = None

    class Config:
        from_attributes = True


def _response(tokens: TokenLifecycleManager, account) -> AccountResponse:
    data = AccountResponse.model_validate(account)
    data.credential_state = tokens.state_of(account).value
    return data


@router.get("", response_model=List[AccountResponse])
def list_accounts(active_only: bool = False, tokens: TokenLifecycleManager = Depends(get_tokens)):
    """List accounts, primary first"""
    return [_response(tokens, a) for a in tokens.list_accounts(active_only=active_only)]


@router.get("/current", response_model=AccountResponse)
def current_account(tokens: TokenLifecycleManager = Depends(get_tokens)):
    """The primary account"""
    account = tokens.primary_account()
    if account is None:
        raise HTTPException(status_code=404, detail="No primary account configured")
    return _response(tokens, account)


@router.post("/{account_id}/set-primary")
def set_primary(account_id: int, tokens: TokenLifecycleManager = Depends(get_tokens)):
    """Make an active account the primary one"""
    try:
        tokens.set_primary(account_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True, "account_id": account_id}


@router.delete("/{account_id}")
def deactivate_account(account_id: int, tokens: TokenLifecycleManager = Depends(get_tokens)):
    """Deactivate an account (its mirrored data is kept)"""
    try:
        tokens.deactivate(account_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True, "account_id": account_id}


@router.post("/{account_id}/refresh-token")
def refresh_token(account_id: int, tokens: TokenLifecycleManager = Depends(get_tokens)):
    """Force a token refresh now"""
    try:
        token_set = tokens.refresh(account_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except NoRefreshCapability as e:
        return {"success": False, "requiresReauth": True, "message": e.message}
    except RefreshFailed as e:
        account = tokens.get_account(account_id)
        return {
            "success": False,
            "requiresReauth": not account.is_active,
            "message": e.message,
            "refresh_failures": account.refresh_failures,
        }
    return {"success": True, "requiresReauth": False, "expires_at": token_set.expires_at}
