"""Account endpoints and the websites beneath an account."""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from agency_api.auth.session_auth import Principal, get_current_principal
from agency_api.db.session import get_db
from agency_api.schemas import AccountOut, AccountUpdate, WebsiteCreate, WebsiteOut
from agency_api.services import accounts

router = APIRouter(prefix="/api/v1/accounts", tags=["accounts"])


@router.get("/{account_id}", response_model=AccountOut)
def get_account(account_id: str, principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    return accounts.get_account(db, principal, account_id)


@router.put("/{account_id}", response_model=AccountOut)
def update_account(
    account_id: str,
    body: AccountUpdate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return accounts.update_account(db, principal, account_id, body)


@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_account(account_id: str, principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    accounts.delete_account(db, principal, account_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{account_id}/websites", response_model=list[WebsiteOut])
def list_websites(account_id: str, principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    return accounts.list_websites(db, principal, account_id)


@router.post("/{account_id}/websites", response_model=WebsiteOut, status_code=status.HTTP_201_CREATED)
def create_website(
    account_id: str,
    body: WebsiteCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Add a website to an account. Writes a system change-log entry."""
    return accounts.create_website(db, principal, account_id, body)
