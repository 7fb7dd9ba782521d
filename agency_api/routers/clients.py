"""Client endpoints, manager assignment and client accounts."""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from agency_api.auth.session_auth import Principal, get_current_principal
from agency_api.db.session import get_db
from agency_api.schemas import (
    AccountCreate,
    AccountOut,
    AssignUserRequest,
    ClientCreate,
    ClientDetail,
    ClientListItem,
    ClientOut,
    ClientUpdate,
    MessageResponse,
)
from agency_api.services import clients

router = APIRouter(prefix="/api/v1/clients", tags=["clients"])


@router.get("", response_model=list[ClientListItem])
def list_clients(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    """Clients visible to the caller: all for owners, assigned ones for managers."""
    return clients.list_clients(db, principal)


@router.post("", response_model=ClientOut, status_code=status.HTTP_201_CREATED)
def create_client(
    body: ClientCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Create a client. The slug defaults to the name, lower-cased with
    anything outside [a-z0-9-] replaced by '-'.

    Raises:
        Conflict 409: Slug already taken
    """
    return clients.create_client(db, principal, body)


@router.get("/{client_id}", response_model=ClientDetail)
def get_client(client_id: str, principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    return clients.get_client(db, principal, client_id)


@router.put("/{client_id}", response_model=ClientOut)
def update_client(
    client_id: str,
    body: ClientUpdate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return clients.update_client(db, principal, client_id, body)


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_client(client_id: str, principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    """Delete a client with all of its accounts, websites, campaigns,
    time entries and change-log history."""
    clients.delete_client(db, principal, client_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{client_id}/assign-manager", response_model=MessageResponse)
def assign_manager(
    client_id: str,
    body: AssignUserRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Assign a manager. Repeating an existing assignment succeeds as a no-op."""
    created = clients.assign_manager(db, principal, client_id, body.user_id)
    return {"message": "Manager assigned" if created else "Manager already assigned"}


@router.delete("/{client_id}/remove-manager/{user_id}", response_model=MessageResponse)
def remove_manager(
    client_id: str,
    user_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    clients.remove_manager(db, principal, client_id, user_id)
    return {"message": "Manager removed successfully"}


@router.get("/{client_id}/accounts", response_model=list[AccountOut])
def list_accounts(client_id: str, principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    return clients.list_accounts(db, principal, client_id)


@router.post("/{client_id}/accounts", response_model=AccountOut, status_code=status.HTTP_201_CREATED)
def create_account(
    client_id: str,
    body: AccountCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return clients.create_account(db, principal, client_id, body)
