"""Contact list and contact request endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from spectr.models.contact import CONTACT_PENDING
from spectr.schemas.contact import ContactCreate, ContactRequestResponse, ContactResponse
from spectr.schemas.user import UserPublic

from ..dependencies import CurrentUserDep, GatewayDep, RepoDep

router = APIRouter(prefix="/contacts", tags=["contacts"])


@router.get("/", response_model=list[ContactResponse])
async def list_contacts(current_user: CurrentUserDep, repo: RepoDep) -> list[ContactResponse]:
    """Return the caller's accepted contacts."""
    return [
        ContactResponse(id=contact.id, nickname=contact.nickname, user=UserPublic.model_validate(other))
        for contact, other in repo.list_accepted_contacts(current_user.id)
    ]


@router.get("/requests", response_model=list[ContactRequestResponse])
async def list_requests(current_user: CurrentUserDep, repo: RepoDep) -> list[ContactRequestResponse]:
    """Return pending requests addressed to the caller."""
    me = UserPublic.model_validate(current_user)
    return [
        ContactRequestResponse(
            id=contact.id,
            status=contact.status,
            requester=UserPublic.model_validate(requester),
            target=me,
        )
        for contact, requester in repo.list_pending_requests(current_user.id)
    ]


@router.post("/", response_model=ContactRequestResponse, status_code=status.HTTP_201_CREATED)
async def request_contact(
    payload: ContactCreate,
    current_user: CurrentUserDep,
    repo: RepoDep,
    gateway: GatewayDep,
) -> ContactRequestResponse:
    """Send a contact request to the user registered under ``email``."""
    target = repo.find_user_by_email(payload.email)
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if target.id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot add yourself as a contact",
        )

    contact = repo.add_contact(current_user.id, target.id, payload.nickname)
    response = ContactRequestResponse(
        id=contact.id,
        status=contact.status,
        requester=UserPublic.model_validate(current_user),
        target=UserPublic.model_validate(target),
    )
    await gateway.notify([target.id], "contact_request", response.model_dump(mode="json"))
    return response


@router.post("/{contact_id}/accept", response_model=ContactResponse)
async def accept_contact(
    contact_id: int,
    current_user: CurrentUserDep,
    repo: RepoDep,
    gateway: GatewayDep,
) -> ContactResponse:
    """Accept a pending request addressed to the caller."""
    contact = repo.find_contact(contact_id)
    if contact is None or contact.contact_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contact request not found")
    if contact.status != CONTACT_PENDING:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Contact request already accepted")

    requester = repo.find_user_by_id(contact.user_id)
    if requester is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    contact = repo.accept_contact(contact)

    await gateway.notify(
        [requester.id],
        "contact_accepted",
        {"id": contact.id, "user": UserPublic.model_validate(current_user).model_dump(mode="json")},
    )
    return ContactResponse(id=contact.id, nickname=contact.nickname, user=UserPublic.model_validate(requester))
