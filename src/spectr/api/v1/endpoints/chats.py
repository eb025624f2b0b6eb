"""Chat, membership and message endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Query, Response, status

from spectr.core.errors import ForbiddenError
from spectr.models import Chat, User
from spectr.models.chat import CHAT_PRIVATE, MEMBER_OWNER
from spectr.repositories.chat_repo import ChatRepository
from spectr.schemas.chat import (
    ChatCreate,
    ChatDetailResponse,
    ChatResponse,
    MemberInvite,
    MemberResponse,
    PrivateChatCreate,
)
from spectr.schemas.message import MessageCreate, MessageResponse
from spectr.services.fanout import to_message_response
from spectr.services.membership import MembershipResolver

from ..dependencies import CurrentUserDep, GatewayDep, RepoDep

router = APIRouter(prefix="/chats", tags=["chats"])

CHAT_INVITE_EVENT = "chat_invite"


def _chat_response(chat: Chat, role: str | None) -> ChatResponse:
    return ChatResponse.model_validate(chat).model_copy(update={"role": role})


def _chat_detail(repo: ChatRepository, chat: Chat, role: str | None) -> ChatDetailResponse:
    members = [
        MemberResponse(
            user_id=member.user_id,
            role=member.role,
            display_name=user.display_name,
            avatar_url=user.avatar_url,
        )
        for member, user in repo.list_members_with_users(chat.id)
    ]
    base = ChatResponse.model_validate(chat).model_dump()
    base["role"] = role
    return ChatDetailResponse(**base, members=members)


def _invite_payload(chat: Chat, inviter: User) -> dict[str, Any]:
    return {
        "chat": _chat_response(chat, None).model_dump(mode="json"),
        "invited_by": inviter.id,
    }


@router.get("/", response_model=list[ChatResponse])
async def list_chats(current_user: CurrentUserDep, repo: RepoDep) -> list[ChatResponse]:
    """Return every chat the caller belongs to, with the caller's role."""
    return [_chat_response(chat, role) for chat, role in repo.list_chats_for_user(current_user.id)]


@router.post("/", response_model=ChatDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_chat(
    payload: ChatCreate,
    current_user: CurrentUserDep,
    repo: RepoDep,
    gateway: GatewayDep,
) -> ChatDetailResponse:
    """Create a group or channel owned by the caller with the listed members."""
    member_ids = [uid for uid in dict.fromkeys(payload.member_ids) if uid != current_user.id]
    found = {user.id for user in repo.find_users(member_ids)}
    missing = [uid for uid in member_ids if uid not in found]
    if missing:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown users: {', '.join(missing)}",
        )

    chat = repo.create_chat(
        kind=payload.kind,
        name=payload.name,
        created_by=current_user.id,
        member_ids=member_ids,
        avatar_url=payload.avatar_url,
    )
    if member_ids:
        await gateway.notify(member_ids, CHAT_INVITE_EVENT, _invite_payload(chat, current_user))
    return _chat_detail(repo, chat, MEMBER_OWNER)


@router.post("/private", response_model=ChatDetailResponse, status_code=status.HTTP_201_CREATED)
async def open_private_chat(
    payload: PrivateChatCreate,
    current_user: CurrentUserDep,
    repo: RepoDep,
    gateway: GatewayDep,
    response: Response,
) -> ChatDetailResponse:
    """Return the private chat with ``user_id``, creating it if needed."""
    if payload.user_id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot open a private chat with yourself",
        )
    other = repo.find_user_by_id(payload.user_id)
    if other is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    chat = repo.find_private_chat(current_user.id, other.id)
    if chat is not None:
        response.status_code = status.HTTP_200_OK
        member = repo.get_member(chat.id, current_user.id)
        return _chat_detail(repo, chat, member.role if member else None)

    chat = repo.create_chat(
        kind=CHAT_PRIVATE,
        name=None,
        created_by=current_user.id,
        member_ids=[other.id],
    )
    await gateway.notify([other.id], CHAT_INVITE_EVENT, _invite_payload(chat, current_user))
    return _chat_detail(repo, chat, MEMBER_OWNER)


@router.get("/{chat_id}", response_model=ChatDetailResponse)
async def get_chat(chat_id: int, current_user: CurrentUserDep, repo: RepoDep) -> ChatDetailResponse:
    """Return a chat with its members; members only."""
    member = MembershipResolver(repo).require_member(chat_id, current_user.id)
    chat = repo.find_chat(chat_id)
    return _chat_detail(repo, chat, member.role)


@router.post(
    "/{chat_id}/members",
    response_model=MemberResponse,
    status_code=status.HTTP_201_CREATED,
)
async def invite_member(
    chat_id: int,
    payload: MemberInvite,
    current_user: CurrentUserDep,
    repo: RepoDep,
    gateway: GatewayDep,
) -> MemberResponse:
    """Add a user to a group or channel; owners and admins only."""
    member = MembershipResolver(repo).require_member(chat_id, current_user.id)
    if not member.can_manage:
        raise ForbiddenError("Only owners and admins can invite members")
    chat = repo.find_chat(chat_id)
    if chat.kind == CHAT_PRIVATE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Private chats cannot have more members",
        )
    invitee = repo.find_user_by_id(payload.user_id)
    if invitee is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    row = repo.add_member(chat_id, invitee.id, payload.role)
    await gateway.notify([invitee.id], CHAT_INVITE_EVENT, _invite_payload(chat, current_user))
    return MemberResponse(
        user_id=row.user_id,
        role=row.role,
        display_name=invitee.display_name,
        avatar_url=invitee.avatar_url,
    )


@router.get("/{chat_id}/messages", response_model=list[MessageResponse])
async def list_messages(
    chat_id: int,
    current_user: CurrentUserDep,
    repo: RepoDep,
    limit: int = Query(50, ge=1, le=200),
    before: int | None = Query(None, ge=1, description="Return messages older than this id"),
) -> list[MessageResponse]:
    """Return a page of history, newest first; members only."""
    MembershipResolver(repo).require_member(chat_id, current_user.id)
    return [to_message_response(message) for message in repo.list_messages(chat_id, limit=limit, before=before)]


@router.post(
    "/{chat_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    chat_id: int,
    payload: MessageCreate,
    current_user: CurrentUserDep,
    repo: RepoDep,
    gateway: GatewayDep,
) -> MessageResponse:
    """Submit a message; it is stored, then pushed to every member's sessions."""
    message = await gateway.fanout.submit(
        repo,
        sender_id=current_user.id,
        chat_id=chat_id,
        kind=payload.kind,
        content=payload.content,
        attachment_ref=payload.attachment_url,
    )
    return to_message_response(message)
