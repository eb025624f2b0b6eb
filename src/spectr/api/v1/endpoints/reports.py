"""Abuse report endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query, status

from spectr.schemas.report import ReportCreate, ReportResponse, ReportStatusUpdate
from spectr.services.membership import MembershipResolver

from ..dependencies import AdminUserDep, CurrentUserDep, NotifierDep, RepoDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["reports", "moderation"])


@router.post("/", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
async def file_report(
    payload: ReportCreate,
    current_user: CurrentUserDep,
    repo: RepoDep,
    notifier: NotifierDep,
    background_tasks: BackgroundTasks,
) -> ReportResponse:
    """File a report against another user, optionally in the context of a chat.

    The administrator is notified after the response is sent.
    """
    if payload.reported_user_id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot report yourself")
    if repo.find_user_by_id(payload.reported_user_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if payload.chat_id is not None:
        MembershipResolver(repo).require_member(payload.chat_id, current_user.id)

    report = repo.insert_report(
        reporter_id=current_user.id,
        reported_user_id=payload.reported_user_id,
        chat_id=payload.chat_id,
        reason=payload.reason,
    )
    logger.info("Report %s filed by %s", report.id, current_user.id)
    background_tasks.add_task(notifier.notify, report, current_user)
    return ReportResponse.model_validate(report)


@router.get("/", response_model=list[ReportResponse])
async def list_reports(
    admin: AdminUserDep,
    repo: RepoDep,
    status_filter: str | None = Query(None, alias="status", pattern="^(pending|reviewed|dismissed)$"),
    limit: int = Query(100, ge=1, le=500),
) -> list[ReportResponse]:
    """List reports, newest first; administrators only."""
    return [ReportResponse.model_validate(report) for report in repo.list_reports(status_filter, limit)]


@router.patch("/{report_id}", response_model=ReportResponse)
async def update_report(
    report_id: int,
    payload: ReportStatusUpdate,
    admin: AdminUserDep,
    repo: RepoDep,
) -> ReportResponse:
    """Record a decision on a report; administrators only."""
    report = repo.find_report(report_id)
    if report is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found")
    report = repo.update_report_status(report, payload.status)
    logger.info("Report %s marked %s by %s", report.id, report.status, admin.id)
    return ReportResponse.model_validate(report)
