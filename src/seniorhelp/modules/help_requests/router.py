"""
Help Requests Router

API endpoints for the help request workflow.

Request endpoints (prefix /requests):
- GET /requests/categories - Supported request categories
- POST /requests - Senior posts a request
- GET /requests - Browse open requests (students)
- GET /requests/mine - Requests the caller created or claimed
- GET /requests/{id} - Request details
- POST /requests/{id}/claim - Verified student claims a request
- POST /requests/{id}/cancel - Participant or admin cancels
- GET /requests/{id}/messages - Conversation
- POST /requests/{id}/messages - Send a message
- POST /requests/{id}/messages/read - Mark received messages read

Session endpoints (prefix /sessions):
- POST /sessions - Claimant schedules a session
- GET /sessions - Sessions the caller takes part in
- GET /sessions/{id} - Session details
- POST /sessions/{id}/start - Mark a session as started
- POST /sessions/{id}/sign-off - Senior signs off and rates
- GET /sessions/{id}/calendar - iCalendar download

Every endpoint requires a bearer token; the resulting ActorContext is passed
explicitly into the service.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from seniorhelp.core.auth import ActorContext, get_current_actor
from seniorhelp.core.database import get_db
from seniorhelp.modules.help_requests import service
from seniorhelp.modules.help_requests.models import RequestStatus, SessionStatus, Urgency
from seniorhelp.modules.help_requests.schemas import (
    REQUEST_CATEGORIES,
    CancelRequestBody,
    HelpRequestCreate,
    HelpRequestListResponse,
    HelpRequestResponse,
    MarkReadResponse,
    MessageCreate,
    MessageListResponse,
    MessageResponse,
    ReviewResponse,
    SessionCreate,
    SessionResponse,
    SignOffRequest,
    SignOffResponse,
)
from seniorhelp.modules.shared.errors import ServiceError

logger = logging.getLogger(__name__)

router = APIRouter()
sessions_router = APIRouter()


def _handle_service_error(e: ServiceError) -> None:
    """Convert service errors to HTTPExceptions."""
    headers = None
    retry_after = getattr(e, "retry_after_seconds", None)
    if retry_after:
        headers = {"Retry-After": str(retry_after)}

    raise HTTPException(
        status_code=e.status_code,
        detail={
            "error": e.error_code,
            "message": e.message,
        },
        headers=headers,
    )


def _to_list_response(result: dict) -> HelpRequestListResponse:
    return HelpRequestListResponse(
        requests=[HelpRequestResponse.model_validate(r) for r in result["requests"]],
        total=result["total"],
        skip=result["skip"],
        limit=result["limit"],
    )


# ============================================
# Requests
# ============================================


@router.get("/categories", response_model=list[str])
async def list_categories() -> list[str]:
    """Categories a request can be filed under."""
    return REQUEST_CATEGORIES


@router.post("", response_model=HelpRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_request(
    data: HelpRequestCreate,
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> HelpRequestResponse:
    try:
        request = await service.create_request(db, actor, data)
    except ServiceError as e:
        _handle_service_error(e)

    return HelpRequestResponse.model_validate(request)


@router.get("", response_model=HelpRequestListResponse)
async def list_open_requests(
    category: str | None = Query(None, description="Filter by category"),
    urgency: Urgency | None = Query(None, description="Filter by urgency"),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> HelpRequestListResponse:
    """
    Browse open requests, newest first.

    Any student may browse; only verified students may claim.
    """
    try:
        result = await service.list_open_requests(
            db, actor, category=category, urgency=urgency, skip=skip, limit=limit
        )
    except ServiceError as e:
        _handle_service_error(e)

    return _to_list_response(result)


@router.get("/mine", response_model=HelpRequestListResponse)
async def list_my_requests(
    status_filter: RequestStatus | None = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> HelpRequestListResponse:
    result = await service.list_my_requests(
        db, actor, status=status_filter, skip=skip, limit=limit
    )
    return _to_list_response(result)


@router.get("/{request_id}", response_model=HelpRequestResponse)
async def get_request(
    request_id: UUID,
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> HelpRequestResponse:
    try:
        request = await service.get_request(db, actor, request_id)
    except ServiceError as e:
        _handle_service_error(e)

    return HelpRequestResponse.model_validate(request)


@router.post("/{request_id}/claim", response_model=HelpRequestResponse)
async def claim_request(
    request_id: UUID,
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> HelpRequestResponse:
    """
    Claim an open request.

    Errors:
    - 403 VERIFICATION_REQUIRED: student not approved yet
    - 409 CONFLICT: request already claimed (refresh and pick another)
    """
    try:
        request = await service.claim_request(db, actor, request_id)
    except ServiceError as e:
        _handle_service_error(e)

    return HelpRequestResponse.model_validate(request)


@router.post("/{request_id}/cancel", response_model=HelpRequestResponse)
async def cancel_request(
    request_id: UUID,
    body: CancelRequestBody | None = None,
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> HelpRequestResponse:
    try:
        request = await service.cancel_request(
            db, actor, request_id, reason=body.reason if body else None
        )
    except ServiceError as e:
        _handle_service_error(e)

    return HelpRequestResponse.model_validate(request)


# ============================================
# Messages
# ============================================


@router.get("/{request_id}/messages", response_model=MessageListResponse)
async def list_messages(
    request_id: UUID,
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> MessageListResponse:
    try:
        messages = await service.list_messages(db, actor, request_id)
    except ServiceError as e:
        _handle_service_error(e)

    return MessageListResponse(messages=[MessageResponse.model_validate(m) for m in messages])


@router.post(
    "/{request_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    request_id: UUID,
    data: MessageCreate,
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    try:
        message = await service.send_message(db, actor, request_id, data.content)
    except ServiceError as e:
        _handle_service_error(e)

    return MessageResponse.model_validate(message)


@router.post("/{request_id}/messages/read", response_model=MarkReadResponse)
async def mark_messages_read(
    request_id: UUID,
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> MarkReadResponse:
    try:
        updated = await service.mark_messages_read(db, actor, request_id)
    except ServiceError as e:
        _handle_service_error(e)

    return MarkReadResponse(updated=updated)


# ============================================
# Sessions
# ============================================


@sessions_router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def schedule_session(
    data: SessionCreate,
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    """
    Schedule a session for a claimed request.

    Errors:
    - 422 VALIDATION_ERROR: time not in the future
    - 403 PERMISSION_DENIED: caller is not the claimant
    - 409 CONFLICT: request is not in the claimed state
    """
    try:
        session = await service.schedule_session(db, actor, data)
    except ServiceError as e:
        _handle_service_error(e)

    return SessionResponse.model_validate(session)


@sessions_router.get("", response_model=list[SessionResponse])
async def list_my_sessions(
    status_filter: SessionStatus | None = Query(None, alias="status"),
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> list[SessionResponse]:
    sessions = await service.list_my_sessions(db, actor, status=status_filter)
    return [SessionResponse.model_validate(s) for s in sessions]


@sessions_router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: UUID,
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    try:
        session = await service.get_session(db, actor, session_id)
    except ServiceError as e:
        _handle_service_error(e)

    return SessionResponse.model_validate(session)


@sessions_router.post("/{session_id}/start", response_model=SessionResponse)
async def start_session(
    session_id: UUID,
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    try:
        session = await service.start_session(db, actor, session_id)
    except ServiceError as e:
        _handle_service_error(e)

    return SessionResponse.model_validate(session)


@sessions_router.post("/{session_id}/sign-off", response_model=SignOffResponse)
async def sign_off_session(
    session_id: UUID,
    data: SignOffRequest,
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> SignOffResponse:
    """
    Senior confirms the session, its actual length and a 1-5 rating.

    Completes the request and credits the student's volunteer hours.
    A second sign-off of the same session returns 409.
    """
    try:
        result = await service.sign_off_session(
            db,
            actor,
            session_id,
            actual_duration_minutes=data.actual_duration_minutes,
            rating=data.rating,
            comment=data.comment,
        )
    except ServiceError as e:
        _handle_service_error(e)

    return SignOffResponse(
        session=SessionResponse.model_validate(result.session),
        review=ReviewResponse.model_validate(result.review),
        request_status=result.request.status,
        hours_added=result.hours_added,
    )


@sessions_router.get("/{session_id}/calendar")
async def download_session_calendar(
    session_id: UUID,
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> Response:
    try:
        ics = await service.get_session_calendar(db, actor, session_id)
    except ServiceError as e:
        _handle_service_error(e)

    return Response(
        content=ics,
        media_type="text/calendar",
        headers={"Content-Disposition": f'attachment; filename="session-{session_id}.ics"'},
    )
