"""
Complaints Controllers (API Routes)
===================================

FastAPI routes for student complaints, admin triage, ad hoc analysis and
the change feed.

Controllers delegate to application services and translate their
exceptions into HTTP responses.
"""

import asyncio
from typing import List, Optional
from uuid import UUID

from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    Query,
    Request,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from fastapi.responses import JSONResponse
from starlette.background import BackgroundTask

from complaintdesk.accounts.domain import Actor
from complaintdesk.accounts.infrastructure import TokenValidationError
from complaintdesk.accounts.interfaces import (
    authenticate_token,
    build_account_service,
    get_current_actor,
    require_admin,
)
from complaintdesk.complaints.application import (
    AdminComplaintResponse,
    AnalyzeRequest,
    AnalyzeResponse,
    ChangeEventResponse,
    ChangeFeedResponse,
    ClassificationService,
    ComplaintEditRequest,
    ComplaintIntakeService,
    ComplaintResponse,
    ComplaintReviewService,
    ReviewRequest,
    StatsResponse,
    StudentComplaintService,
    SubmitComplaintRequest,
)
from complaintdesk.complaints.interfaces.dependencies import (
    get_classification_service,
    get_feed,
    get_intake_service,
    get_notifier,
    get_review_service,
    get_student_service,
)
from complaintdesk.config import ComplaintStatus
from complaintdesk.core import (
    ApplicationException,
    LLMConfigurationException,
    LLMException,
    LLMQuotaException,
    LLMRateLimitException,
    PermissionDeniedException,
)
from complaintdesk.infrastructure.database import get_session_context
from complaintdesk.infrastructure.events import ChangeFeed
from complaintdesk.infrastructure.notifications import OperatorAlert, SlackNotifier
from complaintdesk.shared.api.errors import (
    QUOTA_MESSAGE,
    RATE_LIMIT_MESSAGE,
    to_http_exception,
)
from complaintdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/complaints", tags=["Complaints"])
admin_router = APIRouter(prefix="/admin/complaints", tags=["Admin"])

# Policy violation close code
WS_POLICY_VIOLATION = 1008


# ========== Example payloads for Swagger ==========

SUBMIT_REQUEST_EXAMPLE = {
    "title": "Broken projector in Lab 3",
    "description": "The projector in Lab 3 has not worked for a week.",
    "category": "Facilities"
}

ANALYZE_RESPONSE_EXAMPLE = {
    "suggestedCategory": "Facilities",
    "priority": "Medium",
    "priorityScore": 0.7,
    "suggestedResponse": "Thank you for reporting this. The facilities team will inspect the projector."
}


# ========== Helpers ==========

def _operator_alert(
    exc: LLMException,
    request: Request,
    notifier: SlackNotifier,
    complaint_title: Optional[str] = None
) -> Optional[BackgroundTask]:
    """Background alert for faults an operator has to fix, else None."""
    if isinstance(exc, LLMConfigurationException):
        fault = "configuration"
    elif isinstance(exc, LLMQuotaException):
        fault = "billing"
    else:
        return None

    alert = OperatorAlert(
        fault=fault,
        summary=exc.message,
        complaint_title=complaint_title,
        correlation_id=getattr(request.state, "correlation_id", None)
    )
    return BackgroundTask(notifier.send_alert, alert)


def _json_error(error: HTTPException, background: Optional[BackgroundTask] = None) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content={"detail": error.detail},
        headers=error.headers,
        background=background
    )


def _to_admin_response(complaint, profile) -> AdminComplaintResponse:
    response = AdminComplaintResponse.model_validate(complaint)
    if profile is not None:
        response = response.model_copy(
            update={"student_name": profile.name, "student_email": profile.email}
        )
    return response


# ========== Analysis ==========

@router.post(
    "/analyze",
    response_model=AnalyzeResponse,
    summary="Classify a complaint without storing it",
    description="""
    Suggest a category, a priority with confidence score, and a draft admin
    response for the given complaint text.

    Errors come back as `{"error": "..."}`: 429 when rate limited, 402 when
    AI credits are exhausted, 500 for anything else.
    """,
    responses={
        200: {
            "description": "Complaint analyzed",
            "content": {"application/json": {"example": ANALYZE_RESPONSE_EXAMPLE}}
        },
        402: {"description": "AI service requires payment"},
        429: {"description": "Rate limit exceeded"},
        500: {"description": "Analysis failed"}
    }
)
async def analyze_complaint(
    request: Request,
    payload: AnalyzeRequest,
    actor: Actor = Depends(get_current_actor),
    service: ClassificationService = Depends(get_classification_service),
    notifier: SlackNotifier = Depends(get_notifier)
):
    try:
        result = await service.classify(payload.title, payload.description, payload.category)
    except LLMException as e:
        logger.error(
            "Complaint analysis failed",
            extra={
                "correlation_id": getattr(request.state, "correlation_id", "unknown"),
                "error_type": type(e).__name__,
                "error": e.message
            }
        )
        if isinstance(e, LLMRateLimitException):
            status_code, message = status.HTTP_429_TOO_MANY_REQUESTS, RATE_LIMIT_MESSAGE
        elif isinstance(e, LLMQuotaException):
            status_code, message = status.HTTP_402_PAYMENT_REQUIRED, QUOTA_MESSAGE
        else:
            status_code, message = status.HTTP_500_INTERNAL_SERVER_ERROR, e.message
        return JSONResponse(
            status_code=status_code,
            content={"error": message},
            background=_operator_alert(e, request, notifier, payload.title)
        )

    return AnalyzeResponse(
        suggested_category=result.suggested_category,
        priority=result.priority,
        priority_score=result.priority_score,
        suggested_response=result.suggested_response
    )


# ========== Change Feed ==========

@router.get(
    "/changes",
    response_model=ChangeFeedResponse,
    summary="Poll complaint changes",
    description="""
    Events newer than `after`. Students only see their own complaints.

    Pass the returned `cursor` as `after` on the next poll. Events are
    refresh signals: reload the list when any arrive.
    """
)
async def poll_changes(
    after: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    actor: Actor = Depends(get_current_actor),
    feed: ChangeFeed = Depends(get_feed)
):
    owner_filter = None if actor.is_admin else str(actor.user_id)
    events = feed.since(after, owner_id=owner_filter, limit=limit)

    if len(events) == limit:
        cursor = events[-1].cursor
    else:
        cursor = max(after, feed.latest_cursor)

    return ChangeFeedResponse(
        cursor=cursor,
        events=[ChangeEventResponse(**e.to_dict()) for e in events]
    )


@router.websocket("/changes/ws")
async def listen_changes(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    feed: ChangeFeed = Depends(get_feed)
):
    """Push complaint change events to the client as JSON messages."""
    try:
        async with get_session_context() as session:
            actor = await authenticate_token(token, build_account_service(session))
    except (TokenValidationError, PermissionDeniedException) as e:
        logger.warning("Change feed connection rejected", extra={"reason": str(e)})
        await websocket.close(code=WS_POLICY_VIOLATION)
        return

    await websocket.accept()
    owner_filter = None if actor.is_admin else str(actor.user_id)

    async with feed.subscribe(owner_id=owner_filter) as queue:
        await websocket.send_json({"type": "ready", "cursor": feed.latest_cursor})

        async def forward() -> None:
            while True:
                event = await queue.get()
                await websocket.send_json({"type": "change", **event.to_dict()})

        forwarder = asyncio.create_task(forward())
        try:
            # Inbound messages are ignored; receive only to notice the disconnect
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            logger.debug("Change feed client disconnected", extra={"user_id": str(actor.user_id)})
        finally:
            forwarder.cancel()


# ========== Student Routes ==========

@router.post(
    "",
    response_model=ComplaintResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a complaint",
    description="""
    Validate, classify and store a complaint.

    **Example Request**:
    ```json
    {
        "title": "Broken projector in Lab 3",
        "description": "The projector in Lab 3 has not worked for a week.",
        "category": "Facilities"
    }
    ```

    Validation problems come back as 422 with one message per field. If the
    AI classification fails nothing is stored: 503 (not configured), 429
    (rate limited, see Retry-After), 402 (credits exhausted) or 502.
    """,
    responses={
        402: {"description": "AI credits exhausted"},
        422: {"description": "Invalid submission"},
        429: {"description": "Rate limit exceeded"},
        502: {"description": "AI classification failed"},
        503: {"description": "AI classification not configured"}
    }
)
async def submit_complaint(
    request: Request,
    payload: SubmitComplaintRequest,
    actor: Actor = Depends(get_current_actor),
    service: ComplaintIntakeService = Depends(get_intake_service),
    notifier: SlackNotifier = Depends(get_notifier)
):
    try:
        complaint = await service.submit_complaint(
            actor,
            payload.title,
            payload.description,
            payload.category
        )
    except LLMException as e:
        logger.error(
            "Complaint submission failed at classification",
            extra={
                "correlation_id": getattr(request.state, "correlation_id", "unknown"),
                "error_type": type(e).__name__,
                "error": e.message
            }
        )
        return _json_error(
            to_http_exception(e),
            background=_operator_alert(e, request, notifier, payload.title)
        )
    except ApplicationException as e:
        raise to_http_exception(e)

    return ComplaintResponse.model_validate(complaint)


@router.get(
    "",
    response_model=List[ComplaintResponse],
    summary="List my complaints (newest first)"
)
async def list_my_complaints(
    actor: Actor = Depends(get_current_actor),
    service: StudentComplaintService = Depends(get_student_service)
):
    complaints = await service.list_own_complaints(actor)
    return [ComplaintResponse.model_validate(c) for c in complaints]


@router.get(
    "/{complaint_id}",
    response_model=ComplaintResponse,
    summary="Get one complaint (owner or admin)"
)
async def get_complaint(
    complaint_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: StudentComplaintService = Depends(get_student_service)
):
    try:
        complaint = await service.get_complaint(actor, complaint_id)
    except ApplicationException as e:
        raise to_http_exception(e)
    return ComplaintResponse.model_validate(complaint)


@router.patch(
    "/{complaint_id}",
    response_model=ComplaintResponse,
    summary="Edit my complaint while it is Pending"
)
async def edit_complaint(
    complaint_id: UUID,
    payload: ComplaintEditRequest,
    actor: Actor = Depends(get_current_actor),
    service: StudentComplaintService = Depends(get_student_service)
):
    try:
        complaint = await service.edit_complaint(
            actor,
            complaint_id,
            title=payload.title,
            description=payload.description,
            category=payload.category
        )
    except ApplicationException as e:
        raise to_http_exception(e)
    return ComplaintResponse.model_validate(complaint)


@router.post(
    "/{complaint_id}/withdraw",
    response_model=ComplaintResponse,
    summary="Withdraw my complaint while it is Pending"
)
async def withdraw_complaint(
    complaint_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: StudentComplaintService = Depends(get_student_service)
):
    try:
        complaint = await service.withdraw_complaint(actor, complaint_id)
    except ApplicationException as e:
        raise to_http_exception(e)
    return ComplaintResponse.model_validate(complaint)


# ========== Admin Routes ==========

@admin_router.get(
    "",
    response_model=List[AdminComplaintResponse],
    summary="List all complaints",
    description="Newest first, with the student's name and email. Filter with `status`."
)
async def list_complaints(
    status_filter: Optional[ComplaintStatus] = Query(None, alias="status"),
    actor: Actor = Depends(require_admin),
    service: ComplaintReviewService = Depends(get_review_service)
):
    try:
        rows = await service.list_complaints(actor, status_filter)
    except ApplicationException as e:
        raise to_http_exception(e)
    return [_to_admin_response(complaint, profile) for complaint, profile in rows]


@admin_router.get(
    "/stats",
    response_model=StatsResponse,
    summary="Complaint counts by status"
)
async def complaint_stats(
    actor: Actor = Depends(require_admin),
    service: ComplaintReviewService = Depends(get_review_service)
):
    try:
        stats = await service.stats(actor)
    except ApplicationException as e:
        raise to_http_exception(e)
    return StatsResponse(**stats)


@admin_router.patch(
    "/{complaint_id}",
    response_model=ComplaintResponse,
    summary="Review a complaint",
    description="""
    Set the status and the admin response in one write.

    With `use_ai_draft` and no `admin_response`, the AI suggested response is
    used as the reply.
    """
)
async def review_complaint(
    complaint_id: UUID,
    payload: ReviewRequest,
    actor: Actor = Depends(require_admin),
    service: ComplaintReviewService = Depends(get_review_service)
):
    try:
        complaint = await service.review_complaint(
            actor,
            complaint_id,
            status=payload.status,
            admin_response=payload.admin_response,
            use_ai_draft=payload.use_ai_draft
        )
    except ApplicationException as e:
        raise to_http_exception(e)
    return ComplaintResponse.model_validate(complaint)


# Export routers for inclusion in main app
complaints_router = router
complaints_admin_router = admin_router
