"""Timer endpoints: state of the active timer and its transitions.

Rejected transitions map to 400, a time entry the ledger refused maps to
502 and leaves the timer running.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from timeflow.api.auth import verify_token
from timeflow.api.dependencies import get_controller, get_ledger
from timeflow.api.models import (
    StartTimerRequest,
    StopTimerRequest,
    TimeEntryResponse,
    TimerResponse,
    UpdateDescriptionRequest,
)
from timeflow.core.ledger import Ledger
from timeflow.core.timer import CommitError, TimerController, ValidationError

router = APIRouter()


def timer_response(controller: TimerController) -> TimerResponse:
    return TimerResponse.from_snapshot(
        controller.snapshot(), controller.current_elapsed(), controller.title
    )


def bad_request(e: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("", response_model=TimerResponse)
async def get_timer(
    controller: TimerController = Depends(get_controller),
    _: dict[str, Any] = Depends(verify_token),
) -> TimerResponse:
    """Get the active timer.

    Example:
        >>> GET /api/v1/timer
        {
            "status": "running",
            "elapsed_ms": 65000,
            "elapsed": "00:01:05",
            "title": "00:01:05 - Website",
            ...
        }
    """
    return timer_response(controller)


@router.post("/start", response_model=TimerResponse)
async def start_timer(
    request: StartTimerRequest,
    controller: TimerController = Depends(get_controller),
    ledger: Ledger = Depends(get_ledger),
    _: dict[str, Any] = Depends(verify_token),
) -> TimerResponse:
    """Select a client's project and start the timer.

    Raises:
        HTTPException: 404 if the client or project is unknown, 400 if a
            timer is already running

    Example:
        >>> POST /api/v1/timer/start
        {
            "client_id": "Acme",
            "project_id": "Website",
            "description": "Landing page"
        }
    """
    client = ledger.get_client(request.client_id)
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Client {request.client_id} not found",
        )
    project = ledger.get_project(request.project_id, client_id=client.id)
    if project is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Project {request.project_id} not found for {client.name}",
        )

    if controller.is_running:
        raise bad_request(ValidationError("Timer is already running"))

    try:
        controller.select_client(client)
        controller.select_project(project)
        if request.billable is not None:
            controller.set_billable(request.billable)
        controller.set_description(request.description)
        controller.start()
    except ValidationError as e:
        raise bad_request(e)

    return timer_response(controller)


@router.post("/pause", response_model=TimerResponse)
async def pause_timer(
    controller: TimerController = Depends(get_controller),
    _: dict[str, Any] = Depends(verify_token),
) -> TimerResponse:
    """Pause the running timer."""
    try:
        controller.pause()
    except ValidationError as e:
        raise bad_request(e)
    return timer_response(controller)


@router.post("/resume", response_model=TimerResponse)
async def resume_timer(
    controller: TimerController = Depends(get_controller),
    _: dict[str, Any] = Depends(verify_token),
) -> TimerResponse:
    """Resume the paused timer."""
    try:
        controller.resume()
    except ValidationError as e:
        raise bad_request(e)
    return timer_response(controller)


@router.put("/description", response_model=TimerResponse)
async def update_description(
    request: UpdateDescriptionRequest,
    controller: TimerController = Depends(get_controller),
    _: dict[str, Any] = Depends(verify_token),
) -> TimerResponse:
    """Change what the timer is tracked as."""
    controller.set_description(request.description)
    return timer_response(controller)


@router.post("/stop", response_model=TimeEntryResponse, status_code=status.HTTP_201_CREATED)
async def stop_timer(
    request: Optional[StopTimerRequest] = None,
    controller: TimerController = Depends(get_controller),
    token: dict[str, Any] = Depends(verify_token),
) -> TimeEntryResponse:
    """Stop the timer and commit the time entry for the authenticated user.

    Raises:
        HTTPException: 400 if there is nothing to commit, 502 if the entry
            could not be recorded (the timer keeps running)
    """
    if request is not None and request.description is not None and controller.is_running:
        controller.set_description(request.description)

    try:
        entry = controller.stop(user_id=token.get("sub"))
    except ValidationError as e:
        raise bad_request(e)
    except CommitError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    return TimeEntryResponse.from_entry(entry)


@router.post("/discard", response_model=TimerResponse)
async def discard_timer(
    controller: TimerController = Depends(get_controller),
    _: dict[str, Any] = Depends(verify_token),
) -> TimerResponse:
    """Throw away the active timer without committing it."""
    if not controller.discard():
        raise bad_request(ValidationError("Timer is not running"))
    return timer_response(controller)


@router.post("/sync", response_model=TimerResponse)
async def sync_timer(
    controller: TimerController = Depends(get_controller),
    _: dict[str, Any] = Depends(verify_token),
) -> TimerResponse:
    """Reconcile the timer after a client was hidden or the host slept."""
    controller.visibility_regained()
    return timer_response(controller)
