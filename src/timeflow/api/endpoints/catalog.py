"""Catalog endpoints for clients, projects and committed time entries."""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from timeflow.api.auth import verify_token
from timeflow.api.dependencies import get_ledger
from timeflow.api.models import (
    ClientResponse,
    CreateClientRequest,
    CreateProjectRequest,
    ProjectResponse,
    TimeEntryResponse,
)
from timeflow.core.ledger import Ledger, LedgerError

router = APIRouter()


@router.get("/clients", response_model=list[ClientResponse])
async def list_clients(
    ledger: Ledger = Depends(get_ledger),
    _: dict[str, Any] = Depends(verify_token),
) -> list[ClientResponse]:
    """List all clients ordered by name."""
    return [ClientResponse.from_client(c) for c in ledger.load_clients()]


@router.post("/clients", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
async def create_client(
    request: CreateClientRequest,
    ledger: Ledger = Depends(get_ledger),
    _: dict[str, Any] = Depends(verify_token),
) -> ClientResponse:
    """Create a client.

    Example:
        >>> POST /api/v1/clients
        {"name": "Acme Corp", "email": "billing@acme.test"}
    """
    try:
        client = ledger.add_client(request.name, request.email)
    except LedgerError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return ClientResponse.from_client(client)


@router.get("/projects", response_model=list[ProjectResponse])
async def list_projects(
    client_id: Optional[str] = Query(None, description="Only this client's projects"),
    ledger: Ledger = Depends(get_ledger),
    _: dict[str, Any] = Depends(verify_token),
) -> list[ProjectResponse]:
    """List projects, optionally of one client."""
    if client_id is not None:
        client = ledger.get_client(client_id)
        if client is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Client {client_id} not found",
            )
        client_id = client.id
    return [ProjectResponse.from_project(p) for p in ledger.load_projects(client_id)]


@router.post("/projects", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    request: CreateProjectRequest,
    ledger: Ledger = Depends(get_ledger),
    _: dict[str, Any] = Depends(verify_token),
) -> ProjectResponse:
    """Create a project for a client."""
    client = ledger.get_client(request.client_id)
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Client {request.client_id} not found",
        )
    try:
        project = ledger.add_project(request.name, client.id)
    except LedgerError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return ProjectResponse.from_project(project)


@router.get("/entries", response_model=list[TimeEntryResponse])
async def list_entries(
    limit: int = Query(50, ge=1, le=1000),
    ledger: Ledger = Depends(get_ledger),
    _: dict[str, Any] = Depends(verify_token),
) -> list[TimeEntryResponse]:
    """List committed time entries, most recent first."""
    return [TimeEntryResponse.from_entry(e) for e in ledger.load_time_entries(limit=limit)]
