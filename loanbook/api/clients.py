"""
Client management endpoints
"""

from fastapi import APIRouter, Depends, status

from .dependencies import LoanbookSystem, get_system, http_error
from .schemas import CreateClientRequest, UpdateClientRequest
from ..errors import LoanbookError
from ..loans import Client


router = APIRouter()


def client_response(client: Client) -> dict:
    return {
        "client_id": client.client_id,
        "name": client.name,
        "address": client.address,
        "email": client.email,
        "contact_number": client.contact_number,
        "national_id": client.national_id,
        "passport": client.passport,
        "created_at": client.created_at.isoformat(),
        "updated_at": client.updated_at.isoformat()
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_client(
    request: CreateClientRequest,
    system: LoanbookSystem = Depends(get_system)
):
    """Register a new client"""
    details = request.model_dump(exclude={"name", "client_id"}, exclude_none=True)
    try:
        client = system.loan_manager.create_client(
            name=request.name,
            client_id=request.client_id,
            **details
        )
    except LoanbookError as e:
        raise http_error(e)

    return {**client_response(client), "message": "Client created successfully"}


@router.get("")
async def list_clients(system: LoanbookSystem = Depends(get_system)):
    """List all clients"""
    clients = system.loan_manager.list_clients()
    return {"clients": [client_response(c) for c in clients], "count": len(clients)}


@router.get("/{client_id}")
async def get_client(
    client_id: str,
    system: LoanbookSystem = Depends(get_system)
):
    """Get client by ID"""
    try:
        client = system.loan_manager.get_client(client_id)
    except LoanbookError as e:
        raise http_error(e)
    return client_response(client)


@router.put("/{client_id}")
async def update_client(
    client_id: str,
    request: UpdateClientRequest,
    system: LoanbookSystem = Depends(get_system)
):
    """Update client details"""
    try:
        client = system.loan_manager.update_client(client_id, **request.model_dump(exclude_unset=True))
    except LoanbookError as e:
        raise http_error(e)
    return {**client_response(client), "message": "Client updated successfully"}


@router.delete("/{client_id}")
async def delete_client(
    client_id: str,
    system: LoanbookSystem = Depends(get_system)
):
    """Delete a client with no loans"""
    try:
        system.loan_manager.delete_client(client_id)
    except LoanbookError as e:
        raise http_error(e)
    return {"client_id": client_id, "message": "Client deleted successfully"}
