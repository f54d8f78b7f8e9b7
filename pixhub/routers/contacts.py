from fastapi import APIRouter, Request, Response

from pixhub.models.contact import Contact, ContactCreateRequest
from pixhub.models.pix_key import PixKeyRequest

router = APIRouter()


@router.post("/contacts", response_model=Contact, status_code=201)
async def create_contact(body: ContactCreateRequest, request: Request) -> Contact:
    """
    Save a payee with 1 to 5 PIX keys.

    - Keys must be pairwise distinct, in value and in type.
    - Each key must be well-formed for its type (CPF checksum, email, phone, random).
    - The contact name must be unique for the owner.
    """
    return await request.app.state.contact_service.create(
        body.owner_id, body.display_name, body.keys
    )


@router.get("/contacts/{contact_id}", response_model=Contact)
async def get_contact(contact_id: str, request: Request) -> Contact:
    return await request.app.state.contact_service.get(contact_id)


@router.post("/contacts/{contact_id}/keys", response_model=Contact)
async def add_contact_key(contact_id: str, body: PixKeyRequest, request: Request) -> Contact:
    return await request.app.state.contact_service.add_key(contact_id, body)


@router.delete("/contacts/{contact_id}/keys/{key_id}", response_model=Contact)
async def remove_contact_key(contact_id: str, key_id: str, request: Request) -> Contact:
    return await request.app.state.contact_service.remove_key(contact_id, key_id)


@router.delete("/contacts/{contact_id}", status_code=204)
async def delete_contact(contact_id: str, request: Request) -> Response:
    await request.app.state.contact_service.delete(contact_id)
    return Response(status_code=204)
