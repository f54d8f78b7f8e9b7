from fastapi import APIRouter, Request

from pixhub.models.contact import Contact
from pixhub.models.owner import Owner, OwnerCreateRequest
from pixhub.models.transaction import Transaction

router = APIRouter()


@router.post("/owners", response_model=Owner, status_code=201)
async def create_owner(body: OwnerCreateRequest, request: Request) -> Owner:
    """Register an account holder. Email and CPF must be valid and unused."""
    return await request.app.state.owner_service.create(body.name, body.email, body.national_id)


@router.get("/owners/{owner_id}", response_model=Owner)
async def get_owner(owner_id: str, request: Request) -> Owner:
    return await request.app.state.owner_service.get(owner_id)


@router.get("/owners/{owner_id}/contacts", response_model=list[Contact])
async def list_owner_contacts(owner_id: str, request: Request) -> list[Contact]:
    await request.app.state.owner_service.get(owner_id)
    return await request.app.state.contact_service.list_by_owner(owner_id)


@router.get("/owners/{owner_id}/transactions", response_model=list[Transaction])
async def list_owner_transactions(owner_id: str, request: Request) -> list[Transaction]:
    await request.app.state.owner_service.get(owner_id)
    return await request.app.state.transaction_engine.list_by_owner(owner_id)
