from fastapi import APIRouter, Request, Response

from pixhub.models.charge import Charge, ChargeCreateRequest
from pixhub.models.enums import ChargeStatus

router = APIRouter()


@router.post("/charges", response_model=Charge, status_code=201)
async def create_charge(body: ChargeCreateRequest, request: Request) -> Charge:
    """
    Issue a PIX charge through the payment gateway.

    The returned expires_at/created_at come from the gateway.
    """
    return await request.app.state.charge_service.create(
        amount=body.amount,
        payer_name=body.payer_name,
        payer_id=body.payer_id,
        payer_email=body.payer_email,
        description=body.description,
        expiration_minutes=body.expiration_minutes,
    )


@router.get("/charges", response_model=list[Charge])
async def list_charges(request: Request, status: ChargeStatus = ChargeStatus.ACTIVE) -> list[Charge]:
    return await request.app.state.charge_service.list_by_status(status)


@router.get("/charges/{external_tx_id}", response_model=Charge)
async def get_charge(external_tx_id: str, request: Request) -> Charge:
    return await request.app.state.charge_service.get(external_tx_id)


@router.delete("/charges/{external_tx_id}", status_code=204)
async def cancel_charge(external_tx_id: str, request: Request) -> Response:
    await request.app.state.charge_service.cancel(external_tx_id)
    return Response(status_code=204)
