from typing import Optional

from fastapi import APIRouter, Request

from pixhub.models.enums import TransactionStatus
from pixhub.models.transaction import RunDueResponse, Transaction, TransactionCreateRequest

router = APIRouter()


@router.post("/transactions", response_model=Transaction, status_code=201)
async def create_transaction(body: TransactionCreateRequest, request: Request) -> Transaction:
    """
    Create a PIX transfer record. It always starts PENDING.

    - IMMEDIATE: no scheduled_at.
    - SCHEDULED: scheduled_at strictly in the future.
    - AUTOMATIC: scheduled_at required, past or future.
    """
    return await request.app.state.transaction_engine.create(
        owner_id=body.owner_id,
        amount=body.amount,
        description=body.description,
        target_key=body.target_key,
        target_key_type=body.target_key_type,
        kind=body.kind,
        scheduled_at=body.scheduled_at,
    )


@router.get("/transactions", response_model=list[Transaction])
async def list_transactions(
    request: Request, status: Optional[TransactionStatus] = None
) -> list[Transaction]:
    engine = request.app.state.transaction_engine
    if status is None:
        status = TransactionStatus.PENDING
    return await engine.list_by_status(status)


@router.post("/transactions/run-due", response_model=RunDueResponse)
async def run_due_transactions(request: Request) -> RunDueResponse:
    """Execute every scheduled and automatic transaction that is due, oldest first."""
    return await request.app.state.execution_runner.run_due()


@router.get("/transactions/{transaction_id}", response_model=Transaction)
async def get_transaction(transaction_id: str, request: Request) -> Transaction:
    return await request.app.state.transaction_engine.get(transaction_id)


@router.post("/transactions/{transaction_id}/execute", response_model=Transaction)
async def execute_transaction(transaction_id: str, request: Request) -> Transaction:
    """Send a PENDING, due transaction now. 409 if it is not executable."""
    return await request.app.state.execution_runner.execute_now(transaction_id)


@router.post("/transactions/{transaction_id}/cancel", response_model=Transaction)
async def cancel_transaction(transaction_id: str, request: Request) -> Transaction:
    return await request.app.state.transaction_engine.cancel(transaction_id)
