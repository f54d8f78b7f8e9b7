from enum import Enum
from typing import Optional

from pydantic import BaseModel


class TransferResultStatus(str, Enum):
    SUCCESS = "success"
    DECLINED = "declined"
    TIMEOUT = "timeout"


class TransferResult(BaseModel):
    processor_name: str
    status: TransferResultStatus
    end_to_end_id: Optional[str] = None
    decline_code: Optional[str] = None
    raw_response: dict = {}
    latency_ms: float = 0.0
