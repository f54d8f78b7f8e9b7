from datetime import datetime

from pydantic import BaseModel, Field

from pixhub.models.base import DomainModel, new_id, utcnow


class Owner(DomainModel):
    id: str = Field(default_factory=new_id)
    name: str
    email: str
    national_id: str
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class OwnerCreateRequest(BaseModel):
    name: str = Field(..., max_length=100)
    email: str = Field(..., max_length=254)
    national_id: str = Field(..., max_length=20)
