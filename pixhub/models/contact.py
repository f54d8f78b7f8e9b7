from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from pixhub.models.base import DomainModel, new_id, utcnow
from pixhub.models.pix_key import PixKey, PixKeyRequest

MAX_KEYS_PER_CONTACT = 5


class Contact(DomainModel):
    """A saved payee. Each key change yields a new Contact version."""

    id: str = Field(default_factory=new_id)
    owner_id: str
    display_name: str
    keys: tuple[PixKey, ...]
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def add_key(self, key: PixKey, now: Optional[datetime] = None) -> "Contact":
        return self.model_copy(
            update={"keys": self.keys + (key,), "updated_at": now or utcnow()}
        )

    def remove_key(self, key_id: str, now: Optional[datetime] = None) -> "Contact":
        remaining = tuple(k for k in self.keys if k.id != key_id)
        return self.model_copy(update={"keys": remaining, "updated_at": now or utcnow()})

    def has_valid_keys(self) -> bool:
        return len(self.keys) > 0 and all(k.is_valid() for k in self.keys)


class ContactCreateRequest(BaseModel):
    owner_id: str = Field(..., min_length=1, max_length=64)
    display_name: str = Field(..., max_length=100)
    keys: list[PixKeyRequest]
