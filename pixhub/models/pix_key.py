from pydantic import BaseModel, Field

from pixhub.models.base import DomainModel, new_id
from pixhub.models.enums import KeyType
from pixhub.validation import key_validator


class PixKey(DomainModel):
    id: str = Field(default_factory=new_id)
    raw_value: str
    key_type: KeyType
    active: bool = True

    def is_valid(self) -> bool:
        # inactive keys are never valid, whatever their format
        if not self.active:
            return False
        return key_validator.validate(self.raw_value, self.key_type)


class PixKeyRequest(BaseModel):
    value: str = Field(..., min_length=1, max_length=77)
    key_type: KeyType
