import logging

from pixhub.errors import NotFoundError, ValidationError
from pixhub.models.owner import Owner
from pixhub.stores.base import OwnerDirectory
from pixhub.validation import key_validator

logger = logging.getLogger(__name__)


class OwnerService:
    def __init__(self, owners: OwnerDirectory):
        self._owners = owners

    async def create(self, name: str, email: str, national_id: str) -> Owner:
        if not name or not name.strip():
            raise ValidationError("name is required")
        if not email or not key_validator.is_valid_email(email):
            raise ValidationError("email invalid")
        if not national_id or not key_validator.is_valid_national_id(national_id):
            raise ValidationError("CPF invalid")

        national_id = key_validator.digits_only(national_id)
        if await self._owners.find_by_email(email) is not None:
            raise ValidationError("email already in use")
        if await self._owners.find_by_national_id(national_id) is not None:
            raise ValidationError("CPF already in use")

        owner = await self._owners.create(
            Owner(name=name.strip(), email=email.strip(), national_id=national_id)
        )
        logger.info(f"Owner {owner.id} created")
        return owner

    async def get(self, owner_id: str) -> Owner:
        owner = await self._owners.find_by_id(owner_id)
        if owner is None:
            raise NotFoundError(f"owner {owner_id} not found")
        return owner
