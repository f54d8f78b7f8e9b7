import logging

from pixhub.errors import NotFoundError, ValidationError
from pixhub.models.base import utcnow
from pixhub.models.contact import MAX_KEYS_PER_CONTACT, Contact
from pixhub.models.pix_key import PixKey, PixKeyRequest
from pixhub.stores.base import ContactStore, OwnerDirectory
from pixhub.validation.contact_validator import key_pairs, validate_keys

logger = logging.getLogger(__name__)


class ContactService:
    """
    Saved payees. A contact's keys are validated as a bundle on every change,
    and each change stores a new Contact version.
    """

    def __init__(self, contacts: ContactStore, owners: OwnerDirectory):
        self._contacts = contacts
        self._owners = owners

    async def create(
        self, owner_id: str, display_name: str, keys: list[PixKeyRequest]
    ) -> Contact:
        if not owner_id:
            raise ValidationError("owner id is required")
        if not display_name or len(display_name.strip()) < 2:
            raise ValidationError("name must have at least 2 characters")
        if not keys:
            raise ValidationError("at least one PIX key is required")
        if len(keys) > MAX_KEYS_PER_CONTACT:
            raise ValidationError(f"a contact holds at most {MAX_KEYS_PER_CONTACT} PIX keys")

        display_name = display_name.strip()
        if await self._owners.find_by_id(owner_id) is None:
            raise NotFoundError(f"owner {owner_id} not found")

        if await self._contacts.find_by_name_and_owner(display_name, owner_id) is not None:
            raise ValidationError("a contact with this name already exists")

        validate_keys(key_pairs(keys))

        now = utcnow()
        contact = Contact(
            owner_id=owner_id,
            display_name=display_name,
            keys=tuple(PixKey(raw_value=k.value, key_type=k.key_type) for k in keys),
            created_at=now,
            updated_at=now,
        )
        created = await self._contacts.create(contact)
        logger.info(f"Contact {created.id} created for owner {owner_id} with {len(keys)} key(s)")
        return created

    async def get(self, contact_id: str) -> Contact:
        contact = await self._contacts.find_by_id(contact_id)
        if contact is None:
            raise NotFoundError(f"contact {contact_id} not found")
        return contact

    async def list_by_owner(self, owner_id: str) -> list[Contact]:
        return await self._contacts.find_by_owner(owner_id)

    async def add_key(self, contact_id: str, key: PixKeyRequest) -> Contact:
        contact = await self.get(contact_id)
        updated = contact.add_key(PixKey(raw_value=key.value, key_type=key.key_type))
        validate_keys(key_pairs(updated.keys))
        logger.info(f"Contact {contact_id}: added {key.key_type.value} key")
        return await self._contacts.update(updated)

    async def remove_key(self, contact_id: str, key_id: str) -> Contact:
        contact = await self.get(contact_id)
        if not any(k.id == key_id for k in contact.keys):
            raise NotFoundError(f"key {key_id} not found on contact {contact_id}")
        updated = contact.remove_key(key_id)
        # removing the last key would leave an empty bundle
        validate_keys(key_pairs(updated.keys))
        logger.info(f"Contact {contact_id}: removed key {key_id}")
        return await self._contacts.update(updated)

    async def delete(self, contact_id: str) -> None:
        await self.get(contact_id)
        await self._contacts.delete(contact_id)
        logger.info(f"Contact {contact_id} deleted")
