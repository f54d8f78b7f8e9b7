"""
Collaborator contracts for persistence.

The engine only talks to these protocols; InMemory* implementations live in
pixhub.stores.memory. A database-backed store only has to satisfy the same
async methods.
"""

from datetime import datetime
from typing import Optional, Protocol

from pixhub.models.contact import Contact
from pixhub.models.enums import TransactionStatus
from pixhub.models.owner import Owner
from pixhub.models.transaction import Transaction


class OwnerDirectory(Protocol):
    async def create(self, owner: Owner) -> Owner: ...

    async def find_by_id(self, owner_id: str) -> Optional[Owner]: ...

    async def find_by_email(self, email: str) -> Optional[Owner]: ...

    async def find_by_national_id(self, national_id: str) -> Optional[Owner]: ...


class ContactStore(Protocol):
    async def create(self, contact: Contact) -> Contact: ...

    async def update(self, contact: Contact) -> Contact: ...

    async def delete(self, contact_id: str) -> None: ...

    async def find_by_id(self, contact_id: str) -> Optional[Contact]: ...

    async def find_by_owner(self, owner_id: str) -> list[Contact]: ...

    async def find_by_name_and_owner(self, name: str, owner_id: str) -> Optional[Contact]: ...


class TransactionStore(Protocol):
    async def create(self, transaction: Transaction) -> Transaction: ...

    async def find_by_id(self, transaction_id: str) -> Optional[Transaction]: ...

    async def find_by_owner(self, owner_id: str) -> list[Transaction]: ...

    async def find_by_status(self, status: TransactionStatus) -> list[Transaction]: ...

    async def find_scheduled_for_execution(self, now: datetime) -> list[Transaction]: ...

    async def find_automatic_for_execution(self, now: datetime) -> list[Transaction]: ...

    async def mark_executed(self, transaction_id: str, now: datetime) -> Transaction: ...

    async def mark_failed(self, transaction_id: str, now: datetime) -> Transaction: ...

    async def mark_cancelled(self, transaction_id: str, now: datetime) -> Transaction: ...
