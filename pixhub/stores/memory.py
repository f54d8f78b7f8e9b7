"""
In-memory stores for development and tests.

Each store keeps a plain dict guarded by a Lock. Records are immutable, so a
write replaces the stored value wholesale (last write wins, there is no
version check).
"""

import threading
from datetime import datetime
from typing import Callable, Optional

from pixhub.errors import NotFoundError
from pixhub.models.contact import Contact
from pixhub.models.enums import TransactionStatus
from pixhub.models.owner import Owner
from pixhub.models.transaction import Transaction
from pixhub.validation.key_validator import digits_only


def _normalize_email(email: str) -> str:
    return email.strip().lower()


class InMemoryOwnerDirectory:
    def __init__(self):
        self._lock = threading.Lock()
        self._owners: dict[str, Owner] = {}

    async def create(self, owner: Owner) -> Owner:
        with self._lock:
            self._owners[owner.id] = owner
        return owner

    async def find_by_id(self, owner_id: str) -> Optional[Owner]:
        with self._lock:
            return self._owners.get(owner_id)

    async def find_by_email(self, email: str) -> Optional[Owner]:
        wanted = _normalize_email(email)
        with self._lock:
            return next(
                (o for o in self._owners.values() if _normalize_email(o.email) == wanted),
                None,
            )

    async def find_by_national_id(self, national_id: str) -> Optional[Owner]:
        wanted = digits_only(national_id)
        with self._lock:
            return next(
                (o for o in self._owners.values() if digits_only(o.national_id) == wanted),
                None,
            )


class InMemoryContactStore:
    def __init__(self):
        self._lock = threading.Lock()
        self._contacts: dict[str, Contact] = {}

    async def create(self, contact: Contact) -> Contact:
        with self._lock:
            self._contacts[contact.id] = contact
        return contact

    async def update(self, contact: Contact) -> Contact:
        with self._lock:
            if contact.id not in self._contacts:
                raise NotFoundError(f"contact {contact.id} not found")
            self._contacts[contact.id] = contact
        return contact

    async def delete(self, contact_id: str) -> None:
        with self._lock:
            if self._contacts.pop(contact_id, None) is None:
                raise NotFoundError(f"contact {contact_id} not found")

    async def find_by_id(self, contact_id: str) -> Optional[Contact]:
        with self._lock:
            return self._contacts.get(contact_id)

    async def find_by_owner(self, owner_id: str) -> list[Contact]:
        with self._lock:
            found = [c for c in self._contacts.values() if c.owner_id == owner_id]
        return sorted(found, key=lambda c: c.created_at)

    async def find_by_name_and_owner(self, name: str, owner_id: str) -> Optional[Contact]:
        with self._lock:
            return next(
                (
                    c for c in self._contacts.values()
                    if c.owner_id == owner_id and c.display_name == name
                ),
                None,
            )


class InMemoryTransactionStore:
    def __init__(self):
        self._lock = threading.Lock()
        self._transactions: dict[str, Transaction] = {}

    async def create(self, transaction: Transaction) -> Transaction:
        with self._lock:
            self._transactions[transaction.id] = transaction
        return transaction

    async def find_by_id(self, transaction_id: str) -> Optional[Transaction]:
        with self._lock:
            return self._transactions.get(transaction_id)

    def _select(self, predicate: Callable[[Transaction], bool]) -> list[Transaction]:
        with self._lock:
            return [t for t in self._transactions.values() if predicate(t)]

    async def find_by_owner(self, owner_id: str) -> list[Transaction]:
        found = self._select(lambda t: t.owner_id == owner_id)
        return sorted(found, key=lambda t: t.created_at)

    async def find_by_status(self, status: TransactionStatus) -> list[Transaction]:
        found = self._select(lambda t: t.status == status)
        return sorted(found, key=lambda t: t.created_at)

    async def find_scheduled_for_execution(self, now: datetime) -> list[Transaction]:
        found = self._select(lambda t: t.is_scheduled_candidate(now))
        return sorted(found, key=lambda t: t.scheduled_at)

    async def find_automatic_for_execution(self, now: datetime) -> list[Transaction]:
        found = self._select(lambda t: t.is_automatic_candidate(now))
        return sorted(found, key=lambda t: t.scheduled_at)

    def _transition(
        self, transaction_id: str, step: Callable[[Transaction], Transaction]
    ) -> Transaction:
        with self._lock:
            current = self._transactions.get(transaction_id)
            if current is None:
                raise NotFoundError(f"transaction {transaction_id} not found")
            updated = step(current)
            self._transactions[transaction_id] = updated
            return updated

    async def mark_executed(self, transaction_id: str, now: datetime) -> Transaction:
        return self._transition(transaction_id, lambda t: t.mark_executed(now))

    async def mark_failed(self, transaction_id: str, now: datetime) -> Transaction:
        return self._transition(transaction_id, lambda t: t.mark_failed(now))

    async def mark_cancelled(self, transaction_id: str, now: datetime) -> Transaction:
        return self._transition(transaction_id, lambda t: t.mark_cancelled(now))
