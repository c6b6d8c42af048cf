"""
Storage interface for users and expense records.

The service talks to a document store with two collections, ``users`` and
``expenses``. ``FirestoreStore`` (see ``firebase.py``) is the production
backend; ``InMemoryStore`` keeps everything in dicts and backs the tests and
local runs with ``EXPENSES_STORE_BACKEND=memory``.
"""

import uuid
from abc import ABC, abstractmethod
from typing import Optional

from errors import ConflictError
from model import Record, RecordIn, User


class Store(ABC):
    @abstractmethod
    def add_user(self, name: str, email: str, password_hash: str) -> User:
        """Persist a new user and return it with its assigned id.

        Raises ConflictError if the email is already registered.
        """

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]:
        pass

    @abstractmethod
    def find_user_by_email(self, email: str) -> Optional[User]:
        pass

    @abstractmethod
    def add_record(self, owner_id: str, data: RecordIn) -> Record:
        """Persist a new record for ``owner_id`` and return it with its assigned id."""

    @abstractmethod
    def get_record(self, record_id: str) -> Optional[Record]:
        pass

    @abstractmethod
    def list_records(self, owner_id: Optional[str] = None) -> list[Record]:
        """
        List records in the store's natural order.

        With ``owner_id`` set only that user's records are returned,
        otherwise every record in the store.
        """

    @abstractmethod
    def replace_record(self, record_id: str, data: RecordIn) -> Optional[Record]:
        """Overwrite every editable field of a record. Returns None if it does not exist."""

    @abstractmethod
    def delete_record(self, record_id: str) -> Optional[Record]:
        """Remove a record and return what was deleted, or None if it did not exist."""


def new_id() -> str:
    return uuid.uuid4().hex


def record_document(owner_id: str, data: RecordIn) -> dict:
    """Shape a record for the document store; dates and amounts are kept as strings."""
    return {
        "owner_id": owner_id,
        "type": data.type,
        "amount": str(data.amount),
        "category": data.category,
        "date": data.date.isoformat(),
        "description": data.description,
    }


class InMemoryStore(Store):
    def __init__(self):
        self._users: dict[str, dict] = {}
        self._records: dict[str, dict] = {}

    def add_user(self, name: str, email: str, password_hash: str) -> User:
        if self.find_user_by_email(email):
            raise ConflictError("User already exists")
        user_id = new_id()
        self._users[user_id] = {"name": name, "email": email, "password_hash": password_hash}
        return User(id=user_id, **self._users[user_id])

    def get_user(self, user_id: str) -> Optional[User]:
        doc = self._users.get(user_id)
        return User(id=user_id, **doc) if doc else None

    def find_user_by_email(self, email: str) -> Optional[User]:
        for user_id, doc in self._users.items():
            if doc["email"] == email:
                return User(id=user_id, **doc)
        return None

    def add_record(self, owner_id: str, data: RecordIn) -> Record:
        record_id = new_id()
        self._records[record_id] = record_document(owner_id, data)
        return Record(id=record_id, **self._records[record_id])

    def get_record(self, record_id: str) -> Optional[Record]:
        doc = self._records.get(record_id)
        return Record(id=record_id, **doc) if doc else None

    def list_records(self, owner_id: Optional[str] = None) -> list[Record]:
        return [
            Record(id=record_id, **doc)
            for record_id, doc in self._records.items()
            if owner_id is None or doc["owner_id"] == owner_id
        ]

    def replace_record(self, record_id: str, data: RecordIn) -> Optional[Record]:
        doc = self._records.get(record_id)
        if doc is None:
            return None
        self._records[record_id] = record_document(doc["owner_id"], data)
        return Record(id=record_id, **self._records[record_id])

    def delete_record(self, record_id: str) -> Optional[Record]:
        doc = self._records.pop(record_id, None)
        return Record(id=record_id, **doc) if doc else None
