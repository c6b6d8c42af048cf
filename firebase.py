import json
import os
from typing import Optional

import firebase_admin
import structlog
from firebase_admin import credentials, firestore
from google.api_core.exceptions import Conflict
from google.cloud.firestore_v1.base_query import FieldFilter

from config import Settings
from errors import ConflictError
from model import Record, RecordIn, User
from store import Store, new_id, record_document

logger = structlog.get_logger(__name__)

USERS = "users"
# One document per registered email; create() on it fails if the email is taken
USER_EMAILS = "user_emails"
EXPENSES = "expenses"


def _load_credentials(service_account: Optional[str]):
    if not service_account:
        # Falls back to GOOGLE_APPLICATION_CREDENTIALS / metadata server
        return credentials.ApplicationDefault()
    if os.path.isfile(service_account):
        return credentials.Certificate(service_account)
    return credentials.Certificate(json.loads(service_account))


def create_client(settings: Settings):
    try:
        app = firebase_admin.get_app()
    except ValueError:
        app = firebase_admin.initialize_app(_load_credentials(settings.service_account))
    logger.info("firestore_connected", database_id=settings.firestore_database_id)
    return firestore.client(app=app, database_id=settings.firestore_database_id)


class FirestoreStore(Store):
    def __init__(self, db):
        self.db = db

    def add_user(self, name: str, email: str, password_hash: str) -> User:
        user_id = new_id()
        try:
            self.db.collection(USER_EMAILS).document(email).create({"user_id": user_id})
        except Conflict:
            raise ConflictError("User already exists")
        self.db.collection(USERS).document(user_id).set(
            {"name": name, "email": email, "password_hash": password_hash}
        )
        return User(id=user_id, name=name, email=email, password_hash=password_hash)

    def get_user(self, user_id: str) -> Optional[User]:
        doc = self.db.collection(USERS).document(user_id).get()
        if not doc.exists:
            return None
        return User(id=doc.id, **doc.to_dict())

    def find_user_by_email(self, email: str) -> Optional[User]:
        docs = (
            self.db.collection(USERS)
            .where(filter=FieldFilter("email", "==", email))
            .limit(1)
            .stream()
        )
        for doc in docs:
            return User(id=doc.id, **doc.to_dict())
        return None

    def add_record(self, owner_id: str, data: RecordIn) -> Record:
        record_id = new_id()
        body = record_document(owner_id, data)
        self.db.collection(EXPENSES).document(record_id).set(body)
        return Record(id=record_id, **body)

    def get_record(self, record_id: str) -> Optional[Record]:
        doc = self.db.collection(EXPENSES).document(record_id).get()
        if not doc.exists:
            return None
        return Record(id=doc.id, **doc.to_dict())

    def list_records(self, owner_id: Optional[str] = None) -> list[Record]:
        query = self.db.collection(EXPENSES)
        if owner_id is not None:
            query = query.where(filter=FieldFilter("owner_id", "==", owner_id))
        return [Record(id=doc.id, **doc.to_dict()) for doc in query.stream()]

    def replace_record(self, record_id: str, data: RecordIn) -> Optional[Record]:
        doc_ref = self.db.collection(EXPENSES).document(record_id)
        doc = doc_ref.get()
        if not doc.exists:
            return None
        body = record_document(doc.to_dict()["owner_id"], data)
        doc_ref.set(body)
        return Record(id=record_id, **body)

    def delete_record(self, record_id: str) -> Optional[Record]:
        doc_ref = self.db.collection(EXPENSES).document(record_id)
        doc = doc_ref.get()
        if not doc.exists:
            return None
        doc_ref.delete()
        return Record(id=doc.id, **doc.to_dict())
