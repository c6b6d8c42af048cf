from datetime import datetime
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware

from auth import authenticate, register_user, verify_token
from config import Settings
from deps import get_clock, get_settings, get_store
from errors import NotFoundError, register_error_handlers
from expenses import calculate_totals, filter_by_window, search_records
from logs import configure_logging
from model import (
    ErrorResult,
    LoginResult,
    Record,
    RecordChangeResult,
    RecordIn,
    RecordListResult,
    RecordResult,
    RegisterResult,
    SearchResult,
    User,
    UserLogin,
    UserOut,
    UserRegister,
)
from store import InMemoryStore, Store

logger = structlog.get_logger(__name__)

ERROR_RESPONSES = {
    400: {"model": ErrorResult},
    401: {"model": ErrorResult},
    404: {"model": ErrorResult},
    500: {"model": ErrorResult},
}

router = APIRouter(responses=ERROR_RESPONSES)


def _public_user(user: User) -> UserOut:
    return UserOut(id=user.id, name=user.name, email=user.email)


def _owned_record(store: Store, record_id: str, user: User) -> Record:
    record = store.get_record(record_id)
    # Other users' records are reported as missing
    if record is None or record.owner_id != user.id:
        raise NotFoundError("Record not found")
    return record


@router.get("/health")
def health():
    return {"status": "ok"}


@router.post("/register", status_code=201, response_model=RegisterResult)
def register(
    payload: UserRegister,
    store: Store = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    user = register_user(payload, store, settings)
    return RegisterResult(message="User registered successfully", user=_public_user(user))


@router.post("/login", response_model=LoginResult)
def login(
    payload: UserLogin,
    store: Store = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    user, token = authenticate(payload, store, settings)
    return LoginResult(message="Login successful", token=token, user=_public_user(user))


@router.post("/create-expense", status_code=201, response_model=RecordChangeResult)
def create_expense(
    payload: RecordIn,
    user: User = Depends(verify_token),
    store: Store = Depends(get_store),
):
    record = store.add_record(user.id, payload)
    logger.info("record_created", user_id=user.id, record_id=record.id, type=record.type)

    totals = calculate_totals(store.list_records(owner_id=user.id))
    return RecordChangeResult(message="Expense added successfully", record=record, totals=totals)


@router.get("/all-expenses", response_model=RecordListResult)
def all_expenses(user: User = Depends(verify_token), store: Store = Depends(get_store)):
    records = store.list_records(owner_id=user.id)
    return RecordListResult(
        message="All expenses fetched successfully",
        data=records,
        totals=calculate_totals(records),
    )


@router.get("/expense/{record_id}", response_model=RecordResult)
def get_expense(
    record_id: str,
    user: User = Depends(verify_token),
    store: Store = Depends(get_store),
):
    record = _owned_record(store, record_id, user)
    return RecordResult(message="Expense fetched successfully", record=record)


@router.put("/expense/{record_id}", response_model=RecordChangeResult)
def update_expense(
    record_id: str,
    payload: RecordIn,
    user: User = Depends(verify_token),
    store: Store = Depends(get_store),
):
    _owned_record(store, record_id, user)
    record = store.replace_record(record_id, payload)
    if record is None:
        raise NotFoundError("Record not found")
    logger.info("record_updated", user_id=user.id, record_id=record_id)

    totals = calculate_totals(store.list_records(owner_id=user.id))
    return RecordChangeResult(message="Expense updated successfully", record=record, totals=totals)


@router.delete("/expense/{record_id}", response_model=RecordChangeResult)
def delete_expense(
    record_id: str,
    user: User = Depends(verify_token),
    store: Store = Depends(get_store),
):
    _owned_record(store, record_id, user)
    record = store.delete_record(record_id)
    if record is None:
        raise NotFoundError("Record not found")
    logger.info("record_deleted", user_id=user.id, record_id=record_id)

    totals = calculate_totals(store.list_records(owner_id=user.id))
    return RecordChangeResult(message="Expense deleted successfully", record=record, totals=totals)


@router.get("/expenses-by-time", response_model=RecordListResult)
def expenses_by_time(
    filter: Optional[str] = Query(None),
    user: User = Depends(verify_token),
    store: Store = Depends(get_store),
    now: datetime = Depends(get_clock),
):
    records = filter_by_window(store.list_records(owner_id=user.id), filter, now)
    return RecordListResult(
        message=f"Expenses for {filter}",
        data=records,
        totals=calculate_totals(records),
    )


@router.get("/search-expenses", response_model=SearchResult)
def search_expenses(
    query: Optional[str] = Query(None),
    user: User = Depends(verify_token),
    store: Store = Depends(get_store),
):
    results = search_records(store.list_records(owner_id=user.id), query)
    return SearchResult(
        message=f'Search results for "{query}"',
        total_results=len(results),
        data=results,
    )


def build_store(settings: Settings) -> Store:
    if settings.store_backend == "memory":
        return InMemoryStore()

    from firebase import FirestoreStore, create_client

    return FirestoreStore(create_client(settings))


def create_app(settings: Settings, store: Optional[Store] = None) -> FastAPI:
    app = FastAPI(title="Expense Tracker")
    app.state.settings = settings
    app.state.store = store if store is not None else build_store(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(router)
    app.include_router(router, prefix="/api", include_in_schema=False)
    return app


def get_app() -> FastAPI:
    """Build the app from the environment: `uvicorn main:get_app --factory`."""
    settings = Settings()
    configure_logging(settings)
    return create_app(settings)


if __name__ == "__main__":
    import uvicorn

    app = get_app()
    settings = app.state.settings
    logger.info("server_starting", host=settings.host, port=settings.port, store=settings.store_backend)
    uvicorn.run(app, host=settings.host, port=settings.port)
