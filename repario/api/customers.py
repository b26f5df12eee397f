# repario/api/customers.py

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.engine import Engine

from repario.core.security import get_current_user
from repario.db.engine import get_engine
from repario.models.auth import CurrentUser
from repario.models.customers import (
    CustomerHistoryResponse,
    CustomerInfo,
    CustomerOut,
    CustomerUpdate,
)
from repario.services import customers as service
from repario.services.similarity import NameMatcher, get_name_matcher

router = APIRouter(prefix="/api/customers", tags=["customers"])


@router.get("", response_model=List[CustomerOut])
def list_customers(
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> List[CustomerOut]:
    """
    Return all customers of the user, ordered by name.
    """
    with engine.connect() as conn:
        return service.list_customers(conn, user.user_id)


@router.get("/{customer_id}", response_model=CustomerOut)
def get_customer(
    customer_id: str,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> CustomerOut:
    with engine.connect() as conn:
        return service.get_customer(conn, user.user_id, customer_id)


@router.get("/{customer_id}/history", response_model=CustomerHistoryResponse)
def get_customer_history(
    customer_id: str,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> CustomerHistoryResponse:
    """
    Invoices of one customer, newest first, with count, total and last invoice date.
    """
    with engine.connect() as conn:
        return service.customer_history(conn, user.user_id, customer_id)


@router.post("", response_model=CustomerOut, status_code=201)
def create_customer(
    data: CustomerInfo,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
    matcher: NameMatcher = Depends(get_name_matcher),
) -> CustomerOut:
    with engine.begin() as conn:
        return service.create_customer(conn, user.user_id, data, matcher)


@router.put("/{customer_id}", response_model=CustomerOut)
def update_customer(
    customer_id: str,
    data: CustomerUpdate,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> CustomerOut:
    with engine.begin() as conn:
        return service.update_customer(conn, user.user_id, customer_id, data)


@router.delete("/{customer_id}")
def delete_customer(
    customer_id: str,
    user: CurrentUser = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
) -> dict:
    with engine.begin() as conn:
        service.delete_customer(conn, user.user_id, customer_id)
    return {"message": "Customer deleted successfully"}
