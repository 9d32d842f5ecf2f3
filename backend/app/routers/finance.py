# backend/app/routers/finance.py
import logging
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import case, func
from sqlalchemy.orm import Session

from app import models, schemas
from app.constants import DEFAULT_PAGE_SIZE
from app.database import get_db
from app.listing import paginate
from app.routers.auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(tags=["finance"])

NULLABLE_FIELDS = {"contact_number", "email", "address", "notes"}


# ---------- Helpers ----------

def get_finance_or_404(db: Session, finance_id: int) -> models.Finance:
    person = db.query(models.Finance).filter(models.Finance.id == finance_id).first()
    if not person:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Finance person not found")
    return person


def add_transaction(
    db: Session,
    person: models.Finance,
    payload: schemas.FinanceTransactionCreate,
    paid_by: int,
) -> models.FinanceTransaction:
    """
    Store a transaction and move the person's running totals with it,
    in the same commit.
    """
    txn = models.FinanceTransaction(**payload.model_dump(), paid_by=paid_by)
    db.add(txn)

    person.total_amount_paid = (person.total_amount_paid or 0.0) + payload.amount
    person.total_transactions = (person.total_transactions or 0) + 1
    person.last_payment_date = payload.payment_date

    db.commit()
    db.refresh(txn)

    logger.info(
        "Finance transaction %s: %.2f to %s", txn.id, txn.amount, person.person_name
    )
    return txn


# ---------- Collection / stats ----------

@router.get("/stats/overview")
def finance_stats(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    people = db.query(
        func.count(models.Finance.id).label("total_finance_persons"),
        func.sum(models.Finance.total_amount_paid).label("total_amount_paid"),
        func.sum(case((models.Finance.status == "active", 1), else_=0)).label("active_persons"),
    ).one()

    txns = db.query(
        func.count(models.FinanceTransaction.id).label("total_transactions"),
        func.sum(models.FinanceTransaction.amount).label("total_amount"),
        func.avg(models.FinanceTransaction.amount).label("avg_transaction_amount"),
    ).one()

    return {
        "total_finance_persons": people.total_finance_persons or 0,
        "total_amount_paid": float(people.total_amount_paid or 0),
        "active_persons": int(people.active_persons or 0),
        "total_transactions": txns.total_transactions or 0,
        "total_amount": float(txns.total_amount or 0),
        "avg_transaction_amount": float(txns.avg_transaction_amount or 0),
    }


@router.get("/")
def list_finance_persons(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=500),
    search: Optional[str] = None,
    person_type: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    sort_by: str = "total_amount_paid",
    sort_order: Literal["asc", "desc"] = "desc",
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    items, meta = paginate(
        db.query(models.Finance),
        models.Finance,
        page=page,
        limit=limit,
        search=search,
        search_fields=("person_name", "contact_number", "email"),
        filters={"person_type": person_type, "status": status_filter},
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return {
        "finance_persons": [schemas.FinanceRead.model_validate(p) for p in items],
        **meta,
    }


@router.post("/", response_model=schemas.FinanceRead, status_code=status.HTTP_201_CREATED)
def create_finance_person(
    payload: schemas.FinanceCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    person = models.Finance(**payload.model_dump())
    db.add(person)
    db.commit()
    db.refresh(person)
    return person


# ---------- Transactions ----------

@router.get("/transactions")
def list_transactions(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=500),
    finance_id: Optional[int] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    sort_by: str = "payment_date",
    sort_order: Literal["asc", "desc"] = "desc",
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    items, meta = paginate(
        db.query(models.FinanceTransaction),
        models.FinanceTransaction,
        page=page,
        limit=limit,
        filters={"finance_id": finance_id},
        date_field="payment_date",
        date_from=date_from,
        date_to=date_to,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return {
        "transactions": [schemas.FinanceTransactionRead.model_validate(t) for t in items],
        **meta,
    }


@router.post(
    "/transactions",
    response_model=schemas.FinanceTransactionRead,
    status_code=status.HTTP_201_CREATED,
)
def create_transaction(
    payload: schemas.FinanceTransactionCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    person = get_finance_or_404(db, payload.finance_id)
    return add_transaction(db, person, payload, paid_by=current_user.user_id)


# ---------- Single person ----------

@router.get("/{finance_id}", response_model=schemas.FinanceDetail)
def get_finance_person(
    finance_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    person = get_finance_or_404(db, finance_id)
    transactions = (
        db.query(models.FinanceTransaction)
        .filter(models.FinanceTransaction.finance_id == finance_id)
        .order_by(models.FinanceTransaction.payment_date.desc())
        .all()
    )
    return {"finance": person, "transactions": transactions}


@router.put("/{finance_id}", response_model=schemas.FinanceRead)
def update_finance_person(
    finance_id: int,
    update: schemas.FinanceUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    person = get_finance_or_404(db, finance_id)

    for field, value in update.model_dump(exclude_unset=True).items():
        if value is None and field not in NULLABLE_FIELDS:
            continue
        setattr(person, field, value)

    db.commit()
    db.refresh(person)
    return person


@router.delete("/{finance_id}")
def delete_finance_person(
    finance_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    person = get_finance_or_404(db, finance_id)

    has_transactions = (
        db.query(models.FinanceTransaction.id)
        .filter(models.FinanceTransaction.finance_id == finance_id)
        .first()
    )
    if has_transactions:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete finance person with existing transactions",
        )

    db.delete(person)
    db.commit()
    return {"message": "Finance person deleted successfully"}
