# backend/app/routers/payments.py
import logging
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app import models, schemas
from app.constants import DEFAULT_PAGE_SIZE
from app.database import get_db
from app.listing import like_pattern, paginate
from app.routers.auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(tags=["payments"])


def get_payment_or_404(db: Session, payment_id: int) -> models.Payment:
    payment = db.query(models.Payment).filter(models.Payment.id == payment_id).first()
    if not payment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payment not found")
    return payment


def record_payment(
    db: Session,
    payment: models.Payment,
    amount: float,
    method: str,
    payment_date: datetime,
    notes: Optional[str],
    recorded_by: int,
) -> models.Payment:
    """
    Append a ledger entry and raise paid_amount.
    remaining_amount and status are recomputed when the row is saved.
    Entries are never edited or removed afterwards.
    """
    # compare in cents
    if round(amount, 2) > round(payment.remaining_amount or 0.0, 2):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Payment amount cannot exceed remaining amount",
        )

    log = models.PaymentLog(
        payment_id=payment.id,
        amount=amount,
        payment_method=method,
        payment_date=payment_date,
        notes=notes,
        received_by=recorded_by,
    )
    db.add(log)
    payment.paid_amount = (payment.paid_amount or 0.0) + amount

    db.commit()
    db.refresh(payment)

    logger.info(
        "Payment %s: received %.2f, remaining %.2f (%s)",
        payment.id,
        amount,
        payment.remaining_amount,
        payment.status,
    )
    return payment


@router.get("/stats/overview")
def payment_stats(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    row = db.query(
        func.count(models.Payment.id).label("total_payments"),
        func.sum(models.Payment.total_amount).label("total_amount"),
        func.sum(models.Payment.paid_amount).label("total_paid"),
        func.sum(models.Payment.remaining_amount).label("total_remaining"),
    ).one()

    counts = dict(
        db.query(models.Payment.status, func.count(models.Payment.id))
        .group_by(models.Payment.status)
        .all()
    )

    return {
        "total_payments": row.total_payments or 0,
        "pending_payments": counts.get("pending", 0),
        "partial_payments": counts.get("partial", 0),
        "completed_payments": counts.get("completed", 0),
        "total_amount": float(row.total_amount or 0),
        "total_paid": float(row.total_paid or 0),
        "total_remaining": float(row.total_remaining or 0),
    }


@router.get("/")
def list_payments(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=500),
    search: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    sort_by: str = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    List payments. search matches the bike number, customer name or phone.
    """
    query = db.query(models.Payment)
    if search:
        pattern = like_pattern(search)
        query = (
            query.join(models.Bike, models.Payment.bike_id == models.Bike.id)
            .join(models.Customer, models.Payment.customer_id == models.Customer.id)
            .filter(
                or_(
                    models.Bike.bike_number.ilike(pattern, escape="\\"),
                    models.Customer.name.ilike(pattern, escape="\\"),
                    models.Customer.phone.ilike(pattern, escape="\\"),
                )
            )
        )

    items, meta = paginate(
        query,
        models.Payment,
        page=page,
        limit=limit,
        filters={"status": status_filter},
        date_field="created_at",
        date_from=date_from,
        date_to=date_to,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return {"payments": [schemas.PaymentRead.model_validate(p) for p in items], **meta}


@router.get("/{payment_id}", response_model=schemas.PaymentRead)
def get_payment(
    payment_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return get_payment_or_404(db, payment_id)


@router.post("/{payment_id}/payment", response_model=schemas.PaymentRead)
def add_payment(
    payment_id: int,
    entry: schemas.PaymentLogCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    payment = get_payment_or_404(db, payment_id)
    return record_payment(
        db,
        payment,
        amount=entry.amount,
        method=entry.payment_method,
        payment_date=entry.payment_date,
        notes=entry.notes,
        recorded_by=current_user.user_id,
    )


@router.put("/{payment_id}", response_model=schemas.PaymentRead)
def update_payment(
    payment_id: int,
    update: schemas.PaymentUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Amounts only move through the ledger; due date and notes are editable."""
    payment = get_payment_or_404(db, payment_id)

    for field, value in update.model_dump(exclude_unset=True).items():
        setattr(payment, field, value)

    db.commit()
    db.refresh(payment)
    return payment
