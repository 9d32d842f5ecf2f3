# backend/app/routers/expenses.py
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app import models, schemas
from app.constants import DEFAULT_PAGE_SIZE
from app.database import get_db
from app.listing import paginate
from app.routers.auth import get_current_user

router = APIRouter(tags=["expenses"])

NULLABLE_FIELDS = {
    "description",
    "vendor_name",
    "vendor_contact",
    "vendor_address",
    "recurring_period",
}


def get_expense_or_404(db: Session, expense_id: int) -> models.Expense:
    expense = db.query(models.Expense).filter(models.Expense.id == expense_id).first()
    if not expense:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense not found")
    return expense


@router.get("/stats/overview")
def expense_stats(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    row = db.query(
        func.count(models.Expense.id).label("total_expenses"),
        func.sum(models.Expense.amount).label("total_amount"),
        func.avg(models.Expense.amount).label("avg_expense_amount"),
    ).one()

    total = func.sum(models.Expense.amount).label("total_amount")
    categories = (
        db.query(models.Expense.category, func.count(models.Expense.id), total)
        .group_by(models.Expense.category)
        .order_by(total.desc())
        .all()
    )

    return {
        "total_expenses": row.total_expenses or 0,
        "total_amount": float(row.total_amount or 0),
        "avg_expense_amount": float(row.avg_expense_amount or 0),
        "category_breakdown": [
            {"category": category, "count": count, "total_amount": float(amount or 0)}
            for category, count, amount in categories
        ],
    }


@router.get("/")
def list_expenses(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=500),
    search: Optional[str] = None,
    category: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    sort_by: str = "expense_date",
    sort_order: Literal["asc", "desc"] = "desc",
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    items, meta = paginate(
        db.query(models.Expense),
        models.Expense,
        page=page,
        limit=limit,
        search=search,
        search_fields=("title", "description", "vendor_name"),
        filters={"category": category},
        date_field="expense_date",
        date_from=date_from,
        date_to=date_to,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return {"expenses": [schemas.ExpenseRead.model_validate(e) for e in items], **meta}


@router.get("/{expense_id}", response_model=schemas.ExpenseRead)
def get_expense(
    expense_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return get_expense_or_404(db, expense_id)


@router.post("/", response_model=schemas.ExpenseRead, status_code=status.HTTP_201_CREATED)
def create_expense(
    payload: schemas.ExpenseCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    expense = models.Expense(**payload.model_dump(), added_by=current_user.user_id)
    db.add(expense)
    db.commit()
    db.refresh(expense)
    return expense


@router.put("/{expense_id}", response_model=schemas.ExpenseRead)
def update_expense(
    expense_id: int,
    update: schemas.ExpenseUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    expense = get_expense_or_404(db, expense_id)

    for field, value in update.model_dump(exclude_unset=True).items():
        if value is None and field not in NULLABLE_FIELDS:
            continue
        setattr(expense, field, value)

    if expense.is_recurring and not expense.recurring_period:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Recurring period is required for recurring expenses",
        )

    db.commit()
    db.refresh(expense)
    return expense


@router.delete("/{expense_id}")
def delete_expense(
    expense_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    expense = get_expense_or_404(db, expense_id)
    db.delete(expense)
    db.commit()
    return {"message": "Expense deleted successfully"}
