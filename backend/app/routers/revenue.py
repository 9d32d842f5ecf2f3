# backend/app/routers/revenue.py
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

router = APIRouter(tags=["revenue"])

NULLABLE_FIELDS = {"description", "customer_name", "customer_contact"}


def get_revenue_or_404(db: Session, revenue_id: int) -> models.Revenue:
    revenue = db.query(models.Revenue).filter(models.Revenue.id == revenue_id).first()
    if not revenue:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Revenue not found")
    return revenue


@router.get("/stats/overview")
def revenue_stats(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    row = db.query(
        func.count(models.Revenue.id).label("total_revenues"),
        func.sum(models.Revenue.amount).label("total_amount"),
        func.avg(models.Revenue.amount).label("avg_revenue_amount"),
    ).one()

    total = func.sum(models.Revenue.amount).label("total_amount")
    sources = (
        db.query(models.Revenue.source, func.count(models.Revenue.id), total)
        .group_by(models.Revenue.source)
        .order_by(total.desc())
        .all()
    )

    return {
        "total_revenues": row.total_revenues or 0,
        "total_amount": float(row.total_amount or 0),
        "avg_revenue_amount": float(row.avg_revenue_amount or 0),
        "source_breakdown": [
            {"source": source, "count": count, "total_amount": float(amount or 0)}
            for source, count, amount in sources
        ],
    }


@router.get("/")
def list_revenue(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=500),
    search: Optional[str] = None,
    source: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    sort_by: str = "revenue_date",
    sort_order: Literal["asc", "desc"] = "desc",
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    items, meta = paginate(
        db.query(models.Revenue),
        models.Revenue,
        page=page,
        limit=limit,
        search=search,
        search_fields=("title", "description", "customer_name"),
        filters={"source": source},
        date_field="revenue_date",
        date_from=date_from,
        date_to=date_to,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return {"revenues": [schemas.RevenueRead.model_validate(r) for r in items], **meta}


@router.get("/{revenue_id}", response_model=schemas.RevenueRead)
def get_revenue(
    revenue_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return get_revenue_or_404(db, revenue_id)


@router.post("/", response_model=schemas.RevenueRead, status_code=status.HTTP_201_CREATED)
def create_revenue(
    payload: schemas.RevenueCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    if payload.sale_id is not None:
        sale = db.query(models.Sale).filter(models.Sale.id == payload.sale_id).first()
        if not sale:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sale not found")

    revenue = models.Revenue(**payload.model_dump(), added_by=current_user.user_id)
    db.add(revenue)
    db.commit()
    db.refresh(revenue)
    return revenue


@router.put("/{revenue_id}", response_model=schemas.RevenueRead)
def update_revenue(
    revenue_id: int,
    update: schemas.RevenueUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    revenue = get_revenue_or_404(db, revenue_id)

    for field, value in update.model_dump(exclude_unset=True).items():
        if value is None and field not in NULLABLE_FIELDS:
            continue
        setattr(revenue, field, value)

    db.commit()
    db.refresh(revenue)
    return revenue


@router.delete("/{revenue_id}")
def delete_revenue(
    revenue_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    revenue = get_revenue_or_404(db, revenue_id)
    db.delete(revenue)
    db.commit()
    return {"message": "Revenue deleted successfully"}
