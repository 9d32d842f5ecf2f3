# backend/app/routers/customers.py
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app import models, schemas
from app.constants import DEFAULT_PAGE_SIZE
from app.database import get_db
from app.listing import paginate
from app.routers.auth import get_current_user

router = APIRouter(tags=["customers"])

NULLABLE_FIELDS = {"email", "date_of_birth", "occupation", "notes"}


def get_customer_or_404(db: Session, customer_id: int) -> models.Customer:
    customer = db.query(models.Customer).filter(models.Customer.id == customer_id).first()
    if not customer:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Customer not found")
    return customer


def ensure_unique_phone(db: Session, phone: str, exclude_id: Optional[int] = None):
    query = db.query(models.Customer).filter(models.Customer.phone == phone)
    if exclude_id is not None:
        query = query.filter(models.Customer.id != exclude_id)
    if query.first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Customer with this phone number already exists",
        )


@router.get("/stats/overview")
def customer_stats(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    row = db.query(
        func.count(models.Customer.id).label("total_customers"),
        func.sum(models.Customer.total_spent).label("total_spent"),
        func.avg(models.Customer.total_spent).label("avg_spent_per_customer"),
        func.sum(models.Customer.total_bikes_bought).label("total_bikes_bought"),
    ).one()

    type_rows = (
        db.query(models.Customer.customer_type, func.count(models.Customer.id))
        .group_by(models.Customer.customer_type)
        .all()
    )

    return {
        "total_customers": row.total_customers or 0,
        "total_spent": float(row.total_spent or 0),
        "avg_spent_per_customer": float(row.avg_spent_per_customer or 0),
        "total_bikes_bought": int(row.total_bikes_bought or 0),
        "customer_types": [
            {"customer_type": ctype, "count": count} for ctype, count in type_rows
        ],
    }


@router.get("/")
def list_customers(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=500),
    search: Optional[str] = None,
    customer_type: Optional[str] = None,
    sort_by: str = "total_spent",
    sort_order: Literal["asc", "desc"] = "desc",
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    items, meta = paginate(
        db.query(models.Customer),
        models.Customer,
        page=page,
        limit=limit,
        search=search,
        search_fields=("name", "phone", "email"),
        filters={"customer_type": customer_type},
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return {"customers": [schemas.CustomerRead.model_validate(c) for c in items], **meta}


@router.get("/{customer_id}", response_model=schemas.CustomerDetail)
def get_customer(
    customer_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Customer record plus purchase history (newest first)."""
    customer = get_customer_or_404(db, customer_id)
    purchases = (
        db.query(models.Sale)
        .filter(models.Sale.customer_id == customer.id)
        .order_by(models.Sale.created_at.desc())
        .all()
    )
    return {"customer": customer, "purchases": purchases}


@router.post("/", response_model=schemas.CustomerRead, status_code=status.HTTP_201_CREATED)
def create_customer(
    payload: schemas.CustomerCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    ensure_unique_phone(db, payload.phone)

    customer = models.Customer(**payload.model_dump())
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return customer


@router.put("/{customer_id}", response_model=schemas.CustomerRead)
def update_customer(
    customer_id: int,
    update: schemas.CustomerUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    Edit contact details. The spend aggregates are owned by the sale
    workflow; customer_type is recomputed on save regardless.
    """
    customer = get_customer_or_404(db, customer_id)

    data = update.model_dump(exclude_unset=True)
    if data.get("phone") and data["phone"] != customer.phone:
        ensure_unique_phone(db, data["phone"], exclude_id=customer.id)

    for field, value in data.items():
        if value is None and field not in NULLABLE_FIELDS:
            continue
        setattr(customer, field, value)

    db.commit()
    db.refresh(customer)
    return customer


@router.delete("/{customer_id}")
def delete_customer(
    customer_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    customer = get_customer_or_404(db, customer_id)

    sales_count = (
        db.query(func.count(models.Sale.id))
        .filter(models.Sale.customer_id == customer.id)
        .scalar()
    )
    if sales_count > 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete customer with existing sales records",
        )

    db.delete(customer)
    db.commit()
    return {"message": "Customer deleted successfully"}
