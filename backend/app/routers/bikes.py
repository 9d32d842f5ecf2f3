# backend/app/routers/bikes.py
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import case, func
from sqlalchemy.orm import Session

from app import models, schemas
from app.constants import DEFAULT_PAGE_SIZE
from app.database import get_db
from app.listing import paginate
from app.routers.auth import get_current_user

router = APIRouter(tags=["bikes"])

# Fields a PUT may clear by sending null
NULLABLE_FIELDS = {"color", "mileage", "engine_cc", "notes"}


def get_bike_or_404(db: Session, bike_id: int) -> models.Bike:
    bike = db.query(models.Bike).filter(models.Bike.id == bike_id).first()
    if not bike:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bike not found")
    return bike


def ensure_unique_number(db: Session, bike_number: str, exclude_id: Optional[int] = None):
    query = db.query(models.Bike).filter(models.Bike.bike_number == bike_number)
    if exclude_id is not None:
        query = query.filter(models.Bike.id != exclude_id)
    if query.first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Bike number already exists",
        )


@router.get("/stats/overview")
def bike_stats(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    is_sold = models.Bike.status == "sold"
    row = db.query(
        func.count(models.Bike.id).label("total_bikes"),
        func.sum(case((models.Bike.status == "available", 1), else_=0)).label("available_bikes"),
        func.sum(case((is_sold, 1), else_=0)).label("sold_bikes"),
        func.sum(case((models.Bike.status == "reserved", 1), else_=0)).label("reserved_bikes"),
        func.sum(models.Bike.buy_price).label("total_investment"),
        func.sum(case((is_sold, models.Bike.sell_price), else_=0)).label("total_revenue"),
        func.sum(case((is_sold, models.Bike.profit), else_=0)).label("total_profit"),
        func.avg(case((is_sold, models.Bike.profit), else_=None)).label("avg_profit"),
    ).one()

    loss_bikes = (
        db.query(func.count(models.Bike.id))
        .filter(is_sold, models.Bike.profit < 0)
        .scalar()
    )

    return {
        "total_bikes": row.total_bikes or 0,
        "available_bikes": int(row.available_bikes or 0),
        "sold_bikes": int(row.sold_bikes or 0),
        "reserved_bikes": int(row.reserved_bikes or 0),
        "total_investment": float(row.total_investment or 0),
        "total_revenue": float(row.total_revenue or 0),
        "total_profit": float(row.total_profit or 0),
        "avg_profit": float(row.avg_profit or 0),
        "loss_bikes": loss_bikes or 0,
    }


@router.get("/")
def list_bikes(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=500),
    search: Optional[str] = None,
    brand: Optional[str] = None,
    bike_status: Optional[str] = Query(None, alias="status"),
    sort_by: str = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    List bikes.
    - search matches bike number, brand or model (case-insensitive)
    - brand / status are exact filters
    """
    items, meta = paginate(
        db.query(models.Bike),
        models.Bike,
        page=page,
        limit=limit,
        search=search,
        search_fields=("bike_number", "brand", "model"),
        filters={"brand": brand, "status": bike_status},
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return {"bikes": [schemas.BikeRead.model_validate(b) for b in items], **meta}


@router.get("/{bike_id}", response_model=schemas.BikeRead)
def get_bike(
    bike_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return get_bike_or_404(db, bike_id)


@router.post("/", response_model=schemas.BikeRead, status_code=status.HTTP_201_CREATED)
def create_bike(
    item: schemas.BikeCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    Add a bike to inventory.

    Rules:
    - bike_number is stored uppercase and must be unique.
    - New bikes start 'available' (or 'reserved' if asked); 'sold' only
      happens through POST /sales.
    """
    ensure_unique_number(db, item.bike_number)

    bike = models.Bike(**item.model_dump())
    db.add(bike)
    db.commit()
    db.refresh(bike)
    return bike


@router.put("/{bike_id}", response_model=schemas.BikeRead)
def update_bike(
    bike_id: int,
    update: schemas.BikeUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    Update one or more properties of a bike.
    Sold bikes are frozen.
    """
    bike = get_bike_or_404(db, bike_id)

    if bike.status == "sold":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot update sold bike",
        )

    data = update.model_dump(exclude_unset=True)
    if data.get("bike_number") and data["bike_number"] != bike.bike_number:
        ensure_unique_number(db, data["bike_number"], exclude_id=bike.id)

    for field, value in data.items():
        if value is None and field not in NULLABLE_FIELDS:
            continue
        setattr(bike, field, value)

    db.commit()
    db.refresh(bike)
    return bike


@router.delete("/{bike_id}")
def delete_bike(
    bike_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    bike = get_bike_or_404(db, bike_id)

    if bike.status == "sold":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete sold bike",
        )

    db.delete(bike)
    db.commit()
    return {"message": "Bike deleted successfully"}
