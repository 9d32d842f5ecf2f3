# backend/app/routers/dashboard.py
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Tuple

from fastapi import APIRouter, Depends
from sqlalchemy import case, func
from sqlalchemy.orm import Session

from app import models
from app.database import get_db
from app.routers.auth import get_current_user

router = APIRouter(tags=["dashboard"])

def date_range(period: str, now: datetime) -> Tuple[datetime, datetime]:
    """
    (start, end) for a dashboard period. Weeks start on Sunday.
    Unknown periods fall back to thisMonth.
    """
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    start_of_month = start_of_day.replace(day=1)

    if period == "today":
        return start_of_day, start_of_day + timedelta(days=1)
    if period == "thisWeek":
        days_since_sunday = (start_of_day.weekday() + 1) % 7
        return start_of_day - timedelta(days=days_since_sunday), now
    if period == "lastMonth":
        end = start_of_month - timedelta(microseconds=1)
        return end.replace(day=1, hour=0, minute=0, second=0, microsecond=0), end
    if period == "thisYear":
        return start_of_day.replace(month=1, day=1), now
    return start_of_month, now


def _bucket(rows, key):
    """Sum (created_at, final_amount, profit) rows into revenue/profit/sales per key."""
    buckets = OrderedDict()
    for created_at, amount, profit in sorted(rows, key=lambda r: r[0]):
        k = key(created_at)
        entry = buckets.setdefault(k, {"revenue": 0.0, "profit": 0.0, "sales": 0})
        entry["revenue"] += amount or 0
        entry["profit"] += profit or 0
        entry["sales"] += 1
    return buckets


@router.get("/")
def dashboard(
    filter: str = "thisMonth",
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    now = datetime.now()
    start, end = date_range(filter, now)

    # Stock
    bikes = db.query(
        func.count(models.Bike.id).label("total"),
        func.sum(case((models.Bike.status == "available", 1), else_=0)).label("available"),
        func.sum(case((models.Bike.status == "sold", 1), else_=0)).label("sold"),
        func.sum(case((models.Bike.status == "reserved", 1), else_=0)).label("reserved"),
        func.sum(
            case(((models.Bike.status == "sold") & (models.Bike.profit < 0), 1), else_=0)
        ).label("loss"),
    ).one()

    # Sales in period
    in_range = (models.Sale.created_at >= start, models.Sale.created_at <= end)
    sales = (
        db.query(
            func.count(models.Sale.id).label("count"),
            func.sum(models.Sale.final_amount).label("revenue"),
            func.sum(models.Sale.profit).label("profit"),
            func.avg(models.Sale.final_amount).label("avg_sale"),
            func.avg(models.Sale.profit).label("avg_profit"),
        )
        .filter(*in_range)
        .one()
    )
    total_revenue = float(sales.revenue or 0)
    total_profit = float(sales.profit or 0)

    period_rows = (
        db.query(models.Sale.created_at, models.Sale.final_amount, models.Sale.profit)
        .filter(*in_range)
        .all()
    )
    revenue_data = [
        {"date": day.isoformat(), **values}
        for day, values in _bucket(period_rows, lambda d: d.date()).items()
    ]

    sales_count = func.count(models.Sale.id).label("sales")
    brand_rows = (
        db.query(
            models.Bike.brand,
            sales_count,
            func.sum(models.Sale.final_amount),
            func.sum(models.Sale.profit),
        )
        .join(models.Sale, models.Sale.bike_id == models.Bike.id)
        .filter(*in_range)
        .group_by(models.Bike.brand)
        .order_by(sales_count.desc())
        .all()
    )
    brand_stats = [
        {"brand": brand, "sales": count, "revenue": float(revenue or 0), "profit": float(profit or 0)}
        for brand, count, revenue, profit in brand_rows
    ]

    # Last 12 months
    year_ago = now - timedelta(days=365)
    year_rows = (
        db.query(models.Sale.created_at, models.Sale.final_amount, models.Sale.profit)
        .filter(models.Sale.created_at >= year_ago)
        .all()
    )
    monthly_data = [
        {"year": year, "month": month, **values}
        for (year, month), values in _bucket(year_rows, lambda d: (d.year, d.month)).items()
    ]

    top_profit_bikes = (
        db.query(models.Bike)
        .filter(models.Bike.status == "sold", models.Bike.profit > 0)
        .order_by(models.Bike.profit.desc())
        .limit(5)
        .all()
    )
    slow_moving = (
        db.query(models.Bike)
        .filter(
            models.Bike.status == "available",
            models.Bike.purchase_date < now - timedelta(days=30),
        )
        .order_by(models.Bike.purchase_date.asc())
        .all()
    )

    total_customers = db.query(func.count(models.Customer.id)).scalar() or 0
    new_customers = (
        db.query(func.count(models.Customer.id))
        .filter(models.Customer.created_at >= start, models.Customer.created_at <= end)
        .scalar()
        or 0
    )

    return {
        "total_bikes": bikes.total or 0,
        "available_bikes": int(bikes.available or 0),
        "sold_bikes": int(bikes.sold or 0),
        "reserved_bikes": int(bikes.reserved or 0),
        "loss_bikes": int(bikes.loss or 0),
        "total_revenue": total_revenue,
        "total_profit": total_profit,
        "avg_profit": float(sales.avg_profit or 0),
        "avg_sale_value": float(sales.avg_sale or 0),
        "profit_margin": (total_profit / total_revenue * 100) if total_revenue > 0 else 0,
        "revenue_data": revenue_data,
        "brand_stats": brand_stats,
        "monthly_data": monthly_data,
        "top_profit_bikes": [
            {
                "id": b.id,
                "bike_number": b.bike_number,
                "brand": b.brand,
                "model": b.model,
                "profit": b.profit,
                "profit_percent": b.profit_percent,
                "sell_price": b.sell_price,
            }
            for b in top_profit_bikes
        ],
        "slow_moving_bikes": [
            {
                "id": b.id,
                "bike_number": b.bike_number,
                "brand": b.brand,
                "model": b.model,
                "purchase_date": b.purchase_date,
                "buy_price": b.buy_price,
            }
            for b in slow_moving
        ],
        "total_customers": total_customers,
        "new_customers": new_customers,
    }
