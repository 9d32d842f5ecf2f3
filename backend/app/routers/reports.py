# backend/app/routers/reports.py
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session
from starlette.background import BackgroundTask

from app import documents, models, schemas
from app.database import get_db
from app.routers.auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reports"])

REPORT_FORMATS = ("json", "excel", "pdf")

MEDIA_TYPES = {
    "excel": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "pdf": "application/pdf",
}
EXTENSIONS = {"excel": "xlsx", "pdf": "pdf"}


def check_format(fmt: str) -> str:
    if fmt not in REPORT_FORMATS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid format '{fmt}'. Use one of: json, excel, pdf",
        )
    return fmt


def send_report(filepath: Path, fmt: str, name: str) -> FileResponse:
    """Stream a generated file and delete it once the response is sent."""
    logger.info("Report %s generated as %s", name, fmt)
    return FileResponse(
        filepath,
        media_type=MEDIA_TYPES[fmt],
        filename=f"{name}.{EXTENSIONS[fmt]}",
        background=BackgroundTask(os.remove, filepath),
    )


def profit_summary(bikes: List[models.Bike]) -> dict:
    total_profit = sum(b.profit or 0 for b in bikes)
    return {
        "total_bikes": len(bikes),
        "total_revenue": sum(b.sell_price or 0 for b in bikes),
        "total_profit": total_profit,
        "profitable_bikes": len([b for b in bikes if (b.profit or 0) > 0]),
        "loss_bikes": len([b for b in bikes if (b.profit or 0) < 0]),
        "avg_profit": total_profit / len(bikes) if bikes else 0,
    }


@router.get("/sales")
def sales_report(
    format: str = "json",
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    fmt = check_format(format)

    query = db.query(models.Sale)
    if date_from is not None:
        query = query.filter(models.Sale.created_at >= date_from)
    if date_to is not None:
        query = query.filter(models.Sale.created_at <= date_to)
    sales = query.order_by(models.Sale.created_at.desc()).all()

    if fmt == "json":
        return [schemas.SaleRead.model_validate(s) for s in sales]
    if fmt == "excel":
        return send_report(documents.write_sales_excel(sales), fmt, "sales-report")
    return send_report(documents.write_sales_pdf(sales), fmt, "sales-report")


@router.get("/inventory")
def inventory_report(
    format: str = "json",
    status_filter: Optional[str] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    fmt = check_format(format)

    query = db.query(models.Bike)
    if status_filter:
        query = query.filter(models.Bike.status == status_filter)
    bikes = query.order_by(models.Bike.created_at.desc()).all()

    if fmt == "json":
        return [schemas.BikeRead.model_validate(b) for b in bikes]
    if fmt == "excel":
        return send_report(documents.write_inventory_excel(bikes), fmt, "inventory-report")
    return send_report(documents.write_inventory_pdf(bikes), fmt, "inventory-report")


@router.get("/customers")
def customer_report(
    format: str = "json",
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    fmt = check_format(format)

    customers = db.query(models.Customer).order_by(models.Customer.total_spent.desc()).all()

    if fmt == "json":
        return [schemas.CustomerRead.model_validate(c) for c in customers]
    if fmt == "excel":
        return send_report(documents.write_customer_excel(customers), fmt, "customer-report")
    return send_report(documents.write_customer_pdf(customers), fmt, "customer-report")


@router.get("/profit-analysis")
def profit_analysis(
    format: str = "json",
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Sold bikes ranked by profit, with totals over the period."""
    fmt = check_format(format)

    query = db.query(models.Bike).filter(models.Bike.status == "sold")
    if date_from is not None:
        query = query.filter(models.Bike.sell_date >= date_from)
    if date_to is not None:
        query = query.filter(models.Bike.sell_date <= date_to)
    bikes = query.order_by(models.Bike.profit.desc()).all()

    summary = profit_summary(bikes)

    if fmt == "json":
        return {
            "summary": summary,
            "bikes": [schemas.BikeRead.model_validate(b) for b in bikes],
        }
    if fmt == "excel":
        return send_report(documents.write_profit_excel(summary, bikes), fmt, "profit-analysis")
    return send_report(documents.write_profit_pdf(summary, bikes), fmt, "profit-analysis")
