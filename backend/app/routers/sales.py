# backend/app/routers/sales.py
import logging
import uuid
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import FileResponse
from sqlalchemy import func
from sqlalchemy.orm import Session

from app import documents, models, schemas
from app.constants import DEFAULT_PAGE_SIZE
from app.database import get_db
from app.derived import compute_profit_percent
from app.listing import paginate
from app.routers.auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sales"])

# -------------------------------------------------
# Helpers
# -------------------------------------------------

def sale_identifiers(sale_id: int, now: datetime):
    """
    sale_number    SAL-YYYYMM-<id>
    invoice_number SB-YYYY-<id>
    Derived from the row id, so unique without a retry loop.
    """
    sale_number = f"SAL-{now.year}{now.month:02d}-{sale_id:03d}"
    invoice_number = f"SB-{now.year}-{sale_id:03d}"
    return sale_number, invoice_number


def find_or_create_customer(db: Session, payload: schemas.SaleCreate) -> models.Customer:
    """
    Customers are keyed by phone. A first-time buyer gets a record built
    from the buyer details on this sale.
    """
    customer = (
        db.query(models.Customer)
        .filter(models.Customer.phone == payload.buyer_phone)
        .with_for_update()
        .first()
    )
    if customer is None:
        customer = models.Customer(
            name=payload.buyer_name,
            phone=payload.buyer_phone,
            address=payload.buyer_address,
            total_spent=0.0,
            total_bikes_bought=0,
        )
        db.add(customer)
        db.flush()
    return customer


def claim_bike(db: Session, bike_id: int) -> bool:
    """
    Flip available -> sold in one conditional UPDATE.
    False means another sale got there first.
    """
    updated = (
        db.query(models.Bike)
        .filter(models.Bike.id == bike_id, models.Bike.status == "available")
        .update({models.Bike.status: "sold"}, synchronize_session=False)
    )
    return updated == 1


def record_sale_payment(db: Session, sale: models.Sale) -> Optional[models.Payment]:
    """
    Payment row for a new sale. The sale is booked as fully paid at
    creation (paid == total); the ledger only sees later entries.
    """
    if sale.final_amount <= 0:
        return None
    payment = models.Payment(
        sale_id=sale.id,
        bike_id=sale.bike_id,
        customer_id=sale.customer_id,
        total_amount=sale.final_amount,
        paid_amount=sale.final_amount,
    )
    db.add(payment)
    db.flush()
    return payment


def create_sale_record(
    db: Session,
    payload: schemas.SaleCreate,
    current_user: models.User,
) -> models.Sale:
    """
    Sell one bike. Everything below runs in a single transaction:

      1. bike must exist and be 'available'
      2. customer looked up by phone or created
      3. profit = selling_price - discount - buy_price
      4. sale row inserted, numbers derived from its id
      5. bike claimed (available -> sold) and stamped with sale details
      6. customer totals bumped (tier recomputed on save)
      7. invoice PDF rendered and linked to the sale
      8. payment row created when final_amount > 0

    Any failure rolls the whole thing back and removes a written invoice.
    """
    bike = db.query(models.Bike).filter(models.Bike.id == payload.bike_id).first()
    if not bike:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bike not found")

    if bike.status != "available":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Bike is not available for sale",
        )

    if payload.discount > payload.selling_price:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Discount cannot exceed selling price",
        )

    invoice_file = None
    try:
        customer = find_or_create_customer(db, payload)

        final_amount = payload.selling_price - payload.discount
        profit = final_amount - bike.buy_price
        profit_percent = compute_profit_percent(bike.buy_price, profit)

        now = datetime.now()
        sale = models.Sale(
            # placeholders until the id is known
            sale_number=f"PENDING-{uuid.uuid4().hex}",
            invoice_number=f"PENDING-{uuid.uuid4().hex}",
            bike_id=bike.id,
            customer_id=customer.id,
            buyer_name=payload.buyer_name,
            buyer_phone=payload.buyer_phone,
            buyer_address=payload.buyer_address,
            selling_price=payload.selling_price,
            discount=payload.discount,
            final_amount=final_amount,
            profit=profit,
            profit_percent=profit_percent,
            payment_mode=payload.payment_mode,
            notes=payload.notes,
            sold_by=current_user.user_id,
            created_at=now,
            updated_at=now,
        )
        db.add(sale)
        db.flush()
        sale.sale_number, sale.invoice_number = sale_identifiers(sale.id, now)

        if not claim_bike(db, bike.id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Bike is not available for sale",
            )
        # profit and profit_percent follow sell_price - buy_price on save
        bike.status = "sold"
        bike.sell_price = payload.selling_price
        bike.sell_date = now
        bike.sale_id = sale.id

        customer.total_spent = (customer.total_spent or 0.0) + final_amount
        customer.total_bikes_bought = (customer.total_bikes_bought or 0) + 1
        customer.last_purchase_date = now
        db.flush()

        sale.invoice_path = documents.render_invoice(sale, bike, customer)
        invoice_file = documents.invoice_file_path(sale.invoice_path)

        record_sale_payment(db, sale)

        db.commit()
    except Exception:
        db.rollback()
        if invoice_file is not None and invoice_file.exists():
            invoice_file.unlink()
        raise

    db.refresh(sale)
    logger.info(
        "Sale %s created: bike %s to customer %s for %.2f",
        sale.sale_number,
        bike.bike_number,
        customer.phone,
        sale.final_amount,
    )
    return sale


# -------------------------------------------------
# Endpoints
# -------------------------------------------------

@router.get("/stats/overview")
def sales_stats(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    row = db.query(
        func.count(models.Sale.id).label("total_sales"),
        func.sum(models.Sale.final_amount).label("total_revenue"),
        func.sum(models.Sale.profit).label("total_profit"),
        func.avg(models.Sale.final_amount).label("avg_sale_amount"),
        func.avg(models.Sale.profit).label("avg_profit"),
    ).one()

    return {
        "total_sales": row.total_sales or 0,
        "total_revenue": float(row.total_revenue or 0),
        "total_profit": float(row.total_profit or 0),
        "avg_sale_amount": float(row.avg_sale_amount or 0),
        "avg_profit": float(row.avg_profit or 0),
    }


@router.get("/")
def list_sales(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=500),
    search: Optional[str] = None,
    payment_mode: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    sort_by: str = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    List sales.
    - search matches sale number, buyer name or invoice number
    - date_from / date_to bound the sale date
    """
    items, meta = paginate(
        db.query(models.Sale),
        models.Sale,
        page=page,
        limit=limit,
        search=search,
        search_fields=("sale_number", "buyer_name", "invoice_number"),
        filters={"payment_mode": payment_mode},
        date_field="created_at",
        date_from=date_from,
        date_to=date_to,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return {"sales": [schemas.SaleRead.model_validate(s) for s in items], **meta}


@router.post("/", response_model=schemas.SaleRead, status_code=status.HTTP_201_CREATED)
def create_sale(
    payload: schemas.SaleCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return create_sale_record(db, payload, current_user)


@router.get("/invoice/{sale_id}")
def download_invoice(sale_id: int, db: Session = Depends(get_db)):
    """
    Stream the stored invoice PDF. Open link (no token) so it can be
    handed to a browser directly.
    """
    sale = db.query(models.Sale).filter(models.Sale.id == sale_id).first()
    if not sale:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sale not found")

    if not sale.invoice_path:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")

    filepath = documents.invoice_file_path(sale.invoice_path)
    if not filepath.exists():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice file not found")

    return FileResponse(
        filepath,
        media_type="application/pdf",
        filename=documents.invoice_filename(sale.invoice_number),
    )


@router.get("/{sale_id}", response_model=schemas.SaleRead)
def get_sale(
    sale_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    sale = db.query(models.Sale).filter(models.Sale.id == sale_id).first()
    if not sale:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sale not found")
    return sale


@router.put("/{sale_id}", response_model=schemas.SaleRead)
def update_sale(
    sale_id: int,
    update: schemas.SaleUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Only notes are editable; the financial record is fixed."""
    sale = db.query(models.Sale).filter(models.Sale.id == sale_id).first()
    if not sale:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sale not found")

    data = update.model_dump(exclude_unset=True)
    if "notes" in data:
        sale.notes = data["notes"]

    db.commit()
    db.refresh(sale)
    return sale
