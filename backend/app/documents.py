# backend/app/documents.py
"""
File rendering for invoices and reports.

Invoices are kept under config.INVOICE_DIR for later download; report files
go to config.REPORT_TMP_DIR and are removed once streamed to the client.
"""
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from app import config, models

logger = logging.getLogger(__name__)

W, H = A4
MARGIN = 50
BOTTOM = 60
ROW_HEIGHT = 18


def money(value: Optional[float]) -> str:
    if value is None:
        return "-"
    return f"Rs. {value:,.2f}"


def fmt_date(value: Optional[datetime]) -> str:
    return value.strftime("%d/%m/%Y") if value else ""


def _report_path(prefix: str, ext: str) -> Path:
    config.REPORT_TMP_DIR.mkdir(parents=True, exist_ok=True)
    return config.REPORT_TMP_DIR / f"{prefix}-{uuid.uuid4().hex}.{ext}"


# ---------- Invoice ----------

def invoice_filename(invoice_number: str) -> str:
    return f"invoice-{invoice_number}.pdf"


def invoice_file_path(invoice_path: str) -> Path:
    """Map the stored '/invoices/<file>' path onto the invoice directory."""
    return config.INVOICE_DIR / Path(invoice_path).name


def render_invoice(sale: models.Sale, bike: models.Bike, customer: models.Customer) -> str:
    """
    Write the invoice PDF for a sale and return the path stored on the sale
    ('/invoices/invoice-<invoice_number>.pdf').
    """
    config.INVOICE_DIR.mkdir(parents=True, exist_ok=True)
    filename = invoice_filename(sale.invoice_number)
    filepath = config.INVOICE_DIR / filename

    c = canvas.Canvas(str(filepath), pagesize=A4)
    c.setTitle(f"Invoice {sale.invoice_number}")
    y = H - MARGIN

    # Header
    c.setFont("Helvetica-Bold", 20)
    c.drawCentredString(W / 2, y, config.SHOP_NAME)
    y -= 20
    c.setFont("Helvetica", 12)
    c.drawCentredString(W / 2, y, "BIKE SALES INVOICE")
    y -= 30

    # Shop details
    for line in (
        config.SHOP_ADDRESS,
        f"Phone: {config.SHOP_PHONE}",
        f"Email: {config.SHOP_EMAIL}",
    ):
        c.drawString(MARGIN, y, line)
        y -= 16
    y -= 10

    sale_date = sale.created_at or datetime.now()
    c.drawRightString(W - MARGIN, y, f"Invoice No: {sale.invoice_number}")
    y -= 16
    c.drawRightString(W - MARGIN, y, f"Sale Date: {fmt_date(sale_date)}")
    y -= 26

    def section(title: str, lines: Iterable[str]):
        nonlocal y
        c.setFont("Helvetica-Bold", 12)
        c.drawString(MARGIN, y, title)
        y -= 18
        c.setFont("Helvetica", 12)
        for line in lines:
            c.drawString(MARGIN, y, line)
            y -= 16
        y -= 10

    section(
        "BILL TO:",
        [
            f"Name: {customer.name}",
            f"Phone: {customer.phone}",
            f"Address: {customer.address}",
        ],
    )
    section(
        "BIKE DETAILS:",
        [
            f"Bike Number: {bike.bike_number}",
            f"Brand: {bike.brand} {bike.model}",
            f"Year: {bike.year}",
            f"Color: {bike.color or 'N/A'}",
        ],
    )

    payment_lines = [f"Selling Price: {money(sale.selling_price)}"]
    if sale.discount and sale.discount > 0:
        payment_lines.append(f"Discount: {money(sale.discount)}")
    section("PAYMENT DETAILS:", payment_lines)

    c.setFont("Helvetica-Bold", 14)
    c.drawString(MARGIN, y, f"Final Amount: {money(sale.final_amount)}")
    y -= 18
    c.setFont("Helvetica", 12)
    c.drawString(MARGIN, y, f"Payment Mode: {sale.payment_mode}")
    y -= 60

    c.drawCentredString(W / 2, y, "Thank you for your business!")
    y -= 20
    c.drawRightString(W - MARGIN, y, "Authorized Signature: ________________")

    c.showPage()
    c.save()

    logger.info("Invoice %s written to %s", sale.invoice_number, filepath)
    return f"/invoices/{filename}"


# ---------- PDF tables ----------

Column = Tuple[str, int]  # (header, x position)


def _pdf_table(
    c: canvas.Canvas,
    columns: Sequence[Column],
    rows: Iterable[Sequence[str]],
    top: float,
    font_size: int = 10,
) -> None:
    def header(y_pos: float):
        c.setFont("Helvetica-Bold", font_size)
        for title, x in columns:
            c.drawString(x, y_pos, title)
        c.setFont("Helvetica", font_size)

    header(top)
    y = top - ROW_HEIGHT - 6

    for row in rows:
        if y < BOTTOM:
            c.showPage()
            y = H - MARGIN
            header(y)
            y -= ROW_HEIGHT + 6
        for (_, x), value in zip(columns, row):
            c.drawString(x, y, str(value)[:18])
        y -= ROW_HEIGHT


def _pdf_document(prefix: str, title: str) -> Tuple[Path, canvas.Canvas, float]:
    filepath = _report_path(prefix, "pdf")
    c = canvas.Canvas(str(filepath), pagesize=A4)
    c.setTitle(title)
    y = H - MARGIN
    c.setFont("Helvetica-Bold", 16)
    c.drawCentredString(W / 2, y, title.upper())
    y -= 20
    c.setFont("Helvetica", 12)
    c.drawCentredString(W / 2, y, f"Generated on: {fmt_date(datetime.now())}")
    return filepath, c, y - 40


def write_sales_pdf(sales: List[models.Sale]) -> Path:
    filepath, c, top = _pdf_document("sales-report", "Sales Report")
    columns = [("Sale#", 50), ("Date", 140), ("Bike#", 210), ("Customer", 290), ("Amount", 400), ("Profit", 480)]
    rows = (
        [
            s.sale_number,
            fmt_date(s.created_at),
            s.bike.bike_number if s.bike else "",
            s.buyer_name,
            f"{s.final_amount:,.0f}",
            f"{s.profit:,.0f}",
        ]
        for s in sales
    )
    _pdf_table(c, columns, rows, top)
    c.save()
    return filepath


def write_inventory_pdf(bikes: List[models.Bike]) -> Path:
    filepath, c, top = _pdf_document("inventory-report", "Inventory Report")
    columns = [("Bike#", 50), ("Brand", 140), ("Model", 220), ("Status", 320), ("Buy Price", 390), ("Profit", 470)]
    rows = (
        [
            b.bike_number,
            b.brand,
            b.model,
            b.status,
            f"{b.buy_price:,.0f}",
            f"{b.profit:,.0f}" if b.profit else "-",
        ]
        for b in bikes
    )
    _pdf_table(c, columns, rows, top)
    c.save()
    return filepath


def write_customer_pdf(customers: List[models.Customer]) -> Path:
    filepath, c, top = _pdf_document("customer-report", "Customer Report")
    columns = [("Name", 50), ("Phone", 160), ("Type", 250), ("Spent", 310), ("Bikes", 390), ("Last Purchase", 440)]
    rows = (
        [
            cu.name,
            cu.phone,
            cu.customer_type,
            f"{cu.total_spent:,.0f}",
            str(cu.total_bikes_bought),
            fmt_date(cu.last_purchase_date) or "-",
        ]
        for cu in customers
    )
    _pdf_table(c, columns, rows, top)
    c.save()
    return filepath


def write_profit_pdf(summary: dict, bikes: List[models.Bike]) -> Path:
    filepath, c, y = _pdf_document("profit-analysis", "Profit Analysis Report")

    c.setFont("Helvetica-Bold", 14)
    c.drawString(MARGIN, y, "Summary")
    y -= 20
    c.setFont("Helvetica", 12)
    for line in (
        f"Total Bikes Sold: {summary['total_bikes']}",
        f"Total Revenue: {money(summary['total_revenue'])}",
        f"Total Profit: {money(summary['total_profit'])}",
        f"Profitable Bikes: {summary['profitable_bikes']}",
        f"Loss Bikes: {summary['loss_bikes']}",
        f"Average Profit: {money(summary['avg_profit'])}",
    ):
        c.drawString(MARGIN, y, line)
        y -= 16
    y -= 14

    c.setFont("Helvetica-Bold", 14)
    c.drawString(MARGIN, y, "Details")
    y -= 24

    columns = [("Bike#", 50), ("Brand", 140), ("Buy", 220), ("Sell", 290), ("Profit", 360), ("Profit%", 430), ("Days", 500)]
    rows = (
        [
            b.bike_number,
            b.brand,
            f"{b.buy_price:,.0f}",
            f"{(b.sell_price or 0):,.0f}",
            f"{(b.profit or 0):,.0f}",
            f"{(b.profit_percent or 0):.1f}%",
            str(b.days_to_sell or 0),
        ]
        # first 30 keep the report to a page or two
        for b in bikes[:30]
    )
    _pdf_table(c, columns, rows, y, font_size=9)
    c.save()
    return filepath


# ---------- Excel ----------

def _sheet(ws, headers: Sequence[Tuple[str, int]], rows: Iterable[Sequence]):
    ws.append([h for h, _ in headers])
    for idx, (_, width) in enumerate(headers, start=1):
        ws.column_dimensions[get_column_letter(idx)].width = width
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for row in rows:
        ws.append(list(row))


def write_sales_excel(sales: List[models.Sale]) -> Path:
    wb = Workbook()
    ws = wb.active
    ws.title = "Sales Report"
    _sheet(
        ws,
        [
            ("Sale Number", 15), ("Date", 12), ("Bike Number", 15), ("Brand", 12),
            ("Model", 15), ("Customer", 20), ("Phone", 15), ("Selling Price", 15),
            ("Discount", 10), ("Final Amount", 15), ("Profit", 12), ("Payment Mode", 15),
        ],
        (
            [
                s.sale_number,
                fmt_date(s.created_at),
                s.bike.bike_number if s.bike else "",
                s.bike.brand if s.bike else "",
                s.bike.model if s.bike else "",
                s.buyer_name,
                s.buyer_phone,
                s.selling_price,
                s.discount,
                s.final_amount,
                s.profit,
                s.payment_mode,
            ]
            for s in sales
        ),
    )
    filepath = _report_path("sales-report", "xlsx")
    wb.save(filepath)
    return filepath


def write_inventory_excel(bikes: List[models.Bike]) -> Path:
    wb = Workbook()
    ws = wb.active
    ws.title = "Inventory Report"
    _sheet(
        ws,
        [
            ("Bike Number", 15), ("Brand", 12), ("Model", 15), ("Year", 8),
            ("Color", 12), ("Buy Price", 12), ("Sell Price", 12), ("Profit", 12),
            ("Status", 12), ("Purchase Date", 15), ("Sell Date", 15),
        ],
        (
            [
                b.bike_number,
                b.brand,
                b.model,
                b.year,
                b.color or "",
                b.buy_price,
                b.sell_price if b.sell_price is not None else "",
                b.profit if b.profit is not None else "",
                b.status,
                fmt_date(b.purchase_date),
                fmt_date(b.sell_date),
            ]
            for b in bikes
        ),
    )
    filepath = _report_path("inventory-report", "xlsx")
    wb.save(filepath)
    return filepath


def write_customer_excel(customers: List[models.Customer]) -> Path:
    wb = Workbook()
    ws = wb.active
    ws.title = "Customer Report"
    _sheet(
        ws,
        [
            ("Name", 20), ("Phone", 15), ("Email", 25), ("Address", 30),
            ("Total Spent", 15), ("Bikes Bought", 15), ("Customer Type", 15),
            ("Last Purchase", 15), ("Registration Date", 15),
        ],
        (
            [
                cu.name,
                cu.phone,
                cu.email or "",
                cu.address,
                cu.total_spent,
                cu.total_bikes_bought,
                cu.customer_type,
                fmt_date(cu.last_purchase_date),
                fmt_date(cu.created_at),
            ]
            for cu in customers
        ),
    )
    filepath = _report_path("customer-report", "xlsx")
    wb.save(filepath)
    return filepath


def write_profit_excel(summary: dict, bikes: List[models.Bike]) -> Path:
    wb = Workbook()

    summary_ws = wb.active
    summary_ws.title = "Summary"
    summary_ws.append(["Profit Analysis Summary"])
    summary_ws["A1"].font = Font(bold=True, size=16)
    summary_ws.append([])
    for label, key in (
        ("Total Bikes Sold", "total_bikes"),
        ("Total Revenue", "total_revenue"),
        ("Total Profit", "total_profit"),
        ("Profitable Bikes", "profitable_bikes"),
        ("Loss Bikes", "loss_bikes"),
        ("Average Profit", "avg_profit"),
    ):
        summary_ws.append([label, summary[key]])

    details_ws = wb.create_sheet("Details")
    _sheet(
        details_ws,
        [
            ("Bike Number", 15), ("Brand", 12), ("Model", 15), ("Buy Price", 12),
            ("Sell Price", 12), ("Profit", 12), ("Profit %", 10), ("Days to Sell", 12),
        ],
        (
            [
                b.bike_number,
                b.brand,
                b.model,
                b.buy_price,
                b.sell_price,
                b.profit,
                b.profit_percent,
                b.days_to_sell,
            ]
            for b in bikes
        ),
    )

    filepath = _report_path("profit-analysis", "xlsx")
    wb.save(filepath)
    return filepath
