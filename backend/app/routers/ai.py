# backend/app/routers/ai.py
"""
Rule-based insights over sales and stock.

Every rule is a fixed threshold over current data; nothing is trained or
stored. The builders below are plain functions over rows so they can be
checked without a database.
"""
import calendar
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app import models
from app.database import get_db
from app.routers.auth import get_current_user

router = APIRouter(tags=["ai"])

SLOW_MOVING_DAYS = 30
HIGH_MARGIN_PERCENT = 20
LOW_AVG_PROFIT = 15000
DEFAULT_DAYS_TO_SELL = 30
TREND_THRESHOLD = 0.1


# ---------- Pure helpers ----------

def one_month_before(moment: datetime) -> datetime:
    """Same day/time one calendar month earlier (clamped to month end)."""
    year, month = (moment.year - 1, 12) if moment.month == 1 else (moment.year, moment.month - 1)
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def build_insights(
    brand_performance: Sequence[Tuple[str, int, Optional[float]]],
    top_profit_percents: Sequence[float],
    slow_moving_count: int,
    sold_profits: Sequence[Optional[float]],
    recent_sales: Sequence[Tuple[datetime, float]],
    now: datetime,
) -> List[Dict[str, str]]:
    """
    brand_performance: (brand, total_sales, avg_days_to_sell), best first
    top_profit_percents: profit_percent of the top profitable sold bikes
    sold_profits: profit of every sold bike
    recent_sales: (created_at, final_amount) of the latest sales
    """
    insights = []

    if brand_performance:
        brand, total_sales, avg_days = brand_performance[0]
        insights.append({
            "type": "success",
            "title": "Best Selling Brand",
            "message": (
                f"{brand} bikes are your top performers with {total_sales} sales and "
                f"{round(avg_days or DEFAULT_DAYS_TO_SELL)} average days to sell."
            ),
            "priority": "high",
        })

    high_margin = [p for p in top_profit_percents if (p or 0) > HIGH_MARGIN_PERCENT]
    if high_margin:
        insights.append({
            "type": "info",
            "title": "High Profit Opportunity",
            "message": (
                f"{len(high_margin)} bike models show >{HIGH_MARGIN_PERCENT}% profit margin. "
                "Consider stocking more of these models."
            ),
            "priority": "medium",
        })

    if slow_moving_count > 0:
        insights.append({
            "type": "warning",
            "title": "Inventory Alert",
            "message": (
                f"{slow_moving_count} bikes have been in inventory for over "
                f"{SLOW_MOVING_DAYS} days. Consider pricing adjustments."
            ),
            "priority": "high",
        })

    if sold_profits:
        avg_profit = sum(p or 0 for p in sold_profits) / len(sold_profits)
        if avg_profit < LOW_AVG_PROFIT:
            insights.append({
                "type": "suggestion",
                "title": "Price Optimization",
                "message": (
                    f"Current average profit is Rs. {round(avg_profit)}. "
                    "Consider increasing prices by 5-10% for better margins."
                ),
                "priority": "medium",
            })

    since = one_month_before(now)
    last_month = sum(amount for created_at, amount in recent_sales if created_at >= since)
    predicted = round(last_month * 1.1)
    insights.append({
        "type": "prediction",
        "title": "Revenue Forecast",
        "message": f"Based on current trends, predicted revenue for next month: Rs. {predicted:,}",
        "priority": "low",
    })

    return insights


def suggest_price(
    buy_price: float,
    year: int,
    condition_rating: Optional[int],
    brand: str,
    comparables: Sequence[Tuple[Optional[float], Optional[float], Optional[int]]],
    current_year: int,
) -> dict:
    """
    comparables: (sell_price, profit, days_to_sell) of sold bikes of the
    same brand within two model years.
    """
    if not comparables:
        return {
            "suggested_price": buy_price * 1.15,
            "confidence": "low",
            "reasoning": "No similar bikes found. Suggesting 15% markup.",
            "market_data": None,
        }

    n = len(comparables)
    avg_sell = sum(c[0] or 0 for c in comparables) / n
    avg_profit = sum(c[1] or 0 for c in comparables) / n
    avg_days = sum(c[2] or DEFAULT_DAYS_TO_SELL for c in comparables) / n

    factor = 1 - (current_year - year) * 0.05
    if condition_rating:
        factor += (condition_rating - 8) * 0.02

    return {
        "suggested_price": round(avg_sell * factor),
        "confidence": "high" if n >= 3 else "medium",
        "reasoning": (
            f"Based on {n} similar {brand} bikes. Average market price: "
            f"Rs. {round(avg_sell)}, adjusted for age and condition."
        ),
        "market_data": {
            "avg_sell_price": round(avg_sell),
            "avg_profit": round(avg_profit),
            "avg_days_to_sell": round(avg_days),
            "sample_size": n,
        },
    }


def trend_recommendation(trend: str, avg_profit: float) -> str:
    if trend == "increasing" and avg_profit > 10000:
        return "Strong performer - consider increasing inventory"
    if trend == "increasing":
        return "Growing demand - monitor pricing for better margins"
    if trend == "decreasing":
        return "Declining sales - review pricing strategy or reduce inventory"
    if avg_profit > 15000:
        return "Stable with good margins - maintain current strategy"
    return "Stable but low margins - consider price optimization"


def demand_predictions(sales: Sequence[Tuple[str, datetime, float]]) -> List[dict]:
    """
    sales: (brand, created_at, profit) per sale.
    Buckets by brand and calendar month; the trend compares the two most
    recent buckets of each brand.
    """
    buckets: Dict[str, Dict[Tuple[int, int], List[float]]] = defaultdict(lambda: defaultdict(list))
    for brand, created_at, profit in sales:
        buckets[brand][(created_at.year, created_at.month)].append(profit or 0)

    predictions = []
    for brand, months in buckets.items():
        series = [months[key] for key in sorted(months)]
        avg_sales = sum(len(m) for m in series) / len(series)
        avg_profit = sum(sum(m) / len(m) for m in series) / len(series)

        trend = "stable"
        if len(series) >= 2:
            previous, latest = len(series[-2]), len(series[-1])
            growth = (latest - previous) / previous
            if growth > TREND_THRESHOLD:
                trend = "increasing"
            elif growth < -TREND_THRESHOLD:
                trend = "decreasing"

        predictions.append({
            "brand": brand,
            "avg_monthly_sales": round(avg_sales),
            "avg_profit": round(avg_profit),
            "trend": trend,
            "recommendation": trend_recommendation(trend, avg_profit),
        })

    predictions.sort(key=lambda p: p["avg_monthly_sales"], reverse=True)
    return predictions


# ---------- Endpoints ----------

@router.get("/insights")
def insights(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    total_sales = func.count(models.Sale.id).label("total_sales")
    brand_performance = (
        db.query(models.Bike.brand, total_sales, func.avg(models.Bike.days_to_sell))
        .join(models.Sale, models.Sale.bike_id == models.Bike.id)
        .group_by(models.Bike.brand)
        .order_by(total_sales.desc())
        .all()
    )

    top_profit = (
        db.query(models.Bike.profit_percent)
        .filter(models.Bike.status == "sold", models.Bike.profit > 0)
        .order_by(models.Bike.profit_percent.desc())
        .limit(10)
        .all()
    )

    now = datetime.now()
    slow_moving = (
        db.query(func.count(models.Bike.id))
        .filter(
            models.Bike.status == "available",
            models.Bike.purchase_date < now - timedelta(days=SLOW_MOVING_DAYS),
        )
        .scalar()
    )

    sold_profits = db.query(models.Bike.profit).filter(models.Bike.status == "sold").all()

    recent_sales = (
        db.query(models.Sale.created_at, models.Sale.final_amount)
        .order_by(models.Sale.created_at.desc())
        .limit(50)
        .all()
    )

    return build_insights(
        [tuple(row) for row in brand_performance],
        [p for (p,) in top_profit],
        slow_moving or 0,
        [p for (p,) in sold_profits],
        [tuple(row) for row in recent_sales],
        now,
    )


@router.get("/price-suggestion/{bike_id}")
def price_suggestion(
    bike_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    bike = db.query(models.Bike).filter(models.Bike.id == bike_id).first()
    if not bike:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bike not found")

    comparables = (
        db.query(models.Bike.sell_price, models.Bike.profit, models.Bike.days_to_sell)
        .filter(
            models.Bike.brand == bike.brand,
            models.Bike.status == "sold",
            models.Bike.year >= bike.year - 2,
            models.Bike.year <= bike.year + 2,
        )
        .all()
    )

    return suggest_price(
        bike.buy_price,
        bike.year,
        bike.condition_rating,
        bike.brand,
        [tuple(row) for row in comparables],
        datetime.now().year,
    )


@router.get("/demand-predictions")
def demand(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    rows = (
        db.query(models.Bike.brand, models.Sale.created_at, models.Sale.profit)
        .join(models.Sale, models.Sale.bike_id == models.Bike.id)
        .all()
    )
    return demand_predictions([tuple(row) for row in rows])
