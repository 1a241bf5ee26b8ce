"""
Dashboard aggregates over a store's orders and products.

Periods are resolved in UTC. ``stats`` scopes sales to the period but counts
orders by status over the store's whole history; ``top_products`` is all-time.
"""

from datetime import datetime, timedelta
from typing import Optional, Tuple

from pymongo import DESCENDING
from pymongo.database import Database

from database import serialize_doc, to_iso, utcnow

PERIODS = ("day", "week", "month", "year")
DEFAULT_PERIOD = "month"


def resolve_period(period: Optional[str], now: Optional[datetime] = None) -> Tuple[str, datetime, datetime]:
    """Return ``(period, start, end)``; unknown periods fall back to month."""
    now = now or utcnow()
    if period not in PERIODS:
        period = DEFAULT_PERIOD
    if period == "day":
        start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    elif period == "week":
        start = now - timedelta(days=7)
    elif period == "year":
        start = now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
    else:
        start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return period, start, now


def bucket_key(group_id: dict) -> str:
    if "day" in group_id:
        return f"{group_id['year']:04d}-{group_id['month']:02d}-{group_id['day']:02d}"
    return f"{group_id['year']:04d}-{group_id['month']:02d}"


class Dashboard:
    def __init__(self, db: Database, store: dict):
        self.db = db
        self.store_id = store["_id"]
        self.orders = db["order"]
        self.products = db["product"]

    def stats(self, period: Optional[str] = None, now: Optional[datetime] = None) -> dict:
        period, start, end = resolve_period(period, now)
        completed = list(self.orders.find(
            {"store_id": self.store_id, "created_at": {"$gte": start}, "status": "completed"},
            {"total_amount": 1},
        ))
        total_sales = sum(o.get("total_amount", 0) for o in completed)
        total_orders = len(completed)
        average = round(total_sales / total_orders, 2) if total_orders else 0

        by_status = self.orders.aggregate([
            {"$match": {"store_id": self.store_id}},
            {"$group": {"_id": "$status", "count": {"$sum": 1}}},
        ])

        total_products = self.products.count_documents({"store_id": self.store_id})
        active_products = self.products.count_documents({"store_id": self.store_id, "status": "active"})

        return {
            "period": period,
            "date_range": {"start_date": to_iso(start), "end_date": to_iso(end)},
            "sales": {
                "total_sales": total_sales,
                "total_orders": total_orders,
                "average_order_value": average,
            },
            "orders": {
                "total": total_orders,
                "by_status": {row["_id"]: row["count"] for row in by_status},
            },
            "products": {
                "total": total_products,
                "active": active_products,
                "inactive": total_products - active_products,
            },
        }

    def top_products(self, limit: int = 10) -> list:
        rows = self.orders.aggregate([
            {"$match": {"store_id": self.store_id, "status": "completed"}},
            {"$unwind": "$items"},
            {"$group": {
                "_id": "$items.product_id",
                "total_sold": {"$sum": "$items.quantity"},
                "total_revenue": {"$sum": {"$multiply": ["$items.quantity", "$items.price"]}},
            }},
            {"$lookup": {"from": "product", "localField": "_id", "foreignField": "_id", "as": "product"}},
            {"$unwind": "$product"},
            {"$match": {"product.store_id": self.store_id}},
            {"$sort": {"total_sold": -1}},
            {"$limit": limit},
        ])
        return [
            {
                "id": str(row["_id"]),
                "name": row["product"].get("name"),
                "category": row["product"].get("category"),
                "price": row["product"].get("price"),
                "total_sold": row["total_sold"],
                "total_revenue": row["total_revenue"],
            }
            for row in rows
        ]

    def recent_orders(self, limit: int = 10) -> list:
        projection = {"customer_name": 1, "customer_email": 1, "total_amount": 1, "status": 1, "created_at": 1}
        docs = self.orders.find({"store_id": self.store_id}, projection).sort("created_at", DESCENDING).limit(limit)
        return [serialize_doc(d) for d in docs]

    def sales_chart(self, period: Optional[str] = None, now: Optional[datetime] = None) -> dict:
        period, start, _ = resolve_period(period, now)
        group_id = {"year": {"$year": "$created_at"}, "month": {"$month": "$created_at"}}
        if period != "year":
            group_id["day"] = {"$dayOfMonth": "$created_at"}

        rows = self.orders.aggregate([
            {"$match": {"store_id": self.store_id, "status": "completed", "created_at": {"$gte": start}}},
            {"$group": {
                "_id": group_id,
                "total_sales": {"$sum": "$total_amount"},
                "order_count": {"$sum": 1},
            }},
        ])
        sales = [
            {"date": bucket_key(row["_id"]), "total_sales": row["total_sales"], "order_count": row["order_count"]}
            for row in rows
        ]
        sales.sort(key=lambda bucket: bucket["date"])
        return {"sales_data": sales, "period": period}
