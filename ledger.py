"""
Order ledger: customer orders, their status machine and notes.

Stock is taken out of the catalog only when an order reaches ``completed``.
The decrement is a plain ``$inc`` per line item with no lock around it, so two
completions racing on the same order can both apply it.
"""

import logging
from typing import Iterable, List, Optional

from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database

from catalog import paginate
from database import serialize_doc, utcnow
from errors import InvalidTransition, NotFound, parse_id
from schemas import NoteIn, OrderIn

logger = logging.getLogger(__name__)

TRANSITIONS = {
    "pending": ("processing", "cancelled"),
    "processing": ("completed", "cancelled"),
    "completed": (),
    "cancelled": (),
}


def can_transition(current: str, new: str) -> bool:
    return new in TRANSITIONS.get(current, ())


def order_total(items: Iterable[dict]) -> float:
    return sum(item["price"] * item["quantity"] for item in items)


class OrderLedger:
    def __init__(self, db: Database, store: dict):
        self.db = db
        self.store_id = store["_id"]
        self.orders = db["order"]
        self.products = db["product"]
        self.notes = db["order_note"]

    def _owned(self, order_id: str) -> dict:
        order = self.orders.find_one({"_id": parse_id(order_id, "Order"), "store_id": self.store_id})
        if not order:
            raise NotFound("Order not found")
        return order

    def _products_by_id(self, orders: List[dict], fields: List[str]) -> dict:
        ids = {item["product_id"] for order in orders for item in order.get("items", [])}
        if not ids:
            return {}
        projection = {f: 1 for f in fields}
        found = self.products.find({"_id": {"$in": list(ids)}, "store_id": self.store_id}, projection)
        return {p["_id"]: p for p in found}

    def _serialize(self, order: dict, products: Optional[dict] = None) -> dict:
        out = serialize_doc(order)
        if products is None:
            return out
        items = []
        for item in order.get("items", []):
            product = products.get(item["product_id"])
            items.append({
                "product_id": str(item["product_id"]),
                "product": serialize_doc(product) if product else None,
                "quantity": item["quantity"],
                "price": item["price"],
            })
        out["items"] = items
        return out

    def create(self, payload: OrderIn) -> dict:
        items = [
            {"product_id": parse_id(item.product_id, "Product"), "quantity": item.quantity, "price": item.price}
            for item in payload.items
        ]
        now = utcnow()
        doc = {
            "store_id": self.store_id,
            "customer_name": payload.customer_name,
            "customer_email": payload.customer_email.lower(),
            "items": items,
            "total_amount": order_total(items),
            "status": "pending",
            "created_at": now,
            "updated_at": now,
        }
        doc["_id"] = self.orders.insert_one(doc).inserted_id
        return self._serialize(doc)

    def list(self, page: int = 1, limit: int = 10, status: Optional[str] = None) -> dict:
        query = {"store_id": self.store_id}
        if status:
            query["status"] = status
        docs, pagination = paginate(self.orders, query, page, limit)
        products = self._products_by_id(docs, ["name", "price"])
        return {"orders": [self._serialize(d, products) for d in docs], "pagination": pagination}

    def get(self, order_id: str) -> dict:
        order = self._owned(order_id)
        products = self._products_by_id([order], ["name", "price", "images"])
        return self._serialize(order, products)

    def _decrement_stock(self, order: dict) -> None:
        for item in order.get("items", []):
            product = self.products.find_one_and_update(
                {"_id": item["product_id"], "store_id": self.store_id},
                {"$inc": {"stock": -item["quantity"]}, "$set": {"updated_at": utcnow()}},
                return_document=ReturnDocument.AFTER,
            )
            if product is None:
                logger.warning("Order %s: product %s not found, stock left untouched", order["_id"], item["product_id"])
                continue
            if product["stock"] <= 0 and product.get("status") != "out_of_stock":
                self.products.update_one({"_id": product["_id"]}, {"$set": {"status": "out_of_stock"}})

    def update_status(self, order_id: str, new_status: str) -> dict:
        order = self._owned(order_id)
        current = order["status"]
        if not can_transition(current, new_status):
            raise InvalidTransition(f"Cannot change status from {current} to {new_status}")

        if new_status == "completed" and current != "completed":
            self._decrement_stock(order)

        now = utcnow()
        self.orders.update_one({"_id": order["_id"]}, {"$set": {"status": new_status, "updated_at": now}})
        order.update({"status": new_status, "updated_at": now})
        logger.info("Order %s moved from %s to %s", order["_id"], current, new_status)
        return self._serialize(order)

    def add_note(self, order_id: str, payload: NoteIn) -> dict:
        order = self._owned(order_id)
        now = utcnow()
        note = {"order_id": order["_id"], "content": payload.content, "created_at": now, "updated_at": now}
        note["_id"] = self.notes.insert_one(note).inserted_id
        return serialize_doc(note)

    def list_notes(self, order_id: str) -> List[dict]:
        order = self._owned(order_id)
        notes = self.notes.find({"order_id": order["_id"]}).sort("created_at", DESCENDING)
        return [serialize_doc(n) for n in notes]
