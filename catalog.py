"""
Catalog: the vendor's single store and its products.

Every product query is filtered on the caller's ``store_id``; a product of
another store is indistinguishable from a missing one.
"""

import math

from pymongo import DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import serialize_doc, utcnow
from errors import Conflict, NotFound, parse_id
from schemas import ProductIn, ProductUpdate, StoreIn


def normalize_product_invariant(product: dict) -> dict:
    """Keep ``stock == 0`` and ``status == "out_of_stock"`` in lockstep.

    An explicit ``inactive`` survives as long as there is stock.
    """
    product = dict(product)
    stock = product.get("stock", 0)
    if stock <= 0:
        product["status"] = "out_of_stock"
    elif product.get("status") == "out_of_stock":
        product["status"] = "active"
    return product


def paginate(collection, query: dict, page: int, limit: int):
    skip = (page - 1) * limit
    docs = list(collection.find(query).sort("created_at", DESCENDING).skip(skip).limit(limit))
    total = collection.count_documents(query)
    pagination = {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit)}
    return docs, pagination


class Stores:
    def __init__(self, db: Database):
        self.db = db

    def create(self, vendor: dict, payload: StoreIn) -> dict:
        if self.db["store"].find_one({"vendor_id": vendor["_id"]}):
            raise Conflict("Vendor already has a store")
        now = utcnow()
        doc = payload.model_dump()
        doc.update({"vendor_id": vendor["_id"], "created_at": now, "updated_at": now})
        try:
            doc["_id"] = self.db["store"].insert_one(doc).inserted_id
        except DuplicateKeyError:
            raise Conflict("Vendor already has a store")
        return serialize_doc(doc)

    def mine(self, vendor: dict) -> dict:
        store = self.db["store"].find_one({"vendor_id": vendor["_id"]})
        if not store:
            raise NotFound("No store found for this vendor")
        return serialize_doc(store)

    def _owned(self, vendor: dict, store_id: str) -> dict:
        store = self.db["store"].find_one({"_id": parse_id(store_id, "Store"), "vendor_id": vendor["_id"]})
        if not store:
            raise NotFound("Store not found")
        return store

    def get(self, vendor: dict, store_id: str) -> dict:
        store = serialize_doc(self._owned(vendor, store_id))
        store["vendor"] = {"id": str(vendor["_id"]), "name": vendor.get("name"), "email": vendor.get("email")}
        return store

    def update(self, vendor: dict, store_id: str, payload: StoreIn) -> dict:
        store = self._owned(vendor, store_id)
        fields = payload.model_dump(exclude_unset=True)
        fields["updated_at"] = utcnow()
        self.db["store"].update_one({"_id": store["_id"]}, {"$set": fields})
        return serialize_doc(self.db["store"].find_one({"_id": store["_id"]}))


class Products:
    def __init__(self, db: Database, store: dict):
        self.db = db
        self.store_id = store["_id"]
        self.collection = db["product"]

    def _owned(self, product_id: str) -> dict:
        product = self.collection.find_one({"_id": parse_id(product_id, "Product"), "store_id": self.store_id})
        if not product:
            raise NotFound("Product not found")
        return product

    def create(self, payload: ProductIn) -> dict:
        now = utcnow()
        doc = payload.model_dump()
        doc.update({"store_id": self.store_id, "created_at": now, "updated_at": now})
        doc = normalize_product_invariant(doc)
        doc["_id"] = self.collection.insert_one(doc).inserted_id
        return serialize_doc(doc)

    def list(self, page: int = 1, limit: int = 10, category: str = None, status: str = None) -> dict:
        query = {"store_id": self.store_id}
        if category:
            query["category"] = category
        if status:
            query["status"] = status
        docs, pagination = paginate(self.collection, query, page, limit)
        return {"products": [serialize_doc(d) for d in docs], "pagination": pagination}

    def get(self, product_id: str) -> dict:
        return serialize_doc(self._owned(product_id))

    def update(self, product_id: str, payload: ProductUpdate) -> dict:
        current = self._owned(product_id)
        merged = {**current, **payload.model_dump(exclude_unset=True, exclude_none=True)}
        merged = normalize_product_invariant(merged)
        merged["updated_at"] = utcnow()
        fields = {k: v for k, v in merged.items() if k not in ("_id", "store_id", "created_at")}
        self.collection.update_one({"_id": current["_id"], "store_id": self.store_id}, {"$set": fields})
        return serialize_doc(self.collection.find_one({"_id": current["_id"]}))

    def delete(self, product_id: str) -> None:
        result = self.collection.delete_one({"_id": parse_id(product_id, "Product"), "store_id": self.store_id})
        if result.deleted_count == 0:
            raise NotFound("Product not found")
