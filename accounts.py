from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import to_iso, utcnow
from errors import Conflict, InvalidCredential
from schemas import LoginRequest, RegisterRequest
from security import (
    LOGIN_TOKEN_EXPIRE,
    REGISTER_TOKEN_EXPIRE,
    SECRET_KEY,
    create_access_token,
    hash_password,
    verify_password,
)


def serialize_vendor(doc: dict, with_created: bool = False) -> dict:
    out = {
        "id": str(doc["_id"]),
        "name": doc.get("name"),
        "email": doc.get("email"),
        "status": doc.get("status", "active"),
    }
    if with_created:
        out["created_at"] = to_iso(doc.get("created_at"))
    return out


class Accounts:
    def __init__(self, db: Database, secret: str = SECRET_KEY):
        self.db = db
        self.secret = secret

    def register(self, payload: RegisterRequest) -> dict:
        email = payload.email.lower()
        if self.db["vendor"].find_one({"email": email}):
            raise Conflict("Vendor already exists with this email")
        now = utcnow()
        doc = {
            "name": payload.name,
            "email": email,
            "password_hash": hash_password(payload.password),
            "status": "active",
            "created_at": now,
            "updated_at": now,
        }
        try:
            doc["_id"] = self.db["vendor"].insert_one(doc).inserted_id
        except DuplicateKeyError:
            raise Conflict("Vendor already exists with this email")
        token = create_access_token(doc["_id"], REGISTER_TOKEN_EXPIRE, self.secret)
        return {"token": token, "vendor": serialize_vendor(doc)}

    def login(self, payload: LoginRequest) -> dict:
        vendor = self.db["vendor"].find_one({"email": payload.email.lower()})
        if not vendor or not verify_password(payload.password, vendor.get("password_hash", "")):
            raise InvalidCredential("Invalid email or password")
        token = create_access_token(vendor["_id"], LOGIN_TOKEN_EXPIRE, self.secret)
        return {"token": token, "vendor": serialize_vendor(vendor)}

    @staticmethod
    def profile(vendor: dict) -> dict:
        return serialize_vendor(vendor, with_created=True)
