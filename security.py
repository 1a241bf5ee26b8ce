import os
from datetime import datetime, timedelta, timezone
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from jose import JWTError, jwt
from passlib.context import CryptContext
from pymongo.database import Database

from errors import InvalidCredential, NoStore, Unauthenticated

SECRET_KEY = os.getenv("JWT_SECRET", "change-this-secret")
ALGORITHM = "HS256"
REGISTER_TOKEN_EXPIRE = timedelta(days=30)
LOGIN_TOKEN_EXPIRE = timedelta(days=7)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def create_access_token(vendor_id, expires_delta: Optional[timedelta] = None, secret: str = SECRET_KEY) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or LOGIN_TOKEN_EXPIRE)
    return jwt.encode({"sub": str(vendor_id), "exp": expire}, secret, algorithm=ALGORITHM)


class AccessGate:
    """Resolves a bearer token to its vendor, and a vendor to its store."""

    def __init__(self, db: Database, secret: str = SECRET_KEY):
        self.db = db
        self.secret = secret

    def resolve(self, token: Optional[str]) -> dict:
        if not token or not token.strip():
            raise Unauthenticated()
        try:
            payload = jwt.decode(token, self.secret, algorithms=[ALGORITHM])
        except JWTError:
            raise InvalidCredential()
        vendor_id = payload.get("sub")
        if vendor_id is None:
            raise InvalidCredential()
        try:
            vendor = self.db["vendor"].find_one({"_id": ObjectId(vendor_id)})
        except (InvalidId, TypeError):
            raise InvalidCredential()
        if not vendor:
            raise InvalidCredential()
        return vendor

    def store_for(self, vendor: dict) -> dict:
        store = self.db["store"].find_one({"vendor_id": vendor["_id"]})
        if not store:
            raise NoStore()
        return store
