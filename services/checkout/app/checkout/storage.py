from __future__ import annotations

from typing import Protocol

from sqlalchemy.orm import Session, sessionmaker

from services.checkout.app.db.models import CheckoutStorageEntry

ADDRESS_ID_KEY = "checkout_address_id"
PAYMENT_METHOD_KEY = "checkout_payment_method"
PAYMENT_ID_KEY = "payment_id"
PAYMENT_ORDER_ID_KEY = "payment_order_id"
PAYMENT_AMOUNT_KEY = "payment_amount"

CHECKOUT_KEYS = (
    ADDRESS_ID_KEY,
    PAYMENT_METHOD_KEY,
    PAYMENT_ID_KEY,
    PAYMENT_ORDER_ID_KEY,
    PAYMENT_AMOUNT_KEY,
)


class SessionStorage(Protocol):
    """Tab-scoped key/value store for in-progress checkout state."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...

    def clear(self) -> None: ...


class InMemorySessionStorage:
    def __init__(self) -> None:
        self._values: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)

    def clear(self) -> None:
        self._values.clear()


class SqlSessionStorage:
    """Session storage rows scoped to one shopper session."""

    def __init__(self, sessions: sessionmaker, scope: str) -> None:
        self._sessions = sessions
        self._scope = scope

    def _session(self) -> Session:
        return self._sessions()

    def get(self, key: str) -> str | None:
        db = self._session()
        try:
            row = db.get(CheckoutStorageEntry, (self._scope, key))
            return row.value if row is not None else None
        finally:
            db.close()

    def set(self, key: str, value: str) -> None:
        db = self._session()
        try:
            row = db.get(CheckoutStorageEntry, (self._scope, key))
            if row is None:
                db.add(CheckoutStorageEntry(scope=self._scope, key=key, value=value))
            else:
                row.value = value
            db.commit()
        finally:
            db.close()

    def remove(self, key: str) -> None:
        db = self._session()
        try:
            row = db.get(CheckoutStorageEntry, (self._scope, key))
            if row is not None:
                db.delete(row)
                db.commit()
        finally:
            db.close()

    def clear(self) -> None:
        db = self._session()
        try:
            db.query(CheckoutStorageEntry).filter(
                CheckoutStorageEntry.scope == self._scope
            ).delete()
            db.commit()
        finally:
            db.close()
