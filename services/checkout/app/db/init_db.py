from __future__ import annotations

import os

from services.checkout.app.db.database import get_engine
from services.checkout.app.db.models import Base

_TRUTHY = {"1", "true", "yes", "y"}


def init_db() -> None:
    if os.getenv("STOREFRONT_DB_AUTO_CREATE", "true").strip().lower() not in _TRUTHY:
        return

    engine = get_engine()
    Base.metadata.create_all(bind=engine)
