from pathlib import Path

from sqlalchemy import inspect


def test_init_db_creates_tables(tmp_path: Path, monkeypatch) -> None:
    db_path = tmp_path / "storefront_test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{db_path}")
    monkeypatch.setenv("STOREFRONT_DB_AUTO_CREATE", "true")

    from services.checkout.app.db.database import get_engine
    from services.checkout.app.db.init_db import init_db

    init_db()

    inspector = inspect(get_engine())
    tables = set(inspector.get_table_names())

    assert "checkout_storage" in tables
    assert "event_log" in tables


def test_init_db_can_be_disabled(tmp_path: Path, monkeypatch) -> None:
    db_path = tmp_path / "storefront_off.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{db_path}")
    monkeypatch.setenv("STOREFRONT_DB_AUTO_CREATE", "false")

    from services.checkout.app.db.database import get_engine
    from services.checkout.app.db.init_db import init_db

    init_db()

    assert inspect(get_engine()).get_table_names() == []
