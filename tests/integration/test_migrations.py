import logging
import sqlite3

import pytest

from storefront.adapters.sqlite.migrator import SQLiteMigrator, read_migration


@pytest.fixture
def temp_db_path(tmp_path):
    return str(tmp_path / "data" / "store.db")


@pytest.fixture
def migrations_dir():
    return "migrations"


def _tables(db_path: str) -> set[str]:
    conn = sqlite3.connect(db_path)
    try:
        rows = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
        return {row[0] for row in rows}
    finally:
        conn.close()


def test_migrator_creates_db_directory_and_tables(temp_db_path, migrations_dir):
    applied = SQLiteMigrator(temp_db_path, migrations_dir).run_migrations()

    assert applied == ["0001_initial.sql"]
    tables = _tables(temp_db_path)
    assert "_migrations" in tables
    for table in (
        "users",
        "brands",
        "products",
        "product_variants",
        "inventory_records",
        "coupon_campaigns",
        "user_coupons",
        "carts",
        "reviews",
        "wallets",
        "wallet_transactions",
        "payment_methods",
        "support_tickets",
        "ticket_messages",
    ):
        assert table in tables


def test_migrator_is_idempotent(temp_db_path, migrations_dir):
    migrator = SQLiteMigrator(temp_db_path, migrations_dir)

    migrator.run_migrations()
    assert migrator.run_migrations() == []

    conn = sqlite3.connect(temp_db_path)
    cursor = conn.execute("SELECT count(*) FROM _migrations WHERE filename='0001_initial.sql'")
    assert cursor.fetchone()[0] == 1
    conn.close()


def test_down_section_is_not_applied(tmp_path):
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "0001_things.sql").write_text(
        "CREATE TABLE things (id TEXT PRIMARY KEY);\n-- Down\nDROP TABLE things;\n"
    )
    db_path = str(tmp_path / "t.db")

    SQLiteMigrator(db_path, str(migrations)).run_migrations()

    assert "things" in _tables(db_path)


def test_broken_migration_raises(tmp_path):
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "0001_bad.sql").write_text("CREATE TABLE;")

    with pytest.raises(RuntimeError, match="0001_bad.sql"):
        SQLiteMigrator(str(tmp_path / "t.db"), str(migrations)).run_migrations()


def test_failed_migration_leaves_nothing_behind(tmp_path):
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "0001_half.sql").write_text(
        "CREATE TABLE first_half (id TEXT PRIMARY KEY);\nCREATE TABLE;\n"
    )
    db_path = str(tmp_path / "t.db")
    migrator = SQLiteMigrator(db_path, str(migrations))

    with pytest.raises(RuntimeError):
        migrator.run_migrations()

    assert "first_half" not in _tables(db_path)
    assert migrator.applied() == {}


def test_pending_lists_unapplied_files_in_order(tmp_path):
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "0002_b.sql").write_text("CREATE TABLE b (id TEXT);\n")
    (migrations / "0001_a.sql").write_text("CREATE TABLE a (id TEXT);\n")
    (migrations / "notes.txt").write_text("not a migration")
    migrator = SQLiteMigrator(str(tmp_path / "t.db"), str(migrations))

    assert [m.filename for m in migrator.pending()] == ["0001_a.sql", "0002_b.sql"]
    assert migrator.run_migrations() == ["0001_a.sql", "0002_b.sql"]
    assert migrator.pending() == []


def test_edited_migration_is_reported_not_reapplied(tmp_path, caplog):
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    script = migrations / "0001_a.sql"
    script.write_text("CREATE TABLE a (id TEXT);\n")
    migrator = SQLiteMigrator(str(tmp_path / "t.db"), str(migrations))
    migrator.run_migrations()
    original = migrator.applied()["0001_a.sql"]

    script.write_text("CREATE TABLE a (id TEXT, name TEXT);\n")
    with caplog.at_level(logging.WARNING, logger="storefront.adapters.sqlite.migrator"):
        assert migrator.run_migrations() == []

    assert "0001_a.sql was edited" in caplog.text
    assert migrator.applied()["0001_a.sql"] == original


def test_checksum_ignores_down_section(tmp_path):
    path = tmp_path / "0001_a.sql"
    path.write_text("CREATE TABLE a (id TEXT);\n-- Down\nDROP TABLE a;\n")
    with_down = read_migration(str(path))
    path.write_text("CREATE TABLE a (id TEXT);\n-- Down\n")

    assert read_migration(str(path)).checksum == with_down.checksum
    assert "DROP" not in with_down.up_sql
