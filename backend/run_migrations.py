#!/usr/bin/env python3
"""
Schema migration runner.

Applies the SQL files in migrations/ to the Supabase Postgres database in
name order, recording each applied file and its checksum in a tracking
table so every file runs once.

Usage:
    python run_migrations.py              # Apply pending migrations
    python run_migrations.py --status     # Show applied and pending files
    python run_migrations.py --dry-run    # List what would be applied

Configuration:
    SUPABASE_DB_URL=postgresql://postgres.[project-ref]:[password]@[host]:6543/postgres
"""

import argparse
import hashlib
import sys
from dataclasses import dataclass
from pathlib import Path

import psycopg2
from psycopg2 import sql
from rich.console import Console
from rich.table import Table

from shared.config import get_settings

console = Console()

MIGRATIONS_DIR = Path(__file__).parent / "migrations"
TRACKING_TABLE = "schema_migrations"


@dataclass(frozen=True)
class Migration:
    name: str
    path: Path
    checksum: str

    @classmethod
    def from_path(cls, path: Path) -> "Migration":
        return cls(name=path.name, path=path, checksum=checksum_of(path.read_text()))


def checksum_of(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:16]


def discover(directory: Path = MIGRATIONS_DIR) -> list[Migration]:
    """All migration files, in the order they must be applied."""
    if not directory.exists():
        return []
    return [Migration.from_path(p) for p in sorted(directory.glob("*.sql"))]


def pending(migrations: list[Migration], applied: dict[str, str]) -> list[Migration]:
    """
    Migrations not yet recorded as applied.

    A recorded file whose checksum changed is reported, not re-run.
    """
    todo = []
    for migration in migrations:
        recorded = applied.get(migration.name)
        if recorded is None:
            todo.append(migration)
        elif recorded != migration.checksum:
            console.print(f"[yellow]Warning:[/yellow] {migration.name} changed after it was applied")
    return todo


def connect():
    settings = get_settings()
    if not settings.supabase_db_url:
        console.print("[red]Error:[/red] SUPABASE_DB_URL is not set.")
        sys.exit(1)
    try:
        return psycopg2.connect(settings.supabase_db_url)
    except psycopg2.Error as e:
        console.print(f"[red]Database connection failed:[/red] {e}")
        sys.exit(1)


def load_applied(conn) -> dict[str, str]:
    """Create the tracking table if needed and return name -> checksum."""
    with conn.cursor() as cur:
        cur.execute(
            sql.SQL(
                "CREATE TABLE IF NOT EXISTS {} ("
                " name TEXT PRIMARY KEY,"
                " checksum TEXT NOT NULL,"
                " applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW())"
            ).format(sql.Identifier(TRACKING_TABLE))
        )
        cur.execute(
            sql.SQL("SELECT name, checksum FROM {} ORDER BY name").format(
                sql.Identifier(TRACKING_TABLE)
            )
        )
        rows = cur.fetchall()
    conn.commit()
    return {name: checksum for name, checksum in rows}


def apply(conn, migration: Migration) -> None:
    """Run one file and record it in the same transaction."""
    console.print(f"[blue]Applying[/blue] {migration.name}...")
    try:
        with conn.cursor() as cur:
            cur.execute(migration.path.read_text())
            cur.execute(
                sql.SQL("INSERT INTO {} (name, checksum) VALUES (%s, %s)").format(
                    sql.Identifier(TRACKING_TABLE)
                ),
                (migration.name, migration.checksum),
            )
        conn.commit()
    except psycopg2.Error as e:
        conn.rollback()
        console.print(f"[red]Failed[/red] {migration.name}: {e}")
        raise
    console.print(f"[green]Applied[/green] {migration.name}")


def print_status(migrations: list[Migration], applied: dict[str, str]) -> None:
    table = Table(title="Schema migrations")
    table.add_column("Migration", style="cyan")
    table.add_column("Status")
    table.add_column("Checksum")
    for migration in migrations:
        state = "[green]applied[/green]" if migration.name in applied else "[yellow]pending[/yellow]"
        table.add_row(migration.name, state, migration.checksum)
    console.print(table)


def main():
    parser = argparse.ArgumentParser(description="Apply Tenantgate schema migrations")
    parser.add_argument("--status", action="store_true", help="Show migration status only")
    parser.add_argument("--dry-run", action="store_true", help="List pending migrations only")
    args = parser.parse_args()

    migrations = discover()
    if not migrations:
        console.print(f"[yellow]No migrations found in {MIGRATIONS_DIR}[/yellow]")
        return

    conn = connect()
    try:
        applied = load_applied(conn)
        if args.status:
            print_status(migrations, applied)
            return

        todo = pending(migrations, applied)
        if not todo:
            console.print("[green]Schema is up to date.[/green]")
            return
        for migration in todo:
            if args.dry_run:
                console.print(f"[cyan]Would apply[/cyan] {migration.name}")
            else:
                apply(conn, migration)
    finally:
        conn.close()


if __name__ == "__main__":
    main()
