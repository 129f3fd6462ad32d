"""
Idempotent schema upgrade for SQLite databases created before embeddings and
default projects existed.

Run when upgrading an existing deployment:
    python migrations.py [path/to/bookmarks.db]

- Ensure project has is_default and the (owner_id, is_default) index
- Collapse legacy owners with several default projects to the newest one
- Ensure folder has parent_folder_id
- Ensure bookmark has description, tags, embedding_json, embedding_dim
"""
import sqlite3
import sys
from pathlib import Path

DB_PATH = Path("instance") / "bookmarks.db"


def table_exists(cur, name: str) -> bool:
    cur.execute("SELECT name FROM sqlite_master WHERE type='table' AND name=?", (name,))
    return cur.fetchone() is not None


def column_exists(cur, table: str, column: str) -> bool:
    cur.execute(f"PRAGMA table_info({table})")
    return any(row[1] == column for row in cur.fetchall())


def add_column(cur, table: str, column: str, col_type: str, default_sql: str | None = None):
    if column_exists(cur, table, column):
        print(f"[skip] {table}.{column} exists")
        return False
    cur.execute(f"ALTER TABLE {table} ADD COLUMN {column} {col_type}")
    if default_sql is not None:
        cur.execute(f"UPDATE {table} SET {column} = {default_sql} WHERE {column} IS NULL")
    print(f"[add] {table}.{column}")
    return True


def ensure_project(cur):
    if not table_exists(cur, "project"):
        print("[warn] project table missing; start the app once to create it")
        return
    add_column(cur, "project", "is_default", "BOOLEAN NOT NULL DEFAULT 0", default_sql="0")
    cur.execute(
        "CREATE INDEX IF NOT EXISTS ix_project_owner_default ON project (owner_id, is_default)"
    )
    # Keep only the most recently created default per owner
    cur.execute(
        """
        UPDATE project SET is_default = 0
        WHERE is_default = 1 AND id NOT IN (
            SELECT MAX(id) FROM project WHERE is_default = 1 GROUP BY owner_id
        )
        """
    )
    if cur.rowcount:
        print(f"[update] demoted {cur.rowcount} duplicate default project(s)")


def ensure_folder(cur):
    if not table_exists(cur, "folder"):
        print("[warn] folder table missing; start the app once to create it")
        return
    add_column(cur, "folder", "parent_folder_id", "INTEGER")


def ensure_bookmark(cur):
    if not table_exists(cur, "bookmark"):
        print("[warn] bookmark table missing; start the app once to create it")
        return
    add_column(cur, "bookmark", "description", "TEXT")
    add_column(cur, "bookmark", "tags", "VARCHAR(500)")
    add_column(cur, "bookmark", "embedding_json", "TEXT")
    add_column(cur, "bookmark", "embedding_dim", "INTEGER")


def migrate(db_path=DB_PATH):
    conn = sqlite3.connect(str(db_path))
    cur = conn.cursor()
    try:
        ensure_project(cur)
        ensure_folder(cur)
        ensure_bookmark(cur)
        conn.commit()
        print("Migration complete.")
    finally:
        conn.close()


if __name__ == "__main__":
    migrate(Path(sys.argv[1]) if len(sys.argv) > 1 else DB_PATH)
