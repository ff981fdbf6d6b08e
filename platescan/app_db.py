# -*- coding: utf-8 -*-
"""App database (users/vault/scores/security events) — SQLite helpers."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator


def connect(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def init_app_db(db_path: Path) -> None:
    conn = connect(db_path)
    try:
        cur = conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                email TEXT NOT NULL UNIQUE,
                password_hash TEXT NOT NULL,
                created_at TEXT NOT NULL
            );
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS vault_items (
                id TEXT PRIMARY KEY,
                canonical_key TEXT NOT NULL,
                provider TEXT NOT NULL,
                provider_ref TEXT,
                name TEXT NOT NULL,
                brand TEXT,
                class_id TEXT,
                confidence REAL,
                per100g_json TEXT NOT NULL,
                portion_defs_json TEXT,
                flags_json TEXT,
                region TEXT NOT NULL,
                ingredients_text TEXT,
                updated_at TEXT NOT NULL,
                expires_at TEXT NOT NULL
            );
            """
        )
        cur.execute(
            "CREATE UNIQUE INDEX IF NOT EXISTS idx_vault_items_key_region ON vault_items(canonical_key, region);"
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_vault_items_region_updated ON vault_items(region, updated_at DESC);"
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS vault_lookups (
                id TEXT PRIMARY KEY,
                q TEXT NOT NULL,
                item_id TEXT,
                hit INTEGER NOT NULL,
                provider TEXT NOT NULL,
                created_at TEXT NOT NULL
            );
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS meal_scores (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                meal_id TEXT NOT NULL,
                score REAL NOT NULL,
                rating_text TEXT NOT NULL,
                penalties_json TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
            );
            """
        )
        cur.execute(
            "CREATE UNIQUE INDEX IF NOT EXISTS idx_meal_scores_user_meal ON meal_scores(user_id, meal_id);"
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS security_events (
                id TEXT PRIMARY KEY,
                user_id TEXT,
                event_type TEXT NOT NULL,
                severity TEXT NOT NULL,
                details_json TEXT,
                created_at TEXT NOT NULL
            );
            """
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_security_events_user_created ON security_events(user_id, created_at DESC);"
        )
        conn.commit()
    finally:
        conn.close()


@contextmanager
def db_conn(db_path: Path) -> Iterator[sqlite3.Connection]:
    conn = connect(db_path)
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()
