"""
Chain Id Store
Persists the last chain id the application saw, across restarts
"""

import os
import sqlite3
import time
from typing import Optional

from loguru import logger

CHAIN_ID_KEY = 'chainId'


class InMemoryChainIdStore:
    """Process-local store, lost on restart"""

    def __init__(self, chain_id: Optional[str] = None):
        self._chain_id = chain_id

    def get(self) -> Optional[str]:
        return self._chain_id

    def set(self, chain_id: str):
        self._chain_id = chain_id


class SqliteChainIdStore:
    """
    SQLite-backed store

    Uses a small key/value table so the same file can hold other
    page-local settings later.
    """

    def __init__(self, db_path: str = "data/wallet_session.db", key: str = CHAIN_ID_KEY):
        """
        Initialize Chain Id Store

        Args:
            db_path: Path to SQLite database (":memory:" for a throwaway store)
            key: Storage key for the chain id
        """
        self.db_path = db_path
        self.key = key
        self.conn = None

        self._init_db()

        logger.info(f"Chain id store initialized: {db_path}")

    def _init_db(self):
        """Create the table (and its directory) if needed"""
        directory = os.path.dirname(self.db_path)
        if directory and self.db_path != ':memory:':
            os.makedirs(directory, exist_ok=True)

        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        cursor = self.conn.cursor()

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS storage (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at REAL NOT NULL
            )
        ''')

        self.conn.commit()

    def get(self) -> Optional[str]:
        """
        Last stored chain id

        Returns:
            Chain id or None if nothing was stored yet
        """
        cursor = self.conn.cursor()
        cursor.execute('SELECT value FROM storage WHERE key = ?', (self.key,))
        row = cursor.fetchone()

        return row[0] if row else None

    def set(self, chain_id: str):
        """
        Store a chain id

        Args:
            chain_id: Chain id to persist
        """
        cursor = self.conn.cursor()
        cursor.execute(
            'INSERT OR REPLACE INTO storage (key, value, updated_at) VALUES (?, ?, ?)',
            (self.key, str(chain_id), time.time())
        )
        self.conn.commit()

        logger.debug(f"Chain id stored: {chain_id}")

    def close(self):
        if self.conn:
            self.conn.close()
            self.conn = None

    def __del__(self):
        """Cleanup on deletion"""
        self.close()
