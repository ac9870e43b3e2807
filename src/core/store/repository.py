"""SQLite repository for relay collaborator data.

This module provides lookups and updates for API keys, bots, bot
configurations and command mappings using direct sqlite3. It is the
local stand-in for the managed database the relay reads from; the relay
core only depends on the small lookup protocols it declares.
"""

import json
import logging
import os
import sqlite3
import uuid
from datetime import datetime, timezone

from src.core.auth.models import ApiKeyRecord
from src.core.commands.models import BotPersona, CommandMapping
from src.core.policy.models import BotConfiguration

logger = logging.getLogger(__name__)


def _to_iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _from_iso(value: str | None) -> datetime | None:
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class RelayRepository:
    """Repository for relay keys, bots, configurations and command mappings.

    The repository auto-creates the database directory and tables on
    initialization.

    Attributes:
        db_path: Path to the SQLite database file.

    Example:
        >>> repo = RelayRepository(db_path="data/relay.db")
        >>> bot = repo.upsert_bot(BotPersona(bot_id="", tenant_id="t1", name="Mod"))
        >>> repo.ensure_configuration(bot.bot_id).enabled
        True
    """

    def __init__(self, db_path: str = "data/relay.db") -> None:
        self.db_path = db_path

        db_dir = os.path.dirname(db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _init_db(self) -> None:
        """Create tables if they don't exist and enable WAL mode."""
        conn = self._connect()
        try:
            conn.execute("PRAGMA journal_mode=WAL")

            conn.execute("""
                CREATE TABLE IF NOT EXISTS api_keys (
                    key_id TEXT PRIMARY KEY,
                    tenant_id TEXT NOT NULL,
                    bot_id TEXT,
                    scopes TEXT NOT NULL,
                    expires_at TEXT,
                    revoked_at TEXT,
                    hmac_secret TEXT,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS bots (
                    bot_id TEXT PRIMARY KEY,
                    tenant_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    personality TEXT NOT NULL,
                    examples TEXT NOT NULL,
                    connected INTEGER NOT NULL,
                    client_id TEXT,
                    platform TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS bot_configurations (
                    bot_id TEXT PRIMARY KEY,
                    data TEXT NOT NULL,
                    version INTEGER NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS command_mappings (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    tenant_id TEXT NOT NULL,
                    bot_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    pattern TEXT NOT NULL,
                    output_template TEXT NOT NULL,
                    status TEXT NOT NULL,
                    usage_count INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_mappings_bot
                ON command_mappings(bot_id, tenant_id, status)
            """)
            conn.commit()
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # API keys
    # ------------------------------------------------------------------

    def create_api_key(self, record: ApiKeyRecord) -> ApiKeyRecord:
        conn = self._connect()
        try:
            conn.execute(
                """
                INSERT INTO api_keys (
                    key_id, tenant_id, bot_id, scopes, expires_at,
                    revoked_at, hmac_secret, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.key_id,
                    record.tenant_id,
                    record.bot_id,
                    json.dumps(sorted(record.scopes)),
                    _to_iso(record.expires_at),
                    _to_iso(record.revoked_at),
                    record.hmac_secret,
                    _now(),
                ),
            )
            conn.commit()
            return record
        finally:
            conn.close()

    def get_api_key(self, key_id: str) -> ApiKeyRecord | None:
        conn = self._connect()
        try:
            row = conn.execute(
                """
                SELECT key_id, tenant_id, bot_id, scopes, expires_at,
                       revoked_at, hmac_secret
                FROM api_keys WHERE key_id = ?
                """,
                (key_id,),
            ).fetchone()
            if row is None:
                return None
            return ApiKeyRecord(
                key_id=row[0],
                tenant_id=row[1],
                bot_id=row[2],
                scopes=frozenset(json.loads(row[3])),
                expires_at=_from_iso(row[4]),
                revoked_at=_from_iso(row[5]),
                hmac_secret=row[6],
            )
        finally:
            conn.close()

    def revoke_api_key(self, key_id: str) -> bool:
        """Revoke a key. Returns False if it does not exist or is already revoked."""
        conn = self._connect()
        try:
            cursor = conn.execute(
                "UPDATE api_keys SET revoked_at = ? WHERE key_id = ? AND revoked_at IS NULL",
                (_now(), key_id),
            )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Bots
    # ------------------------------------------------------------------

    def _row_to_bot(self, row: tuple) -> BotPersona:
        return BotPersona(
            bot_id=row[0],
            tenant_id=row[1],
            name=row[2],
            personality=row[3],
            examples=row[4],
            connected=bool(row[5]),
            client_id=row[6],
            platform=row[7],
        )

    def get_bot(self, bot_id: str) -> BotPersona | None:
        conn = self._connect()
        try:
            row = conn.execute(
                """
                SELECT bot_id, tenant_id, name, personality, examples,
                       connected, client_id, platform
                FROM bots WHERE bot_id = ?
                """,
                (bot_id,),
            ).fetchone()
            return self._row_to_bot(row) if row else None
        finally:
            conn.close()

    def find_bot_by_client_id(self, tenant_id: str, client_id: str) -> BotPersona | None:
        conn = self._connect()
        try:
            row = conn.execute(
                """
                SELECT bot_id, tenant_id, name, personality, examples,
                       connected, client_id, platform
                FROM bots WHERE tenant_id = ? AND client_id = ?
                """,
                (tenant_id, client_id),
            ).fetchone()
            return self._row_to_bot(row) if row else None
        finally:
            conn.close()

    def upsert_bot(self, bot: BotPersona) -> BotPersona:
        """Insert a bot, or update it if the id exists.

        A bot without an id gets a fresh one.
        """
        bot_id = bot.bot_id or str(uuid.uuid4())
        conn = self._connect()
        try:
            conn.execute(
                """
                INSERT INTO bots (
                    bot_id, tenant_id, name, personality, examples,
                    connected, client_id, platform, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(bot_id) DO UPDATE SET
                    name = excluded.name,
                    personality = excluded.personality,
                    examples = excluded.examples,
                    connected = excluded.connected,
                    client_id = excluded.client_id,
                    platform = excluded.platform
                """,
                (
                    bot_id,
                    bot.tenant_id,
                    bot.name,
                    bot.personality,
                    bot.examples,
                    int(bot.connected),
                    bot.client_id,
                    bot.platform,
                    _now(),
                ),
            )
            conn.commit()
        finally:
            conn.close()
        return self.get_bot(bot_id)  # type: ignore[return-value]

    def set_bot_connected(self, bot_id: str, connected: bool = True) -> bool:
        conn = self._connect()
        try:
            cursor = conn.execute(
                "UPDATE bots SET connected = ? WHERE bot_id = ?",
                (int(connected), bot_id),
            )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Configurations
    # ------------------------------------------------------------------

    def get_configuration(self, bot_id: str) -> BotConfiguration | None:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT data, version FROM bot_configurations WHERE bot_id = ?",
                (bot_id,),
            ).fetchone()
            if row is None:
                return None
            data = json.loads(row[0])
            data["bot_id"] = bot_id
            data["version"] = row[1]
            return BotConfiguration.from_dict(data)
        finally:
            conn.close()

    def ensure_configuration(self, bot_id: str) -> BotConfiguration:
        """Get a bot's configuration, creating the default one if missing."""
        existing = self.get_configuration(bot_id)
        if existing is not None:
            return existing

        config = BotConfiguration(bot_id=bot_id)
        conn = self._connect()
        try:
            conn.execute(
                """
                INSERT OR IGNORE INTO bot_configurations (bot_id, data, version, updated_at)
                VALUES (?, ?, ?, ?)
                """,
                (bot_id, json.dumps(config.to_dict()), config.version, _now()),
            )
            conn.commit()
        finally:
            conn.close()
        logger.info("Created default configuration for bot %s", bot_id)
        return self.get_configuration(bot_id) or config

    def save_configuration(self, config: BotConfiguration) -> BotConfiguration:
        """Store a configuration and bump its version."""
        current = self.get_configuration(config.bot_id)
        version = (current.version if current else 0) + 1
        data = config.to_dict()
        data["version"] = version
        conn = self._connect()
        try:
            conn.execute(
                """
                INSERT INTO bot_configurations (bot_id, data, version, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(bot_id) DO UPDATE SET
                    data = excluded.data,
                    version = excluded.version,
                    updated_at = excluded.updated_at
                """,
                (config.bot_id, json.dumps(data), version, _now()),
            )
            conn.commit()
        finally:
            conn.close()
        return BotConfiguration.from_dict(data)

    # ------------------------------------------------------------------
    # Command mappings
    # ------------------------------------------------------------------

    def _row_to_mapping(self, row: tuple) -> CommandMapping:
        return CommandMapping(
            id=str(row[0]),
            tenant_id=row[1],
            bot_id=row[2],
            name=row[3],
            pattern=row[4],
            output_template=row[5],
            status=row[6],
            usage_count=row[7],
        )

    def create_mapping(self, mapping: CommandMapping) -> CommandMapping:
        """Insert a mapping. The id field is ignored and assigned by the database."""
        conn = self._connect()
        try:
            cursor = conn.execute(
                """
                INSERT INTO command_mappings (
                    tenant_id, bot_id, name, pattern, output_template,
                    status, usage_count, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    mapping.tenant_id,
                    mapping.bot_id,
                    mapping.name,
                    mapping.pattern,
                    mapping.output_template,
                    mapping.status,
                    mapping.usage_count,
                    _now(),
                ),
            )
            conn.commit()
            return CommandMapping(
                id=str(cursor.lastrowid),
                tenant_id=mapping.tenant_id,
                bot_id=mapping.bot_id,
                name=mapping.name,
                pattern=mapping.pattern,
                output_template=mapping.output_template,
                status=mapping.status,
                usage_count=mapping.usage_count,
            )
        finally:
            conn.close()

    def list_active_mappings(self, bot_id: str, tenant_id: str) -> list[CommandMapping]:
        conn = self._connect()
        try:
            rows = conn.execute(
                """
                SELECT id, tenant_id, bot_id, name, pattern, output_template,
                       status, usage_count
                FROM command_mappings
                WHERE bot_id = ? AND tenant_id = ? AND status = 'active'
                ORDER BY id
                """,
                (bot_id, tenant_id),
            ).fetchall()
            return [self._row_to_mapping(row) for row in rows]
        finally:
            conn.close()

    def increment_usage(self, mapping_id: str) -> bool:
        conn = self._connect()
        try:
            cursor = conn.execute(
                "UPDATE command_mappings SET usage_count = usage_count + 1 WHERE id = ?",
                (int(mapping_id),),
            )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()


_repository: RelayRepository | None = None


def get_repository(db_path: str | None = None) -> RelayRepository:
    """Get the singleton RelayRepository instance.

    Args:
        db_path: Path to SQLite database (only used on first call).
            Defaults to ``settings.database_path``.

    Returns:
        RelayRepository singleton instance.
    """
    global _repository
    if _repository is None:
        from src.config import settings

        _repository = RelayRepository(db_path=db_path or settings.database_path)
    return _repository


def reset_repository() -> None:
    """Drop the singleton (for testing)."""
    global _repository
    _repository = None
