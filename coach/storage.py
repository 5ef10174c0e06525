"""Persistence for transactions, goals, settings and backups.

State lives in a key/value store where each key holds one JSON document and
every write replaces the whole collection. Failed writes are logged and
reported as ``False``; callers keep their in-memory state unchanged.
"""

import json
import logging
import math
import time
from dataclasses import asdict, fields
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Tuple

from coach.categories import get_category_info
from coach.domain import TRANSACTION_TYPES, AISettings, Goal, StorageStats, Transaction, UserPreferences
from coach.functional import Either, Left, Right, validate_transaction
from coach.transforms import add_transaction, remove_transaction

logger = logging.getLogger(__name__)

TRANSACTIONS_KEY = "finance_transactions"
AI_SETTINGS_KEY = "ai_settings"
GOALS_KEY = "finance_goals"
USER_PREFERENCES_KEY = "user_preferences"
BACKUPS_KEY = "finance_backups"

MAX_BACKUPS = 5
SCHEMA_VERSION = "2.0"


class MemoryStore:
    """Dict-backed store, values round-trip through JSON like the file store."""

    def __init__(self):
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore:
    """One ``<key>.json`` file per key inside ``directory``."""

    def __init__(self, directory):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(path)

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


def now_iso() -> str:
    return datetime.now().isoformat(timespec="milliseconds")


def transaction_to_dict(t: Transaction) -> dict:
    return {
        "id": t.id,
        "date": t.ts,
        "type": t.type,
        "amount": t.amount,
        "category": t.category,
        "description": t.description,
    }


def _record_id(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"id must be an integer, got {value!r}")
    return value


def _amount(value, field: str) -> float:
    amount = float(value)
    if not math.isfinite(amount) or amount < 0:
        raise ValueError(f"{field} must be a non-negative number, got {value!r}")
    return amount


def transaction_from_dict(d: dict) -> Transaction:
    """Decode one stored transaction. Raises ValueError/KeyError on rows that break the model."""
    if d["type"] not in TRANSACTION_TYPES:
        raise ValueError(f"unknown transaction type {d['type']!r}")
    return Transaction(
        id=_record_id(d["id"]),
        ts=d.get("date") or d.get("ts") or "",
        type=d["type"],
        amount=_amount(d["amount"], "amount"),
        category=d.get("category") or "other",
        description=d.get("description") or "",
    )


def goal_to_dict(g: Goal) -> dict:
    return {
        "id": g.id,
        "name": g.name,
        "amount": g.target,
        "deadline": g.deadline,
        "category": g.category,
        "currentAmount": g.current_amount,
        "createdAt": g.created_at,
    }


def goal_from_dict(d: dict) -> Goal:
    target = _amount(d.get("amount", d.get("target", 0)), "amount")
    return Goal(
        id=_record_id(d["id"]),
        name=d["name"],
        target=target,
        deadline=d.get("deadline") or "",
        category=d.get("category") or "",
        current_amount=min(_amount(d.get("currentAmount", 0), "currentAmount"), target),
        created_at=d.get("createdAt") or "",
    )


_AI_SETTINGS_WIRE = {"provider": "provider", "apiKey": "api_key", "enabled": "enabled",
                     "autoAnalysis": "auto_analysis"}
_PREFERENCES_WIRE = {"currency": "currency", "dateFormat": "date_format", "theme": "theme",
                     "notifications": "notifications", "autoBackup": "auto_backup"}


def _to_wire(obj, mapping: dict) -> dict:
    values = asdict(obj)
    return {wire: values[attr] for wire, attr in mapping.items()}


_TRUE = ("true", "1", "yes", "on")
_FALSE = ("false", "0", "no", "off", "")


def _coerce(value, like):
    """Convert a wire value to the type of ``like``. Raises ValueError when it cannot."""
    if isinstance(like, bool):
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return bool(value)
        if isinstance(value, str) and value.strip().lower() in _TRUE + _FALSE:
            return value.strip().lower() in _TRUE
        raise ValueError(f"expected a boolean, got {value!r}")
    if isinstance(like, str):
        if isinstance(value, (str, int, float)) and not isinstance(value, bool):
            return str(value)
        raise ValueError(f"expected text, got {value!r}")
    return value


def _from_wire(cls, data: dict, mapping: dict, base=None):
    current = asdict(base if base is not None else cls())
    known = {f.name for f in fields(cls)}
    for wire, attr in mapping.items():
        if wire not in data or attr not in known:
            continue
        try:
            current[attr] = _coerce(data[wire], current[attr])
        except ValueError as e:
            logger.warning("Ignoring %s.%s: %s", cls.__name__, wire, e)
    return cls(**current)


class Storage:
    def __init__(self, backend=None):
        self.backend = backend if backend is not None else MemoryStore()

    def _read(self, key: str, default: Any) -> Any:
        try:
            raw = self.backend.get(key)
            return json.loads(raw) if raw else default
        except (OSError, ValueError) as e:
            logger.warning("Failed to load %s: %s", key, e)
            return default

    def _write(self, key: str, value: Any) -> bool:
        try:
            self.backend.set(key, json.dumps(value, ensure_ascii=False))
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error("Failed to save %s: %s", key, e)
            return False

    # transactions

    def get_transactions(self) -> Tuple[Transaction, ...]:
        rows = self._read(TRANSACTIONS_KEY, [])
        loaded = []
        for row in rows:
            try:
                loaded.append(transaction_from_dict(row))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed transaction %r: %s", row, e)
        return tuple(loaded)

    def save_transactions(self, transactions: Tuple[Transaction, ...]) -> bool:
        return self._write(TRANSACTIONS_KEY, [transaction_to_dict(t) for t in transactions])

    # goals

    def get_goals(self) -> Tuple[Goal, ...]:
        loaded = []
        for row in self._read(GOALS_KEY, []):
            try:
                loaded.append(goal_from_dict(row))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed goal %r: %s", row, e)
        return tuple(loaded)

    def save_goals(self, goals: Tuple[Goal, ...]) -> bool:
        return self._write(GOALS_KEY, [goal_to_dict(g) for g in goals])

    # settings

    def get_ai_settings(self) -> AISettings:
        return _from_wire(AISettings, self._read(AI_SETTINGS_KEY, {}), _AI_SETTINGS_WIRE)

    def save_ai_settings(self, **changes) -> bool:
        merged = asdict(self.get_ai_settings())
        merged.update(changes)
        return self._write(AI_SETTINGS_KEY, _to_wire(AISettings(**merged), _AI_SETTINGS_WIRE))

    def get_user_preferences(self) -> UserPreferences:
        return _from_wire(UserPreferences, self._read(USER_PREFERENCES_KEY, {}), _PREFERENCES_WIRE)

    def save_user_preferences(self, **changes) -> bool:
        merged = asdict(self.get_user_preferences())
        merged.update(changes)
        return self._write(USER_PREFERENCES_KEY, _to_wire(UserPreferences(**merged), _PREFERENCES_WIRE))

    # export / import

    def export_data(self) -> dict:
        return {
            "transactions": [transaction_to_dict(t) for t in self.get_transactions()],
            "aiSettings": _to_wire(self.get_ai_settings(), _AI_SETTINGS_WIRE),
            "goals": [goal_to_dict(g) for g in self.get_goals()],
            "userPreferences": _to_wire(self.get_user_preferences(), _PREFERENCES_WIRE),
            "exportDate": now_iso(),
            "schemaVersion": SCHEMA_VERSION,
        }

    def import_data(self, data: dict) -> bool:
        """Merge an export document; each top-level key is optional."""
        if not isinstance(data, dict):
            logger.error("Failed to import data: expected an object, got %s", type(data).__name__)
            return False
        try:
            transactions = tuple(transaction_from_dict(d) for d in data["transactions"]) \
                if data.get("transactions") is not None else None
            goals = tuple(goal_from_dict(d) for d in data["goals"]) \
                if data.get("goals") is not None else None
            ai_settings = _from_wire(AISettings, data["aiSettings"], _AI_SETTINGS_WIRE, self.get_ai_settings()) \
                if data.get("aiSettings") else None
            prefs = _from_wire(UserPreferences, data["userPreferences"], _PREFERENCES_WIRE,
                               self.get_user_preferences()) \
                if data.get("userPreferences") else None
        except (KeyError, TypeError, ValueError) as e:
            logger.error("Failed to import data: %s", e)
            return False

        ok = True
        if transactions is not None:
            ok = self.save_transactions(transactions) and ok
        if ai_settings is not None:
            ok = self._write(AI_SETTINGS_KEY, _to_wire(ai_settings, _AI_SETTINGS_WIRE)) and ok
        if goals is not None:
            ok = self.save_goals(goals) and ok
        if prefs is not None:
            ok = self._write(USER_PREFERENCES_KEY, _to_wire(prefs, _PREFERENCES_WIRE)) and ok
        return ok

    # backups

    def get_backups(self) -> list:
        backups = self._read(BACKUPS_KEY, [])
        return backups if isinstance(backups, list) else []

    def create_backup(self) -> bool:
        backup = {**self.export_data(), "backupDate": now_iso()}
        backups = [backup] + self.get_backups()
        return self._write(BACKUPS_KEY, backups[:MAX_BACKUPS])

    def restore_backup(self, index: int) -> bool:
        backups = self.get_backups()
        if not 0 <= index < len(backups):
            return False
        return self.import_data(backups[index])

    def stats(self) -> StorageStats:
        try:
            size = len(json.dumps(self.export_data(), ensure_ascii=False).encode("utf-8"))
        except (TypeError, ValueError):
            size = 0
        return StorageStats(
            transactions=len(self.get_transactions()),
            goals=len(self.get_goals()),
            backups=len(self.get_backups()),
            total_size=size,
        )

    def clear_all_data(self) -> bool:
        """Drop transactions, goals and backups; settings and preferences stay."""
        try:
            for key in (TRANSACTIONS_KEY, GOALS_KEY, BACKUPS_KEY):
                self.backend.remove(key)
        except OSError as e:
            logger.error("Failed to clear data: %s", e)
            return False
        return True


class TransactionStore:
    """Ordered transactions (newest first) kept in sync with ``Storage``."""

    def __init__(self, storage: Storage, clock=time.time):
        self.storage = storage
        self._clock = clock
        self._transactions: Tuple[Transaction, ...] = storage.get_transactions()

    @property
    def transactions(self) -> Tuple[Transaction, ...]:
        return self._transactions

    def __len__(self) -> int:
        return len(self._transactions)

    def next_id(self) -> int:
        candidate = int(self._clock() * 1000)
        last = max((t.id for t in self._transactions if isinstance(t.id, int)), default=0)
        return max(candidate, last + 1)

    def commit(self, transactions: Tuple[Transaction, ...]) -> bool:
        if not self.storage.save_transactions(transactions):
            return False
        self._transactions = transactions
        return True

    def append(self, tx_type: str, amount, category: str, description: str = "",
               ts: Optional[str] = None) -> Either[dict, Transaction]:
        checked = validate_transaction(tx_type, amount, category)
        if checked.is_left():
            return checked

        new_tx = Transaction(
            id=self.next_id(),
            ts=ts or now_iso(),
            type=tx_type,
            amount=checked.get_or_else(0.0),
            category=category,
            description=(description or "").strip() or get_category_info(category).name,
        )
        if not self.commit(add_transaction(self._transactions, new_tx)):
            return Left({"error": "persistence_failed", "message": "Failed to save transaction"})
        return Right(new_tx)

    def delete(self, tid: int) -> bool:
        remaining = remove_transaction(self._transactions, tid)
        if len(remaining) == len(self._transactions):
            return False
        return self.commit(remaining)

    def reload(self) -> None:
        self._transactions = self.storage.get_transactions()
