import json
import logging
from datetime import datetime, timedelta
from typing import Protocol

from pydantic import TypeAdapter, ValidationError
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.schemas import BudgetCategory, MentorConfig, Mission, MissionStatus
from app.models.sql import MentorStateDB
from app.services.missions import apply_manual_value

logger = logging.getLogger(__name__)

MISSIONS_KEY = "mentor_missions"
BUDGET_LIMITS_KEY = "mentor_budget_limits"
ENABLED_RULES_KEY = "mentor_enabled_rules"
CONFIG_KEY = "mentor_config"
ALL_KEYS = (MISSIONS_KEY, BUDGET_LIMITS_KEY, ENABLED_RULES_KEY, CONFIG_KEY)

COMPLETED_RETENTION = timedelta(days=7)

_missions_adapter = TypeAdapter(list[Mission])
_limits_adapter = TypeAdapter(list[BudgetCategory])
_rule_ids_adapter = TypeAdapter(list[str])


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStore:
    """Dict-backed store that remembers what changed since it was loaded."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data = dict(initial or {})
        self.changed: set[str] = set()
        self.removed: set[str] = set()

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self.changed.add(key)
        self.removed.discard(key)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)
        self.removed.add(key)
        self.changed.discard(key)

    def items(self) -> dict[str, str]:
        return dict(self._data)


class MentorStorage:
    """Typed access to the mentor's own keys in a KeyValueStore."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def _load(self, key: str, adapter: TypeAdapter, default):
        raw = self.store.get(key)
        if raw is None:
            return default
        try:
            return adapter.validate_json(raw)
        except (ValidationError, ValueError) as e:
            logger.warning(f"Discarding malformed value for '{key}': {e}")
            return default

    # --- Missions ---
    def load_missions(self) -> list[Mission]:
        return self._load(MISSIONS_KEY, _missions_adapter, [])

    def save_missions(self, missions: list[Mission]) -> None:
        self.store.set(MISSIONS_KEY, _missions_adapter.dump_json(missions).decode())

    def clear_missions(self) -> None:
        self.store.remove(MISSIONS_KEY)

    def update_mission_progress(self, mission_id: str, current_value: float) -> Mission | None:
        missions = self.load_missions()
        updated = None
        for idx, mission in enumerate(missions):
            if mission.id == mission_id:
                updated = missions[idx] = apply_manual_value(mission, current_value)

        if updated is None:
            logger.warning(f"Mission '{mission_id}' not found for manual update")
            return None

        self.save_missions(missions)
        return updated

    def complete_mission(self, mission_id: str) -> None:
        missions = [
            m.model_copy(update={"progress": 100, "status": MissionStatus.COMPLETED}) if m.id == mission_id else m
            for m in self.load_missions()
        ]
        self.save_missions(missions)

    def cleanup_old_missions(self, now: datetime) -> list[Mission]:
        """
        Keeps active missions that have not ended yet and completed missions
        whose end date is less than 7 days ago. Everything else is dropped.
        """
        kept = []
        for mission in self.load_missions():
            if mission.status == MissionStatus.COMPLETED:
                if now - mission.end_date < COMPLETED_RETENTION:
                    kept.append(mission)
            elif mission.status == MissionStatus.ACTIVE and mission.end_date > now:
                kept.append(mission)

        self.save_missions(kept)
        return kept

    # --- Rules ---
    def load_enabled_rules(self) -> list[str] | None:
        return self._load(ENABLED_RULES_KEY, _rule_ids_adapter, None)

    def save_enabled_rules(self, rule_ids: list[str]) -> None:
        self.store.set(ENABLED_RULES_KEY, json.dumps(list(rule_ids)))

    # --- Config ---
    def load_config(self) -> MentorConfig | None:
        return self._load(CONFIG_KEY, TypeAdapter(MentorConfig), None)

    def save_config(self, config: MentorConfig) -> None:
        self.store.set(CONFIG_KEY, config.model_dump_json())

    def load_budget_limits(self) -> list[BudgetCategory]:
        return self._load(BUDGET_LIMITS_KEY, _limits_adapter, [])

    def save_budget_limits(self, limits: list[BudgetCategory]) -> None:
        self.store.set(BUDGET_LIMITS_KEY, _limits_adapter.dump_json(limits).decode())

    def clear_all(self) -> None:
        for key in ALL_KEYS:
            self.store.remove(key)


# --- Database binding ---
async def load_store(session: AsyncSession, user_id: str) -> MemoryStore:
    stmt = select(MentorStateDB.key, MentorStateDB.value).where(MentorStateDB.user_id == user_id)
    result = await session.execute(stmt)
    return MemoryStore({key: value for key, value in result.all()})


async def persist_store(session: AsyncSession, user_id: str, store: MemoryStore) -> None:
    """Writes back only the keys touched since `load_store`."""
    if not store.changed and not store.removed:
        return

    if store.removed:
        await session.execute(
            delete(MentorStateDB).where(MentorStateDB.user_id == user_id, MentorStateDB.key.in_(sorted(store.removed)))
        )

    data = store.items()
    for key in store.changed:
        stmt = select(MentorStateDB).where(MentorStateDB.user_id == user_id, MentorStateDB.key == key)
        row = (await session.execute(stmt)).scalar_one_or_none()
        if row:
            row.value = data[key]
        else:
            session.add(MentorStateDB(user_id=user_id, key=key, value=data[key]))

    await session.commit()
    store.changed.clear()
    store.removed.clear()
