"""Storage configuration for FSM."""

import asyncio
import itertools
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from aiogram.fsm.storage.base import BaseStorage, StorageKey
from aiogram.fsm.storage.memory import MemoryStorage

from content_bot.bot.states import UserState

logger = logging.getLogger(__name__)


class StateStore:
    """Per-user conversation state on top of an aiogram FSM storage.

    The step is kept as the FSM state, everything else as FSM data, under
    the same key aiogram builds for a private chat. All access goes through
    a single lock; no I/O may happen while a caller is inside :meth:`edit`.
    """

    def __init__(self, storage: BaseStorage | None = None, bot_id: int = 0) -> None:
        self.storage = storage or MemoryStorage()
        self._bot_id = bot_id
        self._lock = asyncio.Lock()
        self._cycles = itertools.count(1)

    def _key(self, user_id: int) -> StorageKey:
        return StorageKey(bot_id=self._bot_id, chat_id=user_id, user_id=user_id)

    def _fresh(self) -> UserState:
        return UserState(cycle=next(self._cycles))

    async def _load(self, key: StorageKey) -> UserState:
        data = await self.storage.get_data(key)
        if not data:
            state = self._fresh()
            await self._save(key, state)
            logger.debug(f"[USER {key.user_id}] New conversation state created")
            return state
        return UserState.from_data(await self.storage.get_state(key), data)

    async def _save(self, key: StorageKey, state: UserState) -> None:
        await self.storage.set_state(key, state.step)
        await self.storage.set_data(key, state.to_data())

    async def get(self, user_id: int) -> UserState:
        """Return a snapshot of the user's state, creating it on first contact."""
        async with self._lock:
            return await self._load(self._key(user_id))

    async def reset(self, user_id: int) -> UserState:
        """Replace the user's state with a fresh one.

        Returns:
            The state that was discarded
        """
        key = self._key(user_id)
        async with self._lock:
            previous = await self._load(key)
            await self._save(key, self._fresh())
            return previous

    async def reset_cycle(self, user_id: int, cycle: int) -> bool:
        """Reset the user's state only if it still belongs to ``cycle``.

        Returns:
            False if the cycle was already superseded (e.g. cancelled)
        """
        key = self._key(user_id)
        async with self._lock:
            data = await self.storage.get_data(key)
            if data.get("cycle") != cycle:
                return False
            await self._save(key, self._fresh())
            return True

    @asynccontextmanager
    async def edit(self, user_id: int) -> AsyncIterator[UserState]:
        """Yield the user's state while holding the store lock, saving it afterwards."""
        key = self._key(user_id)
        async with self._lock:
            state = await self._load(key)
            yield state
            await self._save(key, state)


def create_state_store(bot_id: int = 0) -> StateStore:
    """Create in-memory FSM storage for conversations.

    Returns:
        StateStore backed by aiogram MemoryStorage
    """
    store = StateStore(MemoryStorage(), bot_id=bot_id)
    logger.info("In-memory FSM storage initialized")
    return store
