"""Mocked sign-in. The identity is display-only; nothing is authenticated."""

from __future__ import annotations

import json
import logging

from floraguard.models import User
from floraguard.storage.kv import KeyValueStore

logger = logging.getLogger(__name__)

USER_KEY = "flora_guard_user"

MOCK_USER = User(
    name="Agro Enthusiast",
    email="agro.enthusiast@gmail.com",
    photo_url="https://api.dicebear.com/7.x/avataaars/svg?seed=Agro",
    is_logged_in=True,
)


class IdentityStore:
    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def load(self) -> User:
        """Stored user, or a signed-out user if absent or unreadable."""
        raw = self._store.get(USER_KEY)
        if raw is None:
            return User()
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("not an object")
            return User.from_dict(data)
        except ValueError as e:
            logger.warning("Ignoring malformed stored user: %s", e)
            return User()

    def sign_in(self) -> User:
        self._store.set(USER_KEY, json.dumps(MOCK_USER.to_dict(), ensure_ascii=False))
        logger.info("Signed in as %s", MOCK_USER.email)
        return MOCK_USER

    def sign_out(self) -> User:
        self._store.remove(USER_KEY)
        logger.info("Signed out")
        return User()
