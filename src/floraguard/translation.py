"""Per-message translation cache and the view state that guards it.

A message's ``translations`` mapping is the cache: a language code is present
only once its translation succeeded. A failed or empty translation leaves the
code absent so the user can try again later.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

LANGUAGES = {"hi": "Hindi", "ml": "Malayalam"}

R = TypeVar("R")

FetchFn = Callable[[R, str], Awaitable[str]]
FailureCallback = Callable[[int, str, Exception], None]


class TranslationError(Exception):
    """The external translation call failed or returned nothing."""


class AsyncFieldCache(Generic[R]):
    """Memoize an async per-key enrichment in a mapping attribute of a record."""

    def __init__(self, fetch: FetchFn, field: str = "translations") -> None:
        self._fetch = fetch
        self._field = field

    def _mapping(self, record: R) -> dict[str, Any]:
        return getattr(record, self._field)

    def peek(self, record: R, key: str) -> str | None:
        return self._mapping(record).get(key)

    async def request(self, record: R, key: str) -> str:
        """Cached value for ``key``, fetching and storing it on a miss.

        Raises ``TranslationError`` when the fetch fails or returns nothing;
        the key stays absent in that case.
        """
        cached = self.peek(record, key)
        if cached is not None:
            return cached

        try:
            value = await self._fetch(record, key)
        except TranslationError:
            raise
        except Exception as e:
            raise TranslationError(str(e)) from e
        if not value:
            raise TranslationError(f"empty result for {key!r}")

        self._mapping(record)[key] = value
        return value


class TranslationView:
    """Translation state owned by one chat view.

    ``translating_index`` is the in-flight token: while it is set, no other
    translation starts in this view. It is cleared on every exit path.
    """

    def __init__(
        self,
        fetch: FetchFn,
        *,
        on_failure: FailureCallback | None = None,
    ) -> None:
        self._cache: AsyncFieldCache = AsyncFieldCache(fetch)
        self._on_failure = on_failure
        self.translating_index: int | None = None
        self.open_menu_index: int | None = None

    @property
    def busy(self) -> bool:
        return self.translating_index is not None

    def toggle_menu(self, index: int) -> None:
        self.open_menu_index = None if self.open_menu_index == index else index

    async def translate(self, messages: Sequence[Any], index: int, lang: str) -> str | None:
        """Translate ``messages[index]`` into ``lang``.

        Returns the translation, or None when it failed or another translation
        is already running in this view.
        """
        self.open_menu_index = None
        message = messages[index]

        cached = self._cache.peek(message, lang)
        if cached is not None:
            return cached

        if self.busy:
            logger.debug("Translation already in flight for message %s", self.translating_index)
            return None

        self.translating_index = index
        try:
            return await self._cache.request(message, lang)
        except TranslationError as e:
            logger.warning("Translation of message %d to %s failed: %s", index, lang, e)
            if self._on_failure:
                self._on_failure(index, lang, e)
            return None
        finally:
            self.translating_index = None
