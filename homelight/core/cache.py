"""Freshness cache with single-flight device queries.

Each light has one ``CacheEntry``. Readers that find the entry stale race to
claim the entry's in-flight slot; the winner enqueues a single
``GetDeviceInfo`` and every reader then sleeps on the entry's condition until
the link delivers a new observation. A released slot wakes the waiters so
one of them can claim it again.
"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import logging
import time
from collections.abc import Callable

from homelight.core.errors import StateUnavailableError
from homelight.core.model import CacheEntry, Command, GetDeviceInfo, LightField, LightInfo

DEFAULT_TTL_S = 300.0
# A forced read accepts an observation this recent instead of issuing a
# second query back to back.
FORCE_COALESCE_S = 0.05
# Minimum spacing between queries when an earlier one went unanswered.
REQUERY_INTERVAL_S = 0.05

LOGGER = logging.getLogger(__name__)

Enqueue = Callable[[int, Command], None]


def patch_light_info(info: LightInfo, light_field: LightField, value: float | bool) -> LightInfo:
    if light_field is LightField.POWER:
        return dataclasses.replace(info, is_on=bool(value))
    if light_field is LightField.HUE:
        return dataclasses.replace(info, color=dataclasses.replace(info.color, h=float(value)))
    if light_field is LightField.SATURATION:
        return dataclasses.replace(info, color=dataclasses.replace(info.color, s=float(value)))
    if light_field is LightField.BRIGHTNESS:
        return dataclasses.replace(info, color=dataclasses.replace(info.color, v=float(value)))
    raise ValueError(f"Unsupported light field {light_field!r}")


class LightStateCache:
    def __init__(
        self,
        enqueue: Enqueue,
        *,
        ttl_s: float = DEFAULT_TTL_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._enqueue = enqueue
        self._ttl_s = ttl_s
        self._clock = clock
        self._entries: dict[int, CacheEntry] = {}

    @property
    def ttl_s(self) -> float:
        return self._ttl_s

    def _entry(self, device_id: int) -> CacheEntry:
        entry = self._entries.get(device_id)
        if entry is None:
            entry = CacheEntry()
            self._entries[device_id] = entry
        return entry

    def _is_fresh(self, entry: CacheEntry) -> bool:
        if entry.last_known is None or entry.observed_at is None:
            return False
        return self._clock() - entry.observed_at < self._ttl_s

    def peek(self, device_id: int) -> CacheEntry:
        """Return a snapshot of the entry without waiting or querying."""
        entry = self._entries.get(device_id)
        if entry is None:
            return CacheEntry()
        return CacheEntry(
            last_known=entry.last_known,
            observed_at=entry.observed_at,
            in_flight=entry.in_flight,
            queried_at=entry.queried_at,
        )

    async def get_fresh(
        self,
        device_id: int,
        *,
        force: bool = False,
        timeout_s: float | None = None,
    ) -> LightInfo:
        """Return light state no older than the TTL.

        With ``force`` the state must have been observed after this call
        started. ``timeout_s=None`` waits until the device answers, however
        long that takes. With a timeout the last known value is returned when
        one exists, otherwise ``StateUnavailableError`` is raised.

        A waiter that wakes to find the slot released without an answer (a
        failed write or a reconnect) claims it again and re-sends the query,
        at most once per ``REQUERY_INTERVAL_S``. The timeout covers every
        attempt.
        """
        entry = self._entry(device_id)
        requested_at = self._clock()

        def satisfied() -> bool:
            if not self._is_fresh(entry):
                return False
            if force:
                return entry.observed_at >= requested_at - FORCE_COALESCE_S
            return True

        async with entry.updated:
            try:
                async with asyncio.timeout(timeout_s):
                    while not satisfied():
                        if entry.in_flight:
                            await entry.updated.wait()
                            continue
                        if entry.queried_at is not None:
                            since = self._clock() - entry.queried_at
                            if since < REQUERY_INTERVAL_S:
                                with contextlib.suppress(TimeoutError):
                                    await asyncio.wait_for(entry.updated.wait(), REQUERY_INTERVAL_S - since)
                                continue
                        entry.in_flight = True
                        entry.queried_at = self._clock()
                        LOGGER.debug("Light %d state is stale, querying device", device_id)
                        self._enqueue(device_id, GetDeviceInfo())
            except TimeoutError:
                entry.in_flight = False
                entry.updated.notify_all()
                if entry.last_known is None:
                    raise StateUnavailableError(
                        f"Light {device_id} did not report its state within {timeout_s}s"
                    ) from None
                LOGGER.warning(
                    "Light %d did not answer within %ss, returning stale state", device_id, timeout_s
                )
            return entry.last_known

    async def observe(self, device_id: int, info: LightInfo) -> None:
        """Record state decoded from the device and wake every waiter."""
        entry = self._entry(device_id)
        async with entry.updated:
            entry.last_known = info
            entry.observed_at = self._clock()
            entry.in_flight = False
            entry.queried_at = None
            entry.updated.notify_all()

    async def apply_local_patch(self, device_id: int, light_field: LightField, value: float | bool) -> None:
        """Overwrite one cached field after a command was queued.

        The observation timestamp is left alone and the device is not
        re-queried; nothing happens when no state is cached yet.
        """
        entry = self._entry(device_id)
        async with entry.updated:
            if entry.last_known is None:
                return
            entry.last_known = patch_light_info(entry.last_known, light_field, value)

    async def release_query(self, device_id: int) -> None:
        """Free the in-flight slot when a query can no longer be answered."""
        entry = self._entry(device_id)
        async with entry.updated:
            entry.in_flight = False
            entry.updated.notify_all()
