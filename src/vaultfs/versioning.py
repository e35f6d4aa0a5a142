"""Commit version generation from a coarse clock."""

from __future__ import annotations

import logging
import time
from typing import Callable

from vaultfs.config import VaultfsConfig
from vaultfs.types import Version

logger = logging.getLogger(__name__)

# Zero padding keeps lexicographic order equal to numeric order.
_VERSION_WIDTH = 20


class VersionGenerator:
    """Produces versions from clock readings truncated to ``resolution_ms``.

    ``next_after`` blocks, re-sampling the clock every ``retry_interval_ms``,
    until the candidate sorts strictly after the given latest version. It holds
    no lock while waiting; backends re-check the candidate against the bucket
    under their commit lock and call again if another commit got there first.
    """

    def __init__(
        self,
        resolution_ms: int = 1,
        retry_interval_ms: int = 1,
        *,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if resolution_ms <= 0:
            raise ValueError("resolution_ms must be positive")
        self.resolution_ms = resolution_ms
        self.retry_interval_ms = retry_interval_ms
        self._clock = clock
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: VaultfsConfig) -> VersionGenerator:
        return cls(config.version_resolution_ms, config.version_retry_interval_ms)

    def sample(self) -> Version:
        ticks = int(self._clock() * 1000) // self.resolution_ms
        return Version(f"{ticks * self.resolution_ms:0{_VERSION_WIDTH}d}")

    def next_after(self, latest: Version | None) -> Version:
        candidate = self.sample()
        retries = 0
        while latest is not None and candidate <= latest:
            retries += 1
            self._sleep(self.retry_interval_ms / 1000.0)
            candidate = self.sample()
        if retries:
            logger.debug("version %s generated after %d clock retries", candidate, retries)
        return candidate
