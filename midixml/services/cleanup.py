import asyncio
import logging
import os
import time
from typing import Iterable, List, Optional

log = logging.getLogger("cleanup")


def remove_files(paths: Iterable[str]) -> None:
    for path in paths:
        try:
            os.remove(path)
        except FileNotFoundError:
            continue
        except OSError as e:
            # left for the Janitor
            log.warning("Could not remove %s: %s", path, e)
            continue
        log.info("Removed temp file: %s", os.path.basename(path))


def sweep(directory: str, max_age: float, now: Optional[float] = None) -> List[str]:
    now = time.time() if now is None else now
    removed: List[str] = []
    try:
        names = os.listdir(directory)
    except OSError as e:
        log.debug("Sweep skipped, cannot list %s: %s", directory, e)
        return removed
    for name in names:
        path = os.path.join(directory, name)
        try:
            if now - os.stat(path).st_mtime > max_age:
                os.remove(path)
                removed.append(name)
                log.info("Removed stale file: %s", name)
        except OSError as e:
            # raced with request cleanup or unreadable entry
            log.debug("Sweep ignored %s: %s", name, e)
    return removed


class Janitor:
    def __init__(self, directory: str, interval: float, max_age: float) -> None:
        self.directory = directory
        self.interval = interval
        self.max_age = max_age
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        self._task = asyncio.create_task(self._loop())
        log.info(
            "Janitor started (interval=%ss, max_age=%ss)", self.interval, self.max_age
        )

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        log.info("Janitor stopped")

    async def sweep_once(self) -> List[str]:
        return await asyncio.to_thread(sweep, self.directory, self.max_age)

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            removed = await self.sweep_once()
            if removed:
                log.info("Janitor sweep: removed %d stale files", len(removed))
