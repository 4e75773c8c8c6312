import asyncio
from typing import Awaitable, Callable

from shared.helper.HelperConfig import HelperConfig


class DebouncedSync:
    """Runs an async action once after a quiet period; every new schedule restarts the wait."""

    def __init__(self, helper_config: HelperConfig, action: Callable[[], Awaitable[object]], delay: float | None = None):
        self.logging = helper_config.get_logger()
        self._action = action
        self._delay = float(delay if delay is not None else helper_config.get_number_val("CHECKLIST_SYNC_DEBOUNCE_SECONDS", default=0.2))
        self._task: asyncio.Task | None = None

    def is_pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self) -> None:
        """Cancels the pending run, if any, and schedules a new one. Must be called from the event loop."""
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run())

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def wait(self) -> None:
        """Waits until the pending run, if any, has finished."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        await asyncio.sleep(self._delay)
        try:
            await self._action()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # partial syncs are best effort
            self.logging.warning("Debounced sync failed: %s", e)
