"""Turns file system notifications into processing batches.

watchdog reports changes on its own thread. Every notification is handed
over to the event loop, where each path gets a debounce timer: a new
notification for the same path restarts its timer, so only the last one of a
burst (editors often write a file several times per save) counts.

Settled paths wait in a pending list until no other path is still settling,
then they all go to the engine as one batch. Two partials saved together
therefore regenerate the page that includes both only once.
"""
import asyncio
from enum import Enum
from typing import Dict, List, Optional, Set

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .files import matches_extension
from .logger import LogType
from .references import same_path


class SchedulerState(Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    PROCESSING = "processing"


class ChangeScheduler:
    def __init__(self, engine, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.engine = engine
        self.loop = loop or asyncio.get_running_loop()
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._pending: List[str] = []
        self._tasks: Set[asyncio.Task] = set()

    @property
    def environment(self):
        return self.engine.environment

    @property
    def state(self) -> SchedulerState:
        if self._tasks:
            return SchedulerState.PROCESSING
        if self._timers:
            return SchedulerState.DEBOUNCING
        return SchedulerState.IDLE

    @property
    def delay(self) -> float:
        return max(self.engine.process_delay, 1) / 1000

    def notify(self, path: str) -> None:
        """Safe to call from any thread"""
        self.loop.call_soon_threadsafe(self.file_changed, path)

    def notify_regenerate(self) -> None:
        self.loop.call_soon_threadsafe(self.regenerate)

    def notify_deleted(self, path: str) -> None:
        self.loop.call_soon_threadsafe(self.file_deleted, path)

    def file_changed(self, path: str) -> None:
        if self.environment.disable_watching:
            return
        if not matches_extension(path, self.engine.extensions):
            return

        if timer := self._timers.pop(path, None):
            timer.cancel()

        self.engine.log(f"File change detected {path}")
        self._timers[path] = self.loop.call_later(self.delay, self.settled, path)

    def settled(self, path: str) -> None:
        self._timers.pop(path, None)
        if self.environment.disable_watching:
            return

        if not any(same_path(pending, path) for pending in self._pending):
            self._pending.append(path)
        if self._timers:
            return

        paths, self._pending = self._pending, []
        self.start(self.engine.process_all_file_changes(paths))

    def regenerate(self) -> None:
        if self.environment.disable_watching:
            return
        self.engine.log("Folder moved, regenerating all files", type=LogType.ATTENTION)
        self.start(self.engine.startup_generation())

    def file_deleted(self, path: str) -> None:
        if self.environment.disable_watching or not matches_extension(path, self.engine.extensions):
            return
        self.start(self.engine.process_file_deleted(path))

    def start(self, coroutine) -> None:
        task = self.loop.create_task(coroutine)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def wait_idle(self) -> None:
        """Wait until no timer is pending and no batch is running"""
        while self._timers or self._tasks:
            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
            else:
                await asyncio.sleep(self.delay)

    def cancel(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self._pending.clear()


class ChangeHandler(FileSystemEventHandler):
    def __init__(self, scheduler: ChangeScheduler):
        super().__init__()
        self.scheduler = scheduler

    def on_modified(self, event):
        if not event.is_directory:
            self.scheduler.notify(event.src_path)

    def on_created(self, event):
        if not event.is_directory:
            self.scheduler.notify(event.src_path)

    def on_moved(self, event):
        if event.is_directory:
            self.scheduler.notify_regenerate()
        else:
            self.scheduler.notify(event.dest_path)

    def on_deleted(self, event):
        if not event.is_directory:
            self.scheduler.notify_deleted(event.src_path)


class FolderWatcher:
    """One watchdog observer for the monitor folders of all engines"""

    def __init__(self):
        self.observer = Observer()
        self.schedulers = []

    def watch(self, scheduler: ChangeScheduler) -> None:
        self.schedulers.append(scheduler)
        self.observer.schedule(ChangeHandler(scheduler), scheduler.engine.monitor_path, recursive=True)

    def start(self) -> None:
        self.observer.start()

    def stop(self) -> None:
        for scheduler in self.schedulers:
            scheduler.cancel()
        self.observer.stop()
        self.observer.join()
