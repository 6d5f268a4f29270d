"""
Tests for the debounce scheduler and the watchdog bridge.
"""

import asyncio
import threading

from conftest import read, write
from watchdog.events import DirMovedEvent, FileCreatedEvent, FileDeletedEvent, FileModifiedEvent, FileMovedEvent

from dnaweb.scheduler import ChangeHandler, ChangeScheduler, SchedulerState


class _Recorder:
    """Stands in for a scheduler and remembers what the handler asked for."""

    def __init__(self):
        self.calls = []

    def notify(self, path):
        self.calls.append(("changed", path))

    def notify_regenerate(self):
        self.calls.append(("regenerate",))

    def notify_deleted(self, path):
        self.calls.append(("deleted", path))


def _record_batches(engine):
    batches = []

    async def record(paths):
        batches.append(paths)
        return []

    engine.process_all_file_changes = record
    return batches


class TestChangeScheduler:
    def test_burst_of_notifications_runs_one_batch(self, site, make_environment):
        environment = make_environment(process_delay=20)
        engine = environment.engines[0]
        batches = _record_batches(engine)
        path = str(site / "page.dnaweb")

        async def run():
            scheduler = ChangeScheduler(engine)
            for _ in range(5):
                scheduler.file_changed(path)
                await asyncio.sleep(0.005)
            assert scheduler.state == SchedulerState.DEBOUNCING
            await scheduler.wait_idle()
            assert scheduler.state == SchedulerState.IDLE

        asyncio.run(run())

        assert batches == [[path]]

    def test_paths_settling_together_share_one_batch(self, site, make_environment):
        environment = make_environment(process_delay=10)
        engine = environment.engines[0]
        batches = _record_batches(engine)

        async def run():
            scheduler = ChangeScheduler(engine)
            scheduler.file_changed(str(site / "a.dnaweb"))
            scheduler.file_changed(str(site / "b.dnaweb"))
            scheduler.file_changed(str(site / "a.dnaweb"))
            await scheduler.wait_idle()

        asyncio.run(run())

        assert len(batches) == 1
        assert sorted(batches[0]) == [str(site / "a.dnaweb"), str(site / "b.dnaweb")]

    def test_partials_changed_together_regenerate_their_page_once(self, site, make_environment):
        environment = make_environment(process_delay=10)
        engine = environment.engines[0]
        write(site, "a.dnaweb", "<!--@ include p @-->\n<!--@ include q @-->\n")
        partial_p = write(site, "_p.dnaweb", "<!--@ partial @-->\nP")
        partial_q = write(site, "_q.dnaweb", "<!--@ partial @-->\nQ")

        batches = []
        process_all_file_changes = engine.process_all_file_changes

        async def counting(paths):
            batches.append(paths)
            return await process_all_file_changes(paths)

        engine.process_all_file_changes = counting

        async def run():
            scheduler = ChangeScheduler(engine)
            scheduler.file_changed(str(partial_p))
            scheduler.file_changed(str(partial_q))
            await scheduler.wait_idle()

        asyncio.run(run())

        assert len(batches) == 1
        assert engine.last_generated_files == [str(site / "a.html")]
        assert read(site / "a.html") == "PQ"

    def test_other_extensions_and_disabled_watching_are_ignored(self, site, make_environment):
        environment = make_environment(process_delay=10)
        engine = environment.engines[0]
        batches = _record_batches(engine)

        async def run():
            scheduler = ChangeScheduler(engine)
            scheduler.file_changed(str(site / "notes.txt"))
            environment.disable_watching = True
            scheduler.file_changed(str(site / "page.dnaweb"))
            await scheduler.wait_idle()

        asyncio.run(run())

        assert batches == []

    def test_notifications_from_another_thread(self, site, make_environment):
        environment = make_environment(process_delay=10)
        engine = environment.engines[0]
        batches = _record_batches(engine)
        path = str(site / "page.dnaweb")

        async def run():
            scheduler = ChangeScheduler(engine)
            thread = threading.Thread(target=scheduler.notify, args=(path,))
            thread.start()
            thread.join()
            await asyncio.sleep(0.01)
            await scheduler.wait_idle()

        asyncio.run(run())

        assert batches == [[path]]

    def test_settled_change_generates_output(self, site, make_environment):
        environment = make_environment(process_delay=10)
        engine = environment.engines[0]
        path = write(site, "page.dnaweb", "body")

        async def run():
            scheduler = ChangeScheduler(engine)
            scheduler.file_changed(str(path))
            await scheduler.wait_idle()

        asyncio.run(run())

        assert read(site / "page.html") == "body"


class TestChangeHandler:
    def test_modified_and_created(self):
        recorder = _Recorder()
        handler = ChangeHandler(recorder)

        handler.on_modified(FileModifiedEvent("/s/a.dnaweb"))
        handler.on_created(FileCreatedEvent("/s/b.dnaweb"))

        assert recorder.calls == [("changed", "/s/a.dnaweb"), ("changed", "/s/b.dnaweb")]

    def test_moved_file_is_a_change_of_the_destination(self):
        recorder = _Recorder()

        ChangeHandler(recorder).on_moved(FileMovedEvent("/s/a.tmp", "/s/a.dnaweb"))

        assert recorder.calls == [("changed", "/s/a.dnaweb")]

    def test_moved_folder_regenerates(self):
        recorder = _Recorder()

        ChangeHandler(recorder).on_moved(DirMovedEvent("/s/old", "/s/new"))

        assert recorder.calls == [("regenerate",)]

    def test_deleted(self):
        recorder = _Recorder()

        ChangeHandler(recorder).on_deleted(FileDeletedEvent("/s/a.dnaweb"))

        assert recorder.calls == [("deleted", "/s/a.dnaweb")]
