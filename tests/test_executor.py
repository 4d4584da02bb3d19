"""Tests del ejecutor serial (único escritor del registro)."""

import threading

from aggregator_api.core.executor import SerialExecutor


class TestSerialExecutor:

    def test_tasks_run_in_submission_order(self):
        executor = SerialExecutor()
        executor.start()
        seen = []
        for i in range(50):
            executor.submit(lambda i=i: seen.append(i))
        executor.stop(drain=True)

        assert seen == list(range(50))

    def test_tasks_never_overlap(self):
        executor = SerialExecutor()
        executor.start()
        active = []
        overlaps = []
        lock = threading.Lock()

        def task():
            with lock:
                active.append(1)
                if len(active) > 1:
                    overlaps.append(1)
            with lock:
                active.pop()

        producers = [
            threading.Thread(target=lambda: [executor.submit(task) for _ in range(100)])
            for _ in range(4)
        ]
        for t in producers:
            t.start()
        for t in producers:
            t.join()
        executor.stop(drain=True)

        assert overlaps == []
        assert executor.metrics["executed"] == 400

    def test_task_error_does_not_stop_worker(self):
        executor = SerialExecutor()
        executor.start()
        done = []

        def bad():
            raise RuntimeError("boom")

        executor.submit(bad)
        executor.submit(lambda: done.append(True))
        executor.stop(drain=True)

        assert done == [True]
        assert executor.metrics["errors"] == 1

    def test_full_queue_drops(self):
        executor = SerialExecutor(max_queue_size=1)  # sin arrancar: nada consume
        assert executor.submit(lambda: None) is True
        assert executor.submit(lambda: None) is False
        assert executor.metrics["dropped"] == 1

    def test_stop_drains_pending_work(self):
        executor = SerialExecutor()
        release = threading.Event()
        results = []

        executor.start()
        executor.submit(release.wait)
        for i in range(10):
            executor.submit(lambda i=i: results.append(i))
        release.set()
        executor.stop(drain=True)

        assert results == list(range(10))
        assert executor.is_running is False
