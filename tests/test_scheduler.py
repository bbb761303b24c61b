"""
Scheduler Tests
===============
"""

import threading
import unittest

from fakes import ManualClock

from hand_to_heart.scheduler import ImmediateRunner, Scheduler, ThreadRunner


class TestScheduler(unittest.TestCase):

    def setUp(self):
        self.clock = ManualClock()
        self.scheduler = Scheduler(clock=self.clock)
        self.calls = []

    def test_call_later_waits_for_delay(self):
        self.scheduler.call_later(2.0, self.calls.append, "done")

        self.clock.advance(1.5)
        self.assertEqual(self.scheduler.run_pending(), 0)
        self.assertEqual(self.calls, [])

        self.clock.advance(0.5)
        self.assertEqual(self.scheduler.run_pending(), 1)
        self.assertEqual(self.calls, ["done"])
        self.assertEqual(self.scheduler.pending(), 0)

    def test_timers_run_in_due_order(self):
        self.scheduler.call_later(3.0, self.calls.append, "c")
        self.scheduler.call_later(1.0, self.calls.append, "a")
        self.scheduler.call_later(1.0, self.calls.append, "b")

        self.clock.advance(5.0)
        self.scheduler.run_pending()

        self.assertEqual(self.calls, ["a", "b", "c"])

    def test_call_soon_runs_on_next_pass(self):
        handle = self.scheduler.call_soon(self.calls.append, 1)
        self.assertTrue(handle.active)
        self.assertEqual(self.calls, [])

        self.scheduler.run_pending()

        self.assertEqual(self.calls, [1])
        self.assertFalse(handle.active)

    def test_cancel(self):
        handle = self.scheduler.call_later(1.0, self.calls.append, "x")
        handle.cancel()
        handle.cancel()

        self.assertEqual(self.scheduler.pending(), 0)
        self.clock.advance(2.0)
        self.assertEqual(self.scheduler.run_pending(), 0)
        self.assertEqual(self.calls, [])

    def test_cancel_all(self):
        first = self.scheduler.call_later(1.0, self.calls.append, "x")
        second = self.scheduler.call_soon(self.calls.append, "y")

        self.scheduler.cancel_all()
        self.clock.advance(2.0)
        self.scheduler.run_pending()

        self.assertEqual(self.calls, [])
        self.assertFalse(first.active)
        self.assertFalse(second.active)


class TestRunners(unittest.TestCase):

    def test_immediate_runner(self):
        results, errors = [], []
        runner = ImmediateRunner()

        runner.submit(lambda: 42, results.append, errors.append)
        runner.submit(lambda: 1 / 0, results.append, errors.append)

        self.assertEqual(results, [42])
        self.assertIsInstance(errors[0], ZeroDivisionError)

    def test_thread_runner_posts_to_scheduler(self):
        scheduler = Scheduler()
        runner = ThreadRunner(scheduler)
        worker_threads, results = [], []

        def work():
            worker_threads.append(threading.current_thread())
            return "ok"

        runner.submit(work, results.append, self.fail)
        runner._thread.join(timeout=5)

        # Nothing is applied until the loop runs the scheduler
        self.assertEqual(results, [])
        self.assertEqual(scheduler.run_pending(), 1)
        self.assertEqual(results, ["ok"])
        self.assertIsNot(worker_threads[0], threading.current_thread())

    def test_thread_runner_errors(self):
        scheduler = Scheduler()
        runner = ThreadRunner(scheduler)
        errors = []

        def work():
            raise RuntimeError("boom")

        runner.submit(work, self.fail, errors.append)
        runner._thread.join(timeout=5)
        scheduler.run_pending()

        self.assertEqual(str(errors[0]), "boom")


if __name__ == "__main__":
    unittest.main()
