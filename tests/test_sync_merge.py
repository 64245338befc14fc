# -*- coding: utf-8 -*-

from __future__ import annotations

import shutil
import tempfile
import unittest
from datetime import date, datetime, timezone
from pathlib import Path

from catlog.app_db import init_app_db
from catlog.logs.defaults import LogDefaults
from catlog.logs.models import DailyLog
from catlog.logs.reconciler import DailyLogReconciler
from catlog.logs.storage import SQLiteLogStore
from catlog.sync.merge import merge_remote_deletion, merge_remote_log, pull_changes
from catlog.sync.models import MergeOutcome

DAY = date(2026, 10, 18)


def _at(hour: int) -> datetime:
    return datetime(2026, 10, 18, hour, 0, tzinfo=timezone.utc)


class TestLastWriterWins(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = Path(tempfile.mkdtemp(prefix="catlog-test-"))
        init_app_db(self._tmp / "catlog.db")
        self.store = SQLiteLogStore(self._tmp / "catlog.db")
        self.reconciler = DailyLogReconciler(self.store, LogDefaults())

    def tearDown(self) -> None:
        shutil.rmtree(self._tmp, ignore_errors=True)

    def _local(self, cough: int, hour: int) -> None:
        self.store.insert(DailyLog(day=DAY, cough_count=cough, last_modified=_at(hour)))

    def test_remote_log_for_unknown_day_is_inserted(self) -> None:
        outcome = merge_remote_log(self.reconciler, DailyLog(day=DAY, cough_count=2, last_modified=_at(9)))
        self.assertEqual(outcome, MergeOutcome.inserted)
        found = self.store.find(DAY)
        assert found is not None
        self.assertEqual(found.cough_count, 2)

    def test_remote_default_log_for_unknown_day_is_ignored(self) -> None:
        outcome = merge_remote_log(self.reconciler, DailyLog(day=DAY, last_modified=_at(9)))
        self.assertEqual(outcome, MergeOutcome.ignored)
        self.assertIsNone(self.store.find(DAY))

    def test_newer_remote_replaces_whole_record(self) -> None:
        self._local(cough=5, hour=8)
        remote = DailyLog(day=DAY, cough_count=1, notes="from phone", last_modified=_at(9))
        self.assertEqual(merge_remote_log(self.reconciler, remote), MergeOutcome.replaced)
        found = self.store.find(DAY)
        assert found is not None
        self.assertEqual((found.cough_count, found.notes), (1, "from phone"))

    def test_older_or_equal_remote_keeps_local(self) -> None:
        self._local(cough=5, hour=9)
        for hour in (8, 9):
            with self.subTest(hour=hour):
                remote = DailyLog(day=DAY, cough_count=1, last_modified=_at(hour))
                self.assertEqual(merge_remote_log(self.reconciler, remote), MergeOutcome.kept_local)
        found = self.store.find(DAY)
        assert found is not None
        self.assertEqual(found.cough_count, 5)

    def test_newer_remote_at_default_deletes_local(self) -> None:
        self._local(cough=5, hour=8)
        outcome = merge_remote_log(self.reconciler, DailyLog(day=DAY, last_modified=_at(10)))
        self.assertEqual(outcome, MergeOutcome.deleted)
        self.assertIsNone(self.store.find(DAY))
        self.assertEqual(self.store.tombstone(DAY), _at(10))

    def test_local_deletion_beats_older_remote(self) -> None:
        self._local(cough=5, hour=8)
        self.store.delete(self.store.find(DAY), deleted_at=_at(11))
        outcome = merge_remote_log(self.reconciler, DailyLog(day=DAY, cough_count=3, last_modified=_at(10)))
        self.assertEqual(outcome, MergeOutcome.kept_local)
        self.assertIsNone(self.store.find(DAY))

    def test_remote_deletion(self) -> None:
        self._local(cough=5, hour=8)
        self.assertEqual(merge_remote_deletion(self.reconciler, DAY, _at(7)), MergeOutcome.kept_local)
        self.assertIsNotNone(self.store.find(DAY))
        self.assertEqual(merge_remote_deletion(self.reconciler, DAY, _at(9)), MergeOutcome.deleted)
        self.assertIsNone(self.store.find(DAY))

    def test_remote_deletion_of_unknown_day_is_remembered(self) -> None:
        self.assertEqual(merge_remote_deletion(self.reconciler, DAY, _at(9)), MergeOutcome.ignored)
        self.assertEqual(self.store.tombstone(DAY), _at(9))

    def test_pull_changes(self) -> None:
        other = date(2026, 10, 17)
        self.store.insert(DailyLog(day=other, cough_count=1, last_modified=_at(6)))
        cursor, logs, deletions = pull_changes(self.reconciler)
        self.assertEqual([log.day for log in logs], [other])
        self.assertEqual(deletions, [])

        self._local(cough=5, hour=8)
        self.store.delete(self.store.find(other), deleted_at=_at(12))

        next_cursor, logs, deletions = pull_changes(self.reconciler, cursor)
        self.assertGreater(next_cursor, cursor)
        self.assertEqual([log.day for log in logs], [DAY])
        self.assertEqual([(d.day, d.deleted_at) for d in deletions], [(other, _at(12))])

        _, logs, deletions = pull_changes(self.reconciler, next_cursor)
        self.assertEqual((logs, deletions), ([], []))

    def test_late_push_with_old_timestamp_reaches_next_pull(self) -> None:
        self._local(cough=5, hour=12)
        cursor, _, _ = pull_changes(self.reconciler)

        # An offline device comes back with an edit made before the last pull.
        late_day = date(2026, 10, 16)
        remote = DailyLog(day=late_day, cough_count=3, last_modified=_at(9))
        self.assertEqual(merge_remote_log(self.reconciler, remote), MergeOutcome.inserted)

        _, logs, _ = pull_changes(self.reconciler, cursor)
        self.assertEqual([log.day for log in logs], [late_day])
        self.assertEqual(logs[0].last_modified, _at(9))

    def test_late_remote_deletion_reaches_next_pull(self) -> None:
        self._local(cough=5, hour=8)
        cursor, _, _ = pull_changes(self.reconciler)

        self.assertEqual(merge_remote_deletion(self.reconciler, DAY, _at(9)), MergeOutcome.deleted)

        _, logs, deletions = pull_changes(self.reconciler, cursor)
        self.assertEqual(logs, [])
        self.assertEqual([(d.day, d.deleted_at) for d in deletions], [(DAY, _at(9))])


if __name__ == "__main__":
    unittest.main()
