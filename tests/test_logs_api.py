# -*- coding: utf-8 -*-

from __future__ import annotations

import os
import shutil
import sys
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from fastapi.testclient import TestClient


class TestLogsApi(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls._tmp = Path(tempfile.mkdtemp(prefix="catlog-test-"))
        data_root = cls._tmp / "data"
        os.environ["CATLOG_DATA_ROOT"] = str(data_root)
        os.environ["CATLOG_DB_PATH"] = str(data_root / "catlog.db")
        os.environ.pop("CATLOG_API_KEY", None)
        os.environ.pop("CATLOG_SOFT_FOOD_TARGET_GRAMS", None)

        # Ensure settings/app reflect the env vars above.
        for name in list(sys.modules.keys()):
            if name == "catlog" or name.startswith("catlog."):
                sys.modules.pop(name, None)

        from catlog.api import app  # noqa: WPS433 (import inside test for env control)

        cls.client = TestClient(app)

    @classmethod
    def tearDownClass(cls) -> None:
        try:
            cls.client.close()
        except Exception:
            pass
        shutil.rmtree(cls._tmp, ignore_errors=True)

    def _edit(self, day: str, edit: dict):
        return self.client.post(f"/api/logs/{day}/edits", json={"edit": edit})

    def test_health(self) -> None:
        resp = self.client.get("/api/health")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["status"], "ok")

    def test_unknown_day_is_a_draft(self) -> None:
        resp = self.client.get("/api/logs/2026-01-05")
        self.assertEqual(resp.status_code, 200)
        payload = resp.json()
        self.assertFalse(payload["is_persisted"])
        self.assertEqual(payload["log"]["day"], "2026-01-05")
        self.assertEqual(payload["log"]["cough_count"], 0)
        self.assertEqual(payload["log"]["soft_food_target_grams"], 300)
        self.assertEqual(payload["log"]["food_remaining_grams"], 300)

    def test_cough_edit_creates_and_clears_the_day(self) -> None:
        resp = self._edit("2026-02-10", {"kind": "cough_count", "value": 1})
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()["is_persisted"])

        resp = self.client.get("/api/logs/2026-02-10")
        self.assertTrue(resp.json()["is_persisted"])
        self.assertEqual(resp.json()["log"]["cough_count"], 1)

        resp = self._edit("2026-02-10", {"kind": "cough_count", "value": 0})
        self.assertFalse(resp.json()["is_persisted"])
        resp = self.client.get("/api/logs/2026-02-10")
        self.assertFalse(resp.json()["is_persisted"])

    def test_prednisone_schedule_cycle(self) -> None:
        day = "2026-03-01"
        edits = [
            {"kind": "medication_scheduled", "medication": "prednisone", "value": True},
            {"kind": "medication_dosage", "medication": "prednisone", "value": 5},
            {"kind": "medication_frequency", "medication": "prednisone", "value": "twiceADay"},
            {"kind": "dose_administered", "medication": "prednisone", "dose": 1, "value": True},
            {"kind": "dose_administered", "medication": "prednisone", "dose": 2, "value": True},
        ]
        for edit in edits:
            resp = self._edit(day, edit)
            self.assertEqual(resp.status_code, 200, resp.text)
            self.assertTrue(resp.json()["applied"])
        prednisone = resp.json()["log"]["prednisone"]
        self.assertEqual(prednisone["frequency"], "twiceADay")
        self.assertTrue(prednisone["dose2_administered"])

        resp = self._edit(day, {"kind": "medication_frequency", "medication": "prednisone", "value": "onceADay"})
        self.assertIsNone(resp.json()["log"]["prednisone"]["dose2_administered"])

        resp = self._edit(day, {"kind": "medication_scheduled", "medication": "prednisone", "value": False})
        payload = resp.json()
        self.assertFalse(payload["is_persisted"])
        self.assertFalse(payload["log"]["prednisone"]["is_scheduled"])
        self.assertIsNone(payload["log"]["prednisone"]["dosage"])

    def test_rejected_edit_reports_not_applied(self) -> None:
        resp = self._edit("2026-03-02", {"kind": "medication_dosage", "medication": "prednisone", "value": 4})
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(resp.json()["applied"])
        self.assertFalse(resp.json()["is_persisted"])

    def test_out_of_range_input_is_rejected_at_the_boundary(self) -> None:
        self.assertEqual(self._edit("2026-03-03", {"kind": "cough_count", "value": -1}).status_code, 422)
        self.assertEqual(self._edit("2026-03-03", {"kind": "soft_food_target", "value": 0}).status_code, 422)
        self.assertEqual(self._edit("2026-03-03", {"kind": "bogus", "value": 1}).status_code, 422)
        resp = self.client.post("/api/logs/2026-03-03/food", json={"grams": 0})
        self.assertEqual(resp.status_code, 422)

    def test_invalid_day(self) -> None:
        self.assertEqual(self.client.get("/api/logs/not-a-day").status_code, 400)

    def test_food_entries(self) -> None:
        day = "2026-04-04"
        resp = self.client.post(f"/api/logs/{day}/food", json={"grams": 50, "timestamp": "2026-04-04T07:00:00Z"})
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()["is_persisted"])
        resp = self.client.post(f"/api/logs/{day}/food", json={"grams": 70, "timestamp": "2026-04-04T12:00:00Z"})
        log = resp.json()["log"]
        self.assertEqual(log["soft_food_given_grams"], 120)
        self.assertEqual(log["food_remaining_grams"], 180)
        self.assertEqual([e["grams"] for e in log["food_entries"]], [70, 50])

        resp = self.client.delete(f"/api/logs/{day}/food/does-not-exist")
        self.assertEqual(resp.status_code, 404)

        for entry in log["food_entries"]:
            resp = self.client.delete(f"/api/logs/{day}/food/{entry['entry_id']}")
            self.assertEqual(resp.status_code, 200)
        self.assertFalse(resp.json()["is_persisted"])

    def test_list_and_calendar(self) -> None:
        self._edit("2026-05-03", {"kind": "cough_delta", "delta": 4})
        self._edit("2026-05-20", {"kind": "medication_scheduled", "medication": "prednisone", "value": True})

        resp = self.client.get("/api/logs", params={"start": "2026-05-01", "end": "2026-05-31"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([log["day"] for log in resp.json()["logs"]], ["2026-05-03", "2026-05-20"])

        resp = self.client.get("/api/logs", params={"start": "2026-05-31", "end": "2026-05-01"})
        self.assertEqual(resp.status_code, 400)

        resp = self.client.get("/api/logs/calendar/2026/5")
        self.assertEqual(resp.status_code, 200)
        days = {d["date"]: d for d in resp.json()["days"]}
        self.assertEqual(len(days), 31)
        self.assertEqual(days["2026-05-03"]["cough_count"], 4)
        self.assertTrue(days["2026-05-20"]["prednisone_scheduled"])
        self.assertFalse(days["2026-05-04"]["has_log"])

        self.assertEqual(self.client.get("/api/logs/calendar/2026/13").status_code, 400)

    def test_sync_push_and_pull(self) -> None:
        resp = self.client.post(
            "/api/sync/push",
            json={
                "device_id": "ipad",
                "logs": [
                    {"day": "2026-06-01", "cough_count": 2, "last_modified": "2026-06-01T10:00:00Z"},
                    {"day": "2026-06-02", "last_modified": "2026-06-02T10:00:00Z"},
                ],
                "deletions": [{"day": "2026-06-03", "deleted_at": "2026-06-03T10:00:00Z"}],
            },
        )
        self.assertEqual(resp.status_code, 200, resp.text)
        outcomes = resp.json()["outcomes"]
        self.assertEqual(outcomes["2026-06-01"], "inserted")
        self.assertEqual(outcomes["2026-06-02"], "ignored")
        self.assertEqual(outcomes["2026-06-03"], "ignored")

        resp = self.client.get("/api/logs/2026-06-01")
        self.assertTrue(resp.json()["is_persisted"])

        resp = self.client.get("/api/sync/pull")
        self.assertEqual(resp.status_code, 200)
        pulled = resp.json()
        self.assertIn("2026-06-01", [log["day"] for log in pulled["logs"]])
        self.assertIn("2026-06-03", [d["day"] for d in pulled["deletions"]])

        # A push that arrives after the pull, carrying an older edit time.
        resp = self.client.post(
            "/api/sync/push",
            json={
                "device_id": "phone",
                "logs": [{"day": "2026-06-05", "cough_count": 1, "last_modified": "2026-06-05T08:00:00Z"}],
            },
        )
        self.assertEqual(resp.json()["outcomes"]["2026-06-05"], "inserted")

        resp = self.client.get("/api/sync/pull", params={"cursor": pulled["next_cursor"]})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([log["day"] for log in resp.json()["logs"]], ["2026-06-05"])
        self.assertEqual(resp.json()["cursor"], pulled["next_cursor"])

        self.assertEqual(self.client.get("/api/sync/pull", params={"cursor": "yesterday"}).status_code, 422)
        self.assertEqual(self.client.get("/api/sync/pull", params={"cursor": -1}).status_code, 422)

    def test_api_key_gate(self) -> None:
        from catlog.config import settings

        with mock.patch.object(settings, "api_key", "s3cret"):
            self.assertEqual(self.client.get("/api/logs/2026-07-01").status_code, 401)
            resp = self.client.get("/api/logs/2026-07-01", headers={"x-api-key": "wrong"})
            self.assertEqual(resp.status_code, 401)
            resp = self.client.get("/api/logs/2026-07-01", headers={"x-api-key": "s3cret"})
            self.assertEqual(resp.status_code, 200)
            self.assertEqual(self.client.get("/api/health").status_code, 200)


if __name__ == "__main__":
    unittest.main()
