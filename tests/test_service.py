"""Tests for the PrayerTimeService orchestration and daily sync."""

import datetime
import os
import shutil
import tempfile
import threading
import unittest
from unittest.mock import MagicMock, patch

import requests

from src.calculator import LocalCalculator, compute_local
from src.config import Settings
from src.errors import CalculationError, InvalidLocation, RemoteError, RemoteUnavailable, UnresolvablePrayerTimes
from src.location import LocationRegistry
from src.models import Location, PrayerTimeSet
from src.overrides import ExactOverrides
from src.prayer_api import build_default_chain
from src.service import PrayerTimeService, SyncMarker, default_producers

FAISALABAD = Location("Faisalabad", 31.4167, 73.0833)
LAHORE = Location("Lahore", 31.5497, 74.3436)
DATE = datetime.date(2025, 3, 1)
OVERRIDE_DATE = datetime.date(2025, 9, 6)

REMOTE_TIMES = PrayerTimeSet(
    Fajr="05:12", Dhuhr="12:23", Asr="15:40", Maghrib="18:12", Isha="19:33", date="01 Mar 2025", source="primary"
)

MOCK_RESPONSE = {
    "code": 200,
    "status": "OK",
    "data": {
        "timings": {"Fajr": "05:14", "Dhuhr": "12:23", "Asr": "15:40", "Maghrib": "18:12", "Isha": "19:29"},
        "date": {"readable": "01 Mar 2025"},
    },
}


def _producer(name, result=None, error=None):
    producer = MagicMock()
    producer.name = name
    if error is not None:
        producer.resolve.side_effect = error
    else:
        producer.resolve.return_value = result
    return producer


def _service(producers, locations=(FAISALABAD, LAHORE), **kwargs):
    kwargs.setdefault("sync_on_request", False)
    return PrayerTimeService(
        Settings(), registry=LocationRegistry(list(locations)), producers=producers, **kwargs
    )


class TestGetPrayerTimes(unittest.TestCase):
    def test_second_call_is_served_from_cache(self):
        remote = _producer("remote", REMOTE_TIMES)
        service = _service([remote])

        first = service.get_prayer_times("Faisalabad", DATE)
        second = service.get_prayer_times("faisalabad", DATE)

        self.assertEqual(first, second)
        self.assertEqual(remote.resolve.call_count, 1)

    def test_invalid_location_fails_before_any_work(self):
        remote = _producer("remote", REMOTE_TIMES)
        service = _service([remote], sync_on_request=True, today=lambda: DATE)

        with self.assertRaises(InvalidLocation):
            service.get_prayer_times("Atlantis", DATE)
        remote.resolve.assert_not_called()
        self.assertIsNone(service.sync_marker.get())

    def test_producer_returning_none_passes_to_next(self):
        override = _producer("override", None)
        remote = _producer("remote", REMOTE_TIMES)
        service = _service([override, remote])

        self.assertEqual(service.get_prayer_times("Faisalabad", DATE), REMOTE_TIMES)
        override.resolve.assert_called_once_with(FAISALABAD, DATE)

    def test_all_producers_failing_raises_unresolvable(self):
        service = _service([
            _producer("remote", error=RemoteUnavailable([RemoteError("down")])),
            _producer("local", error=CalculationError("broken geometry")),
        ])
        with self.assertRaises(UnresolvablePrayerTimes):
            service.get_prayer_times("Faisalabad", DATE)
        self.assertEqual(service.cache_stats()["total_entries"], 0)

    def test_defaults_to_today(self):
        remote = _producer("remote", REMOTE_TIMES)
        service = _service([remote], today=lambda: DATE)
        service.get_prayer_times("Lahore")
        remote.resolve.assert_called_once_with(LAHORE, DATE)


class TestProducerPrecedence(unittest.TestCase):
    """Runs the real producer chain with the network patched out."""

    def _real_service(self):
        return _service(default_producers(Settings()))

    @patch("src.prayer_api.requests.get")
    def test_exact_override_wins_over_everything(self, mock_get):
        service = self._real_service()
        with patch("src.calculator.compute_local") as mock_local:
            result = service.get_prayer_times("Faisalabad", OVERRIDE_DATE)
            mock_local.assert_not_called()
        mock_get.assert_not_called()
        self.assertEqual(result.source, "override")
        self.assertEqual(result.Dhuhr, "12:06")

    @patch("src.prayer_api.requests.get")
    def test_fallback_used_when_primary_fails(self, mock_get):
        response = MagicMock()
        response.json.return_value = MOCK_RESPONSE
        mock_get.side_effect = [requests.ConnectionError("primary down"), response]
        service = self._real_service()

        with patch("src.calculator.compute_local") as mock_local:
            result = service.get_prayer_times("Faisalabad", DATE)
            mock_local.assert_not_called()

        self.assertEqual(result.source, "fallback")
        self.assertEqual(result.Fajr, "05:14")
        self.assertEqual(result.Isha, "19:29")

    @patch("src.prayer_api.requests.get")
    def test_local_calculation_when_both_remotes_fail(self, mock_get):
        mock_get.side_effect = requests.Timeout("timed out")
        service = self._real_service()

        result = service.get_prayer_times("Faisalabad", DATE)

        self.assertEqual(mock_get.call_count, 2)
        self.assertEqual(result, compute_local(FAISALABAD, DATE))
        self.assertEqual(service.cache.get("Faisalabad", DATE.isoformat()), result)

    @patch("src.prayer_api.requests.get")
    def test_local_result_is_cached(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("offline")
        service = self._real_service()

        service.get_prayer_times("Faisalabad", DATE)
        service.get_prayer_times("Faisalabad", DATE)

        self.assertEqual(mock_get.call_count, 2)

    def test_default_chain_order(self):
        producers = default_producers(Settings(asr_shadow_factor=2))
        self.assertIsInstance(producers[0], ExactOverrides)
        self.assertEqual([r.name for r in producers[1].resolvers], ["primary", "fallback"])
        self.assertIsInstance(producers[2], LocalCalculator)
        self.assertEqual(producers[2].shadow_factor, 2)

    def test_build_default_chain_uses_settings(self):
        settings = Settings(primary_url="http://primary.test/v1", fallback_url="http://fallback.test/v1")
        chain = build_default_chain(settings)
        self.assertEqual([r.base_url for r in chain.resolvers], [settings.primary_url, settings.fallback_url])


class TestDailySync(unittest.TestCase):
    def test_sync_runs_once_per_day(self):
        remote = _producer("remote", REMOTE_TIMES)
        service = _service([remote])

        self.assertTrue(service.check_and_sync(DATE))
        self.assertEqual(remote.resolve.call_count, 2)

        self.assertFalse(service.check_and_sync(DATE))
        self.assertEqual(remote.resolve.call_count, 2)
        self.assertEqual(service.sync_marker.get(), "2025-03-01")

    def test_new_day_clears_cache_and_resyncs(self):
        remote = _producer("remote", REMOTE_TIMES)
        service = _service([remote])
        service.check_and_sync(DATE)
        service.get_prayer_times("Faisalabad", DATE + datetime.timedelta(days=3))

        self.assertTrue(service.check_and_sync(DATE + datetime.timedelta(days=1)))
        self.assertEqual(service.cache_stats(), {"locations": 2, "total_entries": 2})
        self.assertIsNone(service.cache.get("Faisalabad", DATE.isoformat()))

    def test_one_failing_location_does_not_abort_sync(self):
        def resolve(location, date):
            if location.name == "Lahore":
                raise RemoteUnavailable([RemoteError("down")])
            return REMOTE_TIMES

        remote = _producer("remote")
        remote.resolve.side_effect = resolve
        locations = [FAISALABAD, LAHORE, Location("Multan", 30.2, 71.4333)]
        service = _service([remote], locations=locations)

        self.assertTrue(service.check_and_sync(DATE))
        self.assertEqual(service.last_sync_failures, ["Lahore"])
        self.assertEqual(service.sync_marker.get(), DATE.isoformat())
        self.assertIsNotNone(service.cache.get("Multan", DATE.isoformat()))

    def test_failed_location_is_retried_on_next_request(self):
        calls = []

        def resolve(location, date):
            calls.append(location.name)
            if calls.count("Lahore") == 1 and location.name == "Lahore":
                raise RemoteUnavailable([RemoteError("down")])
            return REMOTE_TIMES

        remote = _producer("remote")
        remote.resolve.side_effect = resolve
        service = _service([remote])
        service.check_and_sync(DATE)

        self.assertEqual(service.get_prayer_times("Lahore", DATE), REMOTE_TIMES)
        self.assertEqual(calls.count("Lahore"), 2)

    def test_unexpected_error_is_contained(self):
        remote = _producer("remote", error=KeyError("boom"))
        service = _service([remote])
        self.assertTrue(service.check_and_sync(DATE))
        self.assertEqual(sorted(service.last_sync_failures), ["Faisalabad", "Lahore"])

    def test_request_path_triggers_sync(self):
        remote = _producer("remote", REMOTE_TIMES)
        service = _service([remote], sync_on_request=True, today=lambda: DATE)

        service.get_prayer_times("Faisalabad", DATE)
        service.get_prayer_times("Lahore", DATE)

        self.assertEqual(remote.resolve.call_count, 2)
        self.assertEqual(service.sync_marker.get(), DATE.isoformat())

    def test_concurrent_callers_sync_once(self):
        remote = _producer("remote", REMOTE_TIMES)
        service = _service([remote])
        results = []

        def worker():
            results.append(service.check_and_sync(DATE))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(results.count(True), 1)
        self.assertEqual(remote.resolve.call_count, 2)


class TestFetchRange(unittest.TestCase):
    def test_resolves_each_day_and_skips_failures(self):
        def resolve(location, date):
            if date.day == 2:
                raise RemoteUnavailable([])
            return REMOTE_TIMES

        remote = _producer("remote")
        remote.resolve.side_effect = resolve
        service = _service([remote])

        results = service.fetch_prayer_times_range("Faisalabad", DATE, DATE + datetime.timedelta(days=2))

        self.assertEqual(len(results), 2)
        self.assertEqual(remote.resolve.call_count, 3)


class TestSyncMarker(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.mkdtemp()
        self.path = os.path.join(self._tmpdir, "last_sync")

    def tearDown(self):
        shutil.rmtree(self._tmpdir, ignore_errors=True)

    def test_missing_file_means_never_synced(self):
        self.assertIsNone(SyncMarker(self.path).get())

    def test_value_survives_restart(self):
        SyncMarker(self.path).set("2025-03-01")
        self.assertEqual(SyncMarker(self.path).get(), "2025-03-01")

    def test_in_memory_marker(self):
        marker = SyncMarker()
        self.assertIsNone(marker.get())
        marker.set("2025-03-01")
        self.assertEqual(marker.get(), "2025-03-01")

    def test_persisted_marker_skips_sync_after_restart(self):
        SyncMarker(self.path).set(DATE.isoformat())
        remote = _producer("remote", REMOTE_TIMES)
        service = _service([remote], sync_marker=SyncMarker(self.path))

        self.assertFalse(service.check_and_sync(DATE))
        remote.resolve.assert_not_called()

    def test_unwritable_path_falls_back_to_memory(self):
        blocker = os.path.join(self._tmpdir, "file")
        with open(blocker, "w") as f:
            f.write("")
        marker = SyncMarker(os.path.join(blocker, "sub", "last_sync"))

        with self.assertLogs("src.service", level="WARNING"):
            marker.set("2025-03-01")
        self.assertEqual(marker.get(), "2025-03-01")

    def test_unwritable_marker_does_not_fail_requests(self):
        blocker = os.path.join(self._tmpdir, "file")
        with open(blocker, "w") as f:
            f.write("")
        remote = _producer("remote", REMOTE_TIMES)
        service = _service(
            [remote],
            sync_on_request=True,
            today=lambda: DATE,
            sync_marker=SyncMarker(os.path.join(blocker, "sub", "last_sync")),
        )

        self.assertEqual(service.get_prayer_times("Faisalabad", DATE), REMOTE_TIMES)
        self.assertEqual(service.get_prayer_times("Lahore", DATE), REMOTE_TIMES)
        self.assertEqual(remote.resolve.call_count, 2)


if __name__ == "__main__":
    unittest.main()
