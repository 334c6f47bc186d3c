import threading
import time

import pytest
from pymongo.errors import PyMongoError

from app import dependencies
from app.config import Settings
from app.utils.errors import StoreError


class SlowDetector:
    created = 0

    def __init__(self, region_name):
        time.sleep(0.05)
        SlowDetector.created += 1


def test_detector_built_once_under_concurrent_first_requests(monkeypatch):
    monkeypatch.setattr(dependencies, "_detector", None)
    monkeypatch.setattr(dependencies, "RekognitionPPEDetector", SlowDetector)
    SlowDetector.created = 0
    settings = Settings()
    results = []

    threads = [threading.Thread(target=lambda: results.append(dependencies.get_detector(settings)))
               for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert SlowDetector.created == 1
    assert len({id(r) for r in results}) == 1


class BrokenLogs:
    def find_one(self, *args, **kwargs):
        raise PyMongoError("connection refused")


def test_upload_counters_wrap_store_errors(user_store):
    user_store.logs = BrokenLogs()

    with pytest.raises(StoreError):
        user_store.get_upload_counters("some-user")
