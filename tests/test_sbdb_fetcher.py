import json
from datetime import datetime, timedelta, timezone

import pytest
import requests

from impactsim.data.sbdb_fetcher import SBDB_API_URL, SBDBError, SBDBFetcher, parse_elements

PAYLOAD = {
    "object": {"des": "99942", "fullname": "99942 Apophis (2004 MN4)"},
    "orbit": {
        "epoch": "2461000.5",
        "elements": [
            {"name": "e", "value": "0.1911"},
            {"name": "a", "value": "0.9227"},
            {"name": "q", "value": "0.7464"},
            {"name": "i", "value": "3.336"},
            {"name": "om", "value": "203.96"},
            {"name": "w", "value": "126.60"},
            {"name": "ma", "value": "142.07"},
        ],
    },
}


class FakeResponse:
    def __init__(self, status_code=200, payload=None, bad_json=False):
        self.status_code = status_code
        self._payload = payload
        self._bad_json = bad_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self._bad_json:
            raise ValueError("not json")
        return self._payload


class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params, timeout))
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def make_fetcher(tmp_path, responses):
    session = FakeSession(responses)
    sleeps = []
    fetcher = SBDBFetcher(session=session, cache_file=tmp_path / "sbdb.json", sleep=sleeps.append)
    return fetcher, session, sleeps


def test_parse_elements():
    el = parse_elements(PAYLOAD)
    assert el.semi_major_axis == pytest.approx(0.9227)
    assert el.longitude_of_ascending_node == pytest.approx(203.96)
    assert el.epoch == 2461000.5


def test_parse_elements_errors():
    with pytest.raises(SBDBError, match="specified object was not found"):
        parse_elements({"message": "specified object was not found"})
    partial = {"orbit": {"epoch": "1", "elements": [{"name": "a", "value": "1.0"}]}}
    with pytest.raises(SBDBError, match="missing elements"):
        parse_elements(partial)
    broken = json.loads(json.dumps(PAYLOAD))
    broken["orbit"]["elements"][1]["value"] = "abc"
    with pytest.raises(SBDBError, match="malformed"):
        parse_elements(broken)


def test_fetch_and_cache(tmp_path):
    fetcher, session, _ = make_fetcher(tmp_path, [FakeResponse(payload=PAYLOAD)])
    el = fetcher.fetch_elements("99942")
    assert el.eccentricity == pytest.approx(0.1911)
    assert session.calls[0][0] == SBDB_API_URL
    assert session.calls[0][1] == {"sstr": "99942"}

    cache = json.loads((tmp_path / "sbdb.json").read_text())
    assert cache["99942"]["payload"] == PAYLOAD

    # second call is served from disk
    again = fetcher.fetch_elements("99942")
    assert again == el
    assert len(session.calls) == 1


def test_expired_cache_is_refetched(tmp_path):
    old = (datetime.now(timezone.utc) - timedelta(hours=25)).isoformat()
    (tmp_path / "sbdb.json").write_text(json.dumps({"99942": {"timestamp": old, "payload": PAYLOAD}}))
    fetcher, session, _ = make_fetcher(tmp_path, [FakeResponse(payload=PAYLOAD)])
    fetcher.fetch_elements("99942")
    assert len(session.calls) == 1


def test_naive_cache_timestamp_is_read_as_utc(tmp_path):
    fresh = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(hours=1)
    stale = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(hours=30)
    (tmp_path / "sbdb.json").write_text(json.dumps({
        "99942": {"timestamp": fresh.isoformat(), "payload": PAYLOAD},
        "1566": {"timestamp": stale.isoformat(), "payload": PAYLOAD},
    }))
    fetcher, session, _ = make_fetcher(tmp_path, [FakeResponse(payload=PAYLOAD)])
    assert fetcher.fetch_elements("99942").eccentricity == pytest.approx(0.1911)
    assert session.calls == []
    fetcher.fetch_elements("1566")
    assert len(session.calls) == 1


def test_corrupt_cache_is_ignored(tmp_path):
    (tmp_path / "sbdb.json").write_text("{not json")
    fetcher, session, _ = make_fetcher(tmp_path, [FakeResponse(payload=PAYLOAD)])
    assert fetcher.fetch_elements("99942").inclination == pytest.approx(3.336)
    assert len(session.calls) == 1


def test_retries_transient_errors(tmp_path):
    fetcher, session, sleeps = make_fetcher(tmp_path, [
        requests.ConnectionError("reset"),
        FakeResponse(status_code=503),
        FakeResponse(payload=PAYLOAD),
    ])
    fetcher.fetch_elements("99942")
    assert len(session.calls) == 3
    assert sleeps == [pytest.approx(0.6), pytest.approx(1.2)]


def test_gives_up_after_max_attempts(tmp_path):
    fetcher, session, sleeps = make_fetcher(tmp_path, [
        FakeResponse(bad_json=True),
        requests.Timeout("slow"),
        requests.Timeout("slow"),
    ])
    with pytest.raises(SBDBError, match="after retries"):
        fetcher.fetch_elements("99942")
    assert len(session.calls) == 3
    assert len(sleeps) == 2
    assert not (tmp_path / "sbdb.json").exists()


def test_not_found_fails_fast(tmp_path):
    fetcher, session, sleeps = make_fetcher(tmp_path, [FakeResponse(status_code=404)])
    with pytest.raises(SBDBError, match="not found"):
        fetcher.fetch_elements("nope")
    assert len(session.calls) == 1
    assert sleeps == []


def test_error_payload_is_not_cached(tmp_path):
    fetcher, _, _ = make_fetcher(tmp_path, [FakeResponse(payload={"message": "specified object was not found"})])
    with pytest.raises(SBDBError):
        fetcher.fetch_elements("nope")
    assert not (tmp_path / "sbdb.json").exists()
