"""
JPL Small-Body Database orbital-element fetcher with a JSON disk cache.

 - Only successful payloads are cached; entries expire after CACHE_TTL
 - Transient network errors are retried with a short backoff
 - 404 / "object not found" answers fail immediately
"""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import requests

from impactsim.physics.orbital import OrbitalElements

logger = logging.getLogger(__name__)

# -----------------------
# Config
# -----------------------
SBDB_API_URL = "https://ssd-api.jpl.nasa.gov/sbdb.api"
CACHE_FILE = Path("sbdb_cache.json")
CACHE_TTL = timedelta(hours=24)
REQUEST_TIMEOUT = 20
MAX_ATTEMPTS = 3
BACKOFF_S = 0.6

# SBDB element name -> OrbitalElements field
ELEMENT_NAMES = {
    "a": "semi_major_axis",
    "e": "eccentricity",
    "i": "inclination",
    "om": "longitude_of_ascending_node",
    "w": "argument_of_periapsis",
    "ma": "mean_anomaly",
}


class SBDBError(RuntimeError):
    """SBDB could not provide orbital elements for a designation."""


# -----------------------
# Parsing
# -----------------------
def parse_elements(payload: Mapping[str, Any]) -> OrbitalElements:
    if "orbit" not in payload:
        msg = payload.get("message") or "response has no 'orbit' block"
        raise SBDBError(str(msg))

    orbit = payload["orbit"]
    by_name = {el.get("name"): el.get("value") for el in orbit.get("elements", [])}
    missing = [k for k in ELEMENT_NAMES if by_name.get(k) is None]
    if missing:
        raise SBDBError(f"orbit block is missing elements: {', '.join(missing)}")

    try:
        values = {field: float(by_name[k]) for k, field in ELEMENT_NAMES.items()}
        epoch = float(orbit["epoch"])
    except (KeyError, TypeError, ValueError) as e:
        raise SBDBError(f"malformed orbit block: {e}") from e
    return OrbitalElements(epoch=epoch, **values)


# -----------------------
# Fetcher
# -----------------------
class SBDBFetcher:
    def __init__(
        self,
        session: Optional[requests.Session] = None,
        cache_file: Optional[Path] = CACHE_FILE,
        ttl: timedelta = CACHE_TTL,
        sleep=time.sleep,
    ):
        self.session = session or requests.Session()
        self.cache_file = Path(cache_file) if cache_file is not None else None
        self.ttl = ttl
        self._sleep = sleep

    # cache helpers
    def _load_cache(self) -> Dict[str, Any]:
        if self.cache_file is None or not self.cache_file.exists():
            return {}
        try:
            data = json.loads(self.cache_file.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("SBDB cache file unreadable or corrupt, starting fresh.")
            return {}
        if not isinstance(data, dict):
            logger.warning("SBDB cache content not a dict; starting fresh.")
            return {}
        return data

    def _save_cache(self, cache: Dict[str, Any]) -> None:
        if self.cache_file is None:
            return
        try:
            self.cache_file.write_text(json.dumps(cache, indent=2), encoding="utf-8")
        except OSError as e:
            logger.warning("Failed to write SBDB cache: %s", e)

    def _cache_get(self, cache: Dict[str, Any], key: str, now: datetime) -> Optional[Dict[str, Any]]:
        entry = cache.get(key)
        if not isinstance(entry, dict):
            return None
        try:
            ts = datetime.fromisoformat(entry["timestamp"])
        except (KeyError, TypeError, ValueError):
            return None
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        if now - ts >= self.ttl:
            return None
        payload = entry.get("payload")
        if not isinstance(payload, dict):
            return None
        logger.info("SBDB cache hit for %s", key)
        return payload

    # network
    def fetch_payload(self, designation: str) -> Dict[str, Any]:
        params = {"sstr": designation}
        last_exc: Optional[Exception] = None
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                resp = self.session.get(SBDB_API_URL, params=params, timeout=REQUEST_TIMEOUT)
                if resp.status_code == 404:
                    raise SBDBError(f"SBDB: object {designation!r} not found (404)")
                resp.raise_for_status()
                payload = resp.json()
                if not isinstance(payload, dict):
                    raise SBDBError("SBDB returned non-object JSON")
                return payload
            except SBDBError:
                raise
            except (requests.RequestException, ValueError) as e:
                last_exc = e
                logger.warning("SBDB request for %s failed (attempt %d/%d): %s", designation, attempt, MAX_ATTEMPTS, e)
            if attempt < MAX_ATTEMPTS:
                self._sleep(BACKOFF_S * attempt)
        raise SBDBError(f"SBDB failed after retries for {designation!r}: {last_exc}") from last_exc

    def fetch_elements(self, designation: str) -> OrbitalElements:
        """
        Public fetcher:
          - checks disk cache (TTL)
          - queries SBDB
        Raises SBDBError on failure.
        """
        key = str(designation).strip()
        now = datetime.now(timezone.utc)
        cache = self._load_cache()

        payload = self._cache_get(cache, key, now)
        if payload is not None:
            return parse_elements(payload)

        payload = self.fetch_payload(key)
        elements = parse_elements(payload)
        cache[key] = {"timestamp": now.isoformat(), "payload": payload}
        self._save_cache(cache)
        logger.info("Fetched orbital elements for %s from SBDB", key)
        return elements


@lru_cache(maxsize=128)
def fetch_elements(designation: str) -> OrbitalElements:
    return SBDBFetcher().fetch_elements(designation)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print(fetch_elements("99942"))
