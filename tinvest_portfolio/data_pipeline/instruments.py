from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import MutableMapping

from cachetools import TTLCache

from tinvest_portfolio.data_pipeline.invest_api import InvestApiClient


logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 6 * 3600
DEFAULT_CACHE_MAXSIZE = 4096
PAYLOAD_KEYS = ("instrument", "share", "bond", "etf", "future")


@dataclass(frozen=True)
class InstrumentInfo:
    figi: str
    lot: int = 1
    ticker: str = ""
    name: str = ""
    instrument_type: str = ""
    currency: str = ""


def parse_instrument_payload(figi: str, resp: dict) -> InstrumentInfo | None:
    data = next((resp[k] for k in PAYLOAD_KEYS if resp.get(k)), None)
    if not data:
        return None
    return InstrumentInfo(
        figi=figi,
        lot=int(data.get("lot") or 1),
        ticker=data.get("ticker") or "",
        name=data.get("name") or data.get("issuerName") or "",
        instrument_type=str(data.get("instrumentType") or data.get("type") or "").lower(),
        currency=str(data.get("currency") or data.get("nominalCurrency") or "").upper(),
    )


def build_cache(
    ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
    maxsize: int = DEFAULT_CACHE_MAXSIZE,
) -> TTLCache:
    return TTLCache(maxsize=maxsize, ttl=ttl_seconds)


class InstrumentResolver:
    """Look up instrument reference data by FIGI through a time-bounded cache.

    The cache is any mutable mapping; a ``cachetools.TTLCache`` gives entries
    the expiry window. Only found instruments are cached, so a missing
    instrument is asked for again on the next run.
    """

    def __init__(self, client: InvestApiClient, cache: MutableMapping[str, dict] | None = None) -> None:
        self._client = client
        self._cache = cache if cache is not None else build_cache()

    def resolve(self, figi: str) -> InstrumentInfo | None:
        if not figi:
            return None

        key = f"inst:{figi}"
        cached = self._cache.get(key)
        if cached:
            logger.debug("Instrument cache hit for %s", figi)
            return InstrumentInfo(**cached)

        info = parse_instrument_payload(figi, self._client.get_instrument_by_figi(figi))
        if info is None:
            logger.info("No instrument metadata for %s; using defaults", figi)
            return None

        self._cache[key] = asdict(info)
        return info
