"""
Thin synchronous client for the T-Invest (Tinkoff Invest) REST gateway.

Every call is a JSON POST to ``<base>/tinkoff.public.invest.api.contract.v1.<Service>/<Method>``.
Bases are tried in order: a 404, a non-2xx reply, a body that is not JSON or a
transport error moves on to the next one, and the last error is raised once all
of them fail.
"""
from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx


logger = logging.getLogger(__name__)

DEFAULT_BASE_URLS = [
    "https://invest-public-api.tbank.ru/rest",
    "https://invest-public-api.tinkoff.ru/rest",
]
CONTRACT_PREFIX = "/tinkoff.public.invest.api.contract.v1"
ACCOUNT_STATUS_OPEN = "ACCOUNT_STATUS_OPEN"


class InvestApiError(Exception):
    """Base exception for Invest API failures."""


class MissingTokenError(InvestApiError):
    """Raised when no API token is configured."""


class UpstreamUnavailableError(InvestApiError):
    """Raised when every configured base endpoint failed."""

    def __init__(self, message: str, status_code: int | None = None, url: str | None = None):
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class InvestApiClient:
    def __init__(
        self,
        token: str | None,
        base_urls: Sequence[str] = DEFAULT_BASE_URLS,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not token:
            raise MissingTokenError("Invest API token is not configured (set TINVEST_TOKEN).")
        if not base_urls:
            raise ValueError("At least one base URL is required.")
        self._base_urls = list(base_urls)
        self._http = httpx.Client(
            timeout=timeout,
            headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> InvestApiClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def call(self, service: str, method: str, body: dict | None = None) -> dict:
        path = f"{CONTRACT_PREFIX}.{service}/{method}"
        last_error: UpstreamUnavailableError | None = None

        for base in self._base_urls:
            url = base + path
            try:
                resp = self._http.post(url, json=body or {})
            except httpx.HTTPError as exc:
                logger.warning("Invest API transport error @ %s: %s", url, exc)
                last_error = UpstreamUnavailableError(f"Invest API request failed @ {url}: {exc}", url=url)
                continue

            if 200 <= resp.status_code < 300:
                try:
                    return resp.json()
                except ValueError as exc:
                    logger.warning("Invest API returned non-JSON body @ %s: %s", url, exc)
                    last_error = UpstreamUnavailableError(
                        f"Invest API invalid JSON @ {url}: {exc}", resp.status_code, url
                    )
                    continue
            if resp.status_code == 404:
                logger.warning("Invest API 404 @ %s, trying next base", url)
                last_error = UpstreamUnavailableError(f"Invest API 404 @ {url}", 404, url)
                continue
            logger.warning("Invest API %s @ %s", resp.status_code, url)
            last_error = UpstreamUnavailableError(
                f"Invest API {resp.status_code}: {resp.text}", resp.status_code, url
            )

        raise last_error or UpstreamUnavailableError("Invest API request failed")

    def get_info(self) -> dict:
        return self.call("UsersService", "GetInfo")

    def get_accounts(self) -> list[dict]:
        return self.call("UsersService", "GetAccounts").get("accounts") or []

    def get_open_accounts(self) -> list[dict]:
        return [a for a in self.get_accounts() if a.get("status") == ACCOUNT_STATUS_OPEN]

    def get_portfolio(self, account_id: str, currency: str = "RUB") -> dict:
        return self.call("OperationsService", "GetPortfolio", {"accountId": account_id, "currency": currency})

    def get_positions(self, account_id: str) -> dict:
        return self.call("OperationsService", "GetPositions", {"accountId": account_id})

    def get_instrument_by_figi(self, figi: str) -> dict:
        return self.call(
            "InstrumentsService",
            "GetInstrumentBy",
            {"idType": "INSTRUMENT_ID_TYPE_FIGI", "id": figi},
        )
