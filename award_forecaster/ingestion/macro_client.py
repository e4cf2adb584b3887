"""
TED (Tenders Electronic Daily) macro-budget client.

API:   https://api.ted.europa.eu
Docs:  https://docs.ted.europa.eu/api/latest/search.html

Purpose
-------
The insight engine compares the top country in a dataset with that country's
awarded procurement value for the previous year. This client builds that
reference from TED contract-award notices:

  POST {base_url}/v3/notices/search
    {"query": "...", "fields": [...], "limit": 250, "page": N,
     "paginationMode": "PAGE_NUMBER", "onlyLatestVersions": true}

Expert query (multi-valued clauses are parenthesised, single values are not)::

  (CY=HUN OR CY=DEU) AND (PC=33600000 OR PC=33651000)
    AND PD>=20240101 AND PD<=20241231

Pages are fetched sequentially until an empty or short page, or ``max_pages``.

Field extraction is lenient
---------------------------
TED returns several shapes for the same field depending on notice version:

  country  ``buyer-country`` or ``place-of-performance-country-lot``:
           a string, a list (flattened, first wins) or a dict (first key).
  value    ``result-value-lot`` / ``BT-27-Lot`` / ``BT-157-LotsGroup``:
           a number; a string (largest number found in it); or a dict with
           a value/amount/total/price/cost member (else the largest number in
           its JSON dump).

Notices without a country are skipped. Values that cannot be read count as 0
but the notice still counts.

Caching
-------
Results are kept in a process-wide ``MacroBudgetCache``, keyed by the
normalised query options and the TED base URL. Each entry lives for the
storing client's ``cache_ttl_seconds`` (default 6 h).
Concurrent fills simply overwrite each other.
"""

from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Optional, Protocol, Sequence, runtime_checkable

import httpx

from award_forecaster.config import MacroConfig
from award_forecaster.models.macro import MacroBudgetEntry

logger = logging.getLogger(__name__)

COUNTRY_LABELS: dict[str, str] = {
    "BEL": "Belgium",
    "BGR": "Bulgaria",
    "CHE": "Switzerland",
    "CZE": "Czech Republic",
    "DEU": "Germany",
    "EST": "Estonia",
    "FRA": "France",
    "HRV": "Croatia",
    "HUN": "Hungary",
    "ITA": "Italy",
    "NLD": "Netherlands",
    "NOR": "Norway",
    "POL": "Poland",
    "SWE": "Sweden",
    # legacy 2-letter codes
    "BE": "Belgium",
    "BG": "Bulgaria",
    "CH": "Switzerland",
    "CZ": "Czech Republic",
    "DE": "Germany",
    "EE": "Estonia",
    "FR": "France",
    "HR": "Croatia",
    "HU": "Hungary",
    "IT": "Italy",
    "NL": "Netherlands",
    "NO": "Norway",
    "PL": "Poland",
    "SE": "Sweden",
}

SEARCH_FIELDS: tuple[str, ...] = (
    "notice-identifier",
    "publication-date",
    "title-lot",
    "title-proc",
    "buyer-name",
    "buyer-country",
    "place-of-performance-country-lot",
    "classification-cpv",
    "notice-type",
    "contract-nature",
    "winner-name",
    "result-value-lot",
    "BT-27-Lot",
    "BT-157-LotsGroup",
)

_COUNTRY_FIELDS = ("buyer-country", "place-of-performance-country-lot")
_VALUE_FIELDS = ("result-value-lot", "BT-27-Lot", "BT-157-LotsGroup")
_VALUE_MEMBERS = ("value", "amount", "total", "price", "cost")

_NUMBER_RE = re.compile(r"-?\d+(?:[.,]\d+)?")
_PLAIN_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")


@runtime_checkable
class MacroBudgetProvider(Protocol):
    """Source of prior-year per-country procurement totals."""

    async def fetch_macro_budget(self, year: int) -> list[MacroBudgetEntry]: ...


# ── Lenient field extraction ──────────────────────────────────────────────────


def normalize_country_codes(source: Any) -> list[str]:
    """Flatten a TED country field into upper-case codes."""
    if not source:
        return []
    if isinstance(source, str):
        return [source.strip().upper()] if source.strip() else []
    if isinstance(source, (list, tuple)):
        codes: list[str] = []
        for item in source:
            codes.extend(normalize_country_codes(item))
        return codes
    if isinstance(source, dict):
        return [str(next(iter(source))).upper()]
    return []


def extract_numeric_value(source: Any) -> Optional[float]:
    """Best-effort numeric reading of a TED value field, or ``None``."""
    if source is None or isinstance(source, bool):
        return None
    if isinstance(source, (int, float)):
        return float(source)
    if isinstance(source, str):
        cleaned = re.sub(r"[^\d.,-]", "", source)
        numbers = [float(part.replace(",", ".")) for part in _NUMBER_RE.findall(cleaned)]
        return max(numbers) if numbers else None
    if isinstance(source, dict):
        for member in _VALUE_MEMBERS:
            candidate = source.get(member)
            if isinstance(candidate, bool):
                continue
            if isinstance(candidate, (int, float)):
                return float(candidate)
            if isinstance(candidate, str):
                match = _PLAIN_NUMBER_RE.search(re.sub(r"[^\d.-]", "", candidate))
                if match:
                    return float(match.group(0))
    if isinstance(source, (dict, list, tuple)):
        numbers = [float(n) for n in _PLAIN_NUMBER_RE.findall(json.dumps(source, default=str))]
        return max(numbers) if numbers else None
    return None


def _first_present(notice: dict[str, Any], fields: Sequence[str]) -> Any:
    for name in fields:
        value = notice.get(name)
        if value is not None:
            return value
    return None


# ── Query ─────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class MacroQuery:
    """Normalised search options; also the cache key."""

    year: int
    countries: tuple[str, ...]
    cpv_codes: tuple[str, ...]
    max_pages: int
    base_url: str = ""

    def to_expert_query(self) -> str:
        return build_query(self.year, self.countries, self.cpv_codes)


def _or_clause(prefix: str, values: Sequence[str]) -> Optional[str]:
    if not values:
        return None
    if len(values) == 1:
        return f"{prefix}={values[0]}"
    return "(" + " OR ".join(f"{prefix}={v}" for v in values) + ")"


def build_query(year: int, countries: Sequence[str], cpv_codes: Sequence[str]) -> str:
    """Build the TED expert query for one publication year."""
    parts = [
        clause
        for clause in (_or_clause("CY", countries), _or_clause("PC", cpv_codes))
        if clause
    ]
    parts.append(f"PD>={year}0101 AND PD<={year}1231")
    return " AND ".join(parts)


# ── Cache ─────────────────────────────────────────────────────────────────────


class MacroBudgetCache:
    """Time-bounded read-through cache of macro results.

    Entries are immutable lists of frozen models, so readers never see a
    partially written value; a concurrent ``set`` for the same key wins last.
    """

    def __init__(
        self,
        ttl_seconds: float = 6 * 60 * 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[MacroQuery, tuple[float, tuple[MacroBudgetEntry, ...]]] = {}

    def get(self, key: MacroQuery) -> Optional[list[MacroBudgetEntry]]:
        hit = self._entries.get(key)
        if hit is None:
            return None
        expires_at, data = hit
        if expires_at <= self._clock():
            self._entries.pop(key, None)
            return None
        return list(data)

    def set(
        self,
        key: MacroQuery,
        data: Sequence[MacroBudgetEntry],
        ttl_seconds: Optional[float] = None,
    ) -> None:
        """Store ``data``; ``ttl_seconds`` overrides the cache default for this entry."""
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        self._entries[key] = (self._clock() + ttl, tuple(data))

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


_SHARED_CACHE = MacroBudgetCache()


# ── Client ────────────────────────────────────────────────────────────────────


@dataclass
class _CountryTotals:
    country_code: str
    total_value_eur: float = 0.0
    notice_count: int = 0
    sample_notice_id: Optional[str] = None
    last_award_date: Optional[str] = None


class TedMacroBudgetClient:
    """Prior-year country budget reference from the TED search API.

    Usage::

        client = TedMacroBudgetClient(config.macro)
        entries = await client.fetch_macro_budget(2024)

    In tests, pass ``transport=httpx.MockTransport(handler)`` and a private
    ``MacroBudgetCache()`` so nothing touches the network or the shared cache.
    """

    HEADERS: ClassVar[dict[str, str]] = {"Content-Type": "application/json"}

    def __init__(
        self,
        config: Optional[MacroConfig] = None,
        *,
        cache: Optional[MacroBudgetCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config or MacroConfig()
        # entries in the shared cache carry this client's TTL
        self._entry_ttl: Optional[float] = (
            self.config.cache_ttl_seconds if cache is None else None
        )
        self.cache = _SHARED_CACHE if cache is None else cache
        self._transport = transport

    def normalise_query(
        self,
        year: int,
        countries: Optional[Sequence[str]] = None,
        cpv_codes: Optional[Sequence[str]] = None,
        max_pages: Optional[int] = None,
    ) -> MacroQuery:
        """Upper-case and de-duplicate options, falling back to config defaults."""
        country_list = countries or self.config.countries
        cpv_list = cpv_codes or self.config.cpv_codes
        return MacroQuery(
            year=int(year),
            countries=tuple(dict.fromkeys(c.strip().upper() for c in country_list if c.strip())),
            cpv_codes=tuple(dict.fromkeys(c.strip() for c in cpv_list if c.strip())),
            max_pages=max_pages if max_pages is not None else self.config.max_pages,
            base_url=self.config.base_url.rstrip("/"),
        )

    async def fetch_macro_budget(
        self,
        year: int,
        countries: Optional[Sequence[str]] = None,
        cpv_codes: Optional[Sequence[str]] = None,
        max_pages: Optional[int] = None,
    ) -> list[MacroBudgetEntry]:
        """Fetch per-country award totals for ``year``, sorted by value descending.

        Raises:
            httpx.HTTPError: On transport failure or a non-2xx response.
        """
        query = self.normalise_query(year, countries, cpv_codes, max_pages)
        cached = self.cache.get(query)
        if cached is not None:
            logger.debug("Macro cache hit for %s", query)
            return cached

        totals: dict[str, _CountryTotals] = {}
        pages = 0
        async with httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout_seconds,
            transport=self._transport,
        ) as client:
            for page in range(1, query.max_pages + 1):
                notices = await self._fetch_page(client, query, page)
                pages += 1
                if not notices:
                    break
                for notice in notices:
                    _accumulate(totals, notice)
                if len(notices) < self.config.page_size:
                    break

        result = sorted(
            (
                MacroBudgetEntry(
                    country_code=t.country_code,
                    country_name=COUNTRY_LABELS.get(t.country_code, t.country_code),
                    year=query.year,
                    total_value_eur=t.total_value_eur,
                    notice_count=t.notice_count,
                    sample_notice_id=t.sample_notice_id,
                    last_award_date=t.last_award_date,
                )
                for t in totals.values()
            ),
            key=lambda e: e.total_value_eur,
            reverse=True,
        )
        logger.info(
            "TED macro %d: %d countr%s from %d page(s).",
            query.year, len(result), "y" if len(result) == 1 else "ies", pages,
        )
        self.cache.set(query, result, ttl_seconds=self._entry_ttl)
        return result

    async def _fetch_page(
        self,
        client: httpx.AsyncClient,
        query: MacroQuery,
        page: int,
    ) -> list[dict[str, Any]]:
        payload = {
            "query": query.to_expert_query(),
            "fields": list(SEARCH_FIELDS),
            "limit": self.config.page_size,
            "page": page,
            "paginationMode": "PAGE_NUMBER",
            "onlyLatestVersions": True,
        }
        resp = await client.post(self.config.search_endpoint, json=payload, headers=self.HEADERS)
        resp.raise_for_status()
        notices = resp.json().get("notices") or []
        return [n for n in notices if isinstance(n, dict)]


def _accumulate(totals: dict[str, _CountryTotals], notice: dict[str, Any]) -> None:
    codes = normalize_country_codes(_first_present(notice, _COUNTRY_FIELDS))
    if not codes:
        return
    code = codes[0]
    entry = totals.setdefault(code, _CountryTotals(country_code=code))
    entry.notice_count += 1

    value = extract_numeric_value(_first_present(notice, _VALUE_FIELDS)) or 0.0
    if value > 0:
        entry.total_value_eur += value

    notice_id = str(notice.get("notice-identifier") or "")
    if notice_id and entry.sample_notice_id is None:
        entry.sample_notice_id = notice_id

    published = notice.get("publication-date")
    if isinstance(published, str) and published:
        entry.last_award_date = published
