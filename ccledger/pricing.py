"""Model pricing sources and the cost calculator.

Prices are expressed per million tokens for four token classes. Two sources
are composed: a remote LiteLLM price table fetched over HTTP (with a timeout,
an in-process cache and an optional on-disk cache) and an embedded static
table that always answers.
"""

import json
import re
import threading
import time
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import httpx

from ccledger.logger import logger
from ccledger.models import TokenUsage

logger = logger.getChild("pricing")

TOKENS_PER_UNIT = 1_000_000

LITELLM_PRICING_URL = (
    "https://raw.githubusercontent.com/BerriAI/litellm/main/"
    "model_prices_and_context_window.json"
)
DEFAULT_FETCH_TIMEOUT = 10.0
DEFAULT_CACHE_MAX_AGE = 24 * 60 * 60
DEFAULT_CACHE_PATH = Path.home() / ".cache" / "ccledger" / "model_pricing.json"
CACHE_FORMAT_VERSION = "1.0"


class PricingUnavailableError(RuntimeError):
    """Raised internally when the remote price table cannot be obtained."""


@dataclass(frozen=True)
class ModelPricing:
    """Cost per one million tokens for each token class."""

    input: float
    output: float
    cache_creation: float = 0.0
    cache_read: float = 0.0

    def cost(self, usage: TokenUsage) -> float:
        """Return the dollar cost of ``usage`` at these rates."""
        return (
            usage.input * self.input
            + usage.output * self.output
            + usage.cache_creation * self.cache_creation
            + usage.cache_read * self.cache_read
        ) / TOKENS_PER_UNIT


# ── Static fallback table ────────────────────────────────────────────

STATIC_PRICING_VERSION = "2025-08-05"

_OPUS_4 = ModelPricing(15.00, 75.00, 18.75, 1.50)
_SONNET_4 = ModelPricing(3.00, 15.00, 3.75, 0.30)
_HAIKU_3_5 = ModelPricing(1.00, 5.00, 1.25, 0.10)
_HAIKU_3 = ModelPricing(0.25, 1.25, 0.30, 0.03)

STATIC_PRICING: dict[str, ModelPricing] = {
    "claude-opus-4-1-20250805": _OPUS_4,
    "claude-opus-4-20250514": _OPUS_4,
    "opus-4": _OPUS_4,
    "claude-sonnet-4-20250514": _SONNET_4,
    "claude-4-sonnet-20250514": _SONNET_4,
    "sonnet-4": _SONNET_4,
    "claude-3-5-sonnet-20241022": _SONNET_4,
    "claude-haiku-4-5-20251001": _HAIKU_3_5,
    "claude-3-5-haiku-20241022": _HAIKU_3_5,
    "claude-3-opus-20240229": _OPUS_4,
    "claude-3-sonnet-20240229": _SONNET_4,
    "claude-3-haiku-20240307": _HAIKU_3,
}

DEFAULT_TIER = "sonnet-4"

# Checked in this order; the first family with a matching marker wins.
_FAMILY_MARKERS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("opus-4", ("opus-4", "opus_4", "4-opus")),
    ("sonnet-4", ("sonnet-4", "sonnet_4", "4-sonnet")),
    ("claude-3-5-sonnet-20241022", ("3-5-sonnet", "3.5-sonnet")),
    (
        "claude-3-5-haiku-20241022",
        ("3-5-haiku", "3.5-haiku", "haiku-3-5", "haiku-3.5"),
    ),
    ("claude-3-opus-20240229", ("3-opus", "opus-3")),
    ("claude-3-sonnet-20240229", ("3-sonnet", "sonnet-3")),
    ("claude-3-haiku-20240307", ("3-haiku", "haiku-3")),
)

_STATIC_KEYS = {key.lower(): key for key in STATIC_PRICING}


def match_static_tier(model: str) -> str:
    """Return the static table key used for ``model``.

    Resolution order:
    1. Exact key (case-insensitive).
    2. Family markers, most specific first.
    3. The sonnet-4 tier.
    """
    lowered = model.lower()
    if lowered in _STATIC_KEYS:
        return _STATIC_KEYS[lowered]
    for key, markers in _FAMILY_MARKERS:
        if any(marker in lowered for marker in markers):
            return key
    return DEFAULT_TIER


class PricingSource(Protocol):
    """Anything that can price a model; ``get_pricing`` returns None when unknown."""

    @property
    def name(self) -> str: ...

    def get_pricing(self, model: str) -> ModelPricing | None: ...


class StaticPricingSource:
    """Embedded price table. Never returns None and never raises."""

    def __init__(self, table: Mapping[str, ModelPricing] | None = None) -> None:
        self._table = dict(table) if table is not None else dict(STATIC_PRICING)

    @property
    def name(self) -> str:
        return "static"

    def get_pricing(self, model: str) -> ModelPricing:
        tier = match_static_tier(model or "")
        return self._table.get(tier, STATIC_PRICING[DEFAULT_TIER])


class RemotePricingSource:
    """LiteLLM price table fetched over HTTP.

    The table is loaded at most once per instance. A JSON cache file younger
    than ``cache_max_age`` seconds is used instead of the network; after a
    failed fetch a stale cache file is still preferred to nothing.
    """

    _DATE_SUFFIX_RE = re.compile(r"-\d{8}$")

    def __init__(
        self,
        *,
        url: str = LITELLM_PRICING_URL,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        cache_path: Path | None = None,
        cache_max_age: float = DEFAULT_CACHE_MAX_AGE,
        client: httpx.Client | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._cache_path = cache_path
        self._cache_max_age = cache_max_age
        self._client = client
        self._lock = threading.Lock()
        self._table: dict[str, ModelPricing] | None = None
        self._loaded = False

    @property
    def name(self) -> str:
        return "litellm"

    def get_pricing(self, model: str) -> ModelPricing | None:
        table = self.load()
        if not table:
            return None
        for candidate in self._candidates(model):
            pricing = table.get(candidate)
            if pricing is not None:
                return pricing
        return None

    def load(self) -> dict[str, ModelPricing]:
        """Return the parsed price table, fetching it on first use."""
        with self._lock:
            if not self._loaded:
                self._table = self._load_table()
                self._loaded = True
            return self._table or {}

    def _candidates(self, model: str) -> list[str]:
        stripped = self._DATE_SUFFIX_RE.sub("", model)
        names = [model, model.lower(), stripped]
        candidates: list[str] = []
        for name in names:
            for variant in (name, f"anthropic/{name}"):
                if variant not in candidates:
                    candidates.append(variant)
        return candidates

    def _load_table(self) -> dict[str, ModelPricing] | None:
        cached = self._read_cache(fresh_only=True)
        if cached is not None:
            logger.debug(f"using cached pricing: {self._cache_path}")
            return parse_litellm_table(cached)
        try:
            raw = self._fetch()
        except PricingUnavailableError as exc:
            logger.warning(f"pricing fetch failed, using fallback: {exc}")
            stale = self._read_cache(fresh_only=False)
            if stale is None:
                return None
            logger.warning("using stale cached pricing data")
            return parse_litellm_table(stale)
        self._write_cache(raw)
        return parse_litellm_table(raw)

    def _fetch(self) -> dict[str, Any]:
        logger.debug(f"fetching pricing: {self._url}")
        try:
            if self._client is not None:
                body = self._download(self._client)
            else:
                with httpx.Client(timeout=self._timeout) as client:
                    body = self._download(client)
            data = json.loads(body)
        except (httpx.HTTPError, ValueError, RecursionError) as exc:
            raise PricingUnavailableError(str(exc) or type(exc).__name__) from exc
        if not isinstance(data, dict):
            message = "pricing payload is not a JSON object"
            raise PricingUnavailableError(message)
        return data

    def _download(self, client: httpx.Client) -> bytes:
        # httpx timeouts are per phase; this bounds the whole transfer
        deadline = time.monotonic() + self._timeout
        chunks: list[bytes] = []
        with client.stream("GET", self._url, timeout=self._timeout) as resp:
            resp.raise_for_status()
            for chunk in resp.iter_bytes():
                if time.monotonic() > deadline:
                    message = f"pricing fetch exceeded {self._timeout:g}s"
                    raise PricingUnavailableError(message)
                chunks.append(chunk)
        return b"".join(chunks)

    def _read_cache(self, *, fresh_only: bool) -> dict[str, Any] | None:
        if self._cache_path is None:
            return None
        try:
            payload = json.loads(self._cache_path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
            return None
        if fresh_only:
            saved_at = payload.get("timestamp")
            if not isinstance(saved_at, int | float):
                return None
            if time.time() - saved_at >= self._cache_max_age:
                return None
        return payload["data"]

    def _write_cache(self, data: dict[str, Any]) -> None:
        if self._cache_path is None:
            return
        payload = {
            "timestamp": time.time(),
            "version": CACHE_FORMAT_VERSION,
            "data": data,
        }
        try:
            self._cache_path.parent.mkdir(parents=True, exist_ok=True)
            self._cache_path.write_text(json.dumps(payload), encoding="utf-8")
        except OSError as exc:
            logger.warning(f"failed to write pricing cache {self._cache_path}: {exc}")


def parse_litellm_table(data: Mapping[str, Any]) -> dict[str, ModelPricing]:
    """Convert LiteLLM per-token prices into per-million ``ModelPricing``."""
    table: dict[str, ModelPricing] = {}
    for name, entry in data.items():
        if not isinstance(entry, Mapping):
            continue
        input_cost = _as_rate(entry.get("input_cost_per_token"))
        output_cost = _as_rate(entry.get("output_cost_per_token"))
        if input_cost is None or output_cost is None:
            continue
        table[name] = ModelPricing(
            input=input_cost,
            output=output_cost,
            cache_creation=_as_rate(entry.get("cache_creation_input_token_cost"))
            or 0.0,
            cache_read=_as_rate(entry.get("cache_read_input_token_cost")) or 0.0,
        )
    return table


def _as_rate(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    if value < 0:
        return None
    return float(value) * TOKENS_PER_UNIT


class TieredPricingSource:
    """Consult ``primary`` first and ``fallback`` when it has no answer."""

    def __init__(self, primary: PricingSource, fallback: PricingSource) -> None:
        self.primary = primary
        self.fallback = fallback

    @property
    def name(self) -> str:
        return f"{self.primary.name}+{self.fallback.name}"

    def get_pricing(self, model: str) -> ModelPricing | None:
        pricing, _ = self.resolve(model)
        return pricing

    def resolve(self, model: str) -> tuple[ModelPricing | None, str]:
        """Return the pricing and the name of the tier that supplied it."""
        pricing = self.primary.get_pricing(model)
        if pricing is not None:
            return pricing, self.primary.name
        return self.fallback.get_pricing(model), self.fallback.name


class CostCalculator:
    """Compute the dollar cost of a message from its model and tokens."""

    def __init__(self, source: PricingSource | None = None) -> None:
        self.source: PricingSource = source or StaticPricingSource()
        self._default = StaticPricingSource()

    def lookup(self, model: str) -> tuple[ModelPricing, str]:
        """Return the rates used for ``model`` and the source that supplied them."""
        if isinstance(self.source, TieredPricingSource):
            pricing, origin = self.source.resolve(model)
        else:
            pricing, origin = self.source.get_pricing(model), self.source.name
        if pricing is None:
            return self._default.get_pricing(model), self._default.name
        return pricing, origin

    def cost(self, model: str, usage: TokenUsage) -> float:
        pricing, _ = self.lookup(model)
        return pricing.cost(usage)


def build_pricing_source(
    *,
    offline: bool = False,
    timeout: float = DEFAULT_FETCH_TIMEOUT,
    cache_path: Path | None = DEFAULT_CACHE_PATH,
) -> PricingSource:
    """Return the static table when offline, otherwise remote then static."""
    static = StaticPricingSource()
    if offline:
        return static
    remote = RemotePricingSource(timeout=timeout, cache_path=cache_path)
    return TieredPricingSource(remote, static)
