# Overview: Service-layer AI advisory; Gemini-backed inventory insights refreshed in the background.

"""
Advisory Service

Produces a short free-text insight plus an ordered list of recommendations
from a snapshot of the catalog (and recent sales). The output is advisory
only: nothing here reads or writes catalog, cart or ledger state, and every
failure is contained as AdvisoryUnavailableError.

AdvisoryBoard runs fetches on an executor. Each fetch is keyed by the
catalog version it was built from; when a newer snapshot is requested the
older fetch is cancelled if it has not started yet, and its result is
discarded if it has.
"""
from __future__ import annotations

import hashlib
import json
import logging
import re
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from google import genai
from google.genai import types
from flask import current_app

from ..domain import SALE, Product, Transaction
from supermart.time_utils import to_utc_z, utcnow

logger = logging.getLogger(__name__)

ADVISORY_BOARD_KEY = "supermart.advisory"

STATUS_IDLE = "idle"
STATUS_LOADING = "loading"
STATUS_READY = "ready"

# Prompt context limits
MAX_PROMPT_PRODUCTS = 200
MAX_PROMPT_TRANSACTIONS = 20

SYSTEM_INSTRUCTION = (
    "You are a senior inventory management analyst for a single supermarket. "
    "You compare stock levels against minimum thresholds, prices and recent "
    "sales to give practical business advice. Respond strictly in JSON."
)

INSIGHT_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "insight": types.Schema(type=types.Type.STRING),
        "recommendations": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(type=types.Type.STRING),
        ),
    },
    required=["insight", "recommendations"],
)

_FENCED_JSON_RE = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```", re.IGNORECASE)
_BARE_JSON_RE = re.compile(r"(\{[\s\S]*\})")


class AdvisoryUnavailableError(Exception):
    """Raised when insights cannot be produced (no key, API error, bad output)."""
    pass


@dataclass(frozen=True)
class Insight:
    insight: str
    recommendations: tuple[str, ...]
    generated_at: datetime = field(default_factory=utcnow)
    catalog_version: str | None = None

    def to_dict(self) -> dict:
        return {
            "insight": self.insight,
            "recommendations": list(self.recommendations),
            "generated_at": to_utc_z(self.generated_at),
            "catalog_version": self.catalog_version,
        }


def _money(cents: int) -> str:
    return f"{cents / 100:.2f}"


def build_inventory_prompt(
    products: Iterable[Product],
    transactions: Iterable[Transaction] = (),
    stats=None,
    store_name: str | None = None,
) -> str:
    """Render the catalog snapshot (and recent sales) as the model prompt."""
    products = list(products)[:MAX_PROMPT_PRODUCTS]
    sales = [t for t in transactions if t.type == SALE][:MAX_PROMPT_TRANSACTIONS]

    lines = [
        f"Analyze the inventory of {store_name or 'the store'} and provide a concise "
        "summary of overall inventory health (insight) and 3-5 specific, actionable "
        "recommendations for the manager. Focus on stock-outs, low inventory and "
        "sales opportunities. SKUs are formatted as FirstLetter + LastLetter + sequence.",
        "",
        'Return a JSON object: {"insight": string, "recommendations": [string, ...]}',
        "",
    ]

    if stats is not None:
        lines.append(
            f"Summary: {stats.total_items} products, stock value {_money(stats.total_value_cents)}, "
            f"{stats.low_stock_count} low stock, {stats.out_of_stock_count} out of stock."
        )
        lines.append("")

    lines.append("Current inventory:")
    for p in products:
        status = "OUT" if p.is_out_of_stock else ("LOW" if p.is_low_stock else "OK")
        lines.append(
            f"- {p.name} | SKU {p.sku} | qty {p.quantity} | min {p.min_threshold} "
            f"| price {_money(p.price_cents)} | cost {_money(p.cost_price_cents)} | {status}"
        )

    if sales:
        lines.append("")
        lines.append("Recent sales (newest first):")
        for t in sales:
            items = ", ".join(f"{i.quantity}x {i.name}" for i in t.items)
            lines.append(f"- {to_utc_z(t.timestamp)} total {_money(t.total_cents)}: {items}")

    return "\n".join(lines)


def parse_insight_payload(text: str | None) -> tuple[str, tuple[str, ...]]:
    """
    Extract (insight, recommendations) from model output.

    Accepts bare JSON or JSON wrapped in markdown code fences.
    """
    raw = (text or "").strip()
    if not raw:
        raise AdvisoryUnavailableError("Empty response from Gemini")

    m = _FENCED_JSON_RE.search(raw)
    if m:
        raw = m.group(1)
    else:
        m2 = _BARE_JSON_RE.search(raw)
        raw = m2.group(1) if m2 else raw

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        raise AdvisoryUnavailableError(f"Gemini returned invalid JSON: {e}") from e

    if not isinstance(parsed, dict):
        raise AdvisoryUnavailableError("Gemini output is not a JSON object")
    for key in ("insight", "recommendations"):
        if key not in parsed:
            raise AdvisoryUnavailableError(f"Missing field from AI output: {key}")

    recommendations = parsed["recommendations"]
    if not isinstance(recommendations, list):
        raise AdvisoryUnavailableError("recommendations must be a list")

    return (
        str(parsed["insight"]).strip(),
        tuple(str(r).strip() for r in recommendations if str(r).strip()),
    )


class GeminiAdvisor:
    """Text-generation collaborator backed by the google-genai client."""

    def __init__(self, api_key: str | None, model_name: str = "gemini-2.5-flash"):
        self.api_key = api_key
        self.model_name = model_name
        self._client = None

    def _get_client(self):
        if not self.api_key:
            raise AdvisoryUnavailableError("GEMINI_API_KEY not configured")
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def generate(self, prompt: str) -> Insight:
        client = self._get_client()
        try:
            response = client.models.generate_content(
                model=self.model_name,
                contents=prompt,
                config=types.GenerateContentConfig(
                    system_instruction=SYSTEM_INSTRUCTION,
                    response_mime_type="application/json",
                    response_schema=INSIGHT_SCHEMA,
                ),
            )
            text = getattr(response, "text", None)
        except Exception as e:
            raise AdvisoryUnavailableError(f"Gemini request failed: {e}") from e

        insight, recommendations = parse_insight_payload(text)
        return Insight(insight=insight, recommendations=recommendations)


def catalog_version(products: Iterable[Product]) -> str:
    """Stable fingerprint of the fields the advisory prompt depends on."""
    digest = hashlib.sha1()
    for p in sorted(products, key=lambda p: p.id):
        digest.update(
            f"{p.id}|{p.name}|{p.quantity}|{p.price_cents}|{p.cost_price_cents}|"
            f"{p.min_threshold}|{p.last_updated.isoformat()}\n".encode("utf-8")
        )
    return digest.hexdigest()[:16]


class AdvisoryBoard:
    """
    Holds the current insight and schedules refreshes.

    Only the most recently requested catalog version may publish. Failures
    are logged and leave the current insight as it was.
    """

    def __init__(self, advisor, executor: Executor):
        self.advisor = advisor
        self.executor = executor
        self._lock = threading.RLock()
        self._insight: Insight | None = None
        self._latest_version: str | None = None
        self._future: Future | None = None
        self._last_error: str | None = None

    def request_refresh(
        self,
        products: list[Product],
        transactions: list[Transaction] = (),
        stats=None,
        store_name: str | None = None,
    ) -> str:
        version = catalog_version(products)
        with self._lock:
            pending = self._future is not None and not self._future.done()
            published = self._insight is not None and self._insight.catalog_version == version
            if version == self._latest_version and (pending or published):
                return version

            if self._future is not None and not self._future.done():
                if self._future.cancel():
                    logger.debug("Cancelled superseded advisory fetch for %s", self._latest_version)

            prompt = build_inventory_prompt(products, transactions, stats, store_name)
            self._latest_version = version
            self._last_error = None
            self._future = self.executor.submit(self._fetch, version, prompt)
        return version

    def _fetch(self, version: str, prompt: str) -> None:
        try:
            result = self.advisor.generate(prompt)
        except AdvisoryUnavailableError as e:
            logger.warning("Advisory fetch for catalog %s failed: %s", version, e)
            with self._lock:
                if version == self._latest_version:
                    self._last_error = str(e)
            return
        except Exception as e:
            logger.exception("Advisory fetch for catalog %s raised unexpectedly", version)
            with self._lock:
                if version == self._latest_version:
                    self._last_error = str(e)
            return

        with self._lock:
            if version != self._latest_version:
                logger.info("Discarding stale advisory result for catalog %s", version)
                return
            self._insight = Insight(
                insight=result.insight,
                recommendations=tuple(result.recommendations),
                generated_at=utcnow(),
                catalog_version=version,
            )

    def current(self) -> Insight | None:
        with self._lock:
            return self._insight

    def status(self) -> str:
        with self._lock:
            if self._future is not None and not self._future.done():
                return STATUS_LOADING
            return STATUS_READY if self._insight is not None else STATUS_IDLE

    def to_dict(self) -> dict:
        insight = self.current()
        with self._lock:
            last_error = self._last_error
            latest = self._latest_version
        return {
            "status": self.status(),
            "insight": insight.to_dict() if insight else None,
            "is_stale": bool(insight and latest and insight.catalog_version != latest),
            "last_error": last_error,
        }

    def shutdown(self) -> None:
        self.executor.shutdown(wait=False, cancel_futures=True)


def create_advisory_board(config) -> AdvisoryBoard:
    advisor = GeminiAdvisor(config.get("GEMINI_API_KEY"), config.get("GEMINI_MODEL", "gemini-2.5-flash"))
    executor = ThreadPoolExecutor(
        max_workers=max(1, int(config.get("ADVISORY_WORKERS", 1))),
        thread_name_prefix="advisory",
    )
    return AdvisoryBoard(advisor, executor)


def get_advisory_board() -> AdvisoryBoard:
    return current_app.extensions[ADVISORY_BOARD_KEY]
