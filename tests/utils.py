from __future__ import annotations

import json
import os
import re
import time
from typing import Any, Dict, List, Optional, Tuple

import requests


DEFAULT_TIMEOUT = float(os.getenv("FOOD_SEARCH_TEST_HTTP_TIMEOUT_SECS", "8.0"))
RETRY_SECS = float(os.getenv("FOOD_SEARCH_TEST_RETRY_SECS", "1.0"))
RETRY_MAX = int(os.getenv("FOOD_SEARCH_TEST_RETRY_MAX", "30"))


class HttpError(RuntimeError):
    pass


def _join(base: str, path: str) -> str:
    if not base:
        raise ValueError("base url is empty")
    if not path.startswith("/"):
        path = "/" + path
    return base.rstrip("/") + path


def http_post_json(url: str, payload: Dict[str, Any], *, timeout: float = DEFAULT_TIMEOUT) -> Tuple[int, Any, str]:
    r = requests.post(url, json=payload, timeout=timeout)
    text = r.text or ""
    try:
        body = r.json()
    except ValueError:
        body = None
    return r.status_code, body, text


def wait_for_health(base_url: str, health_path: str = "/health") -> None:
    url = _join(base_url, health_path)
    last_err: Optional[str] = None
    for _ in range(RETRY_MAX):
        try:
            r = requests.get(url, timeout=DEFAULT_TIMEOUT)
            if r.status_code < 400:
                return
            last_err = f"{r.status_code}: {r.text[:200]}"
        except requests.RequestException as e:
            last_err = str(e)
        time.sleep(RETRY_SECS)
    raise HttpError(f"Service not healthy at {url}. Last error: {last_err}")


def search_with_retry(base_url: str, payload: Dict[str, Any]) -> Tuple[int, Any, str]:
    """
    POST /search, backing off while the model is still loading (503).
    """
    url = _join(base_url, "/search")
    status, body, raw = http_post_json(url, payload)
    for attempt in range(1, RETRY_MAX):
        if status != 503:
            break
        time.sleep(RETRY_SECS * attempt)
        status, body, raw = http_post_json(url, payload)
    return status, body, raw


def normalize_name(s: str) -> str:
    s = re.sub(r"[^a-z0-9\s]", " ", s.lower())
    return re.sub(r"\s+", " ", s).strip()


def name_matches(candidate: str, expected: str) -> bool:
    """Loose match: any word of 3+ letters from expected appears in candidate."""
    cand = normalize_name(candidate)
    tokens = [t for t in normalize_name(expected).split(" ") if len(t) >= 3]
    return any(t in cand for t in tokens)


def reciprocal_rank_at_k(results: List[Dict[str, Any]], expected: str, k: int) -> float:
    for i, item in enumerate(results[:k]):
        name = item.get("name")
        if isinstance(name, str) and name_matches(name, expected):
            return 1.0 / (i + 1)
    return 0.0


def load_mrr_pairs(path: str, limit: int = 500) -> List[Tuple[str, str]]:
    """
    (search term, expected food) pairs from a JSON list of analytics events
    with "searchTerm" and "customEvent:food" keys. Repeated terms are dropped.
    """
    with open(path, encoding="utf-8") as f:
        events = json.load(f)

    pairs: List[Tuple[str, str]] = []
    seen = set()
    for e in events:
        term = str(e.get("searchTerm") or "").strip()
        expected = str(e.get("customEvent:food") or "").strip()
        if len(term) >= 3 and len(expected) >= 3 and term.lower() not in seen:
            seen.add(term.lower())
            pairs.append((term, expected))
        if len(pairs) >= limit:
            break
    return pairs
