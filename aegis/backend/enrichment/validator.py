"""
enrichment/validator.py

Validates and parses the raw text output from the classifier into Corrections.

Accepted shapes:
    [{"id": ..., "risk_score": ..., "analysis": ...}, ...]
    {"results": [ ...same... ]}      (any single list-valued key is accepted)

Malformed elements are dropped one by one; only an unparseable or
wrongly-shaped document rejects the whole response (returns None).

Out-of-range risk scores are clamped into [0, 100], not rejected.
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Collection

from ..models import MAX_RISK, MIN_RISK, Correction

logger = logging.getLogger(__name__)

_MAX_ANALYSIS_LEN = 500
_MAX_ID_LEN = 64


def validate_classification_response(
    raw_text: str,
    known_ids: Collection[str] | None = None,
) -> list[Correction] | None:
    """
    Parse raw classifier output into a list of Corrections.

    Args:
        raw_text:  Model output, possibly fenced or with preamble text.
        known_ids: If given, corrections for any other id are dropped.

    Returns None if the output is not a JSON array of results.
    """
    if not raw_text or not raw_text.strip():
        logger.warning("Classifier returned empty response")
        return None

    data = _extract_json(raw_text.strip())
    if data is None:
        logger.warning("Classifier output is not valid JSON | raw=%r", raw_text[:200])
        return None

    items = _unwrap(data)
    if items is None:
        logger.warning("Classifier output has no result list: %r", type(data).__name__)
        return None

    corrections: list[Correction] = []
    seen: set[str] = set()
    for item in items:
        correction = _parse_item(item)
        if correction is None:
            continue
        if known_ids is not None and correction.id not in known_ids:
            logger.debug("Dropping correction for id %r not in request batch", correction.id)
            continue
        if correction.id in seen:
            continue
        seen.add(correction.id)
        corrections.append(correction)

    if len(corrections) < len(items):
        logger.info(
            "Classifier response: kept %d of %d result(s)", len(corrections), len(items)
        )
    return corrections


def clamp_risk(value: float) -> int:
    """Round half-up and clamp into [MIN_RISK, MAX_RISK]."""
    rounded = int(math.floor(value + 0.5))
    clamped = max(MIN_RISK, min(MAX_RISK, rounded))
    if clamped != rounded:
        logger.debug("risk_score %r out of range — clamped to %d", value, clamped)
    return clamped


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _extract_json(text: str) -> Any | None:
    # Strip markdown code fences if present: ```json ... ``` or ``` ... ```
    fence_match = re.search(r"```(?:json)?\s*([\s\S]+?)\s*```", text)
    if fence_match:
        text = fence_match.group(1)

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    # Preamble text: take the outermost array or object, whichever opens first
    starts = [i for i in (text.find("["), text.find("{")) if i != -1]
    if not starts:
        return None
    start = min(starts)
    end = text.rfind("]" if text[start] == "[" else "}")
    if end <= start:
        return None
    try:
        return json.loads(text[start:end + 1])
    except json.JSONDecodeError:
        return None


def _unwrap(data: Any) -> list | None:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        lists = [v for v in data.values() if isinstance(v, list)]
        if len(lists) == 1:
            return lists[0]
        # A single bare result object
        if "id" in data:
            return [data]
    return None


def _parse_item(item: Any) -> Correction | None:
    if not isinstance(item, dict):
        logger.debug("Dropping non-object result %r", item)
        return None

    packet_id = item.get("id")
    score = item.get("risk_score")
    analysis = item.get("analysis")

    if not isinstance(packet_id, str) or not packet_id.strip():
        logger.debug("Dropping result without a string id: %r", item)
        return None
    if isinstance(score, bool) or not isinstance(score, (int, float)) or not math.isfinite(score):
        logger.debug("Dropping result %r: non-numeric risk_score %r", packet_id, score)
        return None
    if not isinstance(analysis, str) or not analysis.strip():
        logger.debug("Dropping result %r: missing analysis", packet_id)
        return None

    return Correction(
        id=packet_id.strip()[:_MAX_ID_LEN],
        risk_score=clamp_risk(score),
        analysis=analysis.strip()[:_MAX_ANALYSIS_LEN],
    )
