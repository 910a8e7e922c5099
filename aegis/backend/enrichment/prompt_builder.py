"""
enrichment/prompt_builder.py

Builds the classifier prompt for one batch of packets.

Every Packet field except `analysis` is serialized; all values come from
closed enums or integers produced by the synthesizer, so no free text from
outside reaches the model apart from the packet ids.
"""

from __future__ import annotations

import json
import re
from typing import Sequence

from ..models import Packet

_MAX_BATCH = 32
_ID_RE = re.compile(r"[^0-9A-Za-z_-]")

SYSTEM_PROMPT = """\
You are a network intrusion-detection analyst.
You will receive a JSON list of observed network packets.
For each packet provide a refined risk_score (integer 0-100) and a brief
one-sentence analysis explaining why it is a threat or why it is safe.

RULES:
- Respond ONLY with valid JSON matching the schema below.
- No text before or after the JSON object.
- Use the packet ids exactly as given; do not invent ids.
- Base analysis ONLY on the provided fields.

OUTPUT SCHEMA (respond with exactly this structure):
{
  "results": [
    {"id": "<packet id>", "risk_score": <0-100>, "analysis": "<one sentence>"}
  ]
}"""

_USER_TEMPLATE = """\
PACKET BATCH — {count} packet(s)

{packets_json}

Provide your classification as JSON."""


def _serialize(packet: Packet) -> dict:
    d = packet.to_dict()
    d.pop("analysis", None)
    d["id"] = _ID_RE.sub("", d["id"])[:64]
    return d


def build_prompt(batch: Sequence[Packet]) -> tuple[str, str]:
    """
    Build (system_prompt, user_prompt) for a batch.

    Batches larger than the classifier budget are cut; packets past the
    cut simply receive no correction.
    """
    packets = [_serialize(p) for p in list(batch)[:_MAX_BATCH]]
    user_prompt = _USER_TEMPLATE.format(
        count=len(packets),
        packets_json=json.dumps(packets, indent=2),
    )
    return SYSTEM_PROMPT, user_prompt
