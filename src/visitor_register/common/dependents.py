"""Encoding and decoding of dependents lists.

Read queries aggregate dependents into a JSON array column; ``decode_dependents``
is the only place that column is parsed.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Optional

from ..core.exceptions import ValidationError
from ..visits.model import NewDependent

logger = logging.getLogger(__name__)


def decode_dependents(raw: Any) -> list[dict]:
    """Decode an aggregated dependents column. Never raises; bad data yields []."""

    if raw is None or raw == "":
        return []
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            logger.warning("Could not parse dependents JSON %r: %s", raw, e)
            return []
    if not isinstance(raw, list):
        logger.warning("Dependents JSON is not a list: %r", raw)
        return []

    out: list[dict] = []
    for item in raw:
        if not isinstance(item, dict) or not item.get("full_name"):
            continue
        out.append({"full_name": item["full_name"], "age": _coerce_age(item.get("age"))})
    return out


def _coerce_age(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _to_new_dependent(item: Any) -> NewDependent:
    if not isinstance(item, dict):
        raise ValidationError("Each dependent must be an object with a full_name.")
    name = str(item.get("full_name") or "").strip()
    if not name:
        raise ValidationError("Each dependent must have a full_name.")
    return NewDependent(full_name=name, age=_coerce_age(item.get("age")))


def parse_dependents_payload(raw: Any, *, lenient: bool = False) -> list[NewDependent]:
    """Parse dependents sent by a client.

    Accepts a list or a JSON-encoded list. With ``lenient`` a non-JSON string is
    taken as the name of a single dependent, the way returning visitors type it.
    """

    if raw is None or raw == "":
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            if lenient:
                logger.info("Dependents value is not JSON, using it as a single name")
                return [NewDependent(full_name=raw.strip(), age=None)] if raw.strip() else []
            raise ValidationError("Invalid dependents JSON format.")
    if not isinstance(raw, list):
        raise ValidationError("Dependents must be a list.")
    return [_to_new_dependent(item) for item in raw]
