"""Turn raw model text into a GeneratedPlan.

Two phases are kept apart: a tolerant scanner that finds the candidate payload
(code fences, surrounding prose, section headings) and a strict decoder that
only ever sees the located span.
"""
from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from pydantic import ValidationError

from subconic.api.schemas.plan import GeneratedPlan, UserProfile
from subconic.core.errors import NormalizationError
from subconic.services.prompt_builder import (
    FORMAT_SECTIONED,
    FORMAT_STRUCTURED,
    NOT_SPECIFIED,
    SECTION_DELIMITER,
    PromptTemplate,
)

_FENCE_RE = re.compile(r"^[ \t]*```[ \t]*(?:json)?[ \t]*$", re.IGNORECASE | re.MULTILINE)
_BULLET_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+")

# Checked in order; the first keyword found in a heading wins.
SECTION_ROUTES: List[Tuple[str, str]] = [
    ("benefit", "planMeta.benefits"),
    ("why", "planMeta.whyThisWorks"),
    ("morning", "currentPlan.brainprogram.morning"),
    ("night", "currentPlan.brainprogram.night"),
    ("desire", "currentPlan.burningDesires"),
    ("affirmation", "currentPlan.affirmations"),
    ("daily", "currentPlan.dailyGuide"),
    ("guide", "currentPlan.dailyGuide"),
    ("goal", "planMeta.planGoal"),
]

LIST_SECTIONS = {
    "planMeta.benefits",
    "planMeta.whyThisWorks",
    "currentPlan.burningDesires",
    "currentPlan.affirmations",
}


def strip_code_fences(text: str) -> str:
    """Remove ``` and ```json fence lines; backticks inside values are left alone."""
    return _FENCE_RE.sub("", text).strip()


def locate_json_span(text: str) -> Optional[str]:
    """Return the text between the first '{' and the last '}', inclusive."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        return None
    return text[start : end + 1]


def decode_payload(span: str) -> Dict[str, Any]:
    """Strictly decode a located span; it must hold a single JSON object."""
    try:
        decoded = json.loads(span)
    except json.JSONDecodeError as exc:
        raise NormalizationError(f"Model output is not valid JSON: {exc.msg} at position {exc.pos}", span) from exc
    if not isinstance(decoded, dict):
        raise NormalizationError("Model output JSON is not an object", span)
    return decoded


def extract_json_payload(raw_text: str) -> Dict[str, Any]:
    """Scan raw text for a JSON object and decode it."""
    span = locate_json_span(strip_code_fences(raw_text or ""))
    if span is None:
        raise NormalizationError("No JSON object found in model output", raw_text)
    try:
        return decode_payload(span)
    except NormalizationError as exc:
        exc.raw_text = raw_text
        raise


def split_sections(raw_text: str) -> Dict[str, Any]:
    """Route '###' delimited sections into a plan-shaped dict by heading keyword."""
    cleaned = strip_code_fences(raw_text or "")
    payload: Dict[str, Any] = {}
    for chunk in cleaned.split(SECTION_DELIMITER)[1:]:
        heading, _, body = chunk.partition("\n")
        target = _route_heading(heading)
        body = body.strip()
        if target is None or not body:
            continue
        value: Any = _bullet_lines(body) if target in LIST_SECTIONS else body
        _set_path(payload, target, value)
    if not payload:
        raise NormalizationError("No recognised sections found in model output", raw_text)
    return payload


def normalize(raw_text: str, profile: UserProfile, template: PromptTemplate) -> GeneratedPlan:
    """Convert raw model text into a plan that satisfies the template's required fields."""
    if template.format == FORMAT_STRUCTURED:
        payload = extract_json_payload(raw_text)
    elif template.format == FORMAT_SECTIONED:
        payload = split_sections(raw_text)
    else:
        raise ValueError(f"Unsupported template format '{template.format}'")

    missing = missing_required_fields(payload, template.required_fields)
    if missing:
        raise NormalizationError(f"Model output is missing required fields: {', '.join(missing)}", raw_text)

    enriched = _enrich(payload, profile)
    try:
        return GeneratedPlan.model_validate(enriched)
    except ValidationError as exc:
        raise NormalizationError(f"Model output has the wrong shape: {exc.error_count()} error(s)", raw_text) from exc


def missing_required_fields(payload: Dict[str, Any], required_fields: Tuple[str, ...] | List[str]) -> List[str]:
    """Return the dotted paths that are absent or null in payload."""
    return [path for path in required_fields if _get_path(payload, path) is None]


def _enrich(payload: Dict[str, Any], profile: UserProfile) -> Dict[str, Any]:
    plan = dict(payload)
    main_goal = plan.get("mainGoal")
    main_goal = dict(main_goal) if isinstance(main_goal, dict) else {}
    main_goal["goal"] = profile.goal
    if main_goal.get("deadline") is None:
        main_goal["deadline"] = profile.deadline or NOT_SPECIFIED
    if main_goal.get("committed") is None:
        main_goal["committed"] = profile.is_committed if profile.is_committed is not None else NOT_SPECIFIED
    plan["mainGoal"] = main_goal
    plan["id"] = uuid4()
    plan["createdAt"] = datetime.now(timezone.utc)
    return plan


def _route_heading(heading: str) -> Optional[str]:
    lowered = heading.strip().lower()
    for keyword, target in SECTION_ROUTES:
        if keyword in lowered:
            return target
    return None


def _bullet_lines(body: str) -> List[str]:
    items: List[str] = []
    for line in body.splitlines():
        text = _BULLET_RE.sub("", line).strip()
        if text:
            items.append(text)
    return items


def _get_path(payload: Dict[str, Any], path: str) -> Any:
    current: Any = payload
    for key in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def _set_path(payload: Dict[str, Any], path: str, value: Any) -> None:
    keys = path.split(".")
    current = payload
    for key in keys[:-1]:
        current = current.setdefault(key, {})
    current[keys[-1]] = value
