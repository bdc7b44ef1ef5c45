"""Prompt templates and the builder that fills them from a user profile."""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Tuple

from subconic.api.schemas.plan import UserProfile

NOT_SPECIFIED = "Not specified"
DEFAULT_LANGUAGE = "en"

FORMAT_STRUCTURED = "structured"
FORMAT_SECTIONED = "sectioned"

SECTION_DELIMITER = "###"


@dataclass(frozen=True)
class PromptTemplate:
    """A prompt body plus the output contract it asks the model to honour."""

    name: str
    format: str
    body: str
    required_fields: Tuple[str, ...]


STRUCTURED_BODY = """
You are SUBCONIC AI.

Generate ONLY valid JSON.
No markdown.
No explanation.
No extra text.

Return JSON in EXACT structure below.

{{
  "mainGoal": {{
    "goal": "",
    "deadline": "",
    "committed": true
  }},

  "planMeta": {{
    "planGoal": "",
    "benefits": [],
    "whyThisWorks": []
  }},

  "currentPlan": {{
    "brainprogram": {{
      "morning": "",
      "night": ""
    }},

    "burningDesires": [],
    "affirmations": [],

    "dailyRoutine": {{
      "day1": [],
      "day2": [],
      "day3": [],
      "day4": [],
      "day5": [],
      "day6": [],
      "day7": []
    }}
  }}
}}

User Data:
Goal: {goal}
Deadline: {deadline}
Committed: {committed}
Knowledge: {know_how}
Weekly Goal: {weekly_goal}
Method: {how_to_achieve}
Daily Hours: {daily_hours}
Time Window: {start_time} to {end_time}
Additional Details: {additional_details}

Rules:
- Write every text value in this language: {language}
- brainprogram: emotional, subconscious programming
- burningDesires: exactly 7 powerful desire lines
- affirmations: exactly 5 identity based
- dailyRoutine: time based actionable tasks that fit the time window and daily hours
- planMeta.benefits: 4-5 clear benefits
- planMeta.whyThisWorks: psychological + practical reasons
"""

SECTIONED_BODY = """
You are SUBCONIC AI, a calm coach who programs the subconscious mind for achievement.

Write the plan as plain markdown sections. Start every section with a heading line
that begins with ### followed by the exact section name below, in this order:

### PLAN GOAL
One sentence restating the goal as a commitment.
### BENEFITS
4-5 bullet points.
### WHY THIS WORKS
Bullet points mixing psychological and practical reasons.
### MORNING PROGRAM
A short emotional script to read after waking up.
### NIGHT PROGRAM
A short emotional script to read before sleep.
### BURNING DESIRES
Exactly 7 bullet points, one powerful desire line each.
### AFFIRMATIONS
Exactly 5 identity based bullet points.
### DAILY GUIDE
A time based guide for a typical day that fits the time window.

Do not add any other sections. Do not wrap the answer in code fences.

User Data:
Goal: {goal}
Deadline: {deadline}
Committed: {committed}
Knowledge: {know_how}
Weekly Goal: {weekly_goal}
Method: {how_to_achieve}
Daily Hours: {daily_hours}
Time Window: {start_time} to {end_time}
Additional Details: {additional_details}
Language: {language}
"""

_COMMON_REQUIRED = (
    "mainGoal",
    "planMeta.planGoal",
    "planMeta.benefits",
    "planMeta.whyThisWorks",
    "currentPlan.brainprogram.morning",
    "currentPlan.brainprogram.night",
    "currentPlan.burningDesires",
    "currentPlan.affirmations",
)

PROMPT_TEMPLATES: Dict[str, PromptTemplate] = {
    "structured": PromptTemplate(
        name="structured",
        format=FORMAT_STRUCTURED,
        body=STRUCTURED_BODY,
        required_fields=_COMMON_REQUIRED + ("currentPlan.dailyRoutine",),
    ),
    "sectioned": PromptTemplate(
        name="sectioned",
        format=FORMAT_SECTIONED,
        body=SECTIONED_BODY,
        required_fields=tuple(field for field in _COMMON_REQUIRED if field != "mainGoal")
        + ("currentPlan.dailyGuide",),
    ),
}


def get_prompt_template(name: str, required_fields: Optional[List[str]] = None) -> PromptTemplate:
    """Look up a registered template, optionally overriding its required fields."""
    try:
        template = PROMPT_TEMPLATES[name.strip().lower()]
    except KeyError:
        known = ", ".join(sorted(PROMPT_TEMPLATES))
        raise ValueError(f"Unknown prompt template '{name}' (expected one of: {known})") from None
    if required_fields:
        template = replace(template, required_fields=tuple(required_fields))
    return template


def build_prompt(profile: UserProfile, template: PromptTemplate) -> str:
    """Fill the template with profile values; absent fields become placeholders."""
    values = {
        "goal": profile.goal,
        "deadline": _display(profile.deadline),
        "committed": _display(profile.is_committed),
        "know_how": _display(profile.know_how),
        "weekly_goal": _display(profile.weekly_goal),
        "how_to_achieve": _display(profile.how_to_achieve),
        "daily_hours": _display(profile.daily_hours),
        "start_time": _display(profile.start_time),
        "end_time": _display(profile.end_time),
        "additional_details": _display(profile.additional_details),
        "language": _display(profile.language, DEFAULT_LANGUAGE),
    }
    return template.body.format(**values)


def _display(value: Any, default: str = NOT_SPECIFIED) -> str:
    if value is None:
        return default
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    text = str(value).strip()
    return text or default
