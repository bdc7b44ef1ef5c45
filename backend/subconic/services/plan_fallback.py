"""Deterministic plan used when the model cannot produce one."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from subconic.api.schemas.plan import GeneratedPlan, UserProfile
from subconic.services.prompt_builder import FORMAT_SECTIONED, NOT_SPECIFIED, PromptTemplate

BENEFIT_TEMPLATES = [
    "You wake up every day knowing exactly what moves {goal_focus} forward.",
    "Small daily wins build the confidence that {goal_focus} is already yours.",
    "Your focus sharpens because your mind stops negotiating with distractions.",
    "Consistent action turns {goal_focus} from a wish into a visible track record.",
    "You finish each day calmer, because progress is measured and real.",
]

WHY_TEMPLATES = [
    "Repeating the same emotional script morning and night trains the subconscious to treat {goal_focus} as familiar.",
    "Identity based affirmations make the behaviour feel like who you are, not something you force.",
    "Time boxed daily blocks remove decision fatigue so starting takes no willpower.",
    "A weekly rhythm with review days keeps effort sustainable and prevents burnout.",
]

DESIRE_TEMPLATES = [
    "I burn to achieve {goal_focus} and I feel it in every cell of my body.",
    "I want to prove to myself that I keep the promises I make.",
    "I desire the freedom and pride that come with {goal_focus}.",
    "I crave the moment I look back and see how far I have come.",
    "I want my daily actions to match the person I am becoming.",
    "I desire to be an example of discipline for the people around me.",
    "I am hungry for the deep calm of knowing I gave {goal_focus} everything.",
]

AFFIRMATION_TEMPLATES = [
    "I am the kind of person who achieves {goal_focus}.",
    "I am disciplined, focused, and consistent every single day.",
    "I am calm under pressure and I keep moving forward.",
    "I am worthy of the success that {goal_focus} brings.",
    "I am already becoming the person who has achieved my goal.",
]

MORNING_TEMPLATE = (
    "Sit up, breathe slowly three times, and picture yourself having already achieved {goal_focus}. "
    "Feel the pride and relief in your chest. Say your affirmations out loud, then name the one "
    "task today that moves {goal_focus} forward and commit to it before you touch your phone."
)

NIGHT_TEMPLATE = (
    "Before sleep, replay one moment today where you acted like the person who achieves {goal_focus}. "
    "Thank yourself for it. Read your burning desires slowly, then close your eyes and let your "
    "mind rehearse tomorrow's first step as if it is already done."
)

DAILY_ROUTINE_TEMPLATES: Dict[str, List[str]] = {
    "day1": [
        "Morning: 10 min brain programming and affirmations",
        "Block 1: write down the exact outcome for {goal_focus} and the first milestone",
        "Evening: night programming and one line of reflection",
    ],
    "day2": [
        "Morning: 10 min brain programming and affirmations",
        "Block 1: focused work session on the first milestone of {goal_focus}",
        "Evening: night programming and note one lesson",
    ],
    "day3": [
        "Morning: 10 min brain programming and affirmations",
        "Block 1: practice the hardest part of {goal_focus} for a full session",
        "Evening: night programming and plan tomorrow's block",
    ],
    "day4": [
        "Morning: 10 min brain programming and affirmations",
        "Block 1: focused work session, then remove one obstacle slowing {goal_focus}",
        "Evening: night programming and celebrate one small win",
    ],
    "day5": [
        "Morning: 10 min brain programming and affirmations",
        "Block 1: deep work session pushing {goal_focus} forward",
        "Evening: night programming and read your burning desires",
    ],
    "day6": [
        "Morning: 10 min brain programming and affirmations",
        "Block 1: review the week's progress toward {goal_focus} and adjust the plan",
        "Evening: night programming and gratitude note",
    ],
    "day7": [
        "Morning: 10 min brain programming and affirmations",
        "Light session: rest, recover, and visualise the next week of {goal_focus}",
        "Evening: night programming and set next week's weekly goal",
    ],
}

DAILY_GUIDE_TEMPLATE = (
    "Start each day with 10 minutes of brain programming and your affirmations. "
    "Protect one focused block for {goal_focus} at the same time every day and work on a single, "
    "clearly defined task. Close the day with the night program and one line of reflection. "
    "Use day 6 to review progress and day 7 to recover and plan the next week."
)


def build_fallback_plan(profile: UserProfile, template: Optional[PromptTemplate] = None) -> GeneratedPlan:
    """Return a complete plan built only from profile.goal; never calls the network."""
    goal = profile.goal.strip()
    goal_focus = _goal_focus_phrase(goal)
    current_plan: Dict[str, Any] = {
        "brainprogram": {
            "morning": _fill(MORNING_TEMPLATE, goal_focus),
            "night": _fill(NIGHT_TEMPLATE, goal_focus),
        },
        "burningDesires": [_fill(line, goal_focus) for line in DESIRE_TEMPLATES],
        "affirmations": [_fill(line, goal_focus) for line in AFFIRMATION_TEMPLATES],
    }
    if template is not None and template.format == FORMAT_SECTIONED:
        current_plan["dailyGuide"] = _fill(DAILY_GUIDE_TEMPLATE, goal_focus)
    else:
        current_plan["dailyRoutine"] = {
            day: [_fill(task, goal_focus) for task in tasks] for day, tasks in DAILY_ROUTINE_TEMPLATES.items()
        }

    return GeneratedPlan.model_validate(
        {
            "id": uuid4(),
            "createdAt": datetime.now(timezone.utc),
            "mainGoal": {"goal": goal, "deadline": NOT_SPECIFIED, "committed": True},
            "planMeta": {
                "planGoal": f"Achieve {goal_focus} through daily subconscious programming and focused action.",
                "benefits": [_fill(line, goal_focus) for line in BENEFIT_TEMPLATES],
                "whyThisWorks": [_fill(line, goal_focus) for line in WHY_TEMPLATES],
            },
            "currentPlan": current_plan,
        }
    )


def _fill(text: str, goal_focus: str) -> str:
    return text.format(goal_focus=goal_focus)


def _goal_focus_phrase(goal: str) -> str:
    tokens = goal.replace("\n", " ").split()
    snippet = " ".join(tokens[:8]).strip()
    return snippet or "your goal"
