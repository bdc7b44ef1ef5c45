"""Pydantic schemas for the plan generation API."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that speaks camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserProfile(CamelModel):
    goal: str = Field(..., description="What the user wants to achieve.")
    deadline: Optional[str] = None
    is_committed: Optional[Union[bool, str]] = None
    know_how: Optional[str] = Field(default=None, description="Knowledge or awareness level.")
    weekly_goal: Optional[str] = None
    how_to_achieve: Optional[str] = Field(default=None, description="Preferred method or approach.")
    daily_hours: Optional[Union[float, str]] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    language: str = "en"
    additional_details: Optional[str] = None

    @field_validator("goal", mode="before")
    @classmethod
    def _goal_must_be_text(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("goal must be text")
        if not value.strip():
            raise ValueError("goal must not be empty")
        return value.strip()

    @field_validator(
        "deadline",
        "know_how",
        "weekly_goal",
        "how_to_achieve",
        "start_time",
        "end_time",
        "additional_details",
        mode="before",
    )
    @classmethod
    def _scalars_as_text(cls, value: Any) -> Any:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("language", mode="before")
    @classmethod
    def _default_language(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return "en"
        return value


class MainGoal(CamelModel):
    goal: str
    deadline: Optional[str] = None
    committed: Optional[Union[bool, str]] = None


class PlanMeta(CamelModel):
    plan_goal: str
    benefits: List[str] = Field(default_factory=list)
    why_this_works: List[str] = Field(default_factory=list)


class BrainProgram(CamelModel):
    morning: str
    night: str


class CurrentPlan(CamelModel):
    brainprogram: BrainProgram
    burning_desires: List[str] = Field(default_factory=list)
    affirmations: List[str] = Field(default_factory=list)
    daily_routine: Optional[Dict[str, List[Any]]] = None
    daily_guide: Optional[str] = None


class GeneratedPlan(CamelModel):
    id: UUID
    created_at: datetime
    main_goal: MainGoal
    plan_meta: PlanMeta
    current_plan: CurrentPlan


class PlanSuccessResponse(CamelModel):
    success: bool = True
    plan: GeneratedPlan
    fallback_used: bool = False
    request_id: str = ""


class PlanErrorResponse(CamelModel):
    success: bool = False
    error: str
    request_id: str = ""


class StatusResponse(BaseModel):
    status: str
