"""Verdict model returned by the remote content-filter service."""

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class FilterVerdict(BaseModel):
    """Allow/deny verdict for a URL or a block of text."""

    model_config = ConfigDict(populate_by_name=True)

    is_allowed: bool = Field(..., alias="isAllowed", description="Final decision")
    reason: str = Field("", description="Human readable reason")
    threat_score: float = Field(
        0.0, alias="threatScore", ge=0.0, le=1.0, description="Threat score in [0, 1]"
    )
    triggered_rules: List[str] = Field(
        default_factory=list, alias="triggeredRules", description="Rules that fired"
    )
