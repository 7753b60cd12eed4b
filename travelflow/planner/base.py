from typing import Protocol

from pydantic import BaseModel, Field

from travelflow.documents import ProposedItem


class TextProvider(Protocol):
    """One AI backend that turns a prompt into text."""

    name: str

    async def generate(self, prompt: str) -> str: ...


class PlanResult(BaseModel):
    itinerary: list[ProposedItem] = Field(default_factory=list)
    highlights: list[str] = Field(default_factory=list)
    tips: list[str] = Field(default_factory=list)
