import json
import logging
import re

from pydantic import ValidationError

from travelflow.documents import ProposedItem
from travelflow.planner.base import PlanResult
from travelflow.planner.chain import PlannerChain, PlannerUnavailable

logger = logging.getLogger("travelflow")

RECOMMENDATION_KINDS = ("restaurants", "attractions", "events", "general")

ITINERARY_FORMAT = """\
Return ONLY a valid JSON object (no markdown, no extra text) with this structure:
{
  "itinerary": [
    {
      "dayIndex": 0,
      "time": "09:00",
      "location": "Specific place name",
      "note": "What to expect, why it is worth it, approximate duration and cost",
      "category": "attraction|restaurant|event|experience"
    }
  ],
  "highlights": ["Key highlight"],
  "tips": ["Practical local tip"]
}
dayIndex is zero-based and must be lower than the number of days. time is 24-hour HH:MM."""

GENERATE_PROMPT = """\
Plan a detailed {days}-day trip to {destination}.
{interests}
Use exact names of well-known attractions and highly rated restaurants,
include one or two restaurants per day, any notable local events, and a
few lesser-known spots. Order each day's stops to avoid backtracking and
do not repeat places.

{format}"""

REFINE_PROMPT = """\
Here is the current itinerary for a trip to {destination}:
{current}

The traveler asks: "{feedback}"

Produce an updated {days}-day plan that addresses the request while keeping
the best parts of the current one.

{format}"""

RECOMMENDATION_PROMPTS = {
    "restaurants": "List 5 of the most famous, highly rated restaurants in {location}, with cuisine type and why they are renowned. Return a simple numbered list.",
    "attractions": "List 5 of the most iconic attractions in {location} with a short description of what makes each special. Return a simple numbered list.",
    "events": "List the major events and festivals in {location} through the year, with their season. Return a simple numbered list.",
    "general": "Give 5 insider tips for visiting {location}: hidden gems, best neighborhoods and local experiences. Return a simple numbered list.",
}

PLACEHOLDER_STOPS = [
    (0, "10:00", "{d} City Center", "Arrival & city exploration"),
    (0, "14:00", "{d} Main Square", "Local attractions"),
    (0, "18:00", "{d} Restaurant District", "Dinner experience"),
    (1, "09:00", "{d} Historical Sites", "Cultural tour"),
    (1, "13:00", "{d} Museum", "Art & history"),
    (1, "17:00", "{d} Parks", "Nature & relaxation"),
    (2, "10:00", "{d} Markets", "Shopping & local culture"),
    (2, "14:00", "{d} Scenic Viewpoint", "Photography spot"),
    (2, "17:00", "Airport Departure", "Departure"),
]


def placeholder_itinerary(destination: str) -> list[ProposedItem]:
    """Fixed three-day template used when no AI provider answers."""
    return [
        ProposedItem(day_index=day, time=time, location=location.format(d=destination), note=note)
        for day, time, location, note in PLACEHOLDER_STOPS
    ]


def extract_json_object(text: str) -> dict:
    match = re.search(r"\{[\s\S]*\}", text)
    if not match:
        raise ValueError("No JSON object found in response")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in response: {e.msg}") from e
    if not isinstance(data, dict):
        raise ValueError("Response JSON is not an object")
    return data


def parse_plan(text: str) -> PlanResult:
    data = extract_json_object(text)
    raw_items = data.get("itinerary")
    if not isinstance(raw_items, list):
        raise ValueError("Response has no itinerary list")

    items = []
    for entry in raw_items:
        if not isinstance(entry, dict):
            continue
        try:
            items.append(ProposedItem.model_validate({k: v for k, v in entry.items() if v is not None}))
        except ValidationError as e:
            logger.info("Dropping invalid generated item", extra={"extra_data": {"error": str(e)}})
    if not items:
        raise ValueError("Response itinerary is empty")

    return PlanResult(
        itinerary=items,
        highlights=[str(h) for h in data.get("highlights") or []],
        tips=[str(t) for t in data.get("tips") or []],
    )


def parse_lines(text: str) -> list[str]:
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if not lines:
        raise ValueError("Empty recommendation list")
    return lines


class TripPlanner:
    """AI-backed itinerary generation over a provider fallback chain."""

    def __init__(self, chain: PlannerChain):
        self.chain = chain

    async def generate_itinerary(self, destination: str, days: int = 3, interests: list[str] | None = None) -> PlanResult:
        interest_text = f"Traveler interests: {', '.join(interests)}." if interests else ""
        prompt = GENERATE_PROMPT.format(
            days=days, destination=destination, interests=interest_text, format=ITINERARY_FORMAT
        )
        return await self.chain.run(prompt, parse_plan)

    async def refine_itinerary(self, current: list[dict], destination: str, feedback: str, days: int = 3) -> PlanResult:
        prompt = REFINE_PROMPT.format(
            destination=destination,
            current=json.dumps(current, indent=2, ensure_ascii=False),
            feedback=feedback,
            days=days,
            format=ITINERARY_FORMAT,
        )
        return await self.chain.run(prompt, parse_plan)

    async def recommendations(self, location: str, kind: str = "general") -> list[str]:
        if kind not in RECOMMENDATION_KINDS:
            raise ValueError(f"Unknown recommendation type: {kind}")
        return await self.chain.run(RECOMMENDATION_PROMPTS[kind].format(location=location), parse_lines)

    async def plan_or_placeholder(self, destination: str, days: int = 3, interests: list[str] | None = None) -> list[ProposedItem]:
        try:
            plan = await self.generate_itinerary(destination, days, interests)
        except PlannerUnavailable as e:
            logger.warning(
                "AI itinerary unavailable, using placeholder",
                extra={"extra_data": {"destination": destination, "error": str(e)}},
            )
            return placeholder_itinerary(destination)
        return plan.itinerary
