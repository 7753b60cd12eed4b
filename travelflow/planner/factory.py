import logging
import os

from travelflow.planner.anthropic_provider import AnthropicTextProvider
from travelflow.planner.base import TextProvider
from travelflow.planner.chain import PlannerChain
from travelflow.planner.gemini_provider import GeminiTextProvider
from travelflow.planner.openai_provider import OpenAITextProvider

logger = logging.getLogger("travelflow")

DEFAULT_ORDER = "openai,gemini,anthropic"


def _make_provider(name: str) -> TextProvider | None:
    if name == "openai":
        return OpenAITextProvider() if os.getenv("OPENAI_API_KEY") else None
    if name == "gemini":
        key = os.getenv("GEMINI_API_KEY")
        return GeminiTextProvider(api_key=key) if key else None
    if name == "anthropic":
        key = os.getenv("ANTHROPIC_API_KEY")
        return AnthropicTextProvider(api_key=key) if key else None
    raise ValueError(f"Unknown AI provider: {name}")


def build_providers() -> list[TextProvider]:
    """Configured providers in PLANNER_PROVIDERS order; ones without a key are skipped."""
    order = os.getenv("PLANNER_PROVIDERS", DEFAULT_ORDER)
    providers = []
    for name in (n.strip().lower() for n in order.split(",")):
        if not name:
            continue
        provider = _make_provider(name)
        if provider is None:
            logger.info("AI provider not configured", extra={"extra_data": {"provider": name}})
            continue
        providers.append(provider)
    return providers


def get_planner_chain() -> PlannerChain:
    return PlannerChain(build_providers())
