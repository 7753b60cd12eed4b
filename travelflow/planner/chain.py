import logging
from typing import Callable, TypeVar

from travelflow.planner.base import TextProvider

logger = logging.getLogger("travelflow")

T = TypeVar("T")


class PlannerUnavailable(Exception):
    """No configured AI provider produced a usable answer."""


class PlannerChain:
    """Try providers in order; the first usable answer wins."""

    def __init__(self, providers: list[TextProvider]):
        self.providers = list(providers)

    @property
    def available(self) -> bool:
        return bool(self.providers)

    async def run(self, prompt: str, parse: Callable[[str], T]) -> T:
        """Generate with each provider until ``parse`` accepts the text.

        ``parse`` raises ValueError for unusable output, which moves on to
        the next provider.
        """
        if not self.providers:
            raise PlannerUnavailable("No AI provider configured")

        failures = []
        for provider in self.providers:
            try:
                text = await provider.generate(prompt)
            except Exception as e:
                logger.warning(
                    "AI provider failed",
                    extra={"extra_data": {"provider": provider.name, "error": str(e)}},
                )
                failures.append(f"{provider.name}: {e}")
                continue

            if not text or not text.strip():
                failures.append(f"{provider.name}: empty response")
                continue

            try:
                result = parse(text)
            except ValueError as e:
                logger.warning(
                    "AI provider returned unusable output",
                    extra={"extra_data": {"provider": provider.name, "error": str(e)}},
                )
                failures.append(f"{provider.name}: {e}")
                continue

            logger.info("AI provider answered", extra={"extra_data": {"provider": provider.name}})
            return result

        raise PlannerUnavailable("; ".join(failures))
