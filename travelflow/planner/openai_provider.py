import os

from agents import Agent, Runner

INSTRUCTIONS = """\
You are an expert travel advisor with deep knowledge of world destinations,
local culture, famous attractions, renowned restaurants and local events.
Follow the output format requested in each message exactly. When JSON is
requested, return only JSON with no markdown fences or commentary."""

agent = Agent(
    name="Trip Planner",
    instructions=INSTRUCTIONS,
    model=os.getenv("OPENAI_MODEL", "gpt-4o"),
)


class OpenAITextProvider:
    """Text generation through the OpenAI Agents SDK."""

    name = "openai"

    async def generate(self, prompt: str) -> str:
        result = await Runner.run(agent, input=prompt)
        return str(result.final_output or "")
