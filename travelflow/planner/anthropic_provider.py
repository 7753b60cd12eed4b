import os

import anthropic


class AnthropicTextProvider:
    name = "anthropic"

    def __init__(self, api_key: str, model: str | None = None, max_tokens: int = 4000):
        self.client = anthropic.AsyncAnthropic(api_key=api_key)
        self.model = model or os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-20250514")
        self.max_tokens = max_tokens

    async def generate(self, prompt: str) -> str:
        message = await self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        return "".join(block.text for block in message.content if block.type == "text")
