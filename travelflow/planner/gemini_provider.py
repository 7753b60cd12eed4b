import os

from google import genai


class GeminiTextProvider:
    name = "gemini"

    def __init__(self, api_key: str, model: str | None = None):
        self.client = genai.Client(api_key=api_key)
        self.model = model or os.getenv("GEMINI_MODEL", "gemini-2.0-flash")

    async def generate(self, prompt: str) -> str:
        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=prompt,
        )
        if not response or not response.text:
            raise RuntimeError("Empty Gemini response")
        return response.text.strip()
