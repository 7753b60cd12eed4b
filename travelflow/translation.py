import logging
import os

import httpx

logger = logging.getLogger("travelflow")

GOOGLE_TRANSLATE = "https://translate.googleapis.com/translate_a/single"
TRANSLATE_TIMEOUT = float(os.getenv("TRANSLATE_TIMEOUT", "5"))


class TranslationFailed(Exception):
    pass


class Translator:
    """Phrase translation into the trip's target language via the public Google endpoint."""

    def __init__(self, client: httpx.AsyncClient | None = None):
        self._client = client or httpx.AsyncClient()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def translate(self, text: str, target_lang: str) -> str:
        params = {"client": "gtx", "sl": "auto", "tl": target_lang, "dt": "t", "q": text}
        try:
            resp = await self._client.get(GOOGLE_TRANSLATE, params=params, timeout=TRANSLATE_TIMEOUT)
            resp.raise_for_status()
            segments = resp.json()[0]
            translated = "".join(s[0] for s in segments if s and s[0])
        except (httpx.HTTPError, ValueError, TypeError, IndexError) as e:
            logger.warning("Translation failed", extra={"extra_data": {"target_lang": target_lang, "error": str(e)}})
            raise TranslationFailed(str(e)) from e

        if not translated:
            raise TranslationFailed("Empty translation")
        return translated
