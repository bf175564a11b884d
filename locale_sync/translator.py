import logging
from typing import Dict, Optional

from openai import AsyncOpenAI
from openai.types.chat import (
    ChatCompletionSystemMessageParam,
    ChatCompletionUserMessageParam
)

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a professional translator. Translate the given text keeping the same meaning and style. "
    "Return only the translation without any additional text."
)


def language_code_to_name(language_code: str, language_codes: Dict[str, str]) -> str:
    """
    Convert a locale code to a language name for the prompt.

    Args:
        language_code: The locale code (e.g., "ru").
        language_codes: Mapping of locale codes to language names.

    Returns:
        The language name if known, otherwise the code itself.
    """
    return language_codes.get(language_code, language_code)


def build_translation_prompt(
        text: str,
        source_language: str,
        target_language: str,
        context: str = ''
) -> str:
    """
    Build the user message for a single translation.

    Args:
        text: The text to translate.
        source_language: Name (or code) of the source language.
        target_language: Name (or code) of the target language.
        context: Optional JSON of the sibling keys the text lives next to.

    Returns:
        The prompt text.
    """
    prompt = f"Translate the following text from {source_language} to {target_language}:\n\n{text}"
    if context:
        prompt += f"\n\nContext: {context}"
    return prompt


class OpenAITranslator:
    """Translates single strings through an OpenAI-compatible chat completion endpoint."""

    def __init__(
            self,
            client: AsyncOpenAI,
            model_name: str,
            language_codes: Optional[Dict[str, str]] = None,
            temperature: float = 0.3
    ):
        self.client = client
        self.model_name = model_name
        self.language_codes = language_codes or {}
        self.temperature = temperature

    async def translate(self, text: str, source_locale: str, target_locale: str, context: str = '') -> str:
        """
        Translate ``text`` from ``source_locale`` to ``target_locale``.

        Returns the trimmed completion, or ``text`` unchanged when the model
        returns nothing. API errors propagate to the caller.
        """
        prompt = build_translation_prompt(
            text,
            language_code_to_name(source_locale, self.language_codes),
            language_code_to_name(target_locale, self.language_codes),
            context
        )
        response = await self.client.chat.completions.create(
            model=self.model_name,
            messages=[
                ChatCompletionSystemMessageParam(role="system", content=SYSTEM_PROMPT),
                ChatCompletionUserMessageParam(role="user", content=prompt)
            ],
            temperature=self.temperature,
        )

        content = response.choices[0].message.content if response.choices else None
        translated_text = (content or '').strip()
        if not translated_text:
            logger.warning(f"Empty completion for text '{text}' ({target_locale}); keeping the source text.")
            return text
        return translated_text
