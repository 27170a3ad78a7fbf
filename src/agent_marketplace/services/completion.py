"""LLM completions for the built-in local agents (summarizer, translator).

Thin wrapper around LiteLLM so any provider string works
("gpt-4o-mini", "gemini/gemini-2.0-flash", "anthropic/claude-haiku-4-5", ...).
Transient provider failures are retried with exponential backoff.
"""

from __future__ import annotations

import litellm
from tenacity import retry, stop_after_attempt, wait_exponential

from agent_marketplace.config import get_settings
from agent_marketplace.logging_config import get_logger

logger = get_logger(__name__)

SUMMARIZER_PROMPT = (
    "You are a summarization agent. "
    "Summarize the given text into 3-5 concise bullet points."
)

TRANSLATOR_PROMPT_TEMPLATE = (
    "You are a translation agent. "
    "Translate the given text to {target_language}. Return only the translation."
)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)
async def complete(system_prompt: str, user_content: str) -> str:
    """Run one chat completion and return the stripped text.

    Raises:
        ValueError: If the model returns an empty message.
    """
    settings = get_settings()
    response = await litellm.acompletion(
        model=settings.litellm_model,
        messages=[
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_content},
        ],
        max_tokens=settings.litellm_max_tokens,
        temperature=settings.litellm_temperature,
    )

    content = response.choices[0].message.content
    if not content:
        raise ValueError("LLM returned empty response")

    logger.debug("completion.done", model=settings.litellm_model, chars=len(content))
    return content.strip()


async def summarize(text: str) -> str:
    return await complete(SUMMARIZER_PROMPT, text)


async def translate(text: str, target_language: str) -> str:
    return await complete(
        TRANSLATOR_PROMPT_TEMPLATE.format(target_language=target_language), text
    )
