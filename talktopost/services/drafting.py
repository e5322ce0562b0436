"""Turn transcripts into tweet drafts using the OpenRouter LLM."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from talktopost.config.settings import LlmConfig
from talktopost.services import errors
from talktopost.services.llm_client import LlmInvocationError, OpenRouterLlmClient
from talktopost.services.response_contract import DraftResponse, ResponseContractError

logger = logging.getLogger(__name__)

TRANSCRIPT_SEPARATOR = "\n\nTRANSCRIPT:\n"
TRUNCATION_SUFFIX = "..."

REWRITE_PROMPT = (
    "Rewrite the following tweet so it is at most {max_length} characters "
    "while keeping its meaning, voice and any proper nouns. "
    "Reply with the rewritten tweet only, without quotes or commentary.\n\n"
    "TWEET:\n{text}"
)


@dataclass(frozen=True)
class RewriteResult:
    text: str
    original_length: int
    fallback: bool = False

    @property
    def new_length(self) -> int:
        return len(self.text)


def truncate_text(text: str, max_length: int) -> str:
    """Cut ``text`` to ``max_length`` characters, marking the cut with '...'."""

    if len(text) <= max_length:
        return text
    if max_length <= len(TRUNCATION_SUFFIX):
        return text[:max_length]
    return text[: max_length - len(TRUNCATION_SUFFIX)] + TRUNCATION_SUFFIX


class DraftingAdapter:
    """Prompt the LLM for a draft and normalise whatever it returns."""

    def __init__(
        self,
        client: OpenRouterLlmClient,
        config: LlmConfig,
        *,
        max_tweet_length: int = 280,
    ) -> None:
        self._client = client
        self._config = config
        self._max_tweet_length = max_tweet_length

    async def draft(
        self,
        transcript_text: str,
        system_prompt: str,
        model_config: LlmConfig | None = None,
    ) -> DraftResponse:
        cfg = model_config or self._config
        prompt = f"{system_prompt}{TRANSCRIPT_SEPARATOR}{transcript_text}"
        try:
            content = await self._client.invoke(
                user_prompt=prompt,
                model=cfg.model,
                temperature=cfg.temperature,
                max_tokens=cfg.max_tokens,
            )
        except LlmInvocationError as exc:
            logger.error("Drafting call failed: %s", exc)
            raise errors.DraftingFailed(f"Drafting failed: {exc}") from exc

        if not content:
            raise errors.DraftingFailed("No content generated")

        try:
            draft = DraftResponse.from_json(content)
        except ResponseContractError as exc:
            logger.warning("Unparseable draft, falling back to raw text: %s", exc)
            return DraftResponse.fallback(content, self._max_tweet_length)

        overlong = draft.overlong(self._max_tweet_length)
        if overlong:
            # Kept as drafted; the user can shorten them with the rewrite endpoint.
            logger.warning(
                "Draft has %d tweet(s) over %d characters at positions %s",
                len(overlong),
                self._max_tweet_length,
                overlong,
            )
        logger.info("Drafted %s with %d tweet(s)", draft.mode, len(draft.tweets))
        return draft

    async def rewrite(self, text: str, max_length: int | None = None) -> RewriteResult:
        """Shorten a single tweet; texts that already fit come back untouched."""

        limit = max_length or self._max_tweet_length
        original_length = len(text)
        if original_length <= limit:
            return RewriteResult(text=text, original_length=original_length)

        try:
            content = await self._client.invoke(
                user_prompt=REWRITE_PROMPT.format(max_length=limit, text=text),
            )
        except LlmInvocationError as exc:
            logger.error("Rewrite call failed: %s", exc)
            raise errors.DraftingFailed(f"Rewrite failed: {exc}") from exc

        rewritten = (content or "").strip().strip('"').strip()
        if not rewritten or len(rewritten) > limit:
            return RewriteResult(
                text=truncate_text(rewritten or text, limit),
                original_length=original_length,
                fallback=True,
            )
        return RewriteResult(text=rewritten, original_length=original_length)


__all__ = ["DraftingAdapter", "RewriteResult", "TRANSCRIPT_SEPARATOR", "truncate_text"]
