"""
Translation collaborator seam.

The engines never translate text themselves; they call a ``Translator``
supplied by the host service (the production one is cache-backed and retries
on rate limits). Retry and backoff are entirely the translator's concern.

Failure policy
--------------
A translation problem must never fail a forecast or insight run:

  - ``translate_or_original``        any exception → the original text.
  - ``batch_translate_or_original``  any exception → all originals; an empty
                                     or missing item → that item's original.

``should_translate`` short-circuits the default language (``"en"``) and a
target equal to the source language, so the collaborator is not invoked at
all in those cases.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Sequence, runtime_checkable

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"


@runtime_checkable
class Translator(Protocol):
    """Async text translation capability."""

    async def translate(self, text: str, target_language: str) -> str: ...

    async def batch_translate(self, texts: Sequence[str], target_language: str) -> list[str]:
        """Translate ``texts``; the result is order-preserving and the same length."""
        ...


class PassthroughTranslator:
    """Translator that returns its input unchanged."""

    async def translate(self, text: str, target_language: str) -> str:
        return text

    async def batch_translate(self, texts: Sequence[str], target_language: str) -> list[str]:
        return list(texts)


def _normalise_language(language: Optional[str]) -> str:
    return (language or "").strip().lower()


def should_translate(
    target_language: Optional[str],
    source_language: str = DEFAULT_LANGUAGE,
) -> bool:
    """True when ``target_language`` is set and differs from the source."""
    target = _normalise_language(target_language)
    return bool(target) and target != _normalise_language(source_language)


async def translate_or_original(
    translator: Optional[Translator],
    text: str,
    target_language: Optional[str],
    source_language: str = DEFAULT_LANGUAGE,
) -> str:
    """Translate ``text`` or return it unchanged on skip/failure."""
    if translator is None or not text or not should_translate(target_language, source_language):
        return text
    try:
        translated = await translator.translate(text, target_language)
    except Exception as exc:
        logger.warning("Translation to %s failed; keeping original text: %s", target_language, exc)
        return text
    return translated or text


async def batch_translate_or_original(
    translator: Optional[Translator],
    texts: Sequence[str],
    target_language: Optional[str],
    source_language: str = DEFAULT_LANGUAGE,
) -> list[str]:
    """Translate ``texts`` as a batch with per-item fallback to the original.

    Empty input strings are passed through untouched and never sent to the
    translator.
    """
    originals = list(texts)
    if translator is None or not originals or not should_translate(target_language, source_language):
        return originals

    to_send = [t for t in originals if t]
    if not to_send:
        return originals

    try:
        translated = await translator.batch_translate(to_send, target_language)
    except Exception as exc:
        logger.warning(
            "Batch translation of %d item(s) to %s failed; keeping originals: %s",
            len(to_send), target_language, exc,
        )
        return originals

    translated = list(translated or [])
    if len(translated) != len(to_send):
        logger.warning(
            "Batch translation returned %d item(s) for %d input(s); "
            "missing items keep their original text.",
            len(translated), len(to_send),
        )

    result: list[str] = []
    cursor = 0
    for original in originals:
        if not original:
            result.append(original)
            continue
        candidate = translated[cursor] if cursor < len(translated) else None
        cursor += 1
        result.append(candidate if isinstance(candidate, str) and candidate else original)
    return result
