"""Translation collaborator interface and fallback helpers."""

from award_forecaster.translation.base import (
    DEFAULT_LANGUAGE,
    PassthroughTranslator,
    Translator,
    batch_translate_or_original,
    should_translate,
    translate_or_original,
)

__all__ = [
    "DEFAULT_LANGUAGE",
    "PassthroughTranslator",
    "Translator",
    "batch_translate_or_original",
    "should_translate",
    "translate_or_original",
]
