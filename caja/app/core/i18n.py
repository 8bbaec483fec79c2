"""Spanish/English message catalogues for error responses.

Catalogues live in ``app/locales/<lang>/messages.json`` and are keyed by the
machine-readable error code, so ``translate(lang, exc.code, **exc.params)``
renders any ``CajaError``.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path

from caja.app.core.config import settings

logger = logging.getLogger(__name__)

_LOCALES_DIR = Path(__file__).resolve().parent.parent / "locales"

SUPPORTED_LANGUAGES = frozenset({"es", "en"})


@lru_cache(maxsize=len(SUPPORTED_LANGUAGES))
def _catalogue(lang: str) -> dict[str, str]:
    path = _LOCALES_DIR / lang / "messages.json"
    if not path.exists():
        logger.warning("Locale file not found: %s", path)
        return {}
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def negotiate_language(accept_language: str | None) -> str:
    """Pick the first supported language in an ``Accept-Language`` header.

    Matches the full tag or its primary subtag ("es-MX" → "es"); q-values are
    ignored and header order wins. Falls back to ``settings.DEFAULT_LANGUAGE``.
    """
    for part in (accept_language or "").split(","):
        tag = part.split(";")[0].strip().lower()
        if not tag:
            continue
        if tag in SUPPORTED_LANGUAGES:
            return tag
        primary = tag.split("-")[0]
        if primary in SUPPORTED_LANGUAGES:
            return primary
    return settings.DEFAULT_LANGUAGE


def translate(lang: str, key: str, **params: str) -> str:
    """Render *key* in *lang*, then in the default language, then the raw key."""
    text = None
    for candidate in (lang, settings.DEFAULT_LANGUAGE, "en"):
        if candidate in SUPPORTED_LANGUAGES:
            text = _catalogue(candidate).get(key)
            if text is not None:
                break
    if text is None:
        logger.warning("No message for %s in %s", key, lang)
        return key
    if params:
        try:
            return text.format(**params)
        except KeyError as exc:
            logger.warning("Message %s is missing placeholder %s", key, exc)
    return text
