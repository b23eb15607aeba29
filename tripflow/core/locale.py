"""
Message catalogs and translator factory.

Catalog values are Jinja2 templates keyed by dotted message keys. A
translator renders a key with keyword parameters; unknown keys render as the
key itself so a missing translation never breaks a workflow.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Optional

from jinja2 import Environment, StrictUndefined, TemplateError

from tripflow.core.config import get_settings
from tripflow.core.logging import get_logger

logger = get_logger(__name__)

LOCALES_DIR = Path(__file__).resolve().parent.parent / "locales"
SUPPORTED_LOCALES = ("vi", "en")

Translator = Callable[..., str]

_env = Environment(autoescape=False, undefined=StrictUndefined)


@lru_cache
def load_catalog(locale: str) -> dict[str, str]:
    """
    Load the message catalog for a locale.

    Args:
        locale: Locale code (``vi`` or ``en``)

    Returns:
        Mapping of message key to template source
    """
    path = LOCALES_DIR / f"{locale}.json"
    with path.open(encoding="utf-8") as handle:
        catalog = json.load(handle)
    logger.debug("Message catalog loaded", locale=locale, keys=len(catalog))
    return catalog


def create_translator(locale: Optional[str] = None) -> Translator:
    """
    Create a translator bound to a locale.

    Falls back to the configured default locale when the requested one is
    missing or unsupported.

    Args:
        locale: Requested locale code

    Returns:
        Callable ``t(key, **params) -> str``
    """
    if locale not in SUPPORTED_LOCALES:
        locale = get_settings().default_locale
    catalog = load_catalog(locale)

    def translate(key: str, **params: Any) -> str:
        source = catalog.get(key)
        if source is None:
            logger.warning("Missing translation", locale=locale, key=key)
            return key
        try:
            return _env.from_string(source).render(**params)
        except TemplateError as e:
            logger.error(
                "Translation rendering failed",
                locale=locale,
                key=key,
                error=str(e),
            )
            return key

    return translate
