import logging
import time
from typing import Callable, Dict, List, Optional, Sequence

from config import load_config
from db.translations import get_or_insert, lookup_many

logger = logging.getLogger(__name__)

# Receives the missing texts and a course context string, returns translations in order
Translator = Callable[[List[str], str], List[str]]

def _unique_texts(texts: Sequence[str]) -> List[str]:
    seen = set()
    unique = []
    for text in texts:
        if text and text not in seen:
            seen.add(text)
            unique.append(text)
    return unique

def _call_with_retries(translator: Translator, misses: List[str], context: str,
                       attempts: int, delay: float) -> Optional[List[str]]:
    for attempt in range(1, attempts + 1):
        try:
            return translator(misses, context)
        except Exception as e:
            logger.warning("Translation attempt %d/%d failed: %s", attempt, attempts, e)
            if attempt < attempts:
                time.sleep(delay)
    return None

def translate_batch(conn, texts: Sequence[str], translator: Translator, context: str = "",
                    config: dict = None) -> List[str]:
    """Translate texts through the cache, calling `translator` once for all misses.

    Empty strings stay empty. When the translator keeps failing or returns the
    wrong number of results, the untranslated originals are returned and
    nothing is cached.
    """
    if not texts:
        return []
    if not config:
        config = load_config()
    settings = config["translation"]
    source_lang = settings["source_lang"]
    target_lang = settings["target_lang"]

    unique = _unique_texts(texts)
    translated: Dict[str, str] = lookup_many(conn, unique, source_lang, target_lang)
    misses = [text for text in unique if text not in translated]

    if misses:
        results = _call_with_retries(
            translator, misses, context, settings["max_attempts"], settings["retry_delay"]
        )
        if results is not None and len(results) == len(misses):
            for source, result in zip(misses, results):
                translated[source] = get_or_insert(
                    conn, source, source_lang, target_lang, lambda result=result: result
                )
        elif results is not None:
            logger.warning(
                "Translator returned %d results for %d texts; using originals", len(results), len(misses)
            )

    return [translated.get(text, text) if text else "" for text in texts]
