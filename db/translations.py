"""Content-addressed cache of machine translations.

Entries are keyed by (source_text, source_lang, target_lang) and are only
ever inserted. Concurrent writers race on the unique index; the loser reads
back the winner's row, so the first stored translation is the one every
caller sees.
"""
from __future__ import annotations

import logging
import sqlite3
from typing import Callable, Dict, Iterable, Optional

from models.translation import TranslationCacheEntry

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_LANG = "zh"
DEFAULT_TARGET_LANG = "en"


def lookup(
    conn: sqlite3.Connection,
    source_text: str,
    source_lang: str = DEFAULT_SOURCE_LANG,
    target_lang: str = DEFAULT_TARGET_LANG,
) -> Optional[str]:
    row = conn.execute(
        """
        SELECT translated_text FROM translations
        WHERE source_text = ? AND source_lang = ? AND target_lang = ?
        """,
        (source_text, source_lang, target_lang),
    ).fetchone()
    return row[0] if row else None


def lookup_many(
    conn: sqlite3.Connection,
    texts: Iterable[str],
    source_lang: str = DEFAULT_SOURCE_LANG,
    target_lang: str = DEFAULT_TARGET_LANG,
) -> Dict[str, str]:
    """Cached translations for the given texts; misses are left out."""
    found = {}
    for text in texts:
        translated = lookup(conn, text, source_lang, target_lang)
        if translated is not None:
            found[text] = translated
    return found


def get_or_insert(
    conn: sqlite3.Connection,
    source_text: str,
    source_lang: str,
    target_lang: str,
    compute_fn: Callable[[], str],
) -> str:
    """Return the cached translation, computing and storing it on a miss.

    `compute_fn` is only called on a miss. If another writer stores the same
    key between our lookup and insert, its translation is returned and ours
    is discarded.
    """
    cached = lookup(conn, source_text, source_lang, target_lang)
    if cached is not None:
        return cached

    translated = compute_fn()
    owns_transaction = not conn.in_transaction
    try:
        conn.execute(
            """
            INSERT INTO translations (source_text, translated_text, source_lang, target_lang)
            VALUES (?, ?, ?, ?)
            """,
            (source_text, translated, source_lang, target_lang),
        )
    except sqlite3.IntegrityError:
        if owns_transaction and conn.in_transaction:
            conn.rollback()
        winner = lookup(conn, source_text, source_lang, target_lang)
        if winner is None:
            raise
        logger.info("Translation cache race on %r (%s->%s); kept first writer", source_text, source_lang, target_lang)
        return winner
    if owns_transaction and conn.in_transaction:
        conn.commit()
    return translated


def get_entry(
    conn: sqlite3.Connection,
    source_text: str,
    source_lang: str = DEFAULT_SOURCE_LANG,
    target_lang: str = DEFAULT_TARGET_LANG,
) -> Optional[TranslationCacheEntry]:
    row = conn.execute(
        """
        SELECT id, source_text, translated_text, source_lang, target_lang, created_at
        FROM translations
        WHERE source_text = ? AND source_lang = ? AND target_lang = ?
        """,
        (source_text, source_lang, target_lang),
    ).fetchone()
    return TranslationCacheEntry(**dict(row)) if row else None
