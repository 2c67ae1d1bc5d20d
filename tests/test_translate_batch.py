import pytest

from db import database
from db.translations import lookup
from utils.translate import translate_batch

CONFIG = {
    "translation": {
        "source_lang": "zh",
        "target_lang": "en",
        "max_attempts": 3,
        "retry_delay": 0,
    }
}


class FakeTranslator:
    def __init__(self, failures=0, mapping=None, drop_last=False):
        self.failures = failures
        self.mapping = mapping or {}
        self.drop_last = drop_last
        self.calls = []

    def __call__(self, texts, context):
        self.calls.append((list(texts), context))
        if self.failures:
            self.failures -= 1
            raise RuntimeError("upstream timeout")
        results = [self.mapping.get(text, f"en:{text}") for text in texts]
        return results[:-1] if self.drop_last else results


@pytest.fixture
def conn(migrated_db):
    with database.get_conn() as conn:
        yield conn


def test_batch_deduplicates_and_caches(conn):
    translator = FakeTranslator(mapping={"导数": "derivative", "积分": "integral"})

    result = translate_batch(conn, ["导数", "", "积分", "导数"], translator, "MATH 1A", config=CONFIG)

    assert result == ["derivative", "", "integral", "derivative"]
    assert translator.calls == [(["导数", "积分"], "MATH 1A")]
    assert lookup(conn, "积分") == "integral"

    again = translate_batch(conn, ["积分"], translator, config=CONFIG)
    assert again == ["integral"]
    assert len(translator.calls) == 1


def test_only_misses_are_sent(conn):
    translate_batch(conn, ["极限"], FakeTranslator(), config=CONFIG)
    translator = FakeTranslator()

    result = translate_batch(conn, ["极限", "向量"], translator, config=CONFIG)

    assert result == ["en:极限", "en:向量"]
    assert translator.calls[0][0] == ["向量"]


def test_transient_failures_are_retried(conn):
    translator = FakeTranslator(failures=2)

    result = translate_batch(conn, ["矩阵"], translator, config=CONFIG)

    assert result == ["en:矩阵"]
    assert len(translator.calls) == 3


def test_persistent_failure_returns_originals_uncached(conn):
    translator = FakeTranslator(failures=5)

    result = translate_batch(conn, ["矩阵", ""], translator, config=CONFIG)

    assert result == ["矩阵", ""]
    assert len(translator.calls) == 3
    assert lookup(conn, "矩阵") is None


def test_length_mismatch_returns_originals(conn):
    translator = FakeTranslator(drop_last=True)

    result = translate_batch(conn, ["矩阵", "向量"], translator, config=CONFIG)

    assert result == ["矩阵", "向量"]
    assert lookup(conn, "矩阵") is None


def test_empty_batch_skips_translator(conn):
    translator = FakeTranslator()

    assert translate_batch(conn, [], translator, config=CONFIG) == []
    assert translator.calls == []
