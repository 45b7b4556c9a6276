"""
Unit tests for tokenization.

Tests both tokenizer variants:
- Boundary tokens and truncation
- BERT normalization, punctuation splitting and WordPiece lookup
- Character-level ids for words WordPiece maps to [UNK]
- Stable hashed ids without a vocabulary
- Loading from tokenizer.json and vocab.txt
"""

import json

import pytest

from tab_sorter.engine.tokenizer import (
    CLS_TOKEN_ID,
    SEP_TOKEN_ID,
    UNK_TOKEN_ID,
    FallbackTokenizer,
    LoadedTokenizer,
    load_tokenizer,
)


@pytest.fixture
def tokenizer(vocab):
    return LoadedTokenizer.from_vocab(vocab)


class TestLoadedTokenizer:
    """Tests for the vocabulary-backed tokenizer."""

    def test_empty_text_is_cls_sep(self, tokenizer):
        assert tokenizer.encode("") == [CLS_TOKEN_ID, SEP_TOKEN_ID]
        assert tokenizer.encode("   ") == [CLS_TOKEN_ID, SEP_TOKEN_ID]

    def test_whole_words_are_lowercased(self, tokenizer, vocab):
        ids = tokenizer.encode("  Python   ASYNCIO ")
        assert ids == [CLS_TOKEN_ID, vocab["python"], vocab["asyncio"], SEP_TOKEN_ID]

    def test_wordpiece_split(self, tokenizer, vocab):
        """Unknown words split into known WordPiece pieces."""
        assert tokenizer.tokenize("playing") == [vocab["play"], vocab["##ing"]]
        assert tokenizer.tokenize("player") == [vocab["play"], vocab["##er"]]

    def test_punctuation_splits_words(self, tokenizer, vocab):
        """Domains and separators are split the way BERT pre-tokenizes them."""
        ids = tokenizer.tokenize("React - Learn react.dev")

        assert ids[0] == vocab["react"]
        assert ids[2] == vocab["learn"]
        assert ids[3] == vocab["react"]
        assert ids.count(vocab["react"]) == 2

    def test_character_fallback_uses_unk(self, tokenizer, vocab):
        """Words WordPiece maps to [UNK] are encoded character by character."""
        assert tokenizer.tokenize("xyz") == [vocab["x"], UNK_TOKEN_ID, UNK_TOKEN_ID]

    def test_character_fallback_is_capped(self, tokenizer):
        ids = tokenizer.tokenize("qqqqqqqqqqqqqqqqqqqq")
        assert ids == [UNK_TOKEN_ID] * 10

    def test_character_fallback_is_lowercased(self, tokenizer, vocab):
        assert tokenizer.tokenize("XYZ") == [vocab["x"], UNK_TOKEN_ID, UNK_TOKEN_ID]

    def test_long_text_is_truncated(self, vocab):
        """Long input is truncated to max_length, never rejected."""
        tokenizer = LoadedTokenizer.from_vocab(vocab, max_length=8)
        ids = tokenizer.encode(" ".join(["python"] * 50))

        assert len(ids) == 8
        assert ids[0] == CLS_TOKEN_ID
        assert ids[-1] == SEP_TOKEN_ID
        assert ids[1:-1] == [vocab["python"]] * 6

    def test_character_fallback_respects_max_length(self, vocab):
        tokenizer = LoadedTokenizer.from_vocab(vocab, max_length=5)
        ids = tokenizer.encode("qqqqqqqq")

        assert ids == [CLS_TOKEN_ID, UNK_TOKEN_ID, UNK_TOKEN_ID, UNK_TOKEN_ID, SEP_TOKEN_ID]

    def test_special_ids_come_from_vocab(self):
        tokenizer = LoadedTokenizer.from_vocab({"[CLS]": 1, "[SEP]": 2, "[UNK]": 3, "hello": 4})
        assert tokenizer.encode("hello zz") == [1, 4, 3, 3, 2]

    def test_max_length_must_fit_boundary_tokens(self, vocab):
        with pytest.raises(ValueError):
            LoadedTokenizer.from_vocab(vocab, max_length=1)

    def test_vocab_size(self, tokenizer, vocab):
        assert tokenizer.vocab_size == len(vocab)
        assert tokenizer.kind == "wordpiece"


class TestFallbackTokenizer:
    """Tests for the hashed tokenizer."""

    def test_known_hash_values(self):
        tokenizer = FallbackTokenizer()
        assert tokenizer.encode_word("a") == [1097]
        assert tokenizer.encode_word("hello") == [15322]

    def test_ids_are_stable_and_in_range(self):
        tokenizer = FallbackTokenizer()
        text = "Semantic grouping of browser tabs with a tiny sentence embedding model"

        first = tokenizer.encode(text)
        second = FallbackTokenizer().encode(text)

        assert first == second
        assert first[0] == CLS_TOKEN_ID and first[-1] == SEP_TOKEN_ID
        assert all(1000 <= token_id <= 29999 for token_id in first[1:-1])

    def test_one_id_per_word(self):
        tokenizer = FallbackTokenizer()
        assert len(tokenizer.encode("one two three")) == 5

    def test_truncation(self):
        tokenizer = FallbackTokenizer(max_length=4)
        assert len(tokenizer.encode("a b c d e f g")) == 4


class TestLoading:
    """Tests for reading tokenizer files."""

    def test_load_tokenizer_json(self, tmp_path, vocab):
        path = tmp_path / "tokenizer.json"
        LoadedTokenizer.from_vocab(vocab).backend.save(str(path))

        tokenizer = load_tokenizer(path, max_length=16)

        assert tokenizer.vocab == vocab
        assert tokenizer.max_length == 16
        assert tokenizer.encode("Python asyncio") == [
            CLS_TOKEN_ID, vocab["python"], vocab["asyncio"], SEP_TOKEN_ID,
        ]

    def test_load_vocab_txt(self, tmp_path):
        path = tmp_path / "vocab.txt"
        path.write_text("[PAD]\n[UNK]\n[CLS]\n[SEP]\nhello\n")

        tokenizer = load_tokenizer(path)

        assert tokenizer.vocab == {"[PAD]": 0, "[UNK]": 1, "[CLS]": 2, "[SEP]": 3, "hello": 4}
        assert tokenizer.encode("Hello") == [2, 4, 3]

    def test_invalid_tokenizer_json(self, tmp_path):
        path = tmp_path / "tokenizer.json"
        path.write_text(json.dumps({"model": {"type": "BPE"}}))

        with pytest.raises(ValueError):
            load_tokenizer(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_tokenizer(tmp_path / "missing.json")
