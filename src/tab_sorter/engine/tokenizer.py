"""
BERT-style tokenization for the sentence-embedding model.

Two variants share the Tokenizer interface:
- LoadedTokenizer: the model's tokenizer.json (or a vocab.txt) run through
  the ``tokenizers`` library, with BERT normalization and WordPiece
- FallbackTokenizer: no vocabulary, stable hashed word ids

Both bracket the sequence with [CLS]/[SEP] and truncate to a maximum length
instead of rejecting long input.
"""

from abc import ABC, abstractmethod
from pathlib import Path

from tokenizers import Tokenizer as HFTokenizer
from tokenizers.models import WordPiece
from tokenizers.normalizers import BertNormalizer
from tokenizers.pre_tokenizers import BertPreTokenizer

from tab_sorter.config import get_logger

logger = get_logger(__name__)

PAD_TOKEN_ID = 0
UNK_TOKEN_ID = 100
CLS_TOKEN_ID = 101
SEP_TOKEN_ID = 102

DEFAULT_MAX_LENGTH = 512
MAX_CHARS_PER_WORD = 10

# Hashed ids land in [1000, 29999], clear of the special-token range
_HASH_BUCKETS = 28000
_HASH_OFFSET = 1000
_HASH_MAX_ID = 29999


class Tokenizer(ABC):
    """Abstract base for tokenizers feeding the inference backend."""

    cls_id: int = CLS_TOKEN_ID
    sep_id: int = SEP_TOKEN_ID

    def __init__(self, max_length: int = DEFAULT_MAX_LENGTH):
        if max_length < 2:
            raise ValueError(f"max_length must leave room for [CLS] and [SEP], got {max_length}")
        self.max_length = max_length

    @property
    @abstractmethod
    def kind(self) -> str:
        """Short identifier used in lifecycle details."""

    @abstractmethod
    def tokenize(self, text: str) -> list[int]:
        """Token ids for the text, without [CLS]/[SEP]."""

    def encode(self, text: str) -> list[int]:
        """
        Convert text to a bounded token id sequence.

        Args:
            text: Raw text (tab title + domain)

        Returns:
            Token ids starting with [CLS] and ending with [SEP], at most
            ``max_length`` long
        """
        body = self.tokenize(text)[: self.max_length - 2]
        return [self.cls_id, *body, self.sep_id]


class LoadedTokenizer(Tokenizer):
    """Tokenizer backed by a ``tokenizers`` WordPiece pipeline.

    Words the vocabulary cannot cover come back from WordPiece as a single
    [UNK]; those are re-encoded character by character so they still carry
    some signal.
    """

    def __init__(self, backend: HFTokenizer, max_length: int = DEFAULT_MAX_LENGTH):
        super().__init__(max_length)
        self.backend = backend
        self.vocab: dict[str, int] = backend.get_vocab()

        backend.no_padding()
        if self.max_length > 2:
            backend.enable_truncation(max_length=self.max_length - 2)

        self.cls_id = _token_id(backend, "[CLS]", CLS_TOKEN_ID)
        self.sep_id = _token_id(backend, "[SEP]", SEP_TOKEN_ID)
        self.unk_id = _token_id(backend, "[UNK]", UNK_TOKEN_ID)

    @classmethod
    def from_vocab(cls, vocab: dict[str, int], max_length: int = DEFAULT_MAX_LENGTH) -> "LoadedTokenizer":
        """Build an uncased BERT WordPiece tokenizer around a token → id map."""
        backend = HFTokenizer(WordPiece(dict(vocab), unk_token="[UNK]"))
        backend.normalizer = BertNormalizer(lowercase=True)
        backend.pre_tokenizer = BertPreTokenizer()
        return cls(backend, max_length=max_length)

    @property
    def kind(self) -> str:
        return "wordpiece"

    @property
    def vocab_size(self) -> int:
        return len(self.vocab)

    def tokenize(self, text: str) -> list[int]:
        if self.max_length == 2 or not text.strip():
            return []

        encoding = self.backend.encode(text, add_special_tokens=False)

        # Group tokens by the pre-tokenized word they came from
        words: list[dict] = []
        last_word = None
        for token_id, word_index, (start, end) in zip(encoding.ids, encoding.word_ids, encoding.offsets):
            if word_index is None or word_index != last_word:
                words.append({"ids": [], "start": start, "end": end})
                last_word = word_index
            words[-1]["ids"].append(token_id)
            words[-1]["end"] = end

        body: list[int] = []
        for word in words:
            if all(token_id == self.unk_id for token_id in word["ids"]):
                body.extend(self.encode_characters(text[word["start"]:word["end"]]))
            else:
                body.extend(word["ids"])
        return body

    def encode_characters(self, word: str) -> list[int]:
        """Per-character ids for a word WordPiece could not cover."""
        return [self.vocab.get(char, self.unk_id) for char in word.lower()[:MAX_CHARS_PER_WORD]]


class FallbackTokenizer(Tokenizer):
    """Vocabulary-free tokenizer producing stable hashed word ids."""

    @property
    def kind(self) -> str:
        return "hashed"

    def tokenize(self, text: str) -> list[int]:
        budget = self.max_length - 2
        body: list[int] = []
        for word in text.lower().split():
            if len(body) >= budget:
                break
            body.extend(self.encode_word(word))
        return body

    def encode_word(self, word: str) -> list[int]:
        return [_hash_word(word)]


def _token_id(backend: HFTokenizer, token: str, default: int) -> int:
    token_id = backend.token_to_id(token)
    return default if token_id is None else token_id


def _hash_word(word: str) -> int:
    """31-multiplier rolling hash with 32-bit signed wraparound."""
    h = 0
    for char in word:
        h = ((h << 5) - h + ord(char)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return min(abs(h) % _HASH_BUCKETS + _HASH_OFFSET, _HASH_MAX_ID)


def load_tokenizer(path: Path, max_length: int = DEFAULT_MAX_LENGTH) -> LoadedTokenizer:
    """
    Load tokenizer.json, or a one-token-per-line vocab.txt.

    Args:
        path: Path to tokenizer.json or vocab.txt
        max_length: Maximum sequence length including [CLS]/[SEP]

    Returns:
        LoadedTokenizer ready for encoding

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file cannot be parsed as a tokenizer
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Tokenizer not found at {path}")

    if path.suffix == ".txt":
        tokenizer = LoadedTokenizer.from_vocab(WordPiece.read_file(str(path)), max_length=max_length)
    else:
        try:
            backend = HFTokenizer.from_file(str(path))
        except Exception as e:
            raise ValueError(f"{path} is not a valid tokenizer file: {e}") from e
        tokenizer = LoadedTokenizer(backend, max_length=max_length)

    logger.info(f"Loaded tokenizer from {path} ({tokenizer.vocab_size} tokens)")
    return tokenizer
