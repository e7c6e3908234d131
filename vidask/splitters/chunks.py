"""Token-bounded, sentence-aligned transcript chunking."""

from typing import Callable, Protocol, Sequence

from vidask.errors import InputValidationError
from vidask.models import TextChunk

SENTENCE_BOUNDARY = "."


class Tokenizer(Protocol):
    boundary_token: int

    def encode(self, text: str) -> list[int]: ...

    def decode(self, tokens: Sequence[int]) -> str: ...

    def is_complete(self, tokens: Sequence[int]) -> bool: ...


class TiktokenTokenizer:
    """Tokenizer backed by tiktoken, using the model's own encoding if known."""

    def __init__(self, model: str = "gpt-4"):
        import tiktoken

        try:
            self._encoding = tiktoken.encoding_for_model(model)
        except KeyError:
            self._encoding = tiktoken.get_encoding("cl100k_base")
        self.boundary_token = self._encoding.encode(SENTENCE_BOUNDARY)[0]

    def encode(self, text: str) -> list[int]:
        return self._encoding.encode(text, disallowed_special=())

    def decode(self, tokens: Sequence[int]) -> str:
        return self._encoding.decode(list(tokens))

    def is_complete(self, tokens: Sequence[int]) -> bool:
        """True if *tokens* decode to whole UTF-8 characters."""
        try:
            self._encoding.decode_bytes(list(tokens)).decode("utf-8")
        except UnicodeDecodeError:
            return False
        return True


def split_tokens(
    tokens: Sequence[int],
    max_tokens: int,
    boundary_token: int,
    complete: Callable[[Sequence[int]], bool] | None = None,
) -> list[list[int]]:
    """Split *tokens* into consecutive runs of at most *max_tokens*.

    Each run ends just after the last boundary token in its window. When the
    window holds no boundary past its first token, the run is cut at
    *max_tokens*, moved back so that ``complete(run)`` holds if *complete* is
    given. A single character wider than *max_tokens* is kept whole, so that
    run alone may be longer. Concatenating the runs gives back *tokens* exactly.
    """
    if max_tokens <= 0:
        raise InputValidationError(f"max_tokens must be positive, got {max_tokens}")

    runs: list[list[int]] = []
    n = len(tokens)
    i = 0
    while i < n:
        end = i + max_tokens
        if end >= n:
            end = n
        else:
            # Scan back for a boundary, never below the cursor
            j = end - 1
            while j > i and tokens[j] != boundary_token:
                j -= 1
            if j > i:
                end = j + 1
            elif complete is not None:
                end = _complete_cut(tokens, i, end, complete)
        runs.append(list(tokens[i:end]))
        i = end
    return runs


def _complete_cut(
    tokens: Sequence[int], start: int, end: int, complete: Callable[[Sequence[int]], bool]
) -> int:
    cut = end
    while cut > start + 1 and not complete(tokens[start:cut]):
        cut -= 1
    if complete(tokens[start:cut]):
        return cut
    cut = end + 1
    while cut < len(tokens) and not complete(tokens[start:cut]):
        cut += 1
    return cut


def chunk_text(text: str, tokenizer: Tokenizer, max_tokens: int) -> list[TextChunk]:
    """Tokenize *text* and return sentence-aligned chunks of at most *max_tokens*.

    Chunks never split a character across two runs, so joining their text
    reproduces *text* for any tokenizer.
    """
    tokens = tokenizer.encode(text)
    runs = split_tokens(tokens, max_tokens, tokenizer.boundary_token, tokenizer.is_complete)
    return [
        TextChunk(index=i, text=tokenizer.decode(run), token_count=len(run))
        for i, run in enumerate(runs, 1)
    ]
