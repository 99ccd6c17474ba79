from typing import Iterator, List, Optional

COMMENT_PREFIX = "--"

DEFAULT_ALPHABET = (
    "0123456789"
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "abcdefghijklmnopqrstuvwxyz"
    " !@#$%^&*()-_=+[]{}|;:',.<>?/`~"
)


def partition_alphabet(alphabet_size: int, workers: int) -> List[range]:
    """
    Split alphabet indexes into contiguous first-character ranges, one per worker.
    Each range is max(1, size // workers) wide and the last one absorbs the
    remainder. With more workers than characters the extra ranges are empty.
    """
    if alphabet_size < 1:
        raise ValueError("alphabet must not be empty")
    if workers < 1:
        raise ValueError("workers must be at least 1")

    width = max(1, alphabet_size // workers)
    ranges = []
    for t in range(workers):
        start = min(t * width, alphabet_size)
        end = alphabet_size if t == workers - 1 else min((t + 1) * width, alphabet_size)
        ranges.append(range(start, end))
    return ranges


def count_candidates(length: int, alphabet: str, first: Optional[range] = None) -> int:
    """Number of candidates of `length` whose first character index is in `first`."""
    if length < 1:
        return 0
    first_count = len(alphabet) if first is None else len(first)
    return first_count * len(alphabet) ** (length - 1)


def enumerate_candidates(length: int, alphabet: str, first: Optional[range] = None) -> Iterator[str]:
    """Lazily yield candidates in lexicographic alphabet-index order."""
    if length < 1:
        return
    first = range(len(alphabet)) if first is None else first

    def descend(prefix: str, depth: int) -> Iterator[str]:
        if depth == length:
            yield prefix
            return
        span = first if depth == 0 else range(len(alphabet))
        for i in span:
            yield from descend(prefix + alphabet[i], depth + 1)

    yield from descend("", 0)


def candidate_at(index: int, length: int, alphabet: str) -> str:
    """The `index`-th candidate of `length` in enumeration order."""
    base = len(alphabet)
    if not 0 <= index < base ** length:
        raise IndexError(f"candidate index {index} out of range for length {length}")

    chars = []
    for _ in range(length):
        index, digit = divmod(index, base)
        chars.append(alphabet[digit])
    return "".join(reversed(chars))
