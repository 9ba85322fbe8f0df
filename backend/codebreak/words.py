import os
from typing import Iterable, List


def normalize_words(words: Iterable[str]) -> List[str]:
    """Uppercase, strip and de-duplicate a word list, keeping first-seen order."""
    return list(dict.fromkeys(w.strip().upper() for w in words if w and w.strip()))


def load_words(path: str) -> List[str]:
    if not os.path.exists(path):
        raise FileNotFoundError(f"word list not found: {path}")
    with open(path, encoding='utf-8') as fh:
        return normalize_words(fh.read().splitlines())
