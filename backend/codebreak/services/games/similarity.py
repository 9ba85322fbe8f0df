import jellyfish

CORRECT_THRESHOLD = 0.9


def normalize(word) -> str:
    return (word or '').strip().upper()


def similarity(guess: str, target: str) -> float:
    """Jaro-Winkler similarity of two words after case normalization.

    Returns a value in [0.0, 1.0]; an empty guess or target scores 0.0.
    """
    a, b = normalize(guess), normalize(target)
    if not a or not b:
        return 0.0
    return jellyfish.jaro_winkler_similarity(a, b)


def is_correct(guess: str, target: str, threshold: float = CORRECT_THRESHOLD) -> bool:
    return similarity(guess, target) >= threshold
