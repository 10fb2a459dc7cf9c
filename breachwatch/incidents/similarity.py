"""
Title similarity scoring for BreachWatch.

Similarity is the Levenshtein edit distance between the lowercased titles,
normalized by the length of the longer title and inverted so that 1.0 means
identical and 0.0 means nothing in common.
"""


def levenshtein_distance(a: str, b: str) -> int:
    """
    Compute the Levenshtein edit distance between two strings.

    Uses the two-row dynamic programming formulation, so memory is linear
    in the length of the shorter string.

    Args:
        a: First string.
        b: Second string.

    Returns:
        Minimum number of single-character insertions, deletions, and
        substitutions needed to turn a into b.
    """
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(
                min(
                    previous[j] + 1,  # deletion
                    current[j - 1] + 1,  # insertion
                    previous[j - 1] + cost,  # substitution
                )
            )
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """
    Score how closely two titles match, case-insensitively.

    Args:
        a: First title.
        b: Second title.

    Returns:
        A score in [0.0, 1.0]. Two empty strings score 1.0.

    Example:
        >>> similarity("Hello World", "hello world")
        1.0
    """
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    distance = levenshtein_distance(a.lower(), b.lower())
    # Lowercasing can change length for a few characters (e.g. "İ").
    return max(0.0, 1.0 - distance / longest)
