"""Tracking identifier generation."""
import random
import string

ALPHABET = string.ascii_uppercase + string.digits
MIN_LENGTH = 5
MAX_LENGTH = 8
EXTRA_DIGIT_PROBABILITY = 0.3


def generate_tracking_id(rng=None) -> str:
    """
    Generate a pseudo-random tracking identifier.

    A base length is drawn from [5, 8] and filled with characters from A-Z0-9.
    After every character but the last, a random decimal digit is inserted
    with probability 0.3, so identifiers are 5 to 15 characters long.

    The result is not checked against existing identifiers; callers rely on
    the database unique constraint.

    Args:
        rng: random.Random-compatible source, defaults to the random module

    Returns:
        Tracking identifier
    """
    rng = rng or random
    length = rng.randint(MIN_LENGTH, MAX_LENGTH)

    chars = []
    for i in range(length):
        chars.append(rng.choice(ALPHABET))
        if i < length - 1 and rng.random() < EXTRA_DIGIT_PROBABILITY:
            chars.append(str(rng.randint(0, 9)))

    return "".join(chars)
