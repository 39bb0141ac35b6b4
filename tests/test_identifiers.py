"""Tests for tracking identifier generation."""
import random
import re

from services.tracking_service.identifiers import (
    MAX_LENGTH,
    MIN_LENGTH,
    generate_tracking_id,
)

TRACKING_ID = re.compile(r"^[A-Z0-9]{5,15}$")


class StubRandom:
    """Random source with fixed draws."""

    def __init__(self, length, roll, char="A", digit=7):
        self.length = length
        self.roll = roll
        self.char = char
        self.digit = digit

    def randint(self, a, b):
        if (a, b) == (MIN_LENGTH, MAX_LENGTH):
            return self.length
        return self.digit

    def choice(self, seq):
        return self.char

    def random(self):
        return self.roll


def test_identifiers_use_alphabet_and_length_bounds():
    for _ in range(2000):
        tracking_id = generate_tracking_id()
        assert TRACKING_ID.match(tracking_id), tracking_id


def test_identifiers_vary():
    ids = {generate_tracking_id() for _ in range(50)}
    assert len(ids) > 1


def test_same_seed_gives_same_identifier():
    assert generate_tracking_id(random.Random(42)) == generate_tracking_id(random.Random(42))


def test_no_extra_digits_when_roll_misses():
    assert generate_tracking_id(StubRandom(length=5, roll=0.99)) == "AAAAA"


def test_extra_digit_after_every_character_but_the_last():
    tracking_id = generate_tracking_id(StubRandom(length=5, roll=0.0))
    assert tracking_id == "A7A7A7A7A"


def test_longest_identifier():
    tracking_id = generate_tracking_id(StubRandom(length=8, roll=0.0))
    assert len(tracking_id) == 15
    assert tracking_id.endswith("A")


def test_roll_threshold_is_exclusive():
    assert generate_tracking_id(StubRandom(length=6, roll=0.3)) == "AAAAAA"
