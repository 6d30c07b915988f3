"""
Uniform shuffling of the TrackSet.

Fisher-Yates, from the last index down to 1, swapping position i with a
position drawn uniformly from [0, i]. Production runs draw from the
operating system's entropy (random.SystemRandom); tests pass a seeded
random.Random.
"""

import random
from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


def shuffle_tracks(tracks: Sequence[T], rng: random.Random | None = None) -> list[T]:
    """
    Return a new list holding a uniformly random permutation of tracks.

    The input sequence is not modified.
    """
    if rng is None:
        rng = random.SystemRandom()

    shuffled = list(tracks)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled
