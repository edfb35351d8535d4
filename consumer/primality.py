"""Miller-Rabin probabilistic primality test on Python integers."""

import random
from typing import Optional

DEFAULT_ROUNDS = 5


def decompose(n: int) -> tuple[int, int]:
    """Return ``(d, s)`` with ``n = d * 2**s`` and ``d`` odd. ``n`` must be positive."""
    d, s = n, 0
    while d % 2 == 0:
        d //= 2
        s += 1
    return d, s


def is_probably_prime(n: int, rounds: int = DEFAULT_ROUNDS, rng: Optional[random.Random] = None) -> bool:
    """
    Miller-Rabin test with ``rounds`` random witnesses.

    False is always correct. True is wrong with probability at most
    ``4 ** -rounds`` for a composite ``n``.
    """
    if rounds < 1:
        raise ValueError("rounds must be a positive integer")
    if n in (2, 3):
        return True
    if n < 2 or n % 2 == 0:
        return False

    rng = rng or random
    d, s = decompose(n - 1)

    for _ in range(rounds):
        # n >= 5 here, so [2, n - 2] is never empty
        a = rng.randrange(2, n - 1)
        x = pow(a, d, n)
        if x == 1 or x == n - 1:
            continue
        for _ in range(s - 1):
            x = pow(x, 2, n)
            if x == n - 1:
                break
        else:
            return False
    return True
