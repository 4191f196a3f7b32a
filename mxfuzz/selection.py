"""Fitness-proportionate (roulette wheel) parent selection."""

from __future__ import annotations

import random
from typing import Sequence, TypeVar

T = TypeVar("T")


def weighted_random_choice(weights: Sequence[float], total_weight: float, rng: random.Random) -> int:
    """Walk the weights subtracting from a uniform draw in ``[0, total_weight)``.

    Returns the first index where the remainder drops to <= 0, or the last
    index when no weight absorbed the draw.
    """

    remainder = rng.random() * total_weight
    for idx, weight in enumerate(weights):
        remainder -= weight
        if remainder <= 0:
            return idx
    return len(weights) - 1


def select_parent_indices(fitnesses: Sequence[float], rng: random.Random) -> tuple[int, int]:
    """Pick two distinct indices by roulette wheel.

    If no index other than the first pick carries positive weight the wheel
    can never move off it, so the second index is drawn uniformly from the
    rest instead.
    """

    size = len(fitnesses)
    if size < 2:
        raise ValueError(f"Parent selection needs at least 2 genomes, got {size}.")

    total = float(sum(fitnesses))
    first = weighted_random_choice(fitnesses, total, rng)

    if not any(weight > 0 for idx, weight in enumerate(fitnesses) if idx != first):
        others = [idx for idx in range(size) if idx != first]
        return first, rng.choice(others)

    second = weighted_random_choice(fitnesses, total, rng)
    while second == first:
        second = weighted_random_choice(fitnesses, total, rng)
    return first, second


def select_parents(population: Sequence[T], fitnesses: Sequence[float], rng: random.Random) -> tuple[T, T]:
    """Return two parents taken from distinct population slots."""

    if len(population) != len(fitnesses):
        raise ValueError(
            f"Population/fitness size mismatch: {len(population)} genomes vs {len(fitnesses)} scores."
        )
    first, second = select_parent_indices(fitnesses, rng)
    return population[first], population[second]
