"""Genome construction, crossover and mutation operators.

Genomes are plain strings built by concatenating alphabet tokens. Operators
never modify their inputs; they return new strings.
"""

from __future__ import annotations

import random
from typing import Optional, Sequence

from mxfuzz.alphabet import Alphabet
from mxfuzz.selection import select_parents


def random_genome(alphabet: Alphabet, rng: random.Random, min_tokens: int = 1, max_tokens: int = 10) -> str:
    """Concatenate a uniformly sized run of uniformly drawn tokens."""

    length = rng.randint(min_tokens, max_tokens)
    return "".join(rng.choice(alphabet.tokens) for _ in range(length))


def initial_population(
    alphabet: Alphabet,
    size: int,
    rng: random.Random,
    seed_payload: Optional[str] = None,
    min_tokens: int = 1,
    max_tokens: int = 10,
) -> list[str]:
    """Build generation 0; a seed payload always lands at index 0."""

    population: list[str] = []
    if seed_payload:
        population.append(seed_payload)
    while len(population) < size:
        population.append(random_genome(alphabet, rng, min_tokens=min_tokens, max_tokens=max_tokens))
    return population


def crossover_point(parent1: str, parent2: str, rng: random.Random) -> int:
    """Uniform split offset in ``[0, min(len(parent1), len(parent2)))``."""

    shortest = min(len(parent1), len(parent2))
    if shortest <= 0:
        return 0
    return rng.randrange(shortest)


def crossover(parent1: str, parent2: str, rng: random.Random) -> str:
    """Single-point crossover on character offsets.

    The split may land inside a tag; the resulting fragments are kept as-is.
    """

    point = crossover_point(parent1, parent2, rng)
    return parent1[:point] + parent2[point:]


def mutate(genome: str, alphabet: Alphabet, rng: random.Random, mutation_rate: float) -> str:
    """Replace each character with a whole random token with probability ``mutation_rate``."""

    pieces: list[str] = []
    for char in genome:
        if rng.random() < mutation_rate:
            pieces.append(rng.choice(alphabet.tokens))
        else:
            pieces.append(char)
    return "".join(pieces)


def reproduce(
    population: Sequence[str],
    fitnesses: Sequence[float],
    alphabet: Alphabet,
    rng: random.Random,
    mutation_rate: float,
    size: Optional[int] = None,
) -> list[str]:
    """Fill a new population via selection, crossover and mutation."""

    target = len(population) if size is None else int(size)
    new_population: list[str] = []
    while len(new_population) < target:
        parent1, parent2 = select_parents(population, fitnesses, rng)
        child = crossover(parent1, parent2, rng)
        new_population.append(mutate(child, alphabet, rng, mutation_rate))
    return new_population
