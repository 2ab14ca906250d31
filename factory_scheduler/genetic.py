# Genetic metaheuristic over production orderings.
# Version: 1.0.0
# Tournament selection, order-preserving crossover, swap mutation, and elitism with a seedable random source.

import logging
import random
from dataclasses import dataclass, field

from .calculated_fields import NormalizedItem
from .constants import FactoryConfig
from .method_evaluation import genetic_fitness
from .stop_signal import StopSignal
from .validator import OptimizerSettings


logger = logging.getLogger(__name__)

Ordering = tuple[int, ...]


@dataclass
class GeneticRunResult:
    """Outcome of one genetic search.

    Attributes:
        best_order: Fittest ordering of the final population.
        best_fitness: Fitness of ``best_order``.
        best_fitness_history: Best fitness of each generation's population.
        generations_run: Generations completed before returning.
        cancelled: True if the stop signal ended the search early.
    """
    best_order: Ordering
    best_fitness: float
    best_fitness_history: list[float] = field(default_factory=list)
    generations_run: int = 0
    cancelled: bool = False


def initialize_population(item_count: int, size: int, rng: random.Random) -> list[Ordering]:
    """Create ``size`` random permutations of range(item_count)."""
    population = []
    base = list(range(item_count))
    for _ in range(size):
        order = base[:]
        rng.shuffle(order)
        population.append(tuple(order))
    return population


def tournament_selection(
    population: list[Ordering],
    fitness: dict[Ordering, float],
    tournament_size: int,
    rng: random.Random
) -> Ordering:
    """Sample ``tournament_size`` individuals and return the fittest.

    Earlier samples win ties.
    """
    best = population[rng.randrange(len(population))]
    for _ in range(tournament_size - 1):
        competitor = population[rng.randrange(len(population))]
        if fitness[competitor] > fitness[best]:
            best = competitor
    return best


def order_crossover(parent1: Ordering, parent2: Ordering, rng: random.Random) -> Ordering:
    """Order-preserving segment crossover.

    Copies the slice parent1[start:end+1] into the child, then fills the
    remaining positions left to right with parent2's genes in parent2 order,
    skipping genes already in the slice.

    Args:
        parent1: Segment donor.
        parent2: Order donor.
        rng: Random source.

    Returns:
        Child ordering (a permutation of the parents' genes).
    """
    size = len(parent1)
    start = rng.randrange(size)
    end = rng.randrange(start, size)

    segment = parent1[start:end + 1]
    taken = set(segment)
    fill = iter(gene for gene in parent2 if gene not in taken)

    child = []
    for position in range(size):
        if start <= position <= end:
            child.append(parent1[position])
        else:
            child.append(next(fill))
    return tuple(child)


def swap_mutation(order: Ordering, rng: random.Random) -> Ordering:
    """Swap two randomly chosen positions (possibly the same one)."""
    genes = list(order)
    i = rng.randrange(len(genes))
    j = rng.randrange(len(genes))
    genes[i], genes[j] = genes[j], genes[i]
    return tuple(genes)


def run_genetic(
    items: list[NormalizedItem],
    config: FactoryConfig,
    settings: OptimizerSettings,
    stop: StopSignal,
    rng: random.Random | None = None
) -> GeneticRunResult:
    """Search orderings with a generational genetic algorithm.

    Each generation the population is sorted by fitness (descending), the
    elite fraction is copied unchanged, and the rest is filled with children
    of two tournament-selected parents: crossover with probability
    ``crossover_rate`` (otherwise a copy of the first parent), then a swap
    mutation with probability ``mutation_rate``. The stop signal is checked
    before every generation; when it trips, the best individual found so
    far is returned with ``cancelled`` set.

    Args:
        items: Normalized work items.
        config: Factory configuration.
        settings: Run options with the genetic tunables and seed.
        stop: Stop signal polled once per generation.
        rng: Random source; a new ``random.Random(settings.seed)`` when None.

    Returns:
        GeneticRunResult with the best ordering and fitness history.
    """
    rng = rng or random.Random(settings.seed)
    cache: dict[Ordering, float] = {}

    def fitness_of(order: Ordering) -> float:
        if order not in cache:
            cache[order] = genetic_fitness(items, order, config, settings.mode)
        return cache[order]

    population = initialize_population(len(items), settings.population_size, rng)
    elite_count = min(settings.elite_count, settings.population_size)
    history: list[float] = []
    cancelled = False
    generation = 0

    for generation in range(settings.generations):
        if stop.is_set():
            cancelled = True
            logger.warning(
                f"Genetic search stopped ({stop.reason()}) after {generation} generation(s)"
            )
            break

        # Stable sort keeps earlier individuals first among equals
        population.sort(key=lambda order: -fitness_of(order))
        history.append(fitness_of(population[0]))
        logger.debug(f"Generation {generation}: best fitness {history[-1]:.1f}")

        next_population = population[:elite_count]
        while len(next_population) < settings.population_size:
            parent1 = tournament_selection(population, cache, settings.tournament_size, rng)
            parent2 = tournament_selection(population, cache, settings.tournament_size, rng)

            if rng.random() < settings.crossover_rate:
                child = order_crossover(parent1, parent2, rng)
            else:
                child = parent1

            if rng.random() < settings.mutation_rate:
                child = swap_mutation(child, rng)

            fitness_of(child)
            next_population.append(child)

        population = next_population
    else:
        generation = settings.generations

    population.sort(key=lambda order: -fitness_of(order))
    best = population[0]
    history.append(fitness_of(best))

    return GeneticRunResult(
        best_order=best,
        best_fitness=fitness_of(best),
        best_fitness_history=history,
        generations_run=generation,
        cancelled=cancelled,
    )
