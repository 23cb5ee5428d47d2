"""Fitness evaluation of candidate schedules.

The evaluator works on integer epoch days instead of expanding lots into
HandlingDate objects: it reimplements the conflict detector's weekend and
overlap checks arithmetically so that thousands of candidates can be scored
per second.

Three layers:
- EvaluationContext: read-only per-lot constants, built once per run
- ScheduleState: aggregate objective state that supports removing and
  re-adding single lots (incremental evaluation)
- FitnessEvaluator: scalarizes measurements under a weight profile and
  caches them by chromosome signature (LRU)
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from typing import Iterable, NamedTuple

from breeding_calendar.calendar.engine import epoch_day, weekday_of
from breeding_calendar.ga.chromosome import Chromosome, Gene
from breeding_calendar.ga.profiles import ScenarioWeights
from breeding_calendar.models.lot import DEFAULT_GAP, DEFAULT_ROUNDS, MAX_ROUND_GAP, MIN_ROUND_GAP, Lot
from breeding_calendar.models.optimizer_config import SUNDAY, OptimizerConfig
from breeding_calendar.models.scenario import ScheduleObjectives

# Rounds with index <= this value count as "early" (rounds 1-2)
LAST_EARLY_ROUND = 1

GeneValue = tuple[int, tuple[int, ...]]


@dataclass(frozen=True)
class LotConstants:
    index: int
    lot_id: str
    anchor: int
    base_gaps: tuple[int, ...]
    days: tuple[int, ...]

    @property
    def span(self) -> int:
        return self.days[-1]


@dataclass
class LotContribution:
    """What one lot adds to the aggregate objectives."""

    offset: int
    gaps: tuple[int, ...]
    anchor: int
    last: int
    weekends_early: int
    weekends_late: int
    # epoch day -> earliest round in which the lot is handled on that day
    days: dict[int, int]
    interval_violations: int
    gap_changes: int


class Measurement(NamedTuple):
    """Weight-independent evaluation result."""

    objectives: ScheduleObjectives
    offset_total: int
    gap_change_total: int


class Evaluation(NamedTuple):
    fitness: float
    penalty: float
    objectives: ScheduleObjectives


class EvaluationContext:
    """Per-run, read-only constants shared by every candidate evaluation."""

    def __init__(
        self,
        lots: list[Lot],
        rounds: int = DEFAULT_ROUNDS,
        min_gap: int = MIN_ROUND_GAP,
        max_gap: int = MAX_ROUND_GAP,
        weekend_days: Iterable[int] = (SUNDAY,),
    ) -> None:
        self.lots = list(lots)
        self.rounds = rounds
        self.min_gap = min_gap
        self.max_gap = max_gap
        self.weekend_days = frozenset(weekend_days)
        self.gap_count = rounds - 1
        self.constants = [
            LotConstants(
                index=i,
                lot_id=lot.id,
                anchor=epoch_day(lot.d0),
                base_gaps=self._normalize_gaps(lot.round_gaps),
                days=lot.protocol.days,
            )
            for i, lot in enumerate(self.lots)
        ]
        self.index_by_id = {c.lot_id: c.index for c in self.constants}

    @classmethod
    def build(cls, lots: list[Lot], config: OptimizerConfig) -> EvaluationContext:
        return cls(
            lots,
            rounds=config.rounds,
            min_gap=config.min_gap,
            max_gap=config.max_gap,
            weekend_days=config.weekend_days,
        )

    def __len__(self) -> int:
        return len(self.constants)

    def _normalize_gaps(self, gaps: Iterable[int]) -> tuple[int, ...]:
        gaps = tuple(int(g) for g in gaps)[: self.gap_count]
        return gaps + (DEFAULT_GAP,) * (self.gap_count - len(gaps))

    @property
    def gap_midpoint(self) -> int:
        return (self.min_gap + self.max_gap) // 2

    # -- genes ---------------------------------------------------------------

    def baseline_genes(self) -> list[Gene]:
        return [Gene(c.lot_id, 0, list(c.base_gaps)) for c in self.constants]

    def baseline_chromosome(self) -> Chromosome:
        return Chromosome(genes=self.baseline_genes())

    def resolve(self, chromosome: Chromosome) -> list[GeneValue]:
        """Effective (offset, gaps) per lot index; lots without a gene keep the baseline."""
        genes = chromosome.genes
        if len(genes) == len(self.constants) and all(
            g.lot_id == c.lot_id for g, c in zip(genes, self.constants)
        ):
            return [(g.d0_offset, self._normalize_gaps(g.round_gaps)) for g in genes]

        resolved: list[GeneValue] = [(0, c.base_gaps) for c in self.constants]
        for gene in genes:
            index = self.index_by_id.get(gene.lot_id)
            if index is not None:
                resolved[index] = (gene.d0_offset, self._normalize_gaps(gene.round_gaps))
        return resolved

    def signature(self, chromosome: Chromosome) -> str:
        """Canonical key of all genes in lot-index order: ``offset:g1,g2,g3|...``."""
        return "|".join(
            f"{offset}:{','.join(map(str, gaps))}" for offset, gaps in self.resolve(chromosome)
        )

    # -- per-lot arithmetic ----------------------------------------------------

    def lot_contribution(self, index: int, offset: int, gaps: tuple[int, ...]) -> LotContribution:
        c = self.constants[index]
        anchor = c.anchor + offset
        weekend_days = self.weekend_days
        span = c.span

        days: dict[int, int] = {}
        weekends_early = 0
        weekends_late = 0
        start = anchor
        for round_index in range(self.rounds):
            if round_index > 0:
                start += span + gaps[round_index - 1]
            for protocol_day in c.days:
                day = start + protocol_day
                if weekday_of(day) in weekend_days:
                    if round_index <= LAST_EARLY_ROUND:
                        weekends_early += 1
                    else:
                        weekends_late += 1
                if day not in days:
                    days[day] = round_index

        return LotContribution(
            offset=offset,
            gaps=gaps,
            anchor=anchor,
            last=start + span,
            weekends_early=weekends_early,
            weekends_late=weekends_late,
            days=days,
            interval_violations=sum(1 for g in gaps if g < self.min_gap or g > self.max_gap),
            gap_changes=sum(1 for g, b in zip(gaps, c.base_gaps) if g != b),
        )


class ScheduleState:
    """Aggregate objective state of one chromosome.

    Lots can be removed and re-added one at a time; the result is always
    identical to building the state from scratch.
    """

    def __init__(self, context: EvaluationContext) -> None:
        self.context = context
        self.contributions: list[LotContribution | None] = [None] * len(context)
        # epoch day -> {lot index: earliest round touching that day}
        self.day_lots: dict[int, dict[int, int]] = {}
        self.weekends_early = 0
        self.weekends_late = 0
        self.overlaps_early = 0
        self.overlaps_late = 0
        self.interval_violations = 0
        self.offset_total = 0
        self.gap_change_total = 0
        # Lot indices whose genes may have changed since the last sync
        self.pending: set[int] = set()

    @classmethod
    def build(cls, context: EvaluationContext, resolved: list[GeneValue]) -> ScheduleState:
        state = cls(context)
        for index, (offset, gaps) in enumerate(resolved):
            state.add_lot(index, context.lot_contribution(index, offset, gaps))
        return state

    def _count_day(self, day: int, sign: int) -> None:
        # A shared day counts once, bucketed by the lowest-index lot's round
        lots = self.day_lots.get(day)
        if lots is None or len(lots) < 2:
            return
        if lots[min(lots)] <= LAST_EARLY_ROUND:
            self.overlaps_early += sign
        else:
            self.overlaps_late += sign

    def add_lot(self, index: int, contribution: LotContribution) -> None:
        if self.contributions[index] is not None:
            self.remove_lot(index)
        for day, round_index in contribution.days.items():
            self._count_day(day, -1)
            self.day_lots.setdefault(day, {})[index] = round_index
            self._count_day(day, +1)
        self.weekends_early += contribution.weekends_early
        self.weekends_late += contribution.weekends_late
        self.interval_violations += contribution.interval_violations
        self.offset_total += abs(contribution.offset)
        self.gap_change_total += contribution.gap_changes
        self.contributions[index] = contribution

    def remove_lot(self, index: int) -> None:
        contribution = self.contributions[index]
        if contribution is None:
            return
        for day in contribution.days:
            self._count_day(day, -1)
            lots = self.day_lots[day]
            del lots[index]
            if lots:
                self._count_day(day, +1)
            else:
                del self.day_lots[day]
        self.weekends_early -= contribution.weekends_early
        self.weekends_late -= contribution.weekends_late
        self.interval_violations -= contribution.interval_violations
        self.offset_total -= abs(contribution.offset)
        self.gap_change_total -= contribution.gap_changes
        self.contributions[index] = None

    def update_lot(self, index: int, offset: int, gaps: tuple[int, ...]) -> bool:
        """Replace one lot's contribution; returns False when nothing changed."""
        current = self.contributions[index]
        if current is not None and current.offset == offset and current.gaps == gaps:
            return False
        self.add_lot(index, self.context.lot_contribution(index, offset, gaps))
        return True

    def measurement(self) -> Measurement:
        contributions = [c for c in self.contributions if c is not None]
        cycle = 0
        if contributions:
            cycle = max(c.last for c in contributions) - min(c.anchor for c in contributions)
        objectives = ScheduleObjectives(
            weekends_rounds_12=self.weekends_early,
            weekends_rounds_34=self.weekends_late,
            overlaps_rounds_12=self.overlaps_early,
            overlaps_rounds_34=self.overlaps_late,
            total_cycle_days=cycle,
            interval_violations=self.interval_violations,
        )
        return Measurement(objectives, self.offset_total, self.gap_change_total)


def scalarize(measurement: Measurement, weights: ScenarioWeights) -> Evaluation:
    """Single penalty and normalized fitness (1 / (1 + penalty), in (0, 1])."""
    penalty = weights.objective_penalty(measurement.objectives)
    if weights.d0_offset_penalty > 0:
        penalty += measurement.offset_total * weights.d0_offset_penalty
    if weights.gap_change_penalty > 0:
        penalty += measurement.gap_change_total * weights.gap_change_penalty
    penalty = max(0.0, penalty)
    return Evaluation(1.0 / (1.0 + penalty), penalty, measurement.objectives)


class FitnessEvaluator:
    """Scores chromosomes with full or incremental recomputation.

    Measurements are cached by signature. They do not depend on weights, so
    one cache serves every scenario profile of a run.
    """

    def __init__(self, context: EvaluationContext, cache_size: int = 4096) -> None:
        self.context = context
        self.cache_size = cache_size
        self._cache: OrderedDict[str, Measurement] = OrderedDict()
        self.evaluations = 0
        self.cache_hits = 0

    def _lookup(self, signature: str) -> Measurement | None:
        measurement = self._cache.get(signature)
        if measurement is not None:
            self._cache.move_to_end(signature)
            self.cache_hits += 1
        return measurement

    def _store(self, signature: str, measurement: Measurement) -> None:
        self._cache[signature] = measurement
        self._cache.move_to_end(signature)
        while len(self._cache) > self.cache_size:
            self._cache.popitem(last=False)

    def _apply(self, chromosome: Chromosome, evaluation: Evaluation) -> Evaluation:
        chromosome.fitness = evaluation.fitness
        chromosome.objectives = evaluation.objectives
        return evaluation

    def measure(self, chromosome: Chromosome) -> Measurement:
        """Full recomputation (or cache hit) of the chromosome's objectives."""
        signature = self.context.signature(chromosome)
        measurement = self._lookup(signature)
        if measurement is None:
            state = ScheduleState.build(self.context, self.context.resolve(chromosome))
            measurement = state.measurement()
            self._store(signature, measurement)
        return measurement

    def evaluate(self, chromosome: Chromosome, weights: ScenarioWeights) -> Evaluation:
        self.evaluations += 1
        return self._apply(chromosome, scalarize(self.measure(chromosome), weights))

    def evaluate_delta(
        self,
        chromosome: Chromosome,
        weights: ScenarioWeights,
        changed: Iterable[int] | None = None,
    ) -> Evaluation:
        """Evaluate reusing the chromosome's previous state.

        ``changed`` lists the lot indices whose genes changed since the
        previous ``evaluate_delta`` call on this chromosome; ``None`` means
        "compare every lot". The first call builds the state from scratch.
        """
        self.evaluations += 1
        state = chromosome.state
        resolved = self.context.resolve(chromosome)

        if not isinstance(state, ScheduleState) or state.context is not self.context:
            state = ScheduleState.build(self.context, resolved)
            chromosome.state = state
        elif changed is None:
            state.pending.update(range(len(self.context)))
        else:
            state.pending.update(changed)

        signature = "|".join(
            f"{offset}:{','.join(map(str, gaps))}" for offset, gaps in resolved
        )
        measurement = self._lookup(signature)
        if measurement is None:
            for index in state.pending:
                state.update_lot(index, *resolved[index])
            state.pending.clear()
            measurement = state.measurement()
            self._store(signature, measurement)

        return self._apply(chromosome, scalarize(measurement, weights))


def evaluate_lots(
    lots: list[Lot],
    weights: ScenarioWeights,
    config: OptimizerConfig | None = None,
) -> Evaluation:
    """Score a plain lot list (no genes) under ``weights``."""
    context = EvaluationContext.build(lots, config or OptimizerConfig())
    return FitnessEvaluator(context).evaluate(context.baseline_chromosome(), weights)
