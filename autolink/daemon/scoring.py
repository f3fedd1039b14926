"""Usage-based ranking of suggestion candidates."""

from dataclasses import dataclass
from typing import Callable, List, Optional

from .config import Settings
from .models import Candidate, UsageRecord, MS_PER_DAY, now_ms
from .usage import UsageStatsStore


# Never-used candidates keep this base so a newness boost can still lift them
SCORE_FLOOR = 0.01

# Decay never takes more than half of the usage score away
DECAY_FLOOR = 0.5


@dataclass(frozen=True)
class CorpusMaxima:
    """Normalisers computed once per ranking pass over its candidate set."""
    max_count: int = 0
    max_recency: float = 0.0


def recency_value(last_used: int, now: int) -> float:
    """1 / (elapsed ms + 1): 1.0 for a selection made right now."""
    return 1.0 / (max(0, now - last_used) + 1)


class ScoringEngine:
    """
    Combines frequency, recency with decay, and newness into one score.

    score = effective_base * decay * newness

    - frequency: selection count relative to the best candidate
    - recency: 1/(age+1) relative to the most recent candidate, blended
      with frequency by ``recency_weight`` percent
    - decay: linear fade from 1.0 to 0.5 over one threshold period once
      a note has not been selected for ``decay_threshold_days``
    - newness: multiplier fading linearly from 1+strength at creation to
      1.0 at ``newness_boost_days``

    Scores depend on the candidate set they were computed for and are not
    comparable across queries.
    """

    def __init__(self, usage: UsageStatsStore, clock: Callable[[], int] = now_ms):
        self.usage = usage
        self._clock = clock

    def corpus_maxima(self, candidates: List[Candidate], now: int) -> CorpusMaxima:
        max_count = 0
        max_recency = 0.0
        for candidate in candidates:
            record = self.usage.get(candidate.identity)
            if record is None:
                continue
            max_count = max(max_count, record.count)
            if record.has_history:
                max_recency = max(max_recency, recency_value(record.last_used, now))
        return CorpusMaxima(max_count=max_count, max_recency=max_recency)

    @staticmethod
    def frequency_score(record: Optional[UsageRecord], maxima: CorpusMaxima) -> float:
        if record is None or maxima.max_count <= 0:
            return 0.0
        return record.count / maxima.max_count

    @staticmethod
    def recency_score(
        record: Optional[UsageRecord],
        now: int,
        maxima: CorpusMaxima,
        settings: Settings
    ) -> float:
        if not settings.enable_recency_boost or record is None or not record.has_history:
            return 0.0
        if maxima.max_recency <= 0:
            return 0.0
        return recency_value(record.last_used, now) / maxima.max_recency

    @classmethod
    def base_score(
        cls,
        record: Optional[UsageRecord],
        now: int,
        maxima: CorpusMaxima,
        settings: Settings
    ) -> float:
        frequency = cls.frequency_score(record, maxima)
        if not settings.enable_recency_boost:
            return frequency
        weight = settings.recency_weight / 100
        recency = cls.recency_score(record, now, maxima, settings)
        return frequency * (1 - weight) + recency * weight

    @staticmethod
    def decay_factor(record: Optional[UsageRecord], now: int, settings: Settings) -> float:
        if record is None or not record.has_history:
            return 1.0
        threshold = settings.decay_threshold_days
        age_days = max(0, now - record.last_used) / MS_PER_DAY
        if age_days <= threshold:
            return 1.0
        overshoot = min(1.0, (age_days - threshold) / threshold)
        return 1.0 - DECAY_FLOOR * overshoot

    @staticmethod
    def newness_boost(candidate: Candidate, now: int, settings: Settings) -> float:
        if not settings.enable_newness_boost or candidate.created_at is None:
            return 1.0
        age_days = max(0, now - candidate.created_at) / MS_PER_DAY
        if age_days > settings.newness_boost_days:
            return 1.0
        return 1.0 + (1 - age_days / settings.newness_boost_days) * settings.newness_boost_strength

    def score(
        self,
        candidate: Candidate,
        record: Optional[UsageRecord],
        now: int,
        maxima: CorpusMaxima,
        settings: Settings
    ) -> float:
        base = self.base_score(record, now, maxima, settings)
        effective_base = base if base > 0 else SCORE_FLOOR
        return (
            effective_base
            * self.decay_factor(record, now, settings)
            * self.newness_boost(candidate, now, settings)
        )

    def rank(
        self,
        candidates: List[Candidate],
        settings: Settings,
        now: Optional[int] = None
    ) -> List[Candidate]:
        """Order candidates by descending score; ties keep matcher order."""
        if not settings.enable_usage_ranking:
            return list(candidates)

        if now is None:
            now = self._clock()
        maxima = self.corpus_maxima(candidates, now)
        scores = [
            self.score(c, self.usage.get(c.identity), now, maxima, settings)
            for c in candidates
        ]
        # sorted() is stable, so equal scores keep their input order
        order = sorted(range(len(candidates)), key=lambda i: scores[i], reverse=True)
        return [candidates[i] for i in order]
