from __future__ import annotations

import math
import random
from collections.abc import Hashable, Iterable

from services.obs_media_service.core.errors import InternalInvariantError


class WeightedRandomPicker:
    """
    Random picker that favours items chosen less often.

    Each item's weight is ``1 / (1 + count)``. Every ``decay_every`` selections
    all counts shrink by ``decay_factor`` (never below 1) so the distribution
    keeps moving instead of settling into a fixed rotation.

    Usage:
        picker = WeightedRandomPicker(["intro.mp4", "outro.mp4", "clip.mp4"])
        picker.pick()
        picker.add_item("new_clip.mp4")
    """

    DECAY_EVERY = 50
    DECAY_FACTOR = 0.1

    def __init__(
        self,
        items: Iterable[Hashable],
        *,
        rng: random.Random | None = None,
        decay_every: int = DECAY_EVERY,
        decay_factor: float = DECAY_FACTOR,
    ) -> None:
        self._frequencies: dict[Hashable, int] = {item: 0 for item in items}
        self._random = rng or random.Random()
        self._decay_every = decay_every
        self._decay_factor = min(max(decay_factor, 0.0), 1.0)
        self.total_selections = 0

    @property
    def frequencies(self) -> dict[Hashable, int]:
        return dict(self._frequencies)

    def __contains__(self, item: Hashable) -> bool:
        return item in self._frequencies

    def __len__(self) -> int:
        return len(self._frequencies)

    def pick(self) -> Hashable:
        if not self._frequencies:
            raise ValueError("Cannot pick from an empty item set")

        if self.total_selections == 0:
            chosen = self._random.choice(list(self._frequencies))
        else:
            chosen = self._weighted_choice()

        self._frequencies[chosen] += 1
        self.total_selections += 1
        if self._decay_every and self.total_selections % self._decay_every == 0:
            self._apply_decay()
        return chosen

    def add_item(self, item: Hashable) -> None:
        if item in self._frequencies:
            return
        if self._frequencies:
            average = sum(self._frequencies.values()) / len(self._frequencies)
        else:
            average = 0.0
        # Round half away from zero; counts are never negative
        seed = max(int(math.floor(average + 0.5)), 1)
        self._frequencies[item] = seed
        self.total_selections += seed

    def _weighted_choice(self) -> Hashable:
        weights = {item: 1.0 / (1 + count) for item, count in self._frequencies.items()}
        threshold = self._random.random() * sum(weights.values())
        cumulative = 0.0
        for item, weight in weights.items():
            cumulative += weight
            if threshold < cumulative:
                return item
        raise InternalInvariantError(
            "Weighted selection fell through without choosing an item"
        )

    def _apply_decay(self) -> None:
        for item, count in self._frequencies.items():
            self._frequencies[item] = max(
                1, int(math.floor(count * (1 - self._decay_factor)))
            )
        self.total_selections = sum(self._frequencies.values())
