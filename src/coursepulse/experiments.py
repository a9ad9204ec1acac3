"""Traffic allocation and weighted variant selection for A/B tests."""

from typing import Sequence

import numpy as np


def is_included(traffic_allocation: float, rng: np.random.Generator) -> bool:
    """Whether a new visitor enters a test that takes `traffic_allocation` % of traffic."""
    return rng.uniform(0, 100) < traffic_allocation


def choose_variant(variants: Sequence[dict], rng: np.random.Generator) -> dict:
    """Draw one variant with probability proportional to its `traffic_weight`."""
    if not variants:
        raise ValueError("Cannot choose from an empty list of variants.")
    weights = np.array([float(v["traffic_weight"]) for v in variants])
    total = weights.sum()
    if total <= 0:
        raise ValueError("Variant traffic weights must not all be zero.")
    index = rng.choice(len(variants), p=weights / total)
    return variants[int(index)]
