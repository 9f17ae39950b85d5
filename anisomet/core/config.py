"""Configuration objects for metric-field kernels and the scaling loop."""
from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from typing import Optional

from .errors import check


@dataclass
class MetricConfig:
    """Execution parameters of the per-entity parallel map.

    Attributes
    ----------
    n_workers : int or None
        Thread count for chunked kernels. ``None`` uses ``min(4, os.cpu_count())``.
    chunk_size : int
        Entities per chunk. Fields no larger than one chunk run inline.
    """
    n_workers: Optional[int] = None
    chunk_size: int = 16384

    def resolved_workers(self) -> int:
        if self.n_workers is not None:
            return max(1, int(self.n_workers))
        return max(1, min(4, os.cpu_count() or 1))


@dataclass
class ScalingConfig:
    """Parameters of the target-element-count scaling loop.

    ``max_iterations`` bounds the fixed-point iteration; exceeding it raises
    :class:`~anisomet.core.errors.MetricConvergenceError`.
    """
    max_iterations: int = 100
    parallel: MetricConfig = field(default_factory=MetricConfig)

    def __post_init__(self):
        check(int(self.max_iterations) >= 1,
              f"max_iterations must be at least 1, got {self.max_iterations!r}")

    @classmethod
    def from_metric_config(cls, metric_cfg: Optional[MetricConfig], **overrides) -> 'ScalingConfig':
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(overrides) - known)
        check(not unknown, f"unknown ScalingConfig option(s): {', '.join(unknown)}")
        return replace(cls(parallel=metric_cfg or MetricConfig()), **overrides)


__all__ = ['MetricConfig', 'ScalingConfig']
