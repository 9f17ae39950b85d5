"""Scaling-loop statistics and presentation utilities."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


@dataclass
class ScalingStats:
    target_nelems: float = 0.0
    tolerance: float = 0.0
    iterations: int = 0
    converged: bool = False
    # (eps used to build the metric, scalar returned by the estimator)
    history: List[Tuple[float, float]] = field(default_factory=list)
    time_total: float = 0.0

    def record(self, eps: float, scalar: float) -> None:
        self.history.append((float(eps), float(scalar)))
        self.iterations += 1

    @property
    def final_eps(self) -> Optional[float]:
        return self.history[-1][0] if self.history else None

    @property
    def final_scalar(self) -> Optional[float]:
        return self.history[-1][1] if self.history else None

    def to_dict(self) -> Dict[str, Any]:  # pragma: no cover - simple mapping
        return {
            'target_nelems': self.target_nelems,
            'tolerance': self.tolerance,
            'iterations': self.iterations,
            'converged': self.converged,
            'final_eps': self.final_eps,
            'final_scalar': self.final_scalar,
            'estimated_nelems': (self.target_nelems * self.final_scalar) if self.history else 0.0,
            'time_total': self.time_total,
            'time_avg': (self.time_total / self.iterations) if self.iterations else 0.0,
        }


def format_scaling_table(stats: ScalingStats) -> str:
    """Return a human readable multi-line table of the scaling iterations."""
    if not stats.history:
        return "<no iterations>"
    header = ["iter", "eps", "scalar", "|scalar-1|"]
    rows = []
    for i, (eps, scalar) in enumerate(stats.history, start=1):
        rows.append([str(i), f"{eps:.6g}", f"{scalar:.6g}", f"{abs(scalar - 1.0):.3e}"])
    col_w = [len(h) for h in header]
    for r in rows:
        for i, v in enumerate(r):
            col_w[i] = max(col_w[i], len(v))

    def fmt(r):
        return " ".join(r[i].rjust(col_w[i]) for i in range(len(r)))
    lines = [fmt(header), "-" * (sum(col_w) + len(col_w) - 1)] + [fmt(r) for r in rows]
    status = "converged" if stats.converged else "not converged"
    lines.append(f"{status} after {stats.iterations} iterations (tolerance {stats.tolerance:g})")
    return "\n".join(lines)


__all__ = ["ScalingStats", "format_scaling_table"]
