"""Latency statistics summary (min / max / mean / population std)."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Sequence

import numpy as np


@dataclass(frozen=True)
class LatencySummary:
    """Summary of a latency sample sequence, values in milliseconds rounded to 2 decimals."""

    min: float = 0.0
    max: float = 0.0
    avg: float = 0.0
    std: float = 0.0
    count: int = 0

    def as_display(self) -> Dict[str, str]:
        return {
            "min": f"{self.min:.2f}",
            "max": f"{self.max:.2f}",
            "avg": f"{self.avg:.2f}",
            "std": f"{self.std:.2f}",
        }

    def lines(self) -> list[str]:
        d = self.as_display()
        return [
            "Latency statistics (milliseconds):",
            f"  - Mean latency:       {d['avg']} ms",
            f"  - Minimum latency:    {d['min']} ms",
            f"  - Maximum latency:    {d['max']} ms",
            f"  - Standard deviation: {d['std']} ms",
        ]


def compute_statistics(samples: Sequence[float]) -> LatencySummary:
    if len(samples) == 0:
        return LatencySummary()
    arr = np.asarray(samples, dtype=float)
    return LatencySummary(
        min=round(float(np.min(arr)), 2),
        max=round(float(np.max(arr)), 2),
        avg=round(float(np.mean(arr)), 2),
        # ddof=0: population variance, divide by N
        std=round(float(np.std(arr, ddof=0)), 2),
        count=int(arr.size),
    )
