from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .hosts import Target


@dataclass(frozen=True)
class ProbeResult:
    target: Target
    rtt: float  # mean round-trip time, ms
    jtt: float  # jitter, ms
    sent: int
    drops: int
    received: int = 0


def mean_rtt(samples: Sequence[float]) -> float:
    if not samples:
        return 0.0
    return sum(samples) / len(samples)


def jitter(samples: Sequence[float]) -> float:
    """Mean absolute difference between consecutive samples.

    Fewer than two samples have no pairs to compare, so the jitter is 0.0.
    """
    if len(samples) < 2:
        return 0.0
    diff = sum(abs(prev - cur) for prev, cur in zip(samples, samples[1:]))
    return diff / (len(samples) - 1)


def drops(sent: int, received: int) -> int:
    # Duplicate replies can push received above sent
    return max(0, sent - received)


def summarize(
    target: Target, sent: int, received: int, samples: Sequence[float]
) -> ProbeResult:
    return ProbeResult(
        target=target,
        rtt=mean_rtt(samples),
        jtt=jitter(samples),
        sent=sent,
        drops=drops(sent, received),
        received=received,
    )
