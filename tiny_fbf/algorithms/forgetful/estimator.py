"""
Analytic false positive estimates for a forgetful filter chain.

Both estimates are computed from the per-window occupancy FPP (r^k), treating
windows as independent, in O(window_count) and without issuing any query.
That makes them cheap enough to evaluate on every tick of the resize loop.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Sequence, Union

from tiny_fbf.algorithms.bloom.base import BitFilter

if TYPE_CHECKING:
    from tiny_fbf.algorithms.forgetful.chain import WindowChain

WindowSource = Union[Sequence[BitFilter], "WindowChain"]


def _windows(source: WindowSource) -> Sequence[BitFilter]:
    # A chain is snapshotted; a plain sequence is used as given
    if isinstance(source, Sequence):
        return source
    return source.windows()


def window_fpps(source: WindowSource) -> List[float]:
    """Occupancy-based FPP of each window, future first."""
    return [window.fpp_from_occupancy() for window in _windows(source)]


def effective_fpr_from_fpps(fpps: Sequence[float]) -> float:
    """
    Combine per-window FPPs with the adjacency rule's structure.

    effective = sum over adjacent pairs (j, j+1) of fpp(j) * fpp(j+1)
                + fpp(oldest)

    The first pair is (future, present); the lone-oldest term mirrors the
    rule's fallback clause.
    """
    if not fpps:
        return 0.0
    total = 0.0
    for younger, older in zip(fpps, fpps[1:]):
        total += younger * older
    return total + fpps[-1]


def effective_fpr(source: WindowSource) -> float:
    """Analytic false positive rate of the adjacency rule."""
    return effective_fpr_from_fpps(window_fpps(source))


def naive_fpr_from_fpps(fpps: Sequence[float]) -> float:
    """Probability that at least one independent window reports a hit."""
    miss = 1.0
    for fpp in fpps:
        miss *= 1.0 - fpp
    return 1.0 - miss


def naive_fpr(source: WindowSource) -> float:
    """Analytic false positive rate of the naive any-window rule."""
    return naive_fpr_from_fpps(window_fpps(source))


@dataclass(frozen=True)
class FprEstimate:
    """Both analytic estimates plus the per-window values they came from."""

    effective_fpr: float
    naive_fpr: float
    window_fpps: List[float] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "effective_fpr": self.effective_fpr,
            "naive_fpr": self.naive_fpr,
            "window_fpps": list(self.window_fpps),
        }


def estimate(source: WindowSource) -> FprEstimate:
    """Compute both estimates from a single snapshot of the windows."""
    fpps = window_fpps(source)
    return FprEstimate(
        effective_fpr=effective_fpr_from_fpps(fpps),
        naive_fpr=naive_fpr_from_fpps(fpps),
        window_fpps=fpps,
    )
