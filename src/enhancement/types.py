"""Data structures for the Enhancement Pipeline."""

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

STEP_SMOOTHING = "edge-preserving-smoothing"
STEP_EQUALIZATION = "adaptive-histogram-equalization"
STEP_SHARPENING = "adaptive-unsharp-mask"
STEP_UPSCALE = "super-resolution×{factor}"
STEP_BINARIZATION = "adaptive-threshold"


@dataclass
class EnhancementRecord:
    """
    Append-only audit trail of enhancement operations.

    Lists while the pipeline runs, tuples once frozen.

    Attributes:
        steps: Applied operation names in execution order
        skipped: Omitted operations with the reason they were skipped
    """

    steps: Sequence[str] = field(default_factory=list)
    skipped: Sequence[str] = field(default_factory=list)
    _frozen: bool = field(default=False, repr=False, compare=False)

    def add_step(self, name: str) -> None:
        self._check_open()
        self._open_list("steps").append(name)

    def add_skipped(self, name: str, reason: str) -> None:
        self._check_open()
        self._open_list("skipped").append(f"{name} skipped: {reason}")

    def freeze(self) -> "EnhancementRecord":
        """Close the record; steps and skipped become tuples and appends raise."""
        self.steps = tuple(self.steps)
        self.skipped = tuple(self.skipped)
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def applied(self) -> Tuple[str, ...]:
        return tuple(self.steps)

    def _check_open(self) -> None:
        if self._frozen:
            raise RuntimeError("EnhancementRecord is frozen")

    def _open_list(self, name: str) -> List[str]:
        values = getattr(self, name)
        if not isinstance(values, list):
            values = list(values)
            setattr(self, name, values)
        return values
