"""Answer model - one recorded value per step id."""

from typing import Dict, FrozenSet, Iterator, Optional, Sequence, Tuple, Union

from .errors import AnswerError, StepTypeError
from .schema import Step, StepType

# choice -> label, toggle -> bool, text -> str, multi -> frozenset of labels
AnswerValue = Union[str, bool, FrozenSet[str]]


def normalize_answer(step: Step, value) -> AnswerValue:
    """Check a raw value against its step and return the stored form.

    Args:
        step: Step the value answers
        value: Raw value (label, bool, text, or iterable of labels)

    Returns:
        Value in its canonical stored shape

    Raises:
        AnswerError: If the value does not fit the step type or options
    """
    if step.type is StepType.CHOICE:
        if not isinstance(value, str) or step.option(value) is None:
            raise AnswerError(f"{value!r} is not an option of step '{step.id}'")
        return value
    if step.type is StepType.TOGGLE:
        if not isinstance(value, bool):
            raise AnswerError(f"Step '{step.id}' expects yes or no, got {value!r}")
        return value
    if step.type is StepType.TEXT:
        if not isinstance(value, str):
            raise AnswerError(f"Step '{step.id}' expects text, got {value!r}")
        return value
    if step.type is StepType.MULTI:
        if isinstance(value, (str, bytes)):
            raise AnswerError(f"Step '{step.id}' expects a collection of labels, got {value!r}")
        try:
            labels = frozenset(value)
        except TypeError:
            raise AnswerError(f"Step '{step.id}' expects a collection of labels, got {value!r}")
        unknown = sorted(str(label) for label in labels if not isinstance(label, str) or step.option(label) is None)
        if unknown:
            raise AnswerError(f"Not options of step '{step.id}': {', '.join(unknown)}")
        return labels
    raise StepTypeError(step.type)


class AnswerModel:
    """
    Typed storage of answers for one config's steps.

    Recording an answer drops every answer for a step declared after it,
    since those steps may no longer be visible.
    """

    def __init__(self, steps: Sequence[Step]):
        self._steps: Tuple[Step, ...] = tuple(steps)
        self._order: Dict[str, int] = {}
        for index, step in enumerate(self._steps):
            self._order.setdefault(step.id, index)
        self._values: Dict[str, AnswerValue] = {}

    def record(self, step: Step, value) -> AnswerValue:
        """Store a value for a step, replacing any earlier value.

        Raises:
            AnswerError: If the step is unknown or the value does not fit
        """
        if step.id not in self._order:
            raise AnswerError(f"Unknown step '{step.id}'")
        stored = normalize_answer(step, value)
        self.invalidate_after(step.id)
        self._values[step.id] = stored
        return stored

    def invalidate_after(self, step_id: str) -> None:
        """Remove answers for every step declared after step_id."""
        cutoff = self._order[step_id]
        for other_id in list(self._values):
            if self._order[other_id] > cutoff:
                del self._values[other_id]

    def get(self, step_id: str, default: Optional[AnswerValue] = None) -> Optional[AnswerValue]:
        return self._values.get(step_id, default)

    def __contains__(self, step_id: object) -> bool:
        return step_id in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def snapshot(self) -> Dict[str, AnswerValue]:
        """Copy of the current answers. Values are immutable, so a shallow copy suffices."""
        return dict(self._values)

    def restore(self, snapshot: Dict[str, AnswerValue]) -> None:
        self._values = dict(snapshot)

    def clear(self) -> None:
        self._values.clear()

    def as_dict(self) -> Dict[str, AnswerValue]:
        return dict(self._values)
