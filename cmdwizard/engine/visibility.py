"""Visibility evaluator - which steps are active for a set of answers.

Visibility is recomputed from scratch every time it is asked for. A step
is visible when it has no `when` clause, or when every step named in its
clause is itself visible, answered, and answered with the expected value.
Because `when` may only reference earlier steps, one pass in declaration
order settles the cascade.
"""

from typing import Dict, List, Sequence, Union

from .errors import StepTypeError
from .schema import Step, StepType


def when_matches(target: Step, answer, expected: Union[bool, str]) -> bool:
    """Compare one recorded answer against a when-expectation.

    Args:
        target: The step the when clause points at
        answer: Recorded answer for that step
        expected: Value from the when clause

    Returns:
        True if the answer satisfies the expectation
    """
    if target.type is StepType.TOGGLE:
        if isinstance(expected, str):
            # Toggle expectations may be written as "true"/"false"
            expected = expected == 'true'
        return isinstance(answer, bool) and answer == expected
    if isinstance(expected, bool):
        return False
    if target.type in (StepType.CHOICE, StepType.TEXT):
        return isinstance(answer, str) and answer == expected
    if target.type is StepType.MULTI:
        return isinstance(answer, frozenset) and expected in answer
    raise StepTypeError(target.type)


def visible_step_indices(steps: Sequence[Step], answers) -> List[int]:
    """Compute the ordered indices of currently visible steps.

    Args:
        steps: Steps in declaration order
        answers: AnswerModel or mapping of step id -> recorded value

    Returns:
        Declaration indices of visible steps, ascending
    """
    visible: List[int] = []
    shown: Dict[str, Step] = {}

    for index, step in enumerate(steps):
        if _is_visible(step, shown, answers):
            visible.append(index)
            shown.setdefault(step.id, step)

    return visible


def visible_steps(steps: Sequence[Step], answers) -> List[Step]:
    """Same as visible_step_indices, returning the steps themselves."""
    return [steps[index] for index in visible_step_indices(steps, answers)]


def _is_visible(step: Step, visible_before: Dict[str, Step], answers) -> bool:
    if not step.when:
        return True
    for ref_id, expected in step.when.items():
        target = visible_before.get(ref_id)
        if target is None or ref_id not in answers:
            return False
        if not when_matches(target, answers.get(ref_id), expected):
            return False
    return True
