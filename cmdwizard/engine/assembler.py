"""Command assembler - turns answers or a preset into a command string."""

from typing import List, Sequence

from .errors import StepTypeError
from .schema import CommandConfig, Preset, Step, StepType
from .visibility import visible_steps


def join_fragments(fragments: Sequence[str]) -> str:
    """Join non-empty fragments with single spaces."""
    return ' '.join(fragment for fragment in fragments if fragment)


def step_fragments(step: Step, answer) -> List[str]:
    """Flag fragments contributed by one answered step.

    Args:
        step: Step that was answered
        answer: Recorded answer in AnswerModel shape

    Returns:
        Fragments in emission order (may be empty)
    """
    if step.type is StepType.CHOICE:
        opt = step.option(answer)
        return [opt.flag] if opt is not None and opt.flag else []

    if step.type is StepType.TOGGLE:
        return [step.flag] if answer is True and step.flag else []

    if step.type is StepType.TEXT:
        if not answer or not answer.strip():
            return []
        # No flag means a positional argument
        return [f"{step.flag} {answer}" if step.flag else answer]

    if step.type is StepType.MULTI:
        fragments: List[str] = []
        for opt in step.options:
            if opt.label in answer and opt.flag and opt.flag not in fragments:
                fragments.append(opt.flag)
        return fragments

    raise StepTypeError(step.type)


def assemble_flags(steps: Sequence[Step], answers) -> List[str]:
    """Collect fragments for every visible, answered step in declaration order.

    Steps hidden by their `when` clause contribute nothing, even if an
    answer is still recorded for them.
    """
    fragments: List[str] = []
    for step in visible_steps(steps, answers):
        if step.id not in answers:
            continue
        fragments.extend(step_fragments(step, answers.get(step.id)))
    return fragments


def build_step_command(config: CommandConfig, answers) -> str:
    """Base command followed by the flags from the answered steps."""
    return join_fragments([config.command, *assemble_flags(config.steps, answers)])


def build_preset_command(config: CommandConfig, preset: Preset) -> str:
    """Base command followed by the preset's literal flags.

    Placeholders are left in place for the resolver.
    """
    return join_fragments([config.command, preset.flags.strip()])


def subcommand_token(parent_command: str, child_command: str) -> str:
    """Derive the literal subcommand a chained config adds to its parent.

    Examples:
        >>> subcommand_token('docker', 'docker run')
        'run'
        >>> subcommand_token('docker', 'kubectl')
        'kubectl'
    """
    parent = parent_command.strip()
    child = child_command.strip()
    if parent and child.startswith(parent + ' '):
        return child[len(parent):].strip()
    if child == parent:
        return ''
    return child
