"""Pydantic models for command config validation."""

import re
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, model_validator

# <name> where name starts with a letter or underscore; no spaces, no nesting
TOKEN_PATTERN = re.compile(r'<[A-Za-z_][A-Za-z0-9_.-]*>')


class StepType(str, Enum):
    """Closed set of step kinds. Every consumer handles all four."""

    CHOICE = 'choice'
    TOGGLE = 'toggle'
    TEXT = 'text'
    MULTI = 'multi'


class StepOption(BaseModel):
    """One selectable value of a choice or multi step."""

    model_config = ConfigDict(extra="allow", frozen=True)

    label: str = Field(..., description="Text shown to the user")
    flag: Optional[str] = Field(None, description="Flag fragment, null emits nothing")
    chain: Optional[str] = Field(None, description="Config name that takes over the rest of the flow")


class Preset(BaseModel):
    """A named, ready-made flag combination."""

    model_config = ConfigDict(extra="allow", frozen=True)

    label: str = Field(..., description="Menu label")
    flags: str = Field(..., description="Literal flags string, may contain <tokens>")


class Step(BaseModel):
    """
    Represents a single question in a command wizard.

    A step can be:
    - choice: pick exactly one option
    - toggle: yes/no, emits its flag when yes
    - text: free text, emitted after its flag (or alone when positional)
    - multi: pick any number of options
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    id: str = Field(..., description="Unique step identifier")
    prompt: str = Field(..., description="Question shown to the user")
    type: StepType = Field(..., description="Step type: choice, toggle, text, multi")
    options: Tuple[StepOption, ...] = Field(default_factory=tuple, description="Options for choice/multi")
    flag: Optional[str] = Field(None, description="Flag template for toggle/text")
    placeholder: Optional[str] = Field(None, description="Hint shown while a text answer is empty")
    default: Optional[int] = Field(None, description="Index of the initially highlighted choice option")
    when: Optional[Dict[str, Union[StrictBool, str]]] = Field(
        None, description="Earlier step id -> expected answer"
    )

    def option(self, label: str) -> Optional[StepOption]:
        """Return the option with the given label, if any."""
        for opt in self.options:
            if opt.label == label:
                return opt
        return None

    @property
    def labels(self) -> List[str]:
        return [opt.label for opt in self.options]


class CommandConfig(BaseModel):
    """
    Complete, immutable description of one command's wizard.

    `name` and `source` are filled in by the loader: the hyphenated lookup
    name (e.g. 'git-commit') and the file the config was read from.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    command: str = Field(..., description="Base command, e.g. 'git commit'")
    description: str = Field("", description="Human-readable description")
    presets: Tuple[Preset, ...] = Field(default_factory=tuple, description="Quick presets")
    steps: Tuple[Step, ...] = Field(default_factory=tuple, description="Ordered wizard steps")
    placeholder_options: Dict[str, str] = Field(
        default_factory=dict, description="<token> -> command printing 'name<TAB>id' lines"
    )
    name: Optional[str] = Field(None, description="Lookup name the loader found this config under")
    source: Optional[Path] = Field(None, description="File this config was loaded from")

    @model_validator(mode='after')
    def check_structure(self) -> 'CommandConfig':
        problems = structural_problems(self)
        if problems:
            raise ValueError("; ".join(problems))
        return self

    def step_index(self, step_id: str) -> Optional[int]:
        """Return the declaration index of a step id."""
        for index, step in enumerate(self.steps):
            if step.id == step_id:
                return index
        return None

    def get_step(self, step_id: str) -> Optional[Step]:
        index = self.step_index(step_id)
        return self.steps[index] if index is not None else None

    def chain_targets(self) -> List[Tuple[Step, StepOption]]:
        """All (step, option) pairs that delegate to another config."""
        return [(step, opt) for step in self.steps for opt in step.options if opt.chain]


def structural_problems(config: CommandConfig) -> List[str]:
    """Check the rules a config must meet before it can run.

    Chain targets are not checked here because that needs the loader.

    Args:
        config: Config to check

    Returns:
        List of problems, each naming the offending step or field
    """
    problems: List[str] = []

    if not config.command.strip():
        problems.append("command must not be empty")

    declared: Dict[str, Step] = {}
    seen_ids = set()
    all_ids = {step.id for step in config.steps}

    for step in config.steps:
        if step.id in seen_ids:
            problems.append(f"Step '{step.id}': duplicate step id")
        seen_ids.add(step.id)

        if step.type in (StepType.CHOICE, StepType.MULTI):
            if not step.options:
                problems.append(f"Step '{step.id}': {step.type.value} step needs at least one option")
            labels = step.labels
            for label in sorted({label for label in labels if labels.count(label) > 1}):
                problems.append(f"Step '{step.id}': duplicate option label '{label}'")

        for opt in step.options:
            if opt.chain and step.type is not StepType.CHOICE:
                problems.append(
                    f"Step '{step.id}': option '{opt.label}' chains, but only choice options may chain"
                )

        if step.default is not None:
            if step.type is not StepType.CHOICE:
                problems.append(f"Step '{step.id}': default is only supported on choice steps")
            elif not 0 <= step.default < len(step.options):
                problems.append(f"Step '{step.id}': default {step.default} is not a valid option index")

        for ref_id, expected in (step.when or {}).items():
            target = declared.get(ref_id)
            if target is None:
                if ref_id in all_ids:
                    problems.append(
                        f"Step '{step.id}': when references step '{ref_id}' which is not declared before it"
                    )
                else:
                    problems.append(f"Step '{step.id}': when references unknown step '{ref_id}'")
                continue
            problem = _expectation_problem(step, target, expected)
            if problem:
                problems.append(problem)

        # Only the first declaration of a duplicated id counts as "earlier"
        declared.setdefault(step.id, step)

    for token in config.placeholder_options:
        if not TOKEN_PATTERN.fullmatch(token):
            problems.append(f"placeholder_options: '{token}' is not a <token>")

    return problems


def _expectation_problem(step: Step, target: Step, expected: Union[bool, str]) -> Optional[str]:
    """Check that a when-expectation can ever match the target step."""
    if target.type is StepType.TOGGLE:
        if isinstance(expected, bool) or expected in ('true', 'false'):
            return None
        return (
            f"Step '{step.id}': when expects a boolean from toggle step '{target.id}', got {expected!r}"
        )
    if isinstance(expected, bool):
        return f"Step '{step.id}': when expects a boolean from {target.type.value} step '{target.id}'"
    if target.type in (StepType.CHOICE, StepType.MULTI) and target.option(expected) is None:
        return f"Step '{step.id}': when expects '{expected}' from step '{target.id}', which has no such option"
    return None
