"""Wizard engine - turns command configs into finished command lines."""

from .engine import WizardEngine, WizardResult
from .errors import (
    AnswerError,
    ChainCycleError,
    ConfigNotFoundError,
    ConfigValidationError,
    PlaceholderFetchError,
    SessionStateError,
    StepTypeError,
    WizardError,
)
from .loader import ConfigLoader
from .runner import ActionRunner, RealActionRunner, MockActionRunner
from .schema import CommandConfig, Preset, Step, StepOption, StepType
from .session import WizardSession

__all__ = [
    'WizardEngine',
    'WizardResult',
    'WizardSession',
    'ConfigLoader',
    'ActionRunner',
    'RealActionRunner',
    'MockActionRunner',
    'CommandConfig',
    'Preset',
    'Step',
    'StepOption',
    'StepType',
    'WizardError',
    'ConfigNotFoundError',
    'ConfigValidationError',
    'ChainCycleError',
    'PlaceholderFetchError',
    'SessionStateError',
    'AnswerError',
    'StepTypeError',
]
