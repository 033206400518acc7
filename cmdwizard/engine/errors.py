"""Exception hierarchy for the wizard engine."""

from pathlib import Path
from typing import List, Optional, Sequence


class WizardError(Exception):
    """Base class for every error raised by the wizard engine."""


class ConfigNotFoundError(WizardError, FileNotFoundError):
    """No config exists for a command in any lookup location.

    This is not fatal: the caller may offer another mode or exit cleanly.
    """

    def __init__(self, name: str, searched: Sequence[Path]):
        self.name = name
        self.searched: List[Path] = list(searched)
        super().__init__(self._describe())

    def _describe(self) -> str:
        lines = [f"No configuration found for '{self.name}'", "", "Create a config file at one of:"]
        for path in self.searched:
            lines.append(f"  {path}")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self._describe()


class ConfigValidationError(WizardError, ValueError):
    """A config file could not be parsed or breaks a structural rule."""

    def __init__(self, source: Optional[Path], problems: Sequence[str]):
        self.source = source
        self.problems: List[str] = list(problems)
        where = str(source) if source is not None else '<config>'
        super().__init__(f"Invalid config {where}: " + "; ".join(self.problems))


class ChainCycleError(WizardError):
    """A chain walk came back to a config already on the active path."""

    def __init__(self, path: Sequence[str]):
        self.path: List[str] = list(path)
        super().__init__(f"Chain cycle detected: {' -> '.join(self.path)}")


class PlaceholderFetchError(WizardError):
    """A placeholder fetch command failed or produced nothing usable."""

    def __init__(self, token: str, command: str, reason: str):
        self.token = token
        self.command = command
        self.reason = reason
        super().__init__(f"Could not fetch options for {token}: {reason}")


class SessionStateError(WizardError):
    """An operation was attempted in a session state that does not allow it."""


class AnswerError(WizardError, ValueError):
    """A submitted answer does not fit the step it was given for."""


class StepTypeError(WizardError, ValueError):
    """A step carries a type outside StepType."""

    def __init__(self, step_type):
        self.step_type = step_type
        super().__init__(f"Unhandled step type: {step_type!r}")
