"""Session state machine for one run of a command wizard.

States:

    INIT -> AWAITING_ANSWER -> AWAITING_ANSWER | CHAINING | FINALIZING -> DONE

CANCELLED can be reached from any state that is not DONE or CANCELLED.
The session never talks to the user; a driver (WizardEngine) feeds it
answers and reads back what to show.
"""

import logging
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from .answers import AnswerModel, AnswerValue
from .assembler import (
    assemble_flags,
    build_preset_command,
    build_step_command,
    join_fragments,
    subcommand_token,
)
from .errors import AnswerError, SessionStateError, StepTypeError
from .schema import CommandConfig, Preset, Step, StepType
from .visibility import visible_step_indices

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    INIT = 'init'
    AWAITING_ANSWER = 'awaiting_answer'
    CHAINING = 'chaining'
    FINALIZING = 'finalizing'
    DONE = 'done'
    CANCELLED = 'cancelled'


class CancelReason(str, Enum):
    """Why a session ended up CANCELLED."""

    QUIT = 'quit'
    BACK = 'back'  # Back pressed with nothing left to go back to


TERMINAL_STATES = frozenset({SessionState.DONE, SessionState.CANCELLED})


class WizardSession:
    """
    The live, mutable run of a wizard over one config.

    Key responsibilities:
    - Track the current step and recorded answers
    - Keep a history of (step id, answers snapshot) for exact back-navigation
    - Hand over to a nested session when a choice option chains
    - Assemble the command once the flow is complete
    """

    def __init__(self, config: CommandConfig, chain_path: Sequence[str] = ()):
        """
        Initialize a session.

        Args:
            config: Loaded config to walk
            chain_path: Config names from the top-level session down to this
                one, this one included. Defaults to just this config.
        """
        self.config = config
        self.answers = AnswerModel(config.steps)
        self.history: List[Tuple[str, Dict[str, AnswerValue]]] = []
        self.state = SessionState.INIT
        self.current_step_id: Optional[str] = None
        self.preset: Optional[Preset] = None
        self.chain_target: Optional[str] = None
        self.child: Optional['WizardSession'] = None
        self.cancel_reason: Optional[CancelReason] = None
        self.output: Optional[str] = None
        self.chain_path: Tuple[str, ...] = tuple(chain_path) or (config.name or config.command,)
        self._recalled: Dict[str, AnswerValue] = {}

    # ------------------------------------------------------------------
    # Queries

    @property
    def is_finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def visible_steps(self) -> List[Step]:
        return [self.config.steps[i] for i in visible_step_indices(self.config.steps, self.answers)]

    @property
    def current_step(self) -> Optional[Step]:
        if self.state is not SessionState.AWAITING_ANSWER or self.current_step_id is None:
            return None
        return self.config.get_step(self.current_step_id)

    def recalled_answer(self, step_id: str) -> Optional[AnswerValue]:
        """Value submitted for a step before the user went back to it."""
        return self._recalled.get(step_id)

    def breadcrumb(self) -> List[str]:
        """Short labels for the answers given so far, in declaration order."""
        crumbs: List[str] = []
        for step in self.visible_steps():
            if step.id not in self.answers:
                continue
            answer = self.answers.get(step.id)
            if step.type is StepType.CHOICE:
                crumbs.append(answer)
            elif step.type is StepType.TOGGLE:
                crumbs.append('Yes' if answer else 'No')
            elif step.type is StepType.TEXT:
                if answer:
                    crumbs.append(answer)
            elif step.type is StepType.MULTI:
                labels = [label for label in step.labels if label in answer]
                if labels:
                    crumbs.append(', '.join(labels))
            else:
                raise StepTypeError(step.type)
        return crumbs

    def placeholder_sources(self) -> Dict[str, str]:
        """Fetch commands for tokens, this config first, then any chained config."""
        sources = dict(self.config.placeholder_options)
        if self.child is not None:
            for token, command in self.child.placeholder_sources().items():
                sources.setdefault(token, command)
        return sources

    # ------------------------------------------------------------------
    # Transitions

    def start(self, preset: Union[Preset, str, None] = None) -> SessionState:
        """Leave INIT.

        Args:
            preset: Preset (or its label) to use instead of the step flow

        Returns:
            The new state
        """
        self._require(SessionState.INIT)

        if preset is not None:
            self.preset = self._find_preset(preset)
            self.state = SessionState.FINALIZING
            return self.state

        visible = visible_step_indices(self.config.steps, self.answers)
        if not visible:
            self.state = SessionState.FINALIZING
        else:
            self.current_step_id = self.config.steps[visible[0]].id
            self.state = SessionState.AWAITING_ANSWER
        return self.state

    def submit(self, value) -> SessionState:
        """Record an answer for the current step and move on.

        Raises:
            AnswerError: If the value does not fit the step (state unchanged)
        """
        self._require(SessionState.AWAITING_ANSWER)
        step = self.current_step

        snapshot = self.answers.snapshot()
        stored = self.answers.record(step, value)
        self.history.append((step.id, snapshot))
        self._recalled.pop(step.id, None)

        if step.type is StepType.CHOICE:
            opt = step.option(stored)
            if opt.chain:
                logger.debug("Step '%s' chains to '%s'", step.id, opt.chain)
                self.chain_target = opt.chain
                self.state = SessionState.CHAINING
                return self.state

        self._advance_from(step.id)
        return self.state

    def back(self) -> SessionState:
        """Return to the previously answered step, or cancel if there is none."""
        self._require(SessionState.AWAITING_ANSWER, SessionState.FINALIZING)

        if not self.history:
            return self.cancel(CancelReason.BACK)

        self._pop_history()
        return self.state

    def cancel(self, reason: CancelReason = CancelReason.QUIT) -> SessionState:
        """Abandon the session and discard every recorded answer."""
        if self.is_finished:
            raise SessionStateError(f"Cannot cancel a session that is already {self.state.value}")
        self.answers.clear()
        self.history.clear()
        self._recalled.clear()
        self.current_step_id = None
        self.preset = None
        self.chain_target = None
        self.child = None
        self.output = None
        self.cancel_reason = reason
        self.state = SessionState.CANCELLED
        return self.state

    def complete_chain(self, child: 'WizardSession') -> SessionState:
        """Splice a finished nested session in; the chain ends this flow."""
        self._require(SessionState.CHAINING)
        if child.state is not SessionState.DONE:
            raise SessionStateError(f"Chained session is {child.state.value}, expected done")
        self.child = child
        self.state = SessionState.FINALIZING
        return self.state

    def abort_chain(self) -> SessionState:
        """The nested session was backed out of; return to the chaining step."""
        self._require(SessionState.CHAINING)
        self._pop_history()
        return self.state

    def assemble(self) -> str:
        """Build the unresolved command string."""
        self._require(SessionState.FINALIZING, SessionState.DONE)
        if self.preset is not None:
            return build_preset_command(self.config, self.preset)
        command = build_step_command(self.config, self.answers)
        if self.child is None:
            return command
        token = subcommand_token(self.config.command, self.child.config.command)
        return join_fragments([command, token, *self.child.fragments()])

    def fragments(self) -> List[str]:
        """Everything this session adds after its base command."""
        if self.preset is not None:
            return [self.preset.flags.strip()]
        parts = assemble_flags(self.config.steps, self.answers)
        if self.child is not None:
            parts.append(subcommand_token(self.config.command, self.child.config.command))
            parts.extend(self.child.fragments())
        return parts

    def finalize(self, resolve: Optional[Callable[[str], Optional[str]]] = None) -> Optional[str]:
        """Assemble the command, resolve placeholders, and finish.

        Args:
            resolve: Placeholder resolver. Returning None means the user
                cancelled while resolving.

        Returns:
            Final command string, or None if cancelled
        """
        self._require(SessionState.FINALIZING)
        command = self.assemble()
        result = resolve(command) if resolve is not None else command
        if result is None:
            self.cancel()
            return None
        self.output = result
        self.state = SessionState.DONE
        return result

    # ------------------------------------------------------------------
    # Helpers

    def _require(self, *states: SessionState) -> None:
        if self.state not in states:
            allowed = ', '.join(state.value for state in states)
            raise SessionStateError(f"Session is {self.state.value}, expected {allowed}")

    def _find_preset(self, preset: Union[Preset, str]) -> Preset:
        if isinstance(preset, Preset):
            return preset
        for candidate in self.config.presets:
            if candidate.label == preset:
                return candidate
        raise AnswerError(f"Unknown preset '{preset}' for '{self.config.command}'")

    def _advance_from(self, step_id: str) -> None:
        current_index = self.config.step_index(step_id)
        for index in visible_step_indices(self.config.steps, self.answers):
            if index > current_index:
                self.current_step_id = self.config.steps[index].id
                self.state = SessionState.AWAITING_ANSWER
                return
        self.current_step_id = None
        self.state = SessionState.FINALIZING

    def _pop_history(self) -> None:
        step_id, snapshot = self.history.pop()
        submitted = self.answers.get(step_id)
        if submitted is not None:
            self._recalled[step_id] = submitted
        self.answers.restore(snapshot)
        self.current_step_id = step_id
        self.preset = None
        self.chain_target = None
        self.child = None
        self.state = SessionState.AWAITING_ANSWER
