"""Core wizard engine - drives command sessions through an ActionRunner."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

from ..settings import Settings
from .answers import AnswerValue
from .chain import ChainResolver
from .errors import AnswerError, SessionStateError, StepTypeError
from .loader import ConfigLoader
from .placeholders import FetchedOption, PlaceholderBinding, PlaceholderResolver
from .runner import ActionRunner
from .schema import CommandConfig, Preset, Step, StepType
from .session import CancelReason, SessionState, WizardSession

logger = logging.getLogger(__name__)

BACK_COMMANDS = (':b', ':back')
QUIT_COMMANDS = (':q', ':quit', ':cancel')
TRUE_WORDS = ('y', 'yes', 'true', '1')
FALSE_WORDS = ('n', 'no', 'false', '0')
NO_SELECTION = '-'
CRUMB_SEPARATOR = ' › '

# Answers to the preset menu that are not a preset
_STEP_BY_STEP = object()
_QUIT = object()


@dataclass
class WizardResult:
    """Outcome of one wizard run."""

    config: CommandConfig
    command: Optional[str] = None
    session: Optional[WizardSession] = None

    @property
    def cancelled(self) -> bool:
        return self.command is None


def default_response(step: Step, recalled: Optional[AnswerValue] = None) -> Optional[str]:
    """The raw response used when the user just presses Enter.

    A value recalled from before a Back wins over the step's own default.
    """
    if step.type is StepType.CHOICE:
        if isinstance(recalled, str) and recalled in step.labels:
            return str(step.labels.index(recalled) + 1)
        return str((step.default or 0) + 1)
    if step.type is StepType.TOGGLE:
        return 'y' if recalled is True else 'n'
    if step.type is StepType.TEXT:
        return recalled if isinstance(recalled, str) and recalled else None
    if step.type is StepType.MULTI:
        if isinstance(recalled, frozenset) and recalled:
            return ','.join(str(i) for i, label in enumerate(step.labels, 1) if label in recalled)
        return None
    raise StepTypeError(step.type)


def parse_response(step: Step, response: str) -> AnswerValue:
    """Turn a typed response into an answer for the step.

    Args:
        step: Step being answered
        response: What the user typed (after defaults were applied)

    Returns:
        Answer value in AnswerModel shape

    Raises:
        AnswerError: If the response doesn't fit the step
    """
    text = (response or '').strip()

    if step.type is StepType.CHOICE:
        if not text:
            return step.labels[step.default or 0]
        return _pick_option(step.labels, text)

    if step.type is StepType.TOGGLE:
        lowered = text.lower()
        if not lowered or lowered in FALSE_WORDS:
            return False
        if lowered in TRUE_WORDS:
            return True
        raise AnswerError(f"Please answer y or n, got '{text}'")

    if step.type is StepType.TEXT:
        return text

    if step.type is StepType.MULTI:
        if not text or text == NO_SELECTION:
            return frozenset()
        parts = [part for part in text.replace(',', ' ').split() if part]
        return frozenset(_pick_option(step.labels, part) for part in parts)

    raise StepTypeError(step.type)


def _pick_option(labels: List[str], text: str) -> str:
    """Resolve a 1-based number or an exact label."""
    if text.isdigit():
        index = int(text)
        if 1 <= index <= len(labels):
            return labels[index - 1]
        raise AnswerError(f"Please enter a number between 1 and {len(labels)}")
    if text in labels:
        return text
    raise AnswerError(f"'{text}' is not one of the listed options")


class WizardEngine:
    """
    Runs command wizards with dependency injection.

    Key responsibilities:
    - Load the config for a command and offer its presets
    - Walk steps through WizardSession, including nested chain sessions
    - Resolve placeholders in the finished command
    - Support headless mode for testing
    """

    def __init__(
        self,
        runner: ActionRunner,
        loader: Optional[ConfigLoader] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize the wizard engine.

        Args:
            runner: ActionRunner implementation for side effects
            loader: ConfigLoader to find configs (default: built from settings)
            settings: Runtime settings (default: read from the environment)
        """
        self.runner = runner
        self.settings = settings or Settings.from_env()
        self.loader = loader or ConfigLoader(settings=self.settings)
        self.chains = ChainResolver(self.loader)
        self.headless_mode = False
        self.headless_inputs: Dict[str, Any] = {}

    def run(
        self,
        command_tokens: Sequence[str],
        headless_inputs: Optional[Dict[str, Any]] = None,
        preset: Union[Preset, str, None] = None,
    ) -> WizardResult:
        """
        Run the wizard for a command.

        Args:
            command_tokens: Command words, e.g. ['git', 'commit']
            headless_inputs: Optional dict of pre-provided answers for testing
                            If None: INTERACTIVE mode (prompt user via runner)
                            If provided: HEADLESS mode (step id or <token> -> value)
            preset: Preset (or its label) to use without asking

        Returns:
            WizardResult with the finished command, or cancelled

        Raises:
            ConfigNotFoundError: If there is no config for the command
            ConfigValidationError: If a config on the walked path is malformed
            ChainCycleError: If a chain leads back to a config on its own path
            AnswerError: In headless mode, if a provided answer doesn't fit
        """
        config = self.loader.load(command_tokens)
        return self.run_config(config, headless_inputs=headless_inputs, preset=preset)

    def run_config(
        self,
        config: CommandConfig,
        headless_inputs: Optional[Dict[str, Any]] = None,
        preset: Union[Preset, str, None] = None,
    ) -> WizardResult:
        """Run the wizard for an already loaded config. See run()."""
        self.headless_mode = headless_inputs is not None
        self.headless_inputs = dict(headless_inputs or {})
        logger.debug(
            "Starting wizard for '%s' (%s mode)",
            config.name or config.command,
            'headless' if self.headless_mode else 'interactive',
        )

        # Back out of the first step returns to the preset menu
        offer_menu = preset is None and bool(config.presets) and not self.headless_mode
        while True:
            choice = self._choose_preset(config) if offer_menu else preset
            if choice is _QUIT:
                return WizardResult(config=config)

            session = WizardSession(config)
            session.start(preset=None if choice is _STEP_BY_STEP else choice)
            self._drive(session)

            if session.state is SessionState.CANCELLED:
                if offer_menu and session.cancel_reason is CancelReason.BACK:
                    continue
                logger.debug("Wizard cancelled (%s)", session.cancel_reason.value)
                return WizardResult(config=config, session=session)
            break

        command = self._finish(session)
        return WizardResult(config=config, command=command, session=session)

    # ------------------------------------------------------------------
    # Session driving

    def _drive(self, session: WizardSession, trail: Sequence[str] = ()) -> None:
        """Ask questions until the session reaches FINALIZING or CANCELLED."""
        while session.state not in (SessionState.FINALIZING, SessionState.CANCELLED):
            if session.state is SessionState.AWAITING_ANSWER:
                self._ask_step(session, trail)
            elif session.state is SessionState.CHAINING:
                self._follow_chain(session, trail)
            else:
                raise SessionStateError(f"Cannot drive a session that is {session.state.value}")

    def _follow_chain(self, parent: WizardSession, trail: Sequence[str]) -> None:
        child = self.chains.open(parent)
        child.start()
        self._drive(child, trail=[*trail, *self._crumbs(parent)])

        if child.state is SessionState.CANCELLED:
            if child.cancel_reason is CancelReason.BACK:
                logger.debug("Backed out of chained '%s'", parent.chain_target)
                parent.abort_chain()
            else:
                parent.cancel()
            return

        # Placeholders are resolved once, on the top-level command
        child.finalize()
        self.chains.splice(parent, child)

    def _finish(self, session: WizardSession) -> Optional[str]:
        resolver = PlaceholderResolver(
            self.runner,
            session.placeholder_sources(),
            select=self._select_placeholder,
            ask=self._ask_placeholder,
            timeout=self.settings.fetch_timeout,
        )
        return session.finalize(resolver.resolve)

    def _crumbs(self, session: WizardSession) -> List[str]:
        return [session.config.command, *session.breadcrumb()]

    # ------------------------------------------------------------------
    # Steps

    def _ask_step(self, session: WizardSession, trail: Sequence[str]) -> None:
        """Collect one answer (or Back/Quit) for the current step."""
        step = session.current_step

        if self.headless_mode:
            self.runner.display(step.prompt)
            value = self._headless_answer(step)
            # Fail fast in tests
            session.submit(value)
            return

        self._render_step(session, step, trail)
        default = default_response(step, session.recalled_answer(step.id))

        while True:
            try:
                response = self.runner.get_input(self._input_prompt(step), default)
            except (EOFError, KeyboardInterrupt):
                session.cancel()
                return

            command = response.strip().lower()
            if command in QUIT_COMMANDS:
                session.cancel()
                return
            if command in BACK_COMMANDS:
                session.back()
                return

            try:
                session.submit(parse_response(step, response))
                return
            except AnswerError as e:
                # Show error and re-prompt
                self.runner.display(f"Error: {e}")

    def _render_step(self, session: WizardSession, step: Step, trail: Sequence[str]) -> None:
        crumbs = [*trail, *self._crumbs(session)]
        self.runner.display("")
        self.runner.display(CRUMB_SEPARATOR.join(crumbs))

        if step.type in (StepType.CHOICE, StepType.MULTI):
            self.runner.display(step.prompt)
            for i, opt in enumerate(step.options, 1):
                self.runner.display(f"  {i}. {opt.label}")
        elif step.type is StepType.TEXT and step.placeholder:
            self.runner.display(f"{step.prompt} (e.g. {step.placeholder})")
        else:
            self.runner.display(step.prompt)

    def _input_prompt(self, step: Step) -> str:
        if step.type is StepType.CHOICE:
            return "Choice"
        if step.type is StepType.TOGGLE:
            return "y/n"
        if step.type is StepType.TEXT:
            return "Value"
        if step.type is StepType.MULTI:
            return f"Numbers, comma-separated ({NO_SELECTION} for none)"
        raise StepTypeError(step.type)

    def _headless_answer(self, step: Step) -> AnswerValue:
        """Pre-provided answer for a step, or the step's default."""
        value = self.headless_inputs.get(step.id)
        if value is None:
            return parse_response(step, '')
        # Accept the same strings a user would type for toggle/multi
        if step.type is StepType.TOGGLE and isinstance(value, str):
            return parse_response(step, value)
        if step.type is StepType.MULTI and isinstance(value, str):
            return frozenset(part.strip() for part in value.split(',') if part.strip())
        return value

    # ------------------------------------------------------------------
    # Presets

    def _choose_preset(self, config: CommandConfig):
        """Show the preset menu. Returns a Preset, _STEP_BY_STEP or _QUIT."""
        self.runner.display("")
        self.runner.display(config.description or config.command)
        for i, preset in enumerate(config.presets, 1):
            self.runner.display(f"  {i}. {preset.label}: {config.command} {preset.flags}")
        custom = len(config.presets) + 1
        self.runner.display(f"  {custom}. Build step by step")

        while True:
            try:
                response = self.runner.get_input("Choice", str(custom)).strip()
            except (EOFError, KeyboardInterrupt):
                return _QUIT
            if response.lower() in QUIT_COMMANDS + BACK_COMMANDS:
                return _QUIT
            if response.isdigit() and 1 <= int(response) <= custom:
                index = int(response)
                return config.presets[index - 1] if index < custom else _STEP_BY_STEP
            self.runner.display(f"Error: Please enter a number between 1 and {custom}")

    # ------------------------------------------------------------------
    # Placeholder callbacks

    def _select_placeholder(self, binding: PlaceholderBinding, options: List[FetchedOption]) -> Optional[str]:
        names = [opt.name for opt in options]

        if self.headless_mode:
            value = self.headless_inputs.get(binding.token)
            if value is None:
                return names[0]
            return self._match_fetched(binding, options, str(value))

        self.runner.display("")
        self.runner.display(f"Select {binding.token}:")
        for i, opt in enumerate(options, 1):
            self.runner.display(f"  {i}. {opt.label}")

        while True:
            try:
                response = self.runner.get_input("Choice", "1").strip()
            except (EOFError, KeyboardInterrupt):
                return None
            if response.lower() in QUIT_COMMANDS + BACK_COMMANDS:
                return None
            try:
                return self._match_fetched(binding, options, response)
            except AnswerError as e:
                self.runner.display(f"Error: {e}")

    def _match_fetched(self, binding: PlaceholderBinding, options: List[FetchedOption], text: str) -> str:
        if text.isdigit() and 1 <= int(text) <= len(options):
            return options[int(text) - 1].name
        for opt in options:
            if text in (opt.name, opt.label):
                return opt.name
        raise AnswerError(f"'{text}' is not one of the options for {binding.token}")

    def _ask_placeholder(self, binding: PlaceholderBinding, default: str) -> Optional[str]:
        if self.headless_mode:
            value = self.headless_inputs.get(binding.token)
            return default if value is None else str(value)

        try:
            response = self.runner.get_input(f"Value for {binding.token}", default)
        except (EOFError, KeyboardInterrupt):
            return None
        if response.strip().lower() in QUIT_COMMANDS + BACK_COMMANDS:
            return None
        return response
