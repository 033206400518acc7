"""Placeholder resolver - fills `<token>` markers in a command string.

Each distinct token is resolved once, in order of first appearance:

- tokens with a fetch command in the config's placeholder_options get a
  list of options built from the command's output (`name<TAB>id` lines);
- every other token, and any token whose fetch fails, is asked for as
  free text with the bare token name as the suggested default.

Only exact `<name>` tokens are touched; nothing else in angle brackets is.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .errors import PlaceholderFetchError
from .runner import ActionRunner
from .schema import TOKEN_PATTERN

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT = 5.0


@dataclass(frozen=True)
class PlaceholderBinding:
    """A token and where its value comes from."""

    token: str
    fetch_command: Optional[str] = None

    @property
    def name(self) -> str:
        return self.token[1:-1]

    @property
    def source(self) -> str:
        return 'fetch' if self.fetch_command else 'text'


@dataclass(frozen=True)
class FetchedOption:
    """One line of fetch output."""

    name: str
    id: Optional[str] = None

    @property
    def label(self) -> str:
        return f"{self.name} ({self.id})" if self.id else self.name


def find_placeholders(text: str) -> List[str]:
    """Distinct tokens in order of first appearance."""
    tokens: List[str] = []
    for match in TOKEN_PATTERN.finditer(text):
        token = match.group(0)
        if token in tokens:
            continue
        if _inside_quotes(text, match.start()):
            logger.debug("Placeholder %s appears inside a quoted literal; resolving it anyway", token)
        tokens.append(token)
    return tokens


def parse_fetch_output(stdout: str) -> List[FetchedOption]:
    """Split fetch output into options.

    Each non-blank line is split on its first tab into name and id. A line
    without a tab is a name with no id.

    Examples:
        >>> [o.label for o in parse_fetch_output("web\\tabc123\\ndb\\tdef456")]
        ['web (abc123)', 'db (def456)']
    """
    options: List[FetchedOption] = []
    for line in stdout.splitlines():
        if not line.strip():
            continue
        if '\t' in line:
            name, ident = line.split('\t', 1)
            name, ident = name.strip(), ident.strip()
            if not name:
                continue
            options.append(FetchedOption(name=name, id=ident or None))
        else:
            options.append(FetchedOption(name=line.strip()))
    return options


def substitute(text: str, values: Dict[str, str]) -> str:
    """Replace every occurrence of each resolved token in one pass.

    A single pass means a value that itself looks like a token is never
    substituted again.
    """
    return TOKEN_PATTERN.sub(lambda match: values.get(match.group(0), match.group(0)), text)


# select(binding, options) -> chosen name, None on cancel
SelectFn = Callable[[PlaceholderBinding, List[FetchedOption]], Optional[str]]
# ask(binding, default) -> entered text, None on cancel
AskFn = Callable[[PlaceholderBinding, str], Optional[str]]


class PlaceholderResolver:
    """
    Resolves the tokens in a finished command string.

    User interaction is delegated to two callbacks so the resolver works the
    same in interactive and headless runs.
    """

    def __init__(
        self,
        runner: ActionRunner,
        sources: Dict[str, str],
        select: SelectFn,
        ask: AskFn,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
    ):
        """
        Initialize the resolver.

        Args:
            runner: ActionRunner used to run fetch commands and show messages
            sources: <token> -> fetch command
            select: Callback choosing one fetched option
            ask: Callback asking for free text
            timeout: Seconds a fetch command may run
        """
        self.runner = runner
        self.sources = dict(sources)
        self.select = select
        self.ask = ask
        self.timeout = timeout

    def bindings(self, text: str) -> List[PlaceholderBinding]:
        return [PlaceholderBinding(token, self.sources.get(token)) for token in find_placeholders(text)]

    def resolve(self, text: str) -> Optional[str]:
        """Resolve every token in text.

        Returns:
            Text with all tokens replaced, unchanged text if it has none,
            or None if the user cancelled
        """
        bindings = self.bindings(text)
        if not bindings:
            return text

        values: Dict[str, str] = {}
        for binding in bindings:
            value = self._resolve_one(binding)
            if value is None:
                return None
            values[binding.token] = value

        return substitute(text, values)

    def fetch_options(self, binding: PlaceholderBinding) -> List[FetchedOption]:
        """Run the binding's fetch command and parse its output.

        Raises:
            PlaceholderFetchError: On a non-zero exit, timeout, OS error,
                or output with no usable lines
        """
        command = binding.fetch_command
        try:
            result = self.runner.run_fetch(command, self.timeout)
        except OSError as e:
            raise PlaceholderFetchError(binding.token, command, f"{type(e).__name__}: {e}")

        returncode = result.get('returncode', 1)
        if returncode != 0:
            stderr = (result.get('stderr') or '').strip()
            detail = stderr.splitlines()[0] if stderr else f"exit status {returncode}"
            raise PlaceholderFetchError(binding.token, command, detail)

        options = parse_fetch_output(result.get('stdout') or '')
        if not options:
            raise PlaceholderFetchError(binding.token, command, "command printed no options")

        logger.debug("Fetched %d options for %s", len(options), binding.token)
        return options

    def _resolve_one(self, binding: PlaceholderBinding) -> Optional[str]:
        if binding.fetch_command:
            try:
                options = self.fetch_options(binding)
            except PlaceholderFetchError as e:
                logger.debug("Falling back to free text: %s", e)
                self.runner.display(f"{e}. Enter a value instead.")
            else:
                return self.select(binding, options)

        return self.ask(binding, binding.name)


def _inside_quotes(text: str, position: int) -> bool:
    """True if position sits inside an unclosed single or double quote."""
    prefix = text[:position]
    return prefix.count("'") % 2 == 1 or prefix.count('"') % 2 == 1
