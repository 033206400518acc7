"""Tests for WizardEngine - driving sessions in interactive and headless mode."""

import copy

import pytest

from cmdwizard.engine.engine import WizardEngine, default_response, parse_response
from cmdwizard.engine.errors import AnswerError, ChainCycleError, ConfigNotFoundError
from cmdwizard.engine.schema import Step
from cmdwizard.engine.session import CancelReason

from conftest import LS_CONFIG, write_config

CURL_CONFIG = {
    'command': 'curl',
    'presets': [
        {'label': 'POST JSON', 'flags': "-X POST -H 'Content-Type: application/json' -d '<data>' '<url>'"},
        {'label': 'Silent GET', 'flags': '-s https://example.com'},
    ],
    'steps': [
        {
            'id': 'options',
            'prompt': 'Options',
            'type': 'multi',
            'options': [
                {'label': 'Follow redirects', 'flag': '-L'},
                {'label': 'Show headers', 'flag': '-i'},
                {'label': 'Silent', 'flag': '-s'},
            ],
        },
        {'id': 'url', 'prompt': 'URL', 'type': 'text', 'placeholder': 'https://example.com'},
    ],
}

LOGS_FETCH = "docker ps --format '{{.Names}}\t{{.ID}}'"

LOGS_CONFIG = {
    'command': 'docker logs',
    'placeholder_options': {'<container>': LOGS_FETCH},
    'steps': [
        {'id': 'follow', 'prompt': 'Follow?', 'type': 'toggle', 'flag': '-f'},
        {
            'id': 'target',
            'prompt': 'Container',
            'type': 'choice',
            'options': [{'label': 'Pick one', 'flag': '<container>'}],
        },
    ],
}


@pytest.fixture
def engine(mock_runner, loader, settings):
    """Engine over the test config directory."""
    return WizardEngine(mock_runner, loader=loader, settings=settings)


@pytest.fixture
def ls_config(config_dir):
    return write_config(config_dir, 'ls', LS_CONFIG)


class TestInteractiveMode:
    """Answers come from the runner's input queue."""

    def test_walk_produces_command(self, engine, mock_runner, ls_config):
        """Numbers and y/n answers build the command."""
        mock_runner.input_queue = ['1', 'y', 'y']

        result = engine.run(['ls'])

        assert not result.cancelled
        assert result.command == 'ls -l -h -a'

    def test_hidden_step_is_never_asked(self, engine, mock_runner, ls_config):
        """Choosing Grid skips the human-sizes question."""
        mock_runner.input_queue = ['2', 'y']

        result = engine.run(['ls'])

        assert result.command == 'ls -a'
        assert 'Human-readable sizes?' not in mock_runner.displayed()

    def test_invalid_input_shows_error_and_reprompts(self, engine, mock_runner, ls_config):
        """Out-of-range numbers show Error: and ask again."""
        mock_runner.input_queue = ['7', '2', 'maybe', 'n']

        result = engine.run(['ls'])

        assert result.command == 'ls'
        errors = [m for m in mock_runner.displayed() if m.startswith('Error:')]
        assert errors == [
            'Error: Please enter a number between 1 and 2',
            "Error: Please answer y or n, got 'maybe'",
        ]

    def test_option_label_accepted_as_answer(self, engine, mock_runner, ls_config):
        """Typing the exact label works as well as its number."""
        mock_runner.input_queue = ['Grid', 'n']

        assert engine.run(['ls']).command == 'ls'

    def test_back_returns_to_previous_step_with_recalled_default(self, engine, mock_runner, ls_config):
        """:b goes back and the earlier answer becomes the default."""
        mock_runner.input_queue = ['2', ':b', '']

        result = engine.run(['ls'])

        assert result.command == 'ls'
        inputs = [call[1:] for call in mock_runner.calls if call[0] == 'get_input']
        assert inputs == [('Choice', '1'), ('y/n', 'n'), ('Choice', '2'), ('y/n', 'n')]

    def test_back_on_first_step_cancels(self, engine, mock_runner, ls_config):
        """Back with nothing answered cancels the run."""
        mock_runner.input_queue = [':back']

        result = engine.run(['ls'])

        assert result.cancelled
        assert result.session.cancel_reason is CancelReason.BACK

    @pytest.mark.parametrize('response', [':q', ':quit', EOFError(), KeyboardInterrupt()])
    def test_quit_cancels(self, engine, mock_runner, ls_config, response):
        """Quit commands, EOF and Ctrl-C all cancel without output."""
        mock_runner.input_queue = ['1', response]

        result = engine.run(['ls'])

        assert result.cancelled
        assert result.command is None

    def test_breadcrumb_is_displayed(self, engine, mock_runner, ls_config):
        """Earlier answers are shown above the current question."""
        mock_runner.input_queue = ['1', 'y', 'n']

        engine.run(['ls'])

        assert 'ls › Detailed list › Yes' in mock_runner.displayed()

    def test_multi_selection(self, engine, mock_runner, config_dir):
        """Comma-separated numbers select several options, emitted in declared order."""
        data = copy.deepcopy(CURL_CONFIG)
        data['presets'] = []
        write_config(config_dir, 'curl', data)
        mock_runner.input_queue = ['3,1', 'https://example.org']

        result = engine.run(['curl'])

        assert result.command == 'curl -L -s https://example.org'

    def test_multi_none_selection(self, engine, mock_runner, config_dir):
        """'-' selects nothing."""
        data = copy.deepcopy(CURL_CONFIG)
        data['presets'] = []
        write_config(config_dir, 'curl', data)
        mock_runner.input_queue = ['-', 'https://example.org']

        assert engine.run(['curl']).command == 'curl https://example.org'


class TestPresets:
    """Preset menu and preset placeholders."""

    def test_preset_menu_selects_preset(self, engine, mock_runner, config_dir):
        """Choosing a preset from the menu skips the steps."""
        write_config(config_dir, 'curl', CURL_CONFIG)
        mock_runner.input_queue = ['2']

        result = engine.run(['curl'])

        assert result.command == 'curl -s https://example.com'
        assert '  3. Build step by step' in mock_runner.displayed()

    def test_scenario_c_preset_placeholders_prompted_in_order(self, engine, mock_runner, config_dir):
        """Undeclared tokens are asked for as text, first appearance first."""
        write_config(config_dir, 'curl', CURL_CONFIG)
        mock_runner.input_queue = ['1', '{"name": "x"}', 'https://api.example.com']

        result = engine.run(['curl'])

        assert result.command == (
            "curl -X POST -H 'Content-Type: application/json' -d '{\"name\": \"x\"}' 'https://api.example.com'"
        )
        assert mock_runner.prompts()[1:] == ['Value for <data>', 'Value for <url>']

    def test_step_by_step_from_menu(self, engine, mock_runner, config_dir):
        """The last menu entry walks the steps."""
        write_config(config_dir, 'curl', CURL_CONFIG)
        mock_runner.input_queue = ['3', '1', 'https://x']

        assert engine.run(['curl']).command == 'curl -L https://x'

    def test_back_from_first_step_returns_to_menu(self, engine, mock_runner, config_dir):
        """Back on the first step re-shows the preset menu."""
        write_config(config_dir, 'curl', CURL_CONFIG)
        mock_runner.input_queue = ['3', ':b', '2']

        assert engine.run(['curl']).command == 'curl -s https://example.com'

    def test_quit_from_menu(self, engine, mock_runner, config_dir):
        """:q at the preset menu cancels."""
        write_config(config_dir, 'curl', CURL_CONFIG)
        mock_runner.input_queue = [':q']

        assert engine.run(['curl']).cancelled

    def test_preset_argument_skips_menu(self, engine, mock_runner, config_dir):
        """A preset given up front is used without asking."""
        write_config(config_dir, 'curl', CURL_CONFIG)

        result = engine.run(['curl'], preset='Silent GET')

        assert result.command == 'curl -s https://example.com'
        assert mock_runner.prompts() == []


class TestPlaceholders:
    """Fetch-backed placeholders through the engine."""

    def test_scenario_d_fetched_choice(self, engine, mock_runner, config_dir):
        """Fetched containers are offered and the chosen name substituted."""
        write_config(config_dir, 'docker-logs', LOGS_CONFIG)
        mock_runner.responses['run_fetch'] = {LOGS_FETCH: 'web\tabc123\ndb\tdef456'}
        mock_runner.input_queue = ['y', '1', '2']

        result = engine.run(['docker', 'logs'])

        assert result.command == 'docker logs -f db'
        assert '  1. web (abc123)' in mock_runner.displayed()
        assert '  2. db (def456)' in mock_runner.displayed()
        assert ('run_fetch', LOGS_FETCH, 2.0) in mock_runner.calls

    def test_fetch_failure_falls_back_to_text(self, engine, mock_runner, config_dir):
        """A failing fetch asks for the value instead."""
        write_config(config_dir, 'docker-logs', LOGS_CONFIG)
        mock_runner.responses['run_fetch'] = {
            LOGS_FETCH: {'stdout': '', 'stderr': 'Cannot connect to the Docker daemon', 'returncode': 1},
        }
        mock_runner.input_queue = ['n', '1', 'my-app']

        result = engine.run(['docker', 'logs'])

        assert result.command == 'docker logs my-app'
        assert (
            'Could not fetch options for <container>: Cannot connect to the Docker daemon. Enter a value instead.'
            in mock_runner.displayed()
        )

    def test_quit_during_placeholder_cancels(self, engine, mock_runner, config_dir):
        """Quitting while picking a placeholder cancels everything."""
        write_config(config_dir, 'docker-logs', LOGS_CONFIG)
        mock_runner.responses['run_fetch'] = {LOGS_FETCH: 'web\tabc123'}
        mock_runner.input_queue = ['n', '1', ':q']

        assert engine.run(['docker', 'logs']).cancelled


class TestChains:
    """Chained configs run as nested sessions."""

    def test_scenario_e_chain_then_resolve(self, engine, mock_runner, docker_configs):
        """docker -> docker-run assembles the subcommand, then resolves <image>."""
        mock_runner.input_queue = ['1', '1', '1', 'alpine']

        result = engine.run(['docker'])

        assert result.command == 'docker run -it alpine'
        assert 'docker › Run a container › docker run' in mock_runner.displayed()

    def test_back_out_of_child_returns_to_parent(self, engine, mock_runner, docker_configs):
        """Back on the child's first step returns to the chaining question."""
        mock_runner.input_queue = ['1', ':b', '2']

        assert engine.run(['docker']).command == 'docker ps'

    def test_quit_in_child_cancels_everything(self, engine, mock_runner, docker_configs):
        """Quit inside a chain cancels the whole run."""
        mock_runner.input_queue = ['1', ':q']

        result = engine.run(['docker'])

        assert result.cancelled
        assert result.session.cancel_reason is CancelReason.QUIT

    def test_cycle_raises(self, engine, config_dir):
        """A walked cycle stops the run with ChainCycleError."""
        step = {
            'id': 'next',
            'prompt': 'Next?',
            'type': 'choice',
            'options': [{'label': 'Go', 'flag': None, 'chain': 'ping'}],
        }
        write_config(config_dir, 'ping', {'command': 'ping', 'steps': [step]})

        with pytest.raises(ChainCycleError):
            engine.run(['ping'], headless_inputs={})


class TestHeadlessMode:
    """Answers come from a dict keyed by step id and token."""

    def test_headless_answers(self, engine, mock_runner, ls_config):
        """Values are taken from the dict and never prompted for."""
        result = engine.run(['ls'], headless_inputs={'format': 'Detailed list', 'hidden': True})

        assert result.command == 'ls -l -a'
        assert mock_runner.prompts() == []
        assert 'Output format' in mock_runner.displayed()

    def test_headless_defaults(self, engine, ls_config):
        """Missing answers fall back to the step defaults."""
        assert engine.run(['ls'], headless_inputs={}).command == 'ls -l'

    def test_headless_toggle_strings(self, engine, ls_config):
        """'y'/'n' strings are accepted for toggles."""
        result = engine.run(['ls'], headless_inputs={'format': 'Grid', 'hidden': 'y'})

        assert result.command == 'ls -a'

    def test_headless_invalid_answer_fails_fast(self, engine, ls_config):
        """Invalid headless answers raise instead of re-prompting."""
        with pytest.raises(AnswerError):
            engine.run(['ls'], headless_inputs={'format': 'Wide'})

    def test_headless_chain_and_placeholders(self, engine, docker_configs):
        """Chains and placeholder tokens are answered from the dict."""
        result = engine.run(['docker'], headless_inputs={
            'action': 'Run a container',
            'mode': 'Detached',
            '<image>': 'nginx',
        })

        assert result.command == 'docker run -d nginx'

    def test_headless_fetched_placeholder_by_index(self, engine, mock_runner, config_dir):
        """Fetched options can be picked by name, label or 1-based index."""
        write_config(config_dir, 'docker-logs', LOGS_CONFIG)
        mock_runner.responses['run_fetch'] = {LOGS_FETCH: 'web\tabc123\ndb\tdef456'}

        result = engine.run(['docker', 'logs'], headless_inputs={'<container>': 2})

        assert result.command == 'docker logs db'

    def test_unknown_command_raises_not_found(self, engine):
        """A command without config raises ConfigNotFoundError."""
        with pytest.raises(ConfigNotFoundError):
            engine.run(['kubectl'], headless_inputs={})


class TestResponseParsing:
    """parse_response and default_response."""

    def test_choice_default_index(self):
        """default selects the initially highlighted option."""
        step = Step(id='t', prompt='Tail', type='choice', default=1,
                    options=[{'label': 'All'}, {'label': 'Last 100', 'flag': '--tail 100'}])

        assert default_response(step) == '2'
        assert parse_response(step, '') == 'Last 100'

    def test_recalled_multi_default(self):
        """A recalled multi answer becomes its numbers."""
        step = Step(id='m', prompt='M', type='multi',
                    options=[{'label': 'A'}, {'label': 'B'}, {'label': 'C'}])

        assert default_response(step, frozenset({'C', 'A'})) == '1,3'
        assert parse_response(step, '1, 3') == frozenset({'A', 'C'})

    def test_text_is_stripped(self):
        """Surrounding whitespace is dropped from text answers."""
        step = Step(id='x', prompt='X', type='text')

        assert parse_response(step, '  src/  ') == 'src/'
        assert default_response(step) is None
