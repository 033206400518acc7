"""Shared fixtures for cmdwizard tests."""

import json
from pathlib import Path

import pytest

from cmdwizard.engine.loader import ConfigLoader
from cmdwizard.engine.runner import MockActionRunner
from cmdwizard.engine.schema import CommandConfig
from cmdwizard.settings import Settings

LS_CONFIG = {
    'command': 'ls',
    'description': 'List directory contents',
    'steps': [
        {
            'id': 'format',
            'prompt': 'Output format',
            'type': 'choice',
            'options': [
                {'label': 'Detailed list', 'flag': '-l'},
                {'label': 'Grid', 'flag': None},
            ],
        },
        {
            'id': 'human_sizes',
            'prompt': 'Human-readable sizes?',
            'type': 'toggle',
            'flag': '-h',
            'when': {'format': 'Detailed list'},
        },
        {
            'id': 'hidden',
            'prompt': 'Show hidden files?',
            'type': 'toggle',
            'flag': '-a',
        },
    ],
}

DOCKER_CONFIG = {
    'command': 'docker',
    'steps': [
        {
            'id': 'action',
            'prompt': 'What do you want to do?',
            'type': 'choice',
            'options': [
                {'label': 'Run a container', 'flag': None, 'chain': 'docker-run'},
                {'label': 'List containers', 'flag': 'ps'},
            ],
        },
    ],
}

DOCKER_RUN_CONFIG = {
    'command': 'docker run',
    'steps': [
        {
            'id': 'mode',
            'prompt': 'How should it run?',
            'type': 'choice',
            'options': [
                {'label': 'Interactive terminal', 'flag': '-it'},
                {'label': 'Detached', 'flag': '-d'},
            ],
        },
        {
            'id': 'image',
            'prompt': 'Image',
            'type': 'choice',
            'options': [{'label': 'Type it at the end', 'flag': '<image>'}],
        },
    ],
}


def write_config(directory: Path, name: str, data) -> Path:
    """Write a config as JSON (dict) or raw text (str) and return its path."""
    directory.mkdir(parents=True, exist_ok=True)
    if isinstance(data, str):
        path = directory / name
        path.write_text(data)
    else:
        path = directory / f"{name}.json"
        path.write_text(json.dumps(data))
    return path


def make_config(data) -> CommandConfig:
    return CommandConfig(**data)


@pytest.fixture
def mock_runner():
    """Create a mock runner for testing."""
    return MockActionRunner()


@pytest.fixture
def config_dir(tmp_path):
    """Empty project-local config directory."""
    directory = tmp_path / 'project'
    directory.mkdir()
    return directory


@pytest.fixture
def loader(config_dir):
    """Loader that only searches config_dir."""
    return ConfigLoader(search_dirs=[config_dir])


@pytest.fixture
def settings(tmp_path):
    """Settings that never touch the real home directory."""
    return Settings(project_dir=tmp_path / 'project', user_dir=tmp_path / 'user', fetch_timeout=2.0)


@pytest.fixture
def docker_configs(config_dir):
    """docker -> docker-run chain written to config_dir."""
    write_config(config_dir, 'docker', DOCKER_CONFIG)
    write_config(config_dir, 'docker-run', DOCKER_RUN_CONFIG)
    return config_dir
