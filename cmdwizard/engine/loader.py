"""ConfigLoader - finds, parses and validates command configs."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml
from pydantic import ValidationError

from ..settings import Settings
from .errors import ConfigNotFoundError, ConfigValidationError
from .schema import CommandConfig

logger = logging.getLogger(__name__)

BUNDLED_DIR = Path(__file__).resolve().parent.parent / 'configs'
CONFIG_SUFFIXES = ('.json', '.yaml', '.yml')


def config_name(tokens: Sequence[str]) -> str:
    """Map command tokens to a config name: ['git', 'commit'] -> 'git-commit'."""
    return '-'.join(token.strip() for token in tokens if token.strip())


def default_search_dirs(settings: Optional[Settings] = None) -> List[Path]:
    """Project-local, then user-global, then bundled config directories."""
    if settings is None:
        settings = Settings.from_env()
    project_dir = settings.project_dir
    if not project_dir.is_absolute():
        project_dir = Path.cwd() / project_dir
    return [project_dir, settings.user_dir, BUNDLED_DIR]


class ConfigLoader:
    """
    Loads command configs from JSON or YAML files.

    Lookup tries each search directory in order and the first file found
    wins; files are never merged across directories. Structure is validated
    with the pydantic models in schema.py.
    """

    def __init__(self, search_dirs: Optional[Sequence[Path]] = None, settings: Optional[Settings] = None):
        """
        Initialize loader.

        Args:
            search_dirs: Directories to search, highest priority first
                (default: project-local, user-global, bundled)
            settings: Settings used to build the default search directories
        """
        if search_dirs is None:
            search_dirs = default_search_dirs(settings)
        self.search_dirs = [Path(directory) for directory in search_dirs]

    def candidate_paths(self, name: str) -> List[Path]:
        """Every path that would be tried for a config name, in order."""
        return [directory / f"{name}{suffix}" for directory in self.search_dirs for suffix in CONFIG_SUFFIXES]

    def locate(self, name: str) -> Optional[Path]:
        """Return the first existing file for a config name."""
        if not _is_safe_name(name):
            return None
        for path in self.candidate_paths(name):
            if path.is_file():
                logger.debug("Config '%s' found at %s", name, path)
                return path
        return None

    def exists(self, name: str) -> bool:
        return self.locate(name) is not None

    def load(self, tokens: Sequence[str]) -> CommandConfig:
        """
        Load the config for a command given as tokens.

        Args:
            tokens: Command words, e.g. ['git', 'commit']

        Returns:
            Validated CommandConfig instance

        Raises:
            ConfigNotFoundError: If no config exists in any location
            ConfigValidationError: If the file doesn't match the schema
        """
        return self.load_named(config_name(tokens))

    def load_named(self, name: str) -> CommandConfig:
        """Load a config by its hyphenated name (e.g. 'docker-run')."""
        path = self.locate(name)
        if path is None:
            searched = self.candidate_paths(name) if _is_safe_name(name) else []
            # Only the preferred file name per directory is worth suggesting
            suggestions = [p for p in searched if p.suffix == CONFIG_SUFFIXES[0]]
            raise ConfigNotFoundError(name, suggestions)
        return self.load_file(path, name=name)

    def load_file(self, path: Path, name: Optional[str] = None) -> CommandConfig:
        """
        Load and validate one config file.

        Args:
            path: File to read (.json, .yaml or .yml)
            name: Lookup name to record (default: file stem)

        Returns:
            Validated CommandConfig instance

        Raises:
            ConfigValidationError: If the file can't be read, parsed or validated
        """
        path = Path(path)
        name = name or path.stem
        data = self._read(path)

        payload = dict(data)
        payload['name'] = name
        payload['source'] = path
        try:
            config = CommandConfig(**payload)
        except ValidationError as e:
            raise ConfigValidationError(path, _describe_errors(e, data))

        problems = self._chain_problems(config)
        if problems:
            raise ConfigValidationError(path, problems)

        logger.debug("Loaded config '%s' (%d steps, %d presets)", name, len(config.steps), len(config.presets))
        return config

    def _read(self, path: Path) -> Dict[str, Any]:
        try:
            text = path.read_text(encoding='utf-8-sig')
        except OSError as e:
            raise ConfigValidationError(path, [f"could not read file: {e}"])

        try:
            if path.suffix == '.json':
                data = json.loads(text)
            else:
                data = yaml.safe_load(text)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigValidationError(path, [f"could not parse file: {e}"])

        if not isinstance(data, dict):
            raise ConfigValidationError(path, ["top level must be an object"])
        return data

    def _chain_problems(self, config: CommandConfig) -> List[str]:
        """Chain targets must exist; their contents are only checked when walked."""
        problems = []
        for step, opt in config.chain_targets():
            if not self.exists(opt.chain):
                problems.append(
                    f"Step '{step.id}': option '{opt.label}' chains to unknown config '{opt.chain}'"
                )
        return problems


def _is_safe_name(name: str) -> bool:
    return bool(name) and '/' not in name and '\\' not in name and not name.startswith('.')


def _describe_errors(error: ValidationError, data: Dict[str, Any]) -> List[str]:
    """Turn pydantic errors into messages that name the offending step/field."""
    problems: List[str] = []
    for err in error.errors():
        message = err['msg']
        if err['type'] == 'value_error' and not err['loc']:
            # Raised by CommandConfig.check_structure; already names the step
            message = message.removeprefix('Value error, ')
            problems.extend(message.split('; '))
            continue
        problems.append(f"{_describe_location(err['loc'], data)}: {message}")
    return problems


def _describe_location(loc, data: Dict[str, Any]) -> str:
    parts = list(loc)
    if len(parts) >= 2 and parts[0] == 'steps' and isinstance(parts[1], int):
        steps = data.get('steps') or []
        raw_step = steps[parts[1]] if parts[1] < len(steps) else None
        step_id = raw_step.get('id') if isinstance(raw_step, dict) else None
        label = f"Step '{step_id}'" if step_id else f"steps[{parts[1]}]"
        rest = '.'.join(str(part) for part in parts[2:])
        return f"{label} {rest}".strip()
    return '.'.join(str(part) for part in parts) or '<config>'
