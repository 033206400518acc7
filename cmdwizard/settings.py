"""Runtime settings read from the environment."""

import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

ENV_PREFIX = 'CMDWIZARD_'
TRUE_VALUES = ('1', 'true', 'yes', 'y', 'on')


def default_user_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    """User-global config directory ($XDG_CONFIG_HOME/cmdwizard or ~/.config/cmdwizard)."""
    environ = os.environ if environ is None else environ
    base = environ.get('XDG_CONFIG_HOME')
    if base:
        return Path(base) / 'cmdwizard'
    return Path.home() / '.config' / 'cmdwizard'


class Settings(BaseModel):
    """
    Settings for one invocation.

    Every field can be set with a CMDWIZARD_* environment variable, e.g.
    CMDWIZARD_FETCH_TIMEOUT=2.5.
    """

    model_config = ConfigDict(frozen=True)

    verbose: bool = Field(False, description="Log commands and lookups to stderr")
    fetch_timeout: float = Field(5.0, description="Seconds a placeholder fetch command may run")
    project_dir: Path = Field(Path('.cmdwizard'), description="Project-local config directory")
    user_dir: Path = Field(default_factory=default_user_dir, description="User-global config directory")

    @field_validator('fetch_timeout')
    @classmethod
    def positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("fetch_timeout must be greater than zero")
        return value

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> 'Settings':
        """Build settings from environment variables plus explicit overrides.

        Args:
            environ: Mapping to read instead of os.environ
            **overrides: Field values that win over the environment (None is ignored)

        Raises:
            ValueError: If a variable holds an unusable value
        """
        environ = os.environ if environ is None else environ
        values = {}

        verbose = environ.get(ENV_PREFIX + 'VERBOSE')
        if verbose is not None:
            values['verbose'] = verbose.strip().lower() in TRUE_VALUES
        for field, var in (
            ('fetch_timeout', 'FETCH_TIMEOUT'),
            ('project_dir', 'PROJECT_DIR'),
            ('user_dir', 'USER_DIR'),
        ):
            raw = environ.get(ENV_PREFIX + var)
            if raw:
                values[field] = raw
        if 'user_dir' not in values:
            values['user_dir'] = default_user_dir(environ)

        values.update({key: value for key, value in overrides.items() if value is not None})

        try:
            return cls(**values)
        except ValidationError as e:
            problems = ', '.join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors())
            raise ValueError(f"Invalid settings: {problems}") from None
