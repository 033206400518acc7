"""ActionRunner interface - all side effects go here."""

import logging
import subprocess
import sys
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# Exit codes reported when a command never produced one
TIMEOUT_RETURNCODE = 124
NOT_FOUND_RETURNCODE = 127


class ActionRunner(ABC):
    """Interface for talking to the user and running commands."""

    @abstractmethod
    def display(self, message: str) -> None:
        """Display a message to the user.

        Args:
            message: Text to display (may contain newlines)
        """
        pass

    @abstractmethod
    def get_input(self, prompt: str, default: Optional[str] = None) -> str:
        """Get input from user.

        Args:
            prompt: Question to ask user
            default: Default value if user presses Enter (shown in [brackets])

        Returns:
            User's input string (or default if empty)

        Raises:
            EOFError: If input is closed
        """
        pass

    @abstractmethod
    def run_fetch(self, command: str, timeout: float) -> Dict[str, Any]:
        """Run a placeholder fetch command through the shell and capture it.

        Args:
            command: Shell command line from a config's placeholder_options
            timeout: Seconds to wait before giving up

        Returns:
            Dict with 'stdout', 'stderr' and 'returncode'
        """
        pass

    @abstractmethod
    def run_shell(self, command: List[str], cwd: Optional[str] = None) -> Dict[str, Any]:
        """Run a finished command with the terminal attached.

        Returns:
            Dict with 'stdout', 'stderr' and 'returncode'
        """
        pass


class RealActionRunner(ActionRunner):
    """Real implementation - talks to the terminal and spawns processes.

    Prompts and messages go to stderr so that stdout carries only the
    finished command. Commands are logged at DEBUG, which the CLI
    enables with --verbose.
    """

    def display(self, message: str) -> None:
        """Print message to stderr."""
        print(message, file=sys.stderr)

    def get_input(self, prompt: str, default: Optional[str] = None) -> str:
        """Read a line from stdin with optional default."""
        if default:
            full_prompt = f"{prompt} [{default}]: "
        else:
            full_prompt = f"{prompt}: "
        sys.stderr.write(full_prompt)
        sys.stderr.flush()

        line = sys.stdin.readline()
        if not line:
            raise EOFError("input closed")

        response = line.strip()
        if response:
            return response
        return default if default else ''

    def run_fetch(self, command: str, timeout: float) -> Dict[str, Any]:
        logger.debug("Running fetch command: %s", command)

        try:
            result = subprocess.run(
                command,
                shell=True,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            logger.debug("Fetch command timed out after %ss: %s", timeout, command)
            return {
                'stdout': '',
                'stderr': f"timed out after {timeout:g}s",
                'returncode': TIMEOUT_RETURNCODE,
            }
        except OSError as e:
            logger.debug("Fetch command could not start: %s", e)
            return {
                'stdout': '',
                'stderr': f"{type(e).__name__}: {e}",
                'returncode': NOT_FOUND_RETURNCODE,
            }

        logger.debug("Fetch command exited with %s", result.returncode)
        return {
            'stdout': result.stdout,
            'stderr': result.stderr,
            'returncode': result.returncode,
        }

    def run_shell(self, command: List[str], cwd: Optional[str] = None) -> Dict[str, Any]:
        logger.debug("Running command: %s (cwd=%s)", ' '.join(command), cwd)

        try:
            # Not captured: the finished command owns the terminal
            result = subprocess.run(command, cwd=cwd)
            return {
                'stdout': '',
                'stderr': '',
                'returncode': result.returncode,
            }
        except FileNotFoundError as e:
            # This is likely the "No such file or directory" error
            logger.debug("Command not found or path issue: %s", command[0])
            return {
                'stdout': '',
                'stderr': f"FileNotFoundError: {e}",
                'returncode': NOT_FOUND_RETURNCODE,
            }
        except OSError as e:
            return {
                'stdout': '',
                'stderr': f"{type(e).__name__}: {e}",
                'returncode': 1,
            }


class MockActionRunner(ActionRunner):
    """Mock for testing - records calls."""

    def __init__(self):
        self.calls = []
        self.responses = {}
        self.input_queue = []  # Pre-scripted user inputs for testing

    def display(self, message: str) -> None:
        """Capture display call for test verification."""
        self.calls.append(('display', message))

    def get_input(self, prompt: str, default: Optional[str] = None) -> str:
        """Return next value from input_queue."""
        self.calls.append(('get_input', prompt, default))

        # Pop next scripted response
        if self.input_queue:
            response = self.input_queue.pop(0)
            if isinstance(response, BaseException):
                raise response
            # Match RealActionRunner: apply default if response is empty
            return response if response else (default if default else '')

        # Fall back to default or empty string
        return default if default else ''

    def run_fetch(self, command: str, timeout: float) -> Dict[str, Any]:
        """Answer from responses['run_fetch'], keyed by command string."""
        self.calls.append(('run_fetch', command, timeout))

        response_dict = self.responses.get('run_fetch', {})
        if command in response_dict:
            result = response_dict[command]
            if isinstance(result, BaseException):
                raise result
            # Return the dict directly if it's already a proper response
            if isinstance(result, dict) and 'returncode' in result:
                return result
            # Otherwise treat it as stdout of a successful run
            return {'stdout': result, 'stderr': '', 'returncode': 0}

        # Unknown commands behave like a command that does not exist
        return {'stdout': '', 'stderr': f"{command}: not found", 'returncode': NOT_FOUND_RETURNCODE}

    def run_shell(self, command: List[str], cwd: Optional[str] = None) -> Dict[str, Any]:
        self.calls.append(('run_shell', command, cwd))
        if 'run_shell' in self.responses:
            return self.responses['run_shell']
        return {'stdout': '', 'stderr': '', 'returncode': 0}

    def displayed(self) -> List[str]:
        """All messages passed to display(), in order."""
        return [call[1] for call in self.calls if call[0] == 'display']

    def prompts(self) -> List[str]:
        """All prompts passed to get_input(), in order."""
        return [call[1] for call in self.calls if call[0] == 'get_input']
