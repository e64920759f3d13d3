"""
OS command execution.
The only place in wifiwand that starts processes; everything else receives a
CommandRunner so tests can substitute a scripted double.
"""

import logging
import subprocess
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Union

from wifiwand.errors import WifiWandError

logger = logging.getLogger(__name__)

Command = Union[str, Sequence[str]]

# Exit code reported when the executable itself cannot be found, as a shell would.
COMMAND_NOT_FOUND_EXIT_CODE = 127


def command_to_string(command: Command) -> str:
    if isinstance(command, str):
        return command
    return ' '.join('' if arg is None else str(arg) for arg in command)


@dataclass
class CommandResult:
    """Outcome of one OS command."""
    command: str
    output: str
    exit_code: int
    stdout: str = ''
    stderr: str = ''
    duration: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    def lines(self) -> List[str]:
        """Non-empty, stripped lines of the stdout text."""
        return [line.strip() for line in self.stdout.splitlines() if line.strip()]

    def __str__(self) -> str:
        return self.output


class CommandExecutionError(WifiWandError):
    """An OS command exited nonzero."""

    def __init__(self, exit_code: int, command: str, output: str = '',
                 result: Optional[CommandResult] = None):
        self.exit_code = exit_code
        self.command = command
        self.output = output or ''
        self.result = result
        super().__init__(
            f"Error code {exit_code}, command = {command}, text = {self.output}")

    @classmethod
    def from_result(cls, result: CommandResult) -> 'CommandExecutionError':
        return cls(result.exit_code, result.command, result.output, result)


class CommandRunner:
    """Runs OS commands and captures their merged output."""

    def __init__(self, verbose: bool = False, timeout_seconds: Optional[float] = None):
        """
        Args:
            verbose: Log each command, its exit status, timing and output at INFO
            timeout_seconds: Optional per-command timeout; None waits for completion
        """
        self.verbose = verbose
        self.timeout_seconds = timeout_seconds

    def run(self, command: Command, raise_on_error: bool = True) -> CommandResult:
        """
        Run a command.

        Args:
            command: argv list, or a string which is run through `sh -c`
            raise_on_error: Raise CommandExecutionError on nonzero exit

        Returns:
            CommandResult with stdout and stderr merged into `output`

        Raises:
            CommandExecutionError: If the command fails and raise_on_error is set
        """
        if isinstance(command, str):
            argv = ['sh', '-c', command]
        else:
            argv = ['' if arg is None else str(arg) for arg in command]
        display = command_to_string(command)

        self._log(f"Attempting to run OS command: {display}")
        start = time.monotonic()
        try:
            completed = subprocess.run(
                argv,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds
            )
            stdout, stderr, exit_code = completed.stdout, completed.stderr, completed.returncode
        except FileNotFoundError:
            stdout, stderr = '', f"{argv[0]}: command not found"
            exit_code = COMMAND_NOT_FOUND_EXIT_CODE
        except subprocess.TimeoutExpired as e:
            stdout = _decode(e.stdout)
            stderr = _decode(e.stderr) or f"timed out after {self.timeout_seconds}s"
            exit_code = 124
        duration = time.monotonic() - start

        result = CommandResult(
            command=display,
            output=_merge(stdout, stderr),
            exit_code=exit_code,
            stdout=stdout or '',
            stderr=stderr or '',
            duration=duration
        )

        status = 'success' if result.succeeded else 'error'
        self._log(f"Exit code: {exit_code} ({status}), Duration: {duration:.4f} seconds")
        if result.stdout:
            self._log(f"STDOUT:\n{result.stdout}")
        if result.stderr:
            self._log(f"STDERR:\n{result.stderr}")

        if not result.succeeded and raise_on_error:
            raise CommandExecutionError.from_result(result)
        return result

    def try_until(self, command: Command, stop_condition: Callable[[str], bool],
                  max_tries: int = 100) -> Optional[str]:
        """
        Run a command repeatedly until stop_condition(stdout) is true.

        Returns:
            The stdout that satisfied the condition, or None if max_tries was reached
        """
        for attempt in range(1, max_tries + 1):
            stdout = self.run(command).stdout
            if stop_condition(stdout):
                self._log(f"Command was executed {attempt} time(s).")
                return stdout
        self._log(f"Command was executed {max_tries} time(s).")
        return None

    def command_available(self, command: str) -> bool:
        """Check whether a command is on the PATH."""
        return self.run(['which', command], raise_on_error=False).succeeded

    def _log(self, message: str) -> None:
        if self.verbose:
            logger.info(message)
        else:
            logger.debug(message)


def _decode(data) -> str:
    if data is None:
        return ''
    if isinstance(data, bytes):
        return data.decode(errors='replace')
    return data


def _merge(stdout: Optional[str], stderr: Optional[str]) -> str:
    stdout = stdout or ''
    stderr = stderr or ''
    if stdout and stderr and not stdout.endswith('\n'):
        return stdout + '\n' + stderr
    return stdout + stderr
