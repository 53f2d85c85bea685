"""
AT script runner and script file parsing.

Script files hold one command per line as ``command[;timeout_ms[;expect]]``.
Blank lines are skipped.
"""

import logging
from typing import TYPE_CHECKING, Iterable, Optional, Union

from ..config import TimingProfile
from ..exceptions import ConfigError
from ..types import CommandSpec, ScpiSpec

if TYPE_CHECKING:
    from ..core import BridgeSession

logger = logging.getLogger(__name__)

DELIMITER = ";"

# Either final result ends an interactive script command
DEFAULT_EXPECT = ("OK\r\n", "ERROR\r\n")

ScriptEntry = Union[str, tuple, CommandSpec]


def _parse_timeout(token: str, line: str) -> float:
    try:
        millis = float(token)
    except ValueError as e:
        raise ConfigError(f"Invalid timeout {token!r} in script line: {line!r}") from e
    if millis <= 0:
        raise ConfigError(f"Timeout must be positive in script line: {line!r}")
    return millis / 1000.0


def parse_script_line(line: str, timing: TimingProfile) -> Optional[CommandSpec]:
    """
    Parse one AT script line.

    Args:
        line: ``command[;timeout_ms[;expect]]``
        timing: Profile supplying the default timeout

    Returns:
        CommandSpec, or None for a blank line

    Raises:
        ConfigError: If the timeout field is not a positive number
    """
    if not line.strip():
        return None

    tokens = line.split(DELIMITER)
    command = tokens[0].strip()

    if len(tokens) > 1 and tokens[1].strip():
        timeout = _parse_timeout(tokens[1].strip(), line)
    else:
        timeout = timing.at_response_delay

    if len(tokens) > 2:
        expect = (tokens[2].strip(),)
    else:
        expect = DEFAULT_EXPECT

    return CommandSpec(command=command, timeout=timeout, expect=expect)


def parse_scpi_line(line: str, timing: TimingProfile) -> Optional[ScpiSpec]:
    """Parse one SCPI script line: ``command[;timeout_ms]``."""
    if not line.strip():
        return None

    tokens = line.split(DELIMITER)
    if len(tokens) > 1 and tokens[1].strip():
        timeout = _parse_timeout(tokens[1].strip(), line)
    else:
        timeout = timing.scpi_response_delay
    return ScpiSpec(command=tokens[0].strip(), timeout=timeout)


def parse_script(lines: Iterable[str], timing: TimingProfile) -> list[CommandSpec]:
    """Parse every non-blank line of an AT script."""
    specs = []
    for line in lines:
        spec = parse_script_line(line.rstrip("\r\n"), timing)
        if spec is not None:
            specs.append(spec)
    return specs


class ScriptRunner:
    """
    Runs AT commands in order inside pass-through mode.

    Stops at the first command that fails; later commands are not sent.
    """

    def __init__(self, session: "BridgeSession") -> None:
        """
        Initialize script runner.

        Args:
            session: BridgeSession to execute commands on
        """
        self.session = session
        logger.debug("Initialized ScriptRunner")

    def to_spec(self, entry: ScriptEntry) -> CommandSpec:
        """
        Normalize a script entry.

        A bare string waits for silence with the default AT delay. A tuple is
        ``(command, timeout_seconds[, expect])``.
        """
        if isinstance(entry, CommandSpec):
            return entry
        if isinstance(entry, str):
            return CommandSpec.of(entry, self.session.timing.at_response_delay)
        command, timeout, *rest = entry
        return CommandSpec.of(command, timeout, rest[0] if rest else None)

    async def run(
        self,
        script: Iterable[ScriptEntry],
        inside_passthrough: bool = False
    ) -> list[str]:
        """
        Execute a script.

        Args:
            script: Commands to run in order
            inside_passthrough: The caller already holds pass-through mode

        Returns:
            Raw responses, one per command

        Raises:
            ATTimeoutError: From the first command that failed
        """
        specs = [self.to_spec(entry) for entry in script]

        if inside_passthrough:
            return await self._execute(specs)
        return await self.session.passthrough().run(lambda: self._execute(specs))

    async def _execute(self, specs: list[CommandSpec]) -> list[str]:
        responses = []
        for index, spec in enumerate(specs):
            if index:
                await self.session.sleep(self.session.config.inter_command_delay)
            responses.append(await self.session.at.send(spec))
        return responses
