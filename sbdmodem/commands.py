# -*- coding: utf-8 -*-
"""Maps AT commands to the shape of the response the modem returns.

The table is built once as an immutable value and handed to the client,
which resolves each outbound command by exact key, falling back to the
longest matching prefix for commands that carry an inline value.

"""

from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping, NamedTuple, Optional, Tuple


class ResponseShape(Enum):
    """The framing of a response body following the command echo."""
    NO_PAYLOAD = 'no_payload'
    SINGLE_PAYLOAD = 'single_payload'
    MULTI_LINE = 'multi_line'
    READY_PROMPT = 'ready_prompt'
    TEXT_READ = 'text_read'
    BINARY_READ = 'binary_read'
    CLOCK = 'clock'


class CommandSpec(NamedTuple):
    """The response shape of a command and, for multi-line, its lines."""
    shape: ResponseShape
    lines: int = 1


NO_PAYLOAD_COMMANDS = (
    'AT', 'ATE0', 'ATE1', 'ATQ0', 'ATQ1', 'ATV0', 'ATV1',
    'AT&K0', 'AT&K3', 'AT&W0', 'AT&Y0', 'AT*F', 'AT*R0', 'AT*R1',
    'AT+SBDMTA=0', 'AT+SBDMTA=1', 'AT+SBDAREG=0', 'AT+SBDAREG=1',
)

SINGLE_PAYLOAD_COMMANDS = (
    'AT+CGMI', 'AT+CGMM', 'AT+CGSN', 'AT+CIER=?', 'AT+CIER?',
    'AT+CRIS', 'AT+CRISX', 'AT+CSQ', 'AT+CSQ=?', 'AT+CSQF', 'AT+CULK?',
    'AT+GMI', 'AT+GMM', 'AT+GSN', 'AT+IPR=?', 'AT+IPR?',
    'AT+SBDAREG=?', 'AT+SBDAREG?', 'AT+SBDC', 'AT+SBDD0', 'AT+SBDD1',
    'AT+SBDD2', 'AT+SBDDSC?', 'AT+SBDGW', 'AT+SBDGWN', 'AT+SBDI',
    'AT+SBDIX', 'AT+SBDIXA', 'AT+SBDLOE', 'AT+SBDMTA?', 'AT+SBDMTA=?',
    'AT+SBDREG?', 'AT+SBDS', 'AT+SBDST?', 'AT+SBDSX', 'AT+SBDTC',
    'AT-MSGEO', 'AT-MSGEOS', 'AT-MSSTM',
    'ATI0', 'ATI1', 'ATI2', 'ATI3', 'ATI4', 'ATI5', 'ATI6', 'ATI7',
)

MULTI_LINE_COMMANDS = (
    ('AT+GMR', 7),
    ('AT+CGMR', 7),
    ('AT&V', 8),
    ('AT%R', 66),
)

TEXT_WRITE_PREFIX = 'AT+SBDWT='
BINARY_WRITE_PREFIX = 'AT+SBDWB='


def normalize(command: str) -> str:
    """Returns the lookup key of a command line."""
    return command.strip().upper()


class CommandTable:
    """An immutable mapping of command keys and prefixes to responses.

    Attributes:
        exact: Mapping of command key to CommandSpec.
        prefixes: Mapping of command prefix to CommandSpec.

    """

    def __init__(self,
                 exact: Mapping[str, CommandSpec],
                 prefixes: Mapping[str, CommandSpec] = None):
        self.exact = MappingProxyType(
            {normalize(k): v for k, v in exact.items()})
        self.prefixes = MappingProxyType(
            {normalize(k): v for k, v in (prefixes or {}).items()})
        self._prefix_order: Tuple[str, ...] = tuple(
            sorted(self.prefixes, key=len, reverse=True))

    def __contains__(self, command: str) -> bool:
        return self.lookup(command) is not None

    def lookup(self, command: str) -> Optional[CommandSpec]:
        """Returns the CommandSpec for a command, or None if unrecognized."""
        key = normalize(command)
        if key in self.exact:
            return self.exact[key]
        for prefix in self._prefix_order:
            if key.startswith(prefix):
                return self.prefixes[prefix]
        return None

    def commands(self) -> Iterable[str]:
        """Returns the exact command keys."""
        return tuple(self.exact)


def default_command_table() -> CommandTable:
    """Builds the table of commands supported by the 9602/9603 modem."""
    exact = {}
    for command in NO_PAYLOAD_COMMANDS:
        exact[command] = CommandSpec(ResponseShape.NO_PAYLOAD)
    for command in SINGLE_PAYLOAD_COMMANDS:
        exact[command] = CommandSpec(ResponseShape.SINGLE_PAYLOAD)
    for command, lines in MULTI_LINE_COMMANDS:
        exact[command] = CommandSpec(ResponseShape.MULTI_LINE, lines)
    exact['AT+SBDWT'] = CommandSpec(ResponseShape.READY_PROMPT)
    exact['AT+SBDRT'] = CommandSpec(ResponseShape.TEXT_READ)
    exact['AT+SBDRB'] = CommandSpec(ResponseShape.BINARY_READ)
    exact['AT+CCLK?'] = CommandSpec(ResponseShape.CLOCK)
    prefixes = {
        TEXT_WRITE_PREFIX: CommandSpec(ResponseShape.NO_PAYLOAD),
        BINARY_WRITE_PREFIX: CommandSpec(ResponseShape.READY_PROMPT),
    }
    return CommandTable(exact, prefixes)


COMMAND_TABLE = default_command_table()
