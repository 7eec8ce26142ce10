"""Iridium short burst data (SBD) modem AT commands and mailbox sessions."""

from .atcommand_async import ExecutionResult, SbdModemAsyncioClient
from .config import SerialSettings, SessionSettings
from .connection import ConnectionState
from .mailbox import MailboxOutcome, MailboxSession
from .session import SbdSessionProcess, SessionPace, classify_outcome
from .supervisor import SbdSessionSupervisor
