#!/usr/bin/env python3
#coding: utf-8
"""
Runs the supervised mailbox session loop until interrupted.

Messages given with --message are queued for upload and received messages
are logged.

"""
import asyncio
from argparse import ArgumentParser
import json
import sys

from sbdmodem.config import SerialSettings, SessionSettings
from sbdmodem.supervisor import SbdSessionSupervisor
from sbdmodem.utils import get_wrapping_logger


def parse_args(argv: tuple) -> dict:
    """
    Parses the command line arguments.

    Args:
        argv: An array containing the command line arguments.
    
    Returns:
        A dictionary containing the command line arguments and their values.

    """
    parser = ArgumentParser(description="Iridium SBD mailbox session service.")
    parser.add_argument('-p', '--port', dest='port', type=str, default=None,
                        help="the serial port of the modem (default: discover)")
    parser.add_argument('-i', '--interval', dest='interval', type=float,
                        default=10, help="minutes between idle mailbox checks")
    parser.add_argument('-t', '--text', dest='text', action='store_true',
                        help="use text instead of binary messages")
    parser.add_argument('-m', '--message', dest='messages', action='append',
                        default=[], help="a message to send (repeatable)")
    parser.add_argument('-l', '--log', dest='logfile', type=str, default=None,
                        help="the log file name")
    parser.add_argument('-s', '--logsize', dest='log_size', type=int, default=5,
                        help="the maximum log file size, in MB (default 5 MB)")
    parser.add_argument('-d', '--debug', dest='debug', action='store_true',
                        help="enable verbose debug logging (default OFF)")
    return vars(parser.parse_args(args=argv[1:]))


async def run(options: dict):
    log = get_wrapping_logger(name='sbd_session_service',
                              filename=options['logfile'],
                              file_size=options['log_size'],
                              debug=options['debug'])
    settings = SessionSettings(session_interval=options['interval'] * 60,
                               binary=not options['text'])
    supervisor = SbdSessionSupervisor(port=options['port'],
                                      serial_settings=SerialSettings(),
                                      session_settings=settings,
                                      logger=log)
    for message in options['messages']:
        supervisor.send(message.encode() if settings.binary else message)

    async def report_inbox():
        while True:
            message = await supervisor.inbox.get()
            log.info('Received: {}'.format(json.dumps(
                message.decode(errors='replace')
                if isinstance(message, bytes) else message)))

    supervisor.on_outcome(lambda outcome: log.info(json.dumps(
        outcome.to_dict() if outcome is not None else None)))
    reporter = asyncio.ensure_future(report_inbox())
    try:
        await supervisor.start()
    finally:
        reporter.cancel()
        await supervisor.stop()


def main():
    user_options = parse_args(sys.argv)
    try:
        asyncio.run(run(user_options))
    except KeyboardInterrupt:
        print('Interrupted by user')


if __name__ == '__main__':
    main()
