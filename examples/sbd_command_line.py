#!/usr/bin/env python3
#coding: utf-8
"""
Sends AT commands to an Iridium SBD modem and prints the results as JSON.

Examples::

    sbd_command_line.py -p /dev/ttyUSB0 --status
    sbd_command_line.py -p /dev/ttyUSB0 --time
    sbd_command_line.py -p /dev/ttyUSB0 -c AT+CSQ -c AT+SBDS
    sbd_command_line.py -p /dev/ttyUSB0 --binary SGVsbG8gV29ybGQ=

"""
import asyncio
from argparse import ArgumentParser
import json
import sys

from sbdmodem.atcommand_async import SbdModemAsyncioClient
from sbdmodem.aterror import AtException
from sbdmodem.config import SerialSettings


def parse_args(argv: tuple) -> dict:
    """
    Parses the command line arguments.

    Args:
        argv: An array containing the command line arguments.
    
    Returns:
        A dictionary containing the command line arguments and their values.

    """
    parser = ArgumentParser(description="Command line for an Iridium SBD modem.")
    parser.add_argument('-p', '--port', dest='port', type=str, default=None,
                        help="the serial port of the modem (default: discover)")
    parser.add_argument('-b', '--baudrate', dest='baudrate', type=int,
                        default=19200, help="the serial baudrate")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument('--status', action='store_true',
                       help="print the connection state and signal quality")
    group.add_argument('--time', action='store_true',
                       help="print the Iridium network time")
    group.add_argument('-c', '--command', dest='commands', action='append',
                       help="send an AT command (repeatable)")
    group.add_argument('--text', type=str,
                       help="write a text message to the MO buffer")
    group.add_argument('--binary', type=str,
                       help="write a base64 message to the MO buffer")
    return vars(parser.parse_args(args=argv[1:]))


async def run(options: dict) -> dict:
    settings = SerialSettings(baudrate=options['baudrate'])
    async with SbdModemAsyncioClient() as modem:
        if not await modem.connect(options['port'], settings):
            return {'state': modem.state.name}
        report = {'port': modem.settings.port}
        if options['status']:
            report['signal_quality'] = await modem.signal_quality()
            report['imei'] = await modem.device_imei()
        elif options['time']:
            network_time = await modem.network_time()
            report['time'] = network_time.isoformat() if network_time else None
        elif options['commands']:
            report['results'] = [
                (await modem.execute_command(c))._asdict()
                for c in options['commands']]
        elif options['text'] is not None:
            report['result'] = (
                await modem.write_text_message(options['text']))._asdict()
        else:
            report['result'] = (
                await modem.write_binary_message(options['binary']))._asdict()
        report['state'] = modem.state.name
        return report


def main():
    user_options = parse_args(sys.argv)
    try:
        print(json.dumps(asyncio.run(run(user_options)), indent=2))
    except (AtException, ValueError) as e:
        print('Error: {}'.format(e))
        sys.exit(1)
    except KeyboardInterrupt:
        print('Interrupted by user')


if __name__ == '__main__':
    main()
