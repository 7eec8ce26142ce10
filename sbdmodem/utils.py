"""Helpers for logging and serial port discovery on a headless host.

"""

import inspect
import logging
from logging import Logger
from logging.handlers import RotatingFileHandler
from time import gmtime
from typing import List, Union

import serial.tools.list_ports as list_ports

USB_DRIVERS = {
    'USB VID:PID=0403:6001': 'Serial FTDI FT232 (RockBLOCK USB)',
    'USB VID:PID=0403:6015': 'Serial FTDI FT231X (RockBLOCK USB)',
    'USB VID:PID=067B:2303': 'Serial Prolific PL2303 (RS232)',
}


def is_logger(log: object) -> bool:
    """"Returns true if the object is a logger."""
    return isinstance(log, Logger)


def is_log_handler(logger: Logger, handler: object) -> bool:
    """Returns true if the handler is found in the logger.

    Args:
        logger: the logger parent of the handler
        handler: the handler to validate

    Returns:
        True if the handler is in the logger.

    """
    if not is_logger(logger):
        return False
    for h in logger.handlers:
        if h.name == handler.name:
            return True
    return False


def get_caller_name(depth: int = 2,
                    mod: bool = True,
                    cls: bool = False,
                    mth: bool = False) -> str:
    """Returns the name of the calling function.

    Args:
        depth: Starting depth of stack inspection.
        mod: Include module name.
        cls: Include class name.
        mth: Include method name.

    Returns:
        Name (string) including module[.class][.method]

    """
    stack = inspect.stack()
    start = 0 + depth
    if len(stack) < start + 1:
        return ''
    parent_frame = stack[start][0]
    name = []
    module = inspect.getmodule(parent_frame)
    if module and mod:
        name.append(module.__name__)
    if cls and 'self' in parent_frame.f_locals:
        name.append(parent_frame.f_locals['self'].__class__.__name__)
    if mth:
        codename = parent_frame.f_code.co_name
        if codename != '<module>':
            name.append(codename)
    del parent_frame, stack
    return '.'.join(name)


def get_wrapping_logger(name: str = None,
                        filename: str = None,
                        file_size: int = 5,
                        max_files: int = 2,
                        debug: bool = False,
                        log_level: int = logging.INFO,
                        **kwargs) -> Logger:
    """Sets up a wrapping logger that writes to console and optionally a file.

    A modem left running unattended should not fill its drive with logs, so
    the *wrapping_logger*:

        * Initializes logging to console, and optionally a CSV formatted file
        * Log file wraps at a given maximum size (default 5 MB)
        * Uses UTC/GMT/Zulu timestamps
        * Provides a standardized CSV format
            * ``timestamp,[level],(thread),module.function:line,message``

    Args:
        name: Name of the logger (if None, uses name of calling module).
        filename: (optional) Name of the file/path if writing to a file.
        file_size: Max size of the file in megabytes, before wrapping.
        max_files: The maximum number of files in rotation.
        debug: enable DEBUG logging
        log_level: A logging level (default INFO)
        kwargs: Optional overrides for RotatingFileHandler

    Returns:
        A logger with console stream handler and (optional) file handler.

    """
    FORMAT = ('%(asctime)s.%(msecs)03dZ,[%(levelname)s],(%(threadName)-10s),'
              '%(module)s.%(funcName)s:%(lineno)d,%(message)s')
    log_formatter = logging.Formatter(fmt=FORMAT,
                                      datefmt='%Y-%m-%dT%H:%M:%S')
    log_formatter.converter = gmtime

    if name is None:
        name = get_caller_name()
    logger = logging.getLogger(name)

    if debug or logger.getEffectiveLevel() == logging.DEBUG:
        log_lvl = logging.DEBUG
    else:
        log_lvl = log_level
    logger.setLevel(log_lvl)
    if filename is not None:
        file_handler = RotatingFileHandler(
            filename=filename,
            mode=kwargs.get('mode', 'a'),
            maxBytes=kwargs.get('maxBytes', int(file_size * 1024 * 1024)),
            backupCount=kwargs.get('backupCount', max_files),
            encoding=kwargs.get('encoding', None),
            delay=kwargs.get('delay', False))
        file_handler.name = name + '_file_handler'
        file_handler.setFormatter(log_formatter)
        file_handler.setLevel(log_lvl)
        if not is_log_handler(logger, file_handler):
            logger.addHandler(file_handler)
    console_handler = logging.StreamHandler()
    console_handler.name = name + '_console_handler'
    console_handler.setFormatter(log_formatter)
    console_handler.setLevel(log_lvl)
    if not is_log_handler(logger, console_handler):
        logger.addHandler(console_handler)

    return logger


def list_serial_ports() -> List[str]:
    """Returns the names of the serial ports available on the host."""
    return [port.device for port in list_ports.comports()]


def validate_serial_port(target: str, verbose: bool = False) -> Union[bool, tuple]:
    """Validates a given serial port as available on the host.

    If target port is not found, a list of available ports is returned.
    Labels known FTDI and Prolific serial/USB drivers.

    Args:
        target: Target port name e.g. ``/dev/ttyUSB0``
        verbose: Also return a description

    Returns:
        True or False if verbose is False
        (valid: bool, description: str) if verbose is True
    """
    found = False
    detail = ''
    ser_ports = [tuple(port) for port in list(list_ports.comports())]
    for port in ser_ports:
        if target == port[0]:
            found = True
            usb_id = str(port[2])
            driver = 'Serial vendor/device {}'.format(usb_id)
            for vid_pid, name in USB_DRIVERS.items():
                if vid_pid in usb_id:
                    driver = name
            detail = '{} on {}'.format(driver, port[0])
    if not found and len(ser_ports) > 0:
        detail = 'Available ports: ' + ', '.join(p[0] for p in ser_ports)
    return (found, detail) if verbose else found
