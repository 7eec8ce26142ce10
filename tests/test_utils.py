"""Basic test cases for utils."""

import logging
from collections import namedtuple

from sbdmodem import utils
from sbdmodem.utils import get_caller_name, get_wrapping_logger

ListPortInfo = namedtuple('ListPortInfo', ['device', 'description', 'hwid'])

PORTS = [
    ListPortInfo('/dev/ttyUSB0', 'FT231X', 'USB VID:PID=0403:6015 SER=1'),
    ListPortInfo('/dev/ttyS0', 'ttyS0', 'n/a'),
]


def test_get_caller_name():
    def inner():
        return get_caller_name(mth=True)
    assert inner().endswith('test_get_caller_name')


def test_wrapping_logger_file(tmp_path):
    filename = str(tmp_path / 'sbd.log')
    log = get_wrapping_logger(name='test_wrap', filename=filename,
                              file_size=0.001)
    log.info('written to file')
    for handler in log.handlers:
        handler.flush()
    with open(filename) as logfile:
        content = logfile.read()
    assert ',[INFO],' in content
    assert content.rstrip().endswith('written to file')


def test_wrapping_logger_no_duplicate_handlers():
    log = get_wrapping_logger(name='test_dupes')
    count = len(log.handlers)
    log = get_wrapping_logger(name='test_dupes')
    assert len(log.handlers) == count


def test_wrapping_logger_debug():
    log = get_wrapping_logger(name='test_debug', debug=True)
    assert log.level == logging.DEBUG


def test_list_serial_ports(mocker):
    mocker.patch.object(utils.list_ports, 'comports', return_value=PORTS)
    assert utils.list_serial_ports() == ['/dev/ttyUSB0', '/dev/ttyS0']


def test_validate_serial_port(mocker):
    mocker.patch.object(utils.list_ports, 'comports', return_value=PORTS)
    valid, detail = utils.validate_serial_port('/dev/ttyUSB0', verbose=True)
    assert valid
    assert 'RockBLOCK' in detail
    assert utils.validate_serial_port('/dev/ttyS0')


def test_validate_serial_port_missing(mocker):
    mocker.patch.object(utils.list_ports, 'comports', return_value=PORTS)
    valid, detail = utils.validate_serial_port('/dev/ttyACM9', verbose=True)
    assert not valid
    assert '/dev/ttyUSB0' in detail
