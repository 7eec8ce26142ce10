import pytest

from sbdmodem.atcommand_async import SbdModemAsyncioClient
from sbdmodem.atcommand_async import LOGGING_VERBOSE_LEVEL as VERBOSE
from simulator.sbd_sim import SbdModemSimulator

SIM_PORT = '/dev/ttySIM0'


@pytest.fixture
def mock_port(mocker):
    return mocker.patch('sbdmodem.atcommand_async.validate_serial_port',
                        return_value=(True, 'simulator'))


@pytest.fixture(params=[True, False], ids=['verbose', 'numeric'])
def sim(request):
    return SbdModemSimulator(verbose=request.param)


@pytest.fixture
def verbose_sim():
    return SbdModemSimulator(verbose=True)


@pytest.fixture
def make_client(mock_port):
    def factory(sim, **kwargs):
        kwargs.setdefault('log_level', VERBOSE)
        return SbdModemAsyncioClient(serial_factory=lambda settings: sim,
                                     **kwargs)
    return factory
