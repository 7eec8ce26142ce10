import pytest

from sbdmodem.aterror import AtNotConnected
from sbdmodem.mailbox import (
    MailboxOutcome,
    MailboxSession,
    describe_mo_status,
    describe_mt_status,
    parse_session_status,
)

from conftest import SIM_PORT


async def mailbox_for(make_client, sim, **kwargs) -> MailboxSession:
    client = make_client(sim)
    assert await client.connect(SIM_PORT)
    return MailboxSession(client, **kwargs)


@pytest.mark.parametrize('response,expected', [
    ('+SBDI: 1, 23, 1, 5, 12, 0', (1, 23, 1, 5, 12, 0)),
    ('+SBDIX: 0, 1, 0, 0, 0, 0', (0, 1, 0, 0, 0, 0)),
    ('+SBDI:0,0,0,0,0,0', (0, 0, 0, 0, 0, 0)),
])
def test_parse_session_status(response, expected):
    assert parse_session_status(response) == expected


@pytest.mark.parametrize('response', ['+SBDI: 1, 2', '+SBDI: a,b,c,d,e,f'])
def test_parse_session_status_invalid(response):
    with pytest.raises(ValueError):
        parse_session_status(response)


def test_describe_status():
    assert describe_mo_status(1) == 'SBD message successfully sent'
    assert describe_mo_status(32, 'AT+SBDIX') == 'No network service'
    assert describe_mt_status(0) == 'No SBD message to receive'
    assert 'Unknown' in describe_mt_status(9)


def test_outcome_to_dict():
    outcome = MailboxOutcome(1, 2, 1, 3, 4, 0, mo_message=b'ping',
                             mt_message=b'test')
    rendered = outcome.to_dict()
    assert rendered['mo_message'] == 'cGluZw=='
    assert rendered['mt_message'] == 'dGVzdA=='
    assert rendered['degraded'] is False
    assert outcome.mo_sent and outcome.mt_received


@pytest.mark.asyncio
async def test_idle_exchange(make_client, sim):
    mailbox = await mailbox_for(make_client, sim)
    outcome = await mailbox.run_exchange()
    assert outcome.mo_status == 0
    assert outcome.mt_status == 0
    assert outcome.mt_queued == 0
    assert outcome.mo_message is None
    assert outcome.mt_message is None
    assert not outcome.degraded
    assert sim.received[1:] == ['AT+SBDI', 'AT+SBDD2']


@pytest.mark.asyncio
async def test_binary_exchange_loopback(make_client, sim):
    sim.gateway_queue.append(b'test')
    mailbox = await mailbox_for(make_client, sim)
    outcome = await mailbox.run_exchange(b'ping')
    assert outcome.mo_status == 1
    assert outcome.mo_message == b'ping'
    assert outcome.mt_status == 1
    assert outcome.mt_length == 4
    assert outcome.mt_message == b'test'
    assert sim.sent == [b'ping']
    assert sim.mo_buffer == b'' and sim.mt_buffer == b''
    assert sim.received[1:] == ['AT+SBDWB=4', 'AT+SBDI', 'AT+SBDRB',
                                'AT+SBDD2']


@pytest.mark.asyncio
async def test_binary_exchange_base64(make_client, verbose_sim):
    mailbox = await mailbox_for(make_client, verbose_sim)
    outcome = await mailbox.run_exchange('cGluZw==')
    assert outcome.mo_message == b'ping'
    assert verbose_sim.sent == [b'ping']


@pytest.mark.asyncio
async def test_text_exchange(make_client, sim):
    sim.gateway_queue.append(b'hello')
    mailbox = await mailbox_for(make_client, sim, binary=False)
    outcome = await mailbox.run_exchange('ping')
    assert outcome.mo_message == 'ping'
    assert outcome.mt_message == 'hello'
    assert sim.received[1:] == ['AT+SBDWT', 'ping', 'AT+SBDI', 'AT+SBDRT',
                                'AT+SBDD2']


@pytest.mark.asyncio
async def test_sbdix_exchange(make_client, verbose_sim):
    mailbox = await mailbox_for(make_client, verbose_sim,
                                session_command='AT+SBDIX')
    outcome = await mailbox.run_exchange(b'ping')
    assert outcome.command == 'AT+SBDIX'
    assert outcome.mo_status == 0
    assert outcome.mo_sent


@pytest.mark.asyncio
async def test_queued_count(make_client, verbose_sim):
    verbose_sim.gateway_queue.extend([b'one', b'two', b'three'])
    mailbox = await mailbox_for(make_client, verbose_sim)
    outcome = await mailbox.run_exchange()
    assert outcome.mt_message == b'one'
    assert outcome.mt_queued == 2


@pytest.mark.asyncio
async def test_write_rejected(make_client, verbose_sim):
    verbose_sim.overrides['AT+SBDWB=4'] = (['3'], True)
    mailbox = await mailbox_for(make_client, verbose_sim)
    assert await mailbox.run_exchange(b'ping') is None
    assert 'AT+SBDI' not in verbose_sim.received


@pytest.mark.asyncio
async def test_session_error(make_client, sim):
    sim.overrides['AT+SBDI'] = ([], False)
    mailbox = await mailbox_for(make_client, sim)
    assert await mailbox.run_exchange() is None
    assert 'AT+SBDD2' not in sim.received


@pytest.mark.asyncio
async def test_session_failure_codes(make_client, verbose_sim):
    verbose_sim.session_status = (2, 0, 2, 0, 0, 0)
    mailbox = await mailbox_for(make_client, verbose_sim)
    outcome = await mailbox.run_exchange()
    assert outcome.mo_status == 2
    assert outcome.mt_status == 2
    assert outcome.mt_message is None
    assert 'AT+SBDRB' not in verbose_sim.received


@pytest.mark.asyncio
async def test_download_error(make_client, sim):
    sim.session_status = (0, 0, 1, 1, 4, 0)
    sim.overrides['AT+SBDRB'] = ([], False)
    mailbox = await mailbox_for(make_client, sim)
    assert await mailbox.run_exchange() is None


@pytest.mark.asyncio
async def test_clear_failure_is_degraded(make_client, sim):
    sim.clear_fails = True
    mailbox = await mailbox_for(make_client, sim)
    outcome = await mailbox.run_exchange()
    assert outcome is not None
    assert outcome.degraded


@pytest.mark.asyncio
async def test_message_too_long(make_client, verbose_sim):
    mailbox = await mailbox_for(make_client, verbose_sim)
    with pytest.raises(ValueError):
        await mailbox.run_exchange(b'x' * 341)
    assert mailbox.client.connected.is_set


@pytest.mark.asyncio
async def test_engine_fault_propagates(make_client, verbose_sim):
    verbose_sim.silent.add('AT+SBDI')
    client = make_client(verbose_sim, command_timeout=0.1)
    assert await client.connect(SIM_PORT)
    mailbox = MailboxSession(client)
    with pytest.raises(AtNotConnected):
        await mailbox.run_exchange()
    assert client.faulted.is_set


def test_invalid_session_command(make_client, verbose_sim):
    with pytest.raises(ValueError):
        MailboxSession(make_client(verbose_sim), session_command='AT+SBDS')
