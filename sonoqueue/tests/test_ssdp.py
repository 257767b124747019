import logging
import sys
import types

import pytest

from sonoqueue.core.errors import ConfigurationError, ParseError, TransportError
from sonoqueue.protocols.ssdp import SSDPProbe, filter_candidates, parse_ssdp_response

from fakes import ZONE_PLAYER, FakeClock, FakeSocket, socket_factory, ssdp_reply

SENDER = ('192.168.1.10', 1900)


def make_probe(sock, clock=None, timeout=2):
    return SSDPProbe(ZONE_PLAYER, timeout=timeout, socket_factory=socket_factory(sock),
                     clock=clock or FakeClock())


def test_msearch_request_format():
    probe = SSDPProbe(ZONE_PLAYER)
    assert probe.request() == (
        b'M-SEARCH * HTTP/1.1\r\n'
        b'HOST: 239.255.255.250:1900\r\n'
        b'MAN: "ssdp:discover"\r\n'
        b'ST: urn:schemas-upnp-org:device:ZonePlayer:1\r\n'
        b'MX: 1\r\n'
        b'\r\n'
    )


def test_search_sends_once_and_collects_until_timeout():
    sock = FakeSocket([
        (ssdp_reply(location='http://192.168.1.10:1400/xml/device_description.xml'), SENDER),
        (ssdp_reply(location='http://192.168.1.11:1400/xml/device_description.xml'), ('192.168.1.11', 1900)),
    ])
    responses = list(make_probe(sock).search())
    assert [r.location for r in responses] == [
        'http://192.168.1.10:1400/xml/device_description.xml',
        'http://192.168.1.11:1400/xml/device_description.xml',
    ]
    assert responses[1].address == '192.168.1.11'
    assert len(sock.sent) == 1
    assert sock.sent[0][1] == ('239.255.255.250', 1900)
    assert sock.bound == ('', 0)
    assert sock.closed


def test_no_replies_gives_empty_sequence():
    sock = FakeSocket()
    assert list(make_probe(sock).search()) == []
    assert sock.timeouts == [2]
    assert sock.closed


def test_malformed_datagram_is_skipped():
    sock = FakeSocket([
        (b'this is not http', SENDER),
        (b'NOTIFY * HTTP/1.1\r\nHOST: 239.255.255.250:1900\r\n\r\n', SENDER),
        (ssdp_reply(), SENDER),
    ])
    responses = list(make_probe(sock).search())
    assert len(responses) == 1


def test_receive_error_ends_collection_without_raising():
    sock = FakeSocket([
        (ssdp_reply(), SENDER),
        OSError('network is unreachable'),
        (ssdp_reply(), SENDER),
    ])
    responses = list(make_probe(sock).search())
    assert len(responses) == 1
    assert sock.closed


def test_deadline_bounds_collection():
    clock = FakeClock()
    sock = FakeSocket([(ssdp_reply(), SENDER)] * 3, clock=clock, step=1.5)
    responses = list(make_probe(sock, clock=clock).search())
    # 1.5s for the first reply, 3.0s for the second; the third is never read
    assert len(responses) == 2
    assert sock.timeouts == [2, 0.5]
    assert len(sock.script) == 1


def test_send_failure_is_transport_error():
    sock = FakeSocket(send_error=OSError('permission denied'))
    with pytest.raises(TransportError):
        make_probe(sock).search()
    assert sock.closed


def test_socket_setup_failure_is_transport_error():
    def broken(*args):
        raise OSError('too many open files')
    probe = SSDPProbe(ZONE_PLAYER, socket_factory=broken)
    with pytest.raises(TransportError):
        probe.search()


def test_abandoned_iteration_closes_socket():
    sock = FakeSocket([(ssdp_reply(), SENDER)] * 2)
    it = make_probe(sock).search()
    next(it)
    it.close()
    assert sock.closed


def test_parse_response_headers_are_case_insensitive():
    resp = parse_ssdp_response(ssdp_reply(), '192.168.1.10')
    assert resp.status == 200
    assert resp.reason == 'OK'
    assert resp.headers['location'] == resp.headers['LOCATION'] == resp.location
    assert resp.headers.get('Usn').startswith('uuid:RINCON_')


def test_parse_response_keeps_repeated_headers():
    resp = parse_ssdp_response(ssdp_reply(st='upnp:rootdevice', extra=[f'ST: {ZONE_PLAYER}']))
    assert resp.search_targets == ['upnp:rootdevice', ZONE_PLAYER]


@pytest.mark.parametrize('data', [
    b'',
    b'garbage\r\n\r\n',
    b'M-SEARCH * HTTP/1.1\r\nST: ssdp:all\r\n\r\n',
    b'HTTP/1.1 OK\r\n\r\n',
    b'HTTP/1.1 20 OK\r\n\r\n',
])
def test_parse_response_rejects_malformed(data):
    with pytest.raises(ParseError):
        parse_ssdp_response(data)


def test_filter_keeps_matching_in_order():
    a = parse_ssdp_response(ssdp_reply(location='http://10.0.0.1:1400/a.xml'))
    b = parse_ssdp_response(ssdp_reply(st='urn:schemas-upnp-org:device:MediaRenderer:1'))
    c = parse_ssdp_response(ssdp_reply(location='http://10.0.0.3:1400/c.xml'))
    assert filter_candidates([a, b, c], ZONE_PLAYER) == [a, c]


def test_filter_does_not_deduplicate_across_responses():
    # one device answering on two interfaces stays two candidates
    first = parse_ssdp_response(ssdp_reply())
    second = parse_ssdp_response(ssdp_reply())
    assert len(filter_candidates([first, second], ZONE_PLAYER)) == 2


def test_filter_counts_repeated_st_once():
    resp = parse_ssdp_response(ssdp_reply(extra=[f'ST: {ZONE_PLAYER}']))
    assert filter_candidates([resp], ZONE_PLAYER) == [resp]


def test_filter_match_is_case_sensitive():
    resp = parse_ssdp_response(ssdp_reply(st=ZONE_PLAYER.upper()))
    assert filter_candidates([resp], ZONE_PLAYER) == []


def install_netifaces(monkeypatch, interfaces):
    module = types.ModuleType('netifaces')
    module.AF_INET = 2

    def ifaddresses(name):
        if name not in interfaces:
            raise ValueError('You must specify a valid interface name.')
        return interfaces[name]

    module.ifaddresses = ifaddresses
    monkeypatch.setitem(sys.modules, 'netifaces', module)


INTERFACES = {
    'eth0': {2: [{'addr': '10.0.0.7', 'netmask': '255.255.255.0', 'broadcast': '10.0.0.255'}]},
    'wlan0': {},
}


def test_interface_binds_to_its_ipv4_address(monkeypatch):
    install_netifaces(monkeypatch, INTERFACES)
    sock = FakeSocket()
    probe = SSDPProbe(ZONE_PLAYER, interface='eth0', socket_factory=socket_factory(sock), clock=FakeClock())
    assert list(probe.search()) == []
    assert sock.bound == ('10.0.0.7', 0)
    assert len(sock.sent) == 1


@pytest.mark.parametrize('iface', ['eth9', 'wlan0'])
def test_unusable_interface_is_configuration_error(monkeypatch, iface):
    install_netifaces(monkeypatch, INTERFACES)
    sock = FakeSocket()
    probe = SSDPProbe(ZONE_PLAYER, interface=iface, socket_factory=socket_factory(sock))
    with pytest.raises(ConfigurationError) as exc:
        probe.search()
    assert iface in str(exc.value)
    assert sock.bound is None
    assert sock.sent == []


def test_interface_without_netifaces_is_configuration_error(monkeypatch):
    monkeypatch.setitem(sys.modules, 'netifaces', None)
    probe = SSDPProbe(ZONE_PLAYER, interface='eth0', socket_factory=socket_factory(FakeSocket()))
    with pytest.raises(ConfigurationError) as exc:
        probe.search()
    assert 'netifaces' in str(exc.value)


class CountingBytes(bytes):
    decodes = 0

    def decode(self, *args, **kwargs):
        CountingBytes.decodes += 1
        return super().decode(*args, **kwargs)


@pytest.fixture
def ssdp_log_level():
    log = logging.getLogger('sonoqueue.protocols.ssdp')
    old = log.level

    def set_level(level):
        log.setLevel(level)

    yield set_level
    log.setLevel(old)


def test_reply_is_only_decoded_for_debug_logging(ssdp_log_level):
    CountingBytes.decodes = 0
    ssdp_log_level(logging.INFO)
    sock = FakeSocket([(CountingBytes(ssdp_reply()), SENDER)])
    assert len(list(make_probe(sock).search())) == 1
    assert CountingBytes.decodes == 0

    ssdp_log_level(logging.DEBUG)
    sock = FakeSocket([(CountingBytes(ssdp_reply()), SENDER)])
    assert len(list(make_probe(sock).search())) == 1
    assert CountingBytes.decodes == 1
