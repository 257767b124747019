import io
import http.client
import logging
import socket
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, List, Optional

from sonoqueue.config import sonos_config as config
from sonoqueue.core.errors import ConfigurationError, ParseError, TransportError

logger = logging.getLogger(__name__)


@dataclass
class SSDPResponse:
    """
    One parsed M-SEARCH reply. headers is case-insensitive and keeps every
    value of a repeated header (use headers.get_all).
    """
    status: int
    reason: str
    headers: http.client.HTTPMessage
    address: Optional[str] = None

    @property
    def location(self) -> Optional[str]:
        return self.headers.get('Location')

    @property
    def search_targets(self) -> List[str]:
        return self.headers.get_all('ST') or []


def parse_ssdp_response(data: bytes, address: Optional[str] = None) -> SSDPResponse:
    """Parse a datagram as an HTTP status line followed by a header block."""
    fp = io.BytesIO(data)
    status_line = fp.readline().decode('iso-8859-1').rstrip('\r\n')
    parts = status_line.split(None, 2)
    if len(parts) < 2 or not parts[0].startswith('HTTP/'):
        raise ParseError(f"malformed HTTP response {status_line!r}")
    try:
        status = int(parts[1])
    except ValueError:
        raise ParseError(f"malformed HTTP status code {parts[1]!r}")
    if not 100 <= status <= 999:
        raise ParseError(f"malformed HTTP status code {parts[1]!r}")
    try:
        headers = http.client.parse_headers(fp)
    except http.client.HTTPException as e:
        raise ParseError(f"malformed MIME header block: {e}")
    reason = parts[2] if len(parts) > 2 else ''
    return SSDPResponse(status=status, reason=reason, headers=headers, address=address)


def filter_candidates(responses: Iterable[SSDPResponse], service_type: str) -> List[SSDPResponse]:
    """
    Keep the responses that advertise service_type in one of their ST headers.
    Order is preserved and nothing is deduplicated: a device answering on two
    interfaces shows up twice.
    """
    candidates = []
    for resp in responses:
        for st in resp.search_targets:
            if st == service_type:
                candidates.append(resp)
                break
    return candidates


class SSDPProbe:
    """
    Single-shot SSDP search. search() sends one M-SEARCH and returns a lazy
    iterator over the replies received before the deadline.
    """
    def __init__(self, service_type: str = config.ZONE_PLAYER_SERVICE_TYPE,
                 timeout: float = config.DEFAULT_DISCOVERY_TIMEOUT,
                 interface: Optional[str] = None,
                 socket_factory: Callable[..., socket.socket] = socket.socket,
                 clock: Callable[[], float] = time.monotonic):
        self.service_type = service_type
        self.timeout = timeout
        self.interface = interface
        self._socket_factory = socket_factory
        self._clock = clock

    def request(self) -> bytes:
        msearch = '\r\n'.join([
            'M-SEARCH * HTTP/1.1',
            f'HOST: {config.SSDP_ADDR}:{config.SSDP_PORT}',
            'MAN: "ssdp:discover"',
            f'ST: {self.service_type}',
            f'MX: {config.SSDP_MX}',
        ])
        return (msearch + '\r\n\r\n').encode()

    def search(self) -> Iterator[SSDPResponse]:
        bind_addr = self._get_iface_addr(self.interface) if self.interface else ''
        try:
            sock = self._socket_factory(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        except OSError as e:
            raise TransportError(f"opening discovery socket: {e}") from e
        try:
            sock.bind((bind_addr, 0))
            sock.sendto(self.request(), (config.SSDP_ADDR, config.SSDP_PORT))
        except OSError as e:
            sock.close()
            raise TransportError(f"sending M-SEARCH: {e}") from e
        logger.debug("Sent M-SEARCH for %s", self.service_type)
        deadline = self._clock() + self.timeout
        return self._collect(sock, deadline)

    def _collect(self, sock: socket.socket, deadline: float) -> Iterator[SSDPResponse]:
        try:
            while True:
                remaining = deadline - self._clock()
                if remaining <= 0:
                    break
                sock.settimeout(remaining)
                try:
                    data, addr = sock.recvfrom(config.RECV_BUFFER_SIZE)
                except socket.timeout:
                    break
                except OSError as e:
                    logger.error("ReadFrom error: %s", e)
                    break
                address = addr[0] if addr else None
                if logger.isEnabledFor(logging.DEBUG):
                    logger.debug("SSDP reply from %s:\n%s", address, data.decode(errors='ignore'))
                try:
                    resp = parse_ssdp_response(data, address)
                except ParseError as e:
                    logger.warning("ReadResponse error from %s: %s", address, e)
                    continue
                yield resp
        finally:
            sock.close()

    def _get_iface_addr(self, iface: str) -> str:
        try:
            import netifaces
        except ImportError:
            raise ConfigurationError(config.ERROR_MESSAGES['netifaces_missing'])
        try:
            addrs = netifaces.ifaddresses(iface)
            return addrs[netifaces.AF_INET][0]['addr']
        except (ValueError, KeyError, IndexError):
            raise ConfigurationError(config.ERROR_MESSAGES['unknown_interface'].format(iface))
