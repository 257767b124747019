import logging
from typing import Callable, List, Optional

import requests

from sonoqueue.config import sonos_config as config
from sonoqueue.protocols.ssdp import SSDPProbe, SSDPResponse, filter_candidates
from sonoqueue.protocols.upnp import DeviceResolver, ResolvedTarget

logger = logging.getLogger(__name__)


class DiscoveryEngine:
    """
    Probe, filter and resolve in one pass. probe_factory is called with
    (service_type, timeout, interface) and must return an object with search().
    """
    def __init__(self, service_type: str = config.ZONE_PLAYER_SERVICE_TYPE,
                 timeout: float = config.DEFAULT_DISCOVERY_TIMEOUT,
                 interface: Optional[str] = None,
                 session: Optional[requests.Session] = None,
                 http_timeout: Optional[float] = config.DEFAULT_HTTP_TIMEOUT,
                 probe_factory: Callable[..., SSDPProbe] = SSDPProbe):
        self.service_type = service_type
        self.timeout = timeout
        self.interface = interface
        self.session = session
        self.http_timeout = http_timeout
        self.probe_factory = probe_factory

    def discover(self) -> List[SSDPResponse]:
        """Search the network and return the candidates that match the service type."""
        probe = self.probe_factory(self.service_type, self.timeout, self.interface)
        candidates = filter_candidates(probe.search(), self.service_type)
        logger.info("Found %d candidate(s) for %s", len(candidates), self.service_type)
        return candidates

    def find_device(self, name: str) -> ResolvedTarget:
        candidates = self.discover()
        with DeviceResolver(session=self.session, timeout=self.http_timeout) as resolver:
            target = resolver.resolve(candidates, name)
        logger.info("Resolved %r to %s", name, target.location)
        return target
