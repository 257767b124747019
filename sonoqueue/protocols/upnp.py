import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Iterable, Optional

import requests

from sonoqueue.config import sonos_config as config
from sonoqueue.core.errors import DeviceNotFoundError, NoDevicesFoundError, ParseError
from sonoqueue.core.utils import parse_location
from sonoqueue.protocols.ssdp import SSDPResponse

logger = logging.getLogger(__name__)


@dataclass
class DeviceDescriptor:
    location: str
    room_name: Optional[str] = None
    friendly_name: Optional[str] = None

    @property
    def name(self) -> str:
        if self.room_name is not None:
            return self.room_name
        return self.friendly_name or ''


@dataclass
class ResolvedTarget:
    location: str
    name: str


def parse_device_xml(content: bytes, location: str) -> DeviceDescriptor:
    """
    Read the device section of a UPnP device description. Element lookups
    ignore namespaces since Sonos declares urn:schemas-upnp-org:device-1-0 as
    the default one.
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise ParseError(f"Decode {location}: {e}")
    device = root.find('{*}device')
    if device is None:
        raise ParseError(f"Decode {location}: no device element")
    return DeviceDescriptor(
        location=location,
        room_name=device.findtext('{*}roomName'),
        friendly_name=device.findtext('{*}friendlyName'),
    )


class DeviceResolver:
    """
    Maps a room name to the LOCATION of the device answering to it.
    A session created here is closed by close(); an injected one is left open.
    """
    def __init__(self, session: Optional[requests.Session] = None,
                 timeout: Optional[float] = config.DEFAULT_HTTP_TIMEOUT):
        self._owns_session = session is None
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def fetch_descriptor(self, location: str) -> DeviceDescriptor:
        with self.session.get(location, timeout=self.timeout) as resp:
            resp.raise_for_status()
            return parse_device_xml(resp.content, location)

    def resolve(self, candidates: Iterable[SSDPResponse], name: str) -> ResolvedTarget:
        """
        Fetch every candidate's descriptor and return the one whose room name
        equals name. The whole list is scanned, so when several devices share
        a name the last one wins.
        """
        candidates = list(candidates)
        if not candidates:
            raise NoDevicesFoundError()
        target = None
        for candidate in candidates:
            location = candidate.location
            try:
                parse_location(location)
            except ParseError as e:
                logger.warning("Parsing %s: %s", location, e)
                continue
            try:
                descriptor = self.fetch_descriptor(location)
            except (requests.RequestException, ParseError) as e:
                logger.warning("Fetching %s: %s", location, e)
                continue
            logger.debug("%s is %r", location, descriptor.name)
            if descriptor.name == name:
                target = ResolvedTarget(location=location, name=descriptor.name)
        if target is None:
            raise DeviceNotFoundError(name)
        return target
