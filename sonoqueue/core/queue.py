import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import requests

from sonoqueue.config import sonos_config as config
from sonoqueue.core.discovery import DiscoveryEngine
from sonoqueue.core.errors import CommandError, ConfigurationError, ParseError
from sonoqueue.core.utils import parse_item
from sonoqueue.protocols.avtransport import AVTransportClient
from sonoqueue.protocols.ssdp import SSDPProbe
from sonoqueue.protocols.upnp import ResolvedTarget

logger = logging.getLogger(__name__)


@dataclass
class QueueConfig:
    device: str
    append: bool = False
    items: List[str] = field(default_factory=list)
    timeout: float = config.DEFAULT_DISCOVERY_TIMEOUT
    interface: Optional[str] = None
    http_timeout: Optional[float] = config.DEFAULT_HTTP_TIMEOUT
    service_type: str = config.ZONE_PLAYER_SERVICE_TYPE

    def validate(self) -> None:
        if not self.device:
            raise ConfigurationError(config.ERROR_MESSAGES['missing_device'])


@dataclass
class QueueResult:
    target: ResolvedTarget
    cleared: bool = False
    enqueued: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


def run(cfg: QueueConfig, probe_factory: Callable[..., SSDPProbe] = SSDPProbe,
        session: Optional[requests.Session] = None) -> QueueResult:
    """
    Find cfg.device on the network, clear its queue unless cfg.append is set,
    then enqueue cfg.items in order. The first failing command stops the run.
    """
    cfg.validate()
    owns_session = session is None
    if owns_session:
        session = requests.Session()
    try:
        engine = DiscoveryEngine(
            service_type=cfg.service_type,
            timeout=cfg.timeout,
            interface=cfg.interface,
            session=session,
            http_timeout=cfg.http_timeout,
            probe_factory=probe_factory,
        )
        target = engine.find_device(cfg.device)
        result = QueueResult(target=target)
        client = AVTransportClient(target.location, session=session, timeout=cfg.http_timeout)

        if not cfg.append:
            try:
                client.remove_all_tracks_from_queue()
            except CommandError as e:
                raise CommandError(e.path, e.status, e.reason,
                                   context=config.ERROR_MESSAGES['clear_failed'].format(cfg.device)) from e
            result.cleared = True
            logger.info("Cleared queue on %s", cfg.device)

        for item in cfg.items:
            try:
                parse_item(item)
            except ParseError as e:
                logger.warning(config.ERROR_MESSAGES['skip_item'].format(item))
                logger.debug("%s", e)
                result.skipped.append(item)
                continue
            try:
                client.add_uri_to_queue(item)
            except CommandError as e:
                raise CommandError(e.path, e.status, e.reason,
                                   context=config.ERROR_MESSAGES['enqueue_failed'].format(item)) from e
            result.enqueued.append(item)
            logger.info("Enqueued %s", item)
        return result
    finally:
        if owns_session:
            session.close()
