import html
import logging
from dataclasses import dataclass
from typing import Optional, Union

import requests

from sonoqueue.config import sonos_config as config
from sonoqueue.core.errors import CommandError
from sonoqueue.core.utils import replace_path

logger = logging.getLogger(__name__)

ENVELOPE = (
    '<?xml version="1.0"?>'
    '<s:Envelope xmlns:s="http://schemas.xmlsoap.org/soap/envelope/" '
    's:encodingStyle="http://schemas.xmlsoap.org/soap/encoding/">'
    '<s:Body>'
    '<u:{action} xmlns:u="{service}">{arguments}</u:{action}>'
    '</s:Body>'
    '</s:Envelope>'
)


@dataclass(frozen=True)
class ClearQueue:
    action = 'RemoveAllTracksFromQueue'

    def arguments(self) -> str:
        return f'<InstanceID>{config.INSTANCE_ID}</InstanceID>'


@dataclass(frozen=True)
class EnqueueURI:
    uri: str
    action = 'AddURIToQueue'

    def arguments(self) -> str:
        return (
            f'<InstanceID>{config.INSTANCE_ID}</InstanceID>'
            f'<EnqueuedURI>{html.escape(self.uri)}</EnqueuedURI>'
            '<EnqueuedURIMetaData></EnqueuedURIMetaData>'
            '<DesiredFirstTrackNumberEnqueued>0</DesiredFirstTrackNumberEnqueued>'
            '<EnqueueAsNext>0</EnqueueAsNext>'
        )


ControlCommand = Union[ClearQueue, EnqueueURI]


def build_envelope(command: ControlCommand) -> str:
    return ENVELOPE.format(
        action=command.action,
        service=config.AVTRANSPORT_SERVICE,
        arguments=command.arguments(),
    )


def soap_headers(command: ControlCommand) -> dict:
    # requests sends header names exactly as given, so SOAPACTION keeps its case
    return {
        'Content-Type': config.SOAP_CONTENT_TYPE,
        config.SOAP_ACTION_HEADER: f'{config.AVTRANSPORT_SERVICE}#{command.action}',
    }


class AVTransportClient:
    """
    Sends AVTransport commands to the device found at location.
    A session created here is closed by close(); an injected one is left open.
    """
    def __init__(self, location: str, session: Optional[requests.Session] = None,
                 timeout: Optional[float] = config.DEFAULT_HTTP_TIMEOUT):
        self.location = location
        self.control_url = replace_path(location, config.AVTRANSPORT_CONTROL_PATH)
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

    def send(self, command: ControlCommand) -> None:
        path = config.AVTRANSPORT_CONTROL_PATH
        body = build_envelope(command)
        logger.debug("POST %s %s\n%s", self.control_url, command.action, body)
        try:
            with self.session.post(self.control_url, data=body.encode('utf-8'),
                                   headers=soap_headers(command), timeout=self.timeout) as resp:
                if resp.status_code != 200:
                    raise CommandError(path, resp.status_code)
        except requests.RequestException as e:
            raise CommandError(path, None, str(e)) from e

    def remove_all_tracks_from_queue(self) -> None:
        self.send(ClearQueue())

    def add_uri_to_queue(self, uri: str) -> None:
        self.send(EnqueueURI(uri))
