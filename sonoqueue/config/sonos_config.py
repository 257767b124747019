"""
Configuration settings for Sonos discovery and queue control
"""

# SSDP discovery settings
SSDP_ADDR = '239.255.255.250'
SSDP_PORT = 1900
SSDP_MX = 1
DEFAULT_DISCOVERY_TIMEOUT = 2  # seconds
RECV_BUFFER_SIZE = 65536  # bytes

# Device type searched for on the network
ZONE_PLAYER_SERVICE_TYPE = 'urn:schemas-upnp-org:device:ZonePlayer:1'

# AVTransport control settings
AVTRANSPORT_SERVICE = 'urn:schemas-upnp-org:service:AVTransport:1'
AVTRANSPORT_CONTROL_PATH = '/MediaRenderer/AVTransport/Control'
SOAP_CONTENT_TYPE = 'text/xml; charset="utf-8"'
# Sonos rejects the canonical "Soapaction" spelling
SOAP_ACTION_HEADER = 'SOAPACTION'
INSTANCE_ID = 0

# HTTP timeout for descriptor fetches and control calls, None waits forever
DEFAULT_HTTP_TIMEOUT = None

# Logging settings
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Error messages
ERROR_MESSAGES = {
    'missing_device': "You must use '-d <device>' to specify a Sonos device",
    'no_devices': "No Sonos devices found",
    'device_not_found': "Device not found: {}",
    'search_failed': "Search: {}",
    'clear_failed': "Clearing queue: {}",
    'enqueue_failed': "Enqueueing {}",
    'skip_item': "Skipping non-url: {}",
    'unknown_interface': "Could not get address for interface {}",
    'netifaces_missing': "netifaces is required for interface selection. Install it or omit the --interface option.",
}
