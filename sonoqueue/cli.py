import argparse
import logging
import sys

from sonoqueue.config import sonos_config as config
from sonoqueue.core.errors import SonoqueueError, TransportError
from sonoqueue.core.queue import QueueConfig, run


def configure_logging(debug: bool = False) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(config.LOG_FORMAT, config.LOG_DATE_FORMAT))
    root = logging.getLogger('sonoqueue')
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if debug else logging.INFO)
    root.propagate = False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Queue URIs on a Sonos device found by room name")
    parser.add_argument('-d', '--device', type=str, required=True, help='Sonos device (room) name')
    parser.add_argument('-a', '--append', action='store_true', help='Append to the device queue instead of replacing it')
    parser.add_argument('items', nargs='*', help='URIs to enqueue')
    parser.add_argument('--timeout', type=float, default=config.DEFAULT_DISCOVERY_TIMEOUT, help='Discovery timeout (seconds)')
    parser.add_argument('--interface', type=str, help='Network interface to search on (requires netifaces)')
    parser.add_argument('--http-timeout', type=float, default=config.DEFAULT_HTTP_TIMEOUT, help='Timeout for descriptor and control requests (seconds, default: none)')
    parser.add_argument('--debug', action='store_true', help='Enable debug output (raw SSDP replies, SOAP bodies)')
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.debug)

    cfg = QueueConfig(
        device=args.device,
        append=args.append,
        items=args.items,
        timeout=args.timeout,
        interface=args.interface,
        http_timeout=args.http_timeout,
    )
    try:
        print(f'[*] Searching for {cfg.device!r}...')
        result = run(cfg)
    except TransportError as e:
        print(f"[!] {config.ERROR_MESSAGES['search_failed'].format(e)}", file=sys.stderr)
        sys.exit(1)
    except SonoqueueError as e:
        print(f"[!] {e}", file=sys.stderr)
        sys.exit(1)

    print(f'[*] Using {result.target.name} at {result.target.location}')
    if result.cleared:
        print('[*] Queue cleared.')
    print(f'[*] Enqueued {len(result.enqueued)} item(s).')
    if result.skipped:
        print(f'[*] Skipped {len(result.skipped)} non-url item(s).')


if __name__ == "__main__":
    main()
