from __future__ import annotations
import argparse
import logging
import sys

from .config import DEFAULT_EXCLUDE, init_cfg_from_args
from .store import AnnotationStore
from .web import create_app

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def parse_args(argv=None):
    ap = argparse.ArgumentParser(description='Local port and interface inventory dashboard backend')
    ap.add_argument('--config', type=str, default=None, help='YAML file with a service-config list')
    ap.add_argument('--addr', type=str, default=None, help='listen address (default 0.0.0.0)')
    ap.add_argument('--webport', type=int, default=None, help='listen port (default 10810)')
    ap.add_argument('--exclude', type=str, default=None,
                    help=f'comma-separated interface name prefixes to hide (default {DEFAULT_EXCLUDE})')
    ap.add_argument('--public-ip-url', type=str, default=None, help='plain-text public IP lookup URL; empty disables')
    ap.add_argument('--data-file', type=str, default=None, help='annotation JSON file (default data.json)')
    ap.add_argument('--log-file', type=str, default=None, help='log file (default server.log); empty disables')
    ap.add_argument('-v', '--verbose', action='store_true')
    return ap.parse_args(argv)


def setup_logging(log_file, verbose: bool = False) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO,
                        format=LOG_FORMAT, handlers=handlers, force=True)


def main(argv=None):
    args = parse_args(argv)
    cfg = init_cfg_from_args(args)
    setup_logging(cfg.log_file, args.verbose)

    store = AnnotationStore(cfg.data_file)
    store.load()

    app = create_app(cfg, store)
    logging.getLogger(__name__).info("serving on http://%s:%d", cfg.addr, cfg.port)
    app.run(host=cfg.addr, port=cfg.port, debug=False, use_reloader=False, threaded=True)


if __name__ == '__main__':
    main()
