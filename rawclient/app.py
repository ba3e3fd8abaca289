"""
Entrypoint: load config, init logging, then run either the one-shot
client or the interactive request loop. Exposes ClientApp and main().
"""

import argparse
import logging
import signal
import sys
from dataclasses import replace
from typing import Optional

import structlog
from dotenv import load_dotenv

from .config import ClientSettings, Config
from .connection import open_connection
from .errors import ClientError
from .fetcher import FetchResult, receive_response, send_request
from .prompt import ask_body, ask_path, ask_to_continue, choose_method, read_int, read_string
from .request import build_request
from .resolver import resolve

EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_INTERRUPTED = 130


def log_level(level) -> int:
    """Turn a level name ("debug") or number (10, "10") into a logging level.

    Raises:
        ValueError: for names the logging module does not know
    """
    if isinstance(level, int) and not isinstance(level, bool):
        return level
    text = str(level).strip().upper()
    if text.isdigit():
        return int(text)
    value = logging.getLevelName(text)
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


class ClientApp:
    """Runs the resolve → connect → build → send → receive pipeline."""

    def __init__(self, config: Config, input_func=input):
        self.config = config
        self.input_func = input_func
        self.logger = structlog.get_logger(__name__)

    def _setup_logging(self, level: str = None):
        """Initialize stdlib logging and structlog on top of it."""
        log_config = self.config.logging
        level = log_level(level or log_config.get('level', 'INFO'))

        logging.basicConfig(
            format="%(message)s",
            stream=sys.stderr,
            level=level,
        )

        if log_config.get('format', 'console') == 'json':
            renderer = structlog.processors.JSONRenderer()
        else:
            renderer = structlog.dev.ConsoleRenderer(colors=False)

        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.UnicodeDecoder(),
                renderer,
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        self.logger.debug("logging_initialized", level=logging.getLevelName(level))

    def _setup_signal_handlers(self):
        """Turn SIGTERM into KeyboardInterrupt so open connections are released."""
        def signal_handler(signum, frame):
            self.logger.info("signal_received", signum=signum)
            raise KeyboardInterrupt

        signal.signal(signal.SIGTERM, signal_handler)

    def run(self, settings: ClientSettings, interactive: bool = False) -> int:
        """Run one variant and translate failures into an exit code."""
        try:
            if interactive:
                self.run_interactive(settings)
            else:
                self.run_once(settings)
            return EXIT_OK
        except ClientError as e:
            self.logger.error("fatal_error", category=type(e).__name__, error=str(e))
            return e.exit_code
        except ValueError as e:
            self.logger.error("invalid_request", error=str(e))
            return EXIT_CONFIG
        except KeyboardInterrupt:
            self.logger.info("interrupted")
            return EXIT_INTERRUPTED

    def run_once(self, settings: ClientSettings) -> FetchResult:
        """Send the configured request once over a blocking connection and print the body."""
        payload = build_request(
            settings.method,
            settings.path,
            settings.host,
            body=settings.body,
            content_type=settings.content_type,
            connection_close=settings.connection_close,
            trailing_crlf=settings.trailing_crlf,
        )
        address = resolve(settings.host, settings.port)

        with open_connection(address, blocking=True) as connection:
            send_request(connection, payload)
            result = receive_response(connection, timeout=settings.receive_timeout,
                                      chunk_size=settings.chunk_size)

        if result.bytes_received:
            print(f"Response body:\n{result.text}")
        return result

    def run_interactive(self, settings: ClientSettings):
        """Prompt for a server, then send requests over one connection until the user stops."""
        try:
            host = read_string("Enter domain name: ", " \t\r\n", self.input_func)
            port = read_int("Enter port number: ", self.input_func)
        except EOFError:
            self.logger.info("input_closed")
            return

        address = resolve(host, port)
        with open_connection(address, blocking=False, timeout=settings.connect_timeout) as connection:
            rounds = 0
            while True:
                try:
                    method = choose_method(self.input_func)
                    path = ask_path(self.input_func)
                    body = ask_body(method, self.input_func)
                except EOFError:
                    self.logger.info("input_closed", rounds=rounds)
                    return

                request = replace(settings, host=host, port=port, method=method, path=path, body=body)
                payload = build_request(
                    request.method,
                    request.path,
                    request.host,
                    body=request.body,
                    content_type=request.content_type,
                    trailing_crlf=True,
                )
                send_request(connection, payload)
                print(f"Request: {payload.decode('utf-8', errors='replace')}")

                result = receive_response(connection, timeout=settings.interactive_receive_timeout,
                                          chunk_size=settings.chunk_size)
                print(f"Response: {result.text}")
                rounds += 1

                try:
                    if not ask_to_continue(self.input_func):
                        return
                except EOFError:
                    return


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rawclient", description="Send hand-built HTTP/1.1 requests over a raw TCP socket.")
    parser.add_argument("-i", "--interactive", action="store_true", help="prompt for server and requests")
    parser.add_argument("--config", help="path to a config.yaml")
    parser.add_argument("--host")
    parser.add_argument("--port", type=int)
    parser.add_argument("--path")
    parser.add_argument("--method", type=str.upper, choices=["GET", "POST", "PUT", "PATCH", "DELETE"])
    parser.add_argument("--body")
    parser.add_argument("--no-body", action="store_true", help="send the request without a body")
    parser.add_argument("--content-type")
    parser.add_argument("--receive-timeout", type=float, help="per-read timeout in seconds")
    parser.add_argument("--log-level")
    return parser


def main(argv: Optional[list] = None) -> int:
    """Main entry point; returns the process exit code."""
    args = build_parser().parse_args(argv)

    try:
        config = Config(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Fatal error during startup: {e}", file=sys.stderr)
        return EXIT_CONFIG

    app = ClientApp(config)
    try:
        app._setup_logging(args.log_level)
    except ValueError as e:
        print(f"Fatal error during startup: {e}", file=sys.stderr)
        return EXIT_CONFIG
    app._setup_signal_handlers()

    try:
        settings = ClientSettings.from_config(
            config,
            host=args.host,
            port=args.port,
            path=args.path,
            method=args.method,
            body=args.body,
            content_type=args.content_type,
            receive_timeout=args.receive_timeout,
        )
    except (TypeError, ValueError) as e:
        app.logger.error("invalid_configuration", error=str(e))
        return EXIT_CONFIG

    if args.no_body:
        settings = replace(settings, body=None)

    return app.run(settings, interactive=args.interactive)


def cli():
    """Console-script entry: load .env, run, exit with the run's code."""
    # Load environment variables from .env file
    load_dotenv()
    sys.exit(main())
