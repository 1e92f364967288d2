"""Application entry point for the RoomBoard server."""

from roomboard.app import App
from roomboard.config import Config
from roomboard.logging import setup_logging
from roomboard.web.runner import run_server


def main() -> None:
    config = Config()
    setup_logging(config.debug)
    app = App(config)
    run_server(app, config)


if __name__ == "__main__":
    main()
