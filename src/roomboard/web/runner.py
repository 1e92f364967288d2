import copy
from typing import Any

import uvicorn
from uvicorn.config import LOGGING_CONFIG

from roomboard.app import App
from roomboard.config import Config
from roomboard.web.server import create_fastapi_app

ACCESS_FORMAT = '%(asctime)s - %(client_addr)s - "%(request_line)s" %(status_code)s'
DEFAULT_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def build_log_config() -> dict[str, Any]:
    """Uvicorn's logging config with shorter formats; the module default is left untouched."""
    log_config = copy.deepcopy(LOGGING_CONFIG)
    log_config["formatters"]["access"]["fmt"] = ACCESS_FORMAT
    log_config["formatters"]["default"]["fmt"] = DEFAULT_FORMAT
    return log_config


def run_server(app: App, config: Config) -> None:
    uvicorn.run(
        create_fastapi_app(app, config),
        host=config.host,
        port=config.port,
        log_config=build_log_config(),
        log_level="debug" if config.debug else "info",
        # Behind the production reverse proxy the client address comes from X-Forwarded-For
        proxy_headers=config.production,
        access_log=True,
    )
