import logging
import sys

import uvicorn

from imgate.errors import ConfigurationError
from imgate.logging import configure_logging
from imgate.settings import settings

logger = logging.getLogger(__name__)


def main() -> None:
    configure_logging()
    try:
        settings.validate_backend()
    except ConfigurationError as exc:
        logger.error("Refusing to start: %s", exc)
        sys.exit(1)
    uvicorn.run("web.app:app", host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
