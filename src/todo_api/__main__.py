"""Run the Todo API with uvicorn: `python -m todo_api` or `todo-api`."""

import logging

import uvicorn

from .logging_utils import configure_logging
from .settings import get_settings

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def main() -> None:
    """Serve todo_api.main:app on the configured HOST/PORT."""
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Starting on %s:%s (backend=%s)", settings.host, settings.port, settings.persistence_backend)
    uvicorn.run(
        "todo_api.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
