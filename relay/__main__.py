import logging
import sys

import uvicorn

from relay.vars import HOST, LOG_LEVEL, PORT

logger = logging.getLogger("uvicorn.error")


def main():
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s :: %(message)s",
        stream=sys.stdout,
    )
    logger.info(f"Server running at http://{HOST}:{PORT}/")
    uvicorn.run("relay.server:app", host=HOST, port=PORT, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
