import argparse

import uvicorn

from .core.config import settings


def main():
    parser = argparse.ArgumentParser(description=f"{settings.APP_NAME} server")
    parser.add_argument("--host", default=settings.HOST, help="Address to listen on")
    parser.add_argument("--port", type=int, default=settings.PORT, help="Port to listen on")
    parser.add_argument("--log-level", default=settings.LOG_LEVEL, help="Log level for the server")
    args = parser.parse_args()
    settings.LOG_LEVEL = args.log_level

    uvicorn.run(
        "lanpresence.main:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
    )


if __name__ == "__main__":
    main()
