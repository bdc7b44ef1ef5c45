"""Run the API with uvicorn: ``python -m subconic``."""
import uvicorn

from subconic.core.config import settings


def main() -> None:
    uvicorn.run(
        "subconic.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
