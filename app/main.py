import uvicorn

from app.core.app_factory import create_app
from app.core.config import settings

app = create_app()


def run() -> None:
    """Serve the app with uvicorn on the configured host and port."""

    uvicorn.run(
        "app.main:app",
        host=settings.server.host,
        port=settings.server.port,
    )


if __name__ == "__main__":
    run()
