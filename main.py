import uvicorn

from forge_relay.server.app import create_app
from forge_relay.utils.config import get_config


def main() -> None:
    """Entry point for Forge Relay server."""
    config = get_config()

    app = create_app()

    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
    )


if __name__ == "__main__":
    main()
