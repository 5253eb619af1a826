"""
Volume Cross server entrypoint.

    python -m volume_cross.main
"""

import uvicorn

from .api.unified_server import create_app
from .infrastructure.config.config_loader import get_settings_from_working_directory
from .infrastructure.container import Container


def main() -> None:
    settings = get_settings_from_working_directory()
    app = create_app(Container(settings))
    uvicorn.run(app, host=settings.api.host, port=settings.api.port)


if __name__ == "__main__":
    main()
