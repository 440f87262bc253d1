"""Main application entry point."""

import sys

from parapluie.core.settings import get_settings
from parapluie.factory import create_app

# Verify Python version
if sys.version_info < (3, 10):
    print(f"Error: Python 3.10+ required, got {sys.version}")
    sys.exit(1)

# Create application instance
settings = get_settings()
app = create_app(settings)

# For development server
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "parapluie.main:app",
        host="0.0.0.0",  # nosec B104 - Development server binding is intentional
        port=8000,
        reload=settings.app_env == "local",
        log_level=settings.log_level.lower(),
    )
