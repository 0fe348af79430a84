"""FastAPI REST API for Courier.

Exposes health, the cron endpoints that drive retries and housekeeping,
and read access to delivery logs.

Example:
    ```python
    import uvicorn
    from courier.api import create_app

    app = create_app()
    uvicorn.run(app, host="0.0.0.0", port=8000)
    ```

Or run directly:
    ```bash
    uvicorn courier.api:create_app --factory
    ```
"""

from .app import create_app
from .router import router

__all__ = [
    "create_app",
    "router",
]
