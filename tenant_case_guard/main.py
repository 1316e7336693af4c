"""
Entry point for running the Tenant Case Guard API.
"""

import os

import uvicorn

from tenant_case_guard.config import get_settings
from tenant_case_guard.utils.logging import setup_logging


def main():
    """Main entry point for the application."""
    logger = setup_logging()
    logger.info("Starting Tenant Case Guard")

    # Get port from environment or use default
    port = int(os.getenv("PORT", "8000"))

    uvicorn.run(
        "tenant_case_guard.api.app:app",
        host="0.0.0.0",
        port=port,
        reload=get_settings().debug,
    )


if __name__ == "__main__":
    main()
