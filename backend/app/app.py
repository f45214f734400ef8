"""FastAPI application."""

import argparse
from typing import Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from configs import get_settings
from steam_deals.controllers.deal_controllers import deal_router
from steam_deals.logger_config import get_logger


def create_app() -> FastAPI:
    """Build the FastAPI application from the current settings."""
    settings = get_settings()
    logger = get_logger("steam_deals", settings.LOG_LEVEL)

    logger.info("Starting FastAPI application...")
    app = FastAPI(
        title="Steam Deals API",
        description="Random CheapShark deal for a game the Steam user doesn't own.",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "PATCH"],
        allow_headers=["Content-Type", "X-Steam-Id"],
    )
    app.include_router(deal_router)

    @app.get("/health", response_description="Api healthcheck")  # type: ignore[misc]
    async def health() -> Dict[str, str]:
        """Define a route for liveness probes."""
        return {"status": "ok"}

    return app


if __name__ == "__main__":
    import uvicorn
    from dotenv import load_dotenv

    parser = argparse.ArgumentParser()
    parser.add_argument("--docker", action="store_true", help="Running with docker")
    parser.add_argument("--host", required=True, help="Application host.")
    parser.add_argument("--port", required=True, help="Application port.")
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development purposes.",
    )
    args = parser.parse_args()
    if not args.docker:
        load_dotenv("../../.env")

    uvicorn.run(
        "app:create_app",
        factory=True,
        host=args.host,
        port=int(args.port),
        reload=args.reload,
    )
