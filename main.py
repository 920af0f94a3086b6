"""
Application entry point. Builds a Controller with the sample handlers and runs it.
Run: python main.py --address 0.0.0.0:8000
Set JWT_SECRET_KEY to require "Authorization: Bearer <jwt>" on every request.
"""

import argparse

from api.routes import register_routes
from core.config import Settings, get_settings
from core.controller import Controller
from core.errors import ListenerError
from core.security import JWTVerifier
from utils.logging import get_logger

logger = get_logger(__name__)


def create_controller(settings: Settings | None = None) -> Controller:
    """Factory for the sample controller. Enables testing with custom settings."""
    settings = settings or get_settings()
    verifier = JWTVerifier.from_settings(settings) if settings.JWT_SECRET_KEY else None
    controller = Controller(auth_callback=verifier, settings=settings)
    register_routes(controller)
    return controller


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Run the sample HTTP API controller")
    parser.add_argument(
        "--address",
        default=f"{settings.HOST}:{settings.PORT}",
        help="host:port to listen on (default from HOST/PORT)",
    )
    args = parser.parse_args(argv)

    controller = create_controller(settings)
    try:
        controller.run(args.address)
    except ListenerError as exc:
        logger.error("listener_failed", extra={"address": args.address, "error": str(exc)})
        return 1
    except KeyboardInterrupt:
        controller.stop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
