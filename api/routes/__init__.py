"""
Sample handlers. Register them on a Controller with register_routes().
"""

from api.routes.health import health, live
from api.routes.identity import whoami


def register_routes(controller) -> None:
    controller.add_handler("/health", health, ["GET"])
    controller.add_handler("/health/live", live, ["GET", "HEAD"])
    controller.add_handler("/whoami", whoami, ["GET"])


__all__ = ["health", "live", "register_routes", "whoami"]
