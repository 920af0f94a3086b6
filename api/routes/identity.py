"""Echo the caller's verified identity back to them."""

from typing import Any

from core.dependencies import CurrentIdentity


async def whoami(identity: CurrentIdentity) -> dict[str, Any]:
    return {"identity": identity}
