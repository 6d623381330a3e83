from __future__ import annotations

from ado_gateway.api.routes.health import router as health_router
from ado_gateway.api.routes.semantic_kernel import router as semantic_kernel_router

__all__ = ["health_router", "semantic_kernel_router"]
