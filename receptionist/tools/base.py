"""Tool contracts."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from receptionist.models import ToolResult


class Tool(ABC):
    """Base class for all assistant tools.

    ``run`` receives the validated arguments plus ``customer`` (a
    CustomerInfo for the person being served).
    """

    name: str
    description: str
    parameters_schema: dict[str, Any]

    @abstractmethod
    async def run(self, **kwargs: Any) -> ToolResult:
        """Execute tool with validated arguments."""
