"""Registry for safe tool registration and execution."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError, create_model

from receptionist.db import Database
from receptionist.models import CustomerInfo, ToolResult
from receptionist.tools.base import Tool

LOGGER = logging.getLogger(__name__)


class ToolRegistry:
    """Explicit registry of safe tools.

    ``execute`` never raises: unknown tools, invalid arguments and tool
    exceptions all come back as failed ToolResults so the model can react.
    """

    def __init__(self, db: Database | None = None) -> None:
        self._db = db
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        self._tools[tool.name] = tool

    def __contains__(self, tool_name: str) -> bool:
        return tool_name in self._tools

    def list_tool_specs(self) -> list[dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.parameters_schema,
                },
            }
            for tool in self._tools.values()
        ]

    async def execute(
        self,
        conversation_id: str,
        tool_name: str,
        arguments: dict[str, Any],
        customer: CustomerInfo,
    ) -> ToolResult:
        tool = self._tools.get(tool_name)
        if tool is None:
            LOGGER.warning("Model requested unknown tool %r", tool_name)
            return ToolResult.failure(f"Unknown tool: {tool_name}")

        try:
            validated = _validate_json_schema(tool.parameters_schema, arguments)
        except ValueError as exc:
            result = ToolResult.failure(f"Error: {exc}")
            self._log(conversation_id, tool_name, arguments, result)
            return result

        try:
            result = await tool.run(customer=customer, **validated)
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Tool %s failed", tool_name)
            result = ToolResult.failure(f"Error running {tool_name}: {exc}")
        self._log(conversation_id, tool_name, validated, result)
        return result

    def _log(self, conversation_id: str, tool_name: str, arguments: dict[str, Any], result: ToolResult) -> None:
        if self._db is None:
            return
        self._db.log_tool_execution(conversation_id, tool_name, arguments, result.text, succeeded=result.ok)


def _validate_json_schema(schema: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
    props = schema.get("properties", {})
    required = set(schema.get("required", []))
    fields: dict[str, tuple[type[Any], Any]] = {}
    for name, config in props.items():
        typ = _python_type(config.get("type", "string"))
        if name in required:
            fields[name] = (typ, ...)
        else:
            fields[name] = (typ | None, None)

    model = create_model("ToolInputModel", **fields)
    try:
        value = model(**payload)
    except ValidationError as exc:
        raise ValueError(f"Invalid input for tool: {exc}") from exc
    return value.model_dump(exclude_none=True)


def _python_type(schema_type: str) -> type[Any]:
    mapping: dict[str, type[Any]] = {
        "string": str,
        "integer": int,
        "number": float,
        "boolean": bool,
        "object": dict,
        "array": list,
    }
    return mapping.get(schema_type, str)
