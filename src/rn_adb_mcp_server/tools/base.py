"""Tool registry and the context handed to every tool handler."""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Type, Union

from loguru import logger
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from ..adb.client import ADBClient
from ..adb.validators import validate_device_id
from ..config import Settings, get_settings
from ..errors import ADBError, DeviceNotFoundError, ValidationError, with_error_handling

ToolResult = Union[Dict[str, Any], str]
Handler = Callable[["ToolContext", Any], Awaitable[ToolResult]]


class ToolContext:
    """Shared dependencies for tool handlers.

    The adb client is optional so that analysis tools keep working on a
    machine without the Android SDK; adb tools raise when it is missing.
    """

    def __init__(self, settings: Settings, adb: Optional[ADBClient] = None,
                 adb_error: Optional[ADBError] = None):
        self.settings = settings
        self._adb = adb
        self._adb_error = adb_error

    @classmethod
    def create(cls, settings: Optional[Settings] = None) -> "ToolContext":
        settings = settings or get_settings()
        try:
            return cls(settings, adb=ADBClient.create(settings))
        except ADBError as exc:
            logger.warning("adb unavailable, device tools disabled: {}", exc.message.splitlines()[0])
            return cls(settings, adb_error=exc)

    @property
    def adb(self) -> ADBClient:
        if self._adb is None:
            if self._adb_error is not None:
                raise ADBError(self._adb_error.message, self._adb_error.details)
            raise ADBError("ADB client is not configured")
        return self._adb


@dataclass
class ToolSpec:
    name: str
    description: str
    input_model: Type[BaseModel]
    handler: Handler
    action: str
    category: str

    def input_schema(self) -> Dict[str, Any]:
        return self.input_model.model_json_schema()

    def parse(self, arguments: Optional[Dict[str, Any]]) -> BaseModel:
        try:
            return self.input_model.model_validate(arguments or {})
        except PydanticValidationError as exc:
            raise ValidationError(
                f"Invalid parameters for {self.name}",
                {"errors": exc.errors(include_url=False, include_context=False)},
            ) from exc

    async def run(self, ctx: ToolContext, arguments: Optional[Dict[str, Any]]) -> ToolResult:
        params = self.parse(arguments)
        return await with_error_handling(self.handler(ctx, params), self.action)


TOOLS: Dict[str, ToolSpec] = {}


def tool(name: str, description: str, input_model: Type[BaseModel], action: str, category: str):
    """Register an async handler ``(ctx, params) -> dict | str`` as an MCP tool."""

    def decorator(func: Handler) -> Handler:
        if name in TOOLS:
            raise ValueError(f"Tool already registered: {name}")
        TOOLS[name] = ToolSpec(
            name=name,
            description=description,
            input_model=input_model,
            handler=func,
            action=action,
            category=category,
        )
        return func

    return decorator


class DeviceInput(BaseModel):
    device_id: Optional[str] = Field(
        default=None,
        description="Specific device ID to target (if multiple devices are connected)",
    )


async def resolve_target_device(ctx: ToolContext, device_id: Optional[str] = None) -> str:
    """Pick the requested device, or the first online one when none is given."""
    validated = validate_device_id(device_id) if device_id else None
    devices = await ctx.adb.list_devices()
    if not devices:
        raise DeviceNotFoundError()
    if validated:
        if not any(d.id == validated for d in devices):
            raise DeviceNotFoundError(validated)
        return validated
    return devices[0].id


class PackageInput(DeviceInput):
    package_name: str = Field(description="Package name of the application, e.g. com.example.app")
