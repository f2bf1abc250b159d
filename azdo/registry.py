"""Tool tables and the merged, read-only tool registry."""

import inspect
import logging
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Literal

from pydantic import BaseModel, Field

from .errors import DuplicateOperationError, SchemaDefinitionError, UnknownOperationError
from .schema import Kind, ParameterSpec, obj

logger = logging.getLogger(__name__)

# handler(client, validated_args) -> JSON-serialisable value (or an awaitable of one)
Handler = Callable[[Any, dict[str, Any]], Any]


@dataclass(frozen=True, eq=False)
class OperationSpec:
    """One callable tool: its name, human description, parameter schema and handler."""

    name: str
    description: str
    parameters: ParameterSpec
    handler: Handler

    def __post_init__(self):
        if not self.name:
            raise SchemaDefinitionError("Tool name must not be empty")
        if self.parameters.kind is not Kind.OBJECT:
            raise SchemaDefinitionError(
                f"Parameters of tool '{self.name}' must be an object schema",
                context={"kind": str(self.parameters.kind)},
            )
        if not callable(self.handler):
            raise SchemaDefinitionError(f"Handler of tool '{self.name}' is not callable")

    @property
    def is_async(self) -> bool:
        return inspect.iscoroutinefunction(self.handler)

    def input_schema(self) -> dict[str, Any]:
        return self.parameters.to_json_schema()


class OperationDescriptor(BaseModel):
    """Discovery entry for one tool, as advertised to clients."""

    name: str = Field(..., description="Unique tool name")
    description: str = Field(..., description="Human-readable description of the tool")
    input_schema: dict[str, Any] = Field(..., description="JSON schema of the tool arguments")


class ToolTable(Mapping[str, OperationSpec]):
    """
    An ordered table of tools for one domain area.

    Tools are added with the ``operation`` decorator. The decorated function is
    returned unchanged, so handlers stay directly callable in tests.

    Usage:
        git_tools = ToolTable("git")

        @git_tools.operation(repository=string("Repository name or ID"))
        def list_branches(client, args):
            \"\"\"List branches in a repository\"\"\"
            ...
    """

    def __init__(self, domain: str):
        self.domain = domain
        self._operations: dict[str, OperationSpec] = {}

    def add(self, spec: OperationSpec) -> OperationSpec:
        if spec.name in self._operations:
            raise DuplicateOperationError(spec.name, context={"table": self.domain})
        self._operations[spec.name] = spec
        return spec

    def operation(
        self,
        name: str | None = None,
        description: str | None = None,
        /,
        **parameters: ParameterSpec,
    ) -> Callable[[Handler], Handler]:
        """
        Register the decorated handler as a tool.

        ``name`` and ``description`` are positional-only, so tools can still
        declare parameters with those names.

        Args:
            name: Tool name. Defaults to the function name.
            description: Tool description. Defaults to the function docstring.
            **parameters: Parameter specs, in the order they are advertised.
        """

        def decorator(handler: Handler) -> Handler:
            tool_name = name or handler.__name__
            tool_description = description or inspect.getdoc(handler) or ""
            self.add(
                OperationSpec(
                    name=tool_name,
                    description=tool_description,
                    parameters=obj(parameters),
                    handler=handler,
                )
            )
            return handler

        return decorator

    def __getitem__(self, name: str) -> OperationSpec:
        return self._operations[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._operations)

    def __len__(self) -> int:
        return len(self._operations)

    def __repr__(self) -> str:
        return f"ToolTable({self.domain!r}, {list(self._operations)})"


class ToolRegistry:
    """
    The process-wide table of tools, merged from per-domain tables.

    Built once with ``ToolRegistry.build`` and read-only afterwards, so it can be
    shared between concurrent calls without locking.
    """

    def __init__(self, operations: Mapping[str, OperationSpec]):
        self._operations = MappingProxyType(dict(operations))

    @classmethod
    def build(
        cls,
        tables: Sequence[Mapping[str, OperationSpec]],
        on_conflict: Literal["error", "override"] = "error",
    ) -> "ToolRegistry":
        """
        Merge ``tables`` in the order given.

        Args:
            tables: Ordered tool tables. The registry keeps their order.
            on_conflict: ``"error"`` rejects a name declared by two tables.
                ``"override"`` keeps the entry from the later table, in the
                position where the name first appeared.

        Raises:
            DuplicateOperationError: On a name clash when ``on_conflict="error"``.
        """
        if on_conflict not in ("error", "override"):
            raise ValueError(f"on_conflict must be 'error' or 'override', got {on_conflict!r}")

        merged: dict[str, OperationSpec] = {}
        for index, table in enumerate(tables):
            for name, spec in table.items():
                if name != spec.name:
                    raise SchemaDefinitionError(
                        f"Table key '{name}' does not match tool name '{spec.name}'"
                    )
                if name in merged:
                    if on_conflict == "error":
                        raise DuplicateOperationError(
                            name, context={"table": getattr(table, "domain", index)}
                        )
                    logger.warning(f"Tool '{name}' redefined by table {index}; keeping the later one")
                merged[name] = spec

        logger.info(f"Tool registry built with {len(merged)} tools from {len(tables)} tables")
        return cls(merged)

    def lookup(self, name: str) -> OperationSpec | None:
        return self._operations.get(name)

    def require(self, name: str) -> OperationSpec:
        """Like ``lookup`` but raises ``UnknownOperationError`` for unknown names."""
        spec = self._operations.get(name)
        if spec is None:
            raise UnknownOperationError(name)
        return spec

    def names(self) -> list[str]:
        return list(self._operations)

    def list_all(self) -> list[OperationDescriptor]:
        """Describe every tool, in registry order."""
        return [
            OperationDescriptor(
                name=spec.name,
                description=spec.description,
                input_schema=spec.input_schema(),
            )
            for spec in self._operations.values()
        ]

    def __contains__(self, name: object) -> bool:
        return name in self._operations

    def __len__(self) -> int:
        return len(self._operations)

    def __iter__(self) -> Iterator[str]:
        return iter(self._operations)
