"""Dialogs described as flows."""

import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from convoflow.compiler.flow_compiler import FlowCompiler
from convoflow.compiler.registry import FlowHandlerRegistry
from convoflow.config.models import FlowFileConfig, FlowSettings
from convoflow.core.types import FlowHandler, FlowPath, ResultHandler
from convoflow.dialog.dialog import Dialog
from convoflow.flow.expansion import ParamExpander
from convoflow.flow.path import path_from_flow_key
from convoflow.handlers.registry import HandlerRegistry, NamedHandler

if TYPE_CHECKING:
    from convoflow.session.session import Session

logger = logging.getLogger(__name__)

START_FLOW_IDS = ("onStart", "start")


class FlowDialog(Dialog):
    """A dialog whose handlers are compiled from flows.

    All flows are compiled when the dialog is constructed, so authoring
    errors (unknown commands, bad ids, break outside a loop, dangling
    ``thenFlow`` references) surface immediately. The ``onStart`` flow (or
    ``start``) becomes the start handler.

    Usage:
        dialog = FlowDialog(
            "Greeter",
            flows={"onStart": ["Hi {{Name}}!", {"finish": True}]},
        )
    """

    def __init__(
        self,
        name: str,
        flows: Mapping[str, Any] | None = None,
        handlers: HandlerRegistry | Mapping[str, NamedHandler] | None = None,
        settings: FlowSettings | None = None,
        nlp_model_name: str | None = None,
    ):
        super().__init__(name, nlp_model_name)
        self.settings = settings or FlowSettings()
        self.wildcard = self.settings.wildcard_dialog
        self.handlers = (
            handlers if isinstance(handlers, HandlerRegistry) else HandlerRegistry(handlers)
        )
        self.registry = FlowHandlerRegistry(name)
        self.expander = ParamExpander(self.handlers, self.settings.template_cache_size)
        self.compiler = FlowCompiler(self, self.registry, self.expander, self.settings)

        self.flows: dict[str, FlowPath] = self.compiler.compile_flows(flows or {})
        self.compiler.check_references()

        start_flow = next((self.flows[i] for i in START_FLOW_IDS if i in self.flows), None)
        if start_flow is not None:
            self.on_start(self.compiler.continuation(start_flow))
        logger.info(f"Compiled dialog '{name}' with {len(self.registry)} flow handlers")

    @classmethod
    def from_config(
        cls,
        config: FlowFileConfig,
        handlers: HandlerRegistry | Mapping[str, NamedHandler] | None = None,
    ) -> "FlowDialog":
        """Build a dialog from a loaded flow file."""
        return cls(config.name, config.flows, handlers=handlers, settings=config.settings)

    def handler(self, name: str | None = None) -> Callable[[NamedHandler], NamedHandler]:
        """Decorator registering a named handler usable from ``exec``."""
        return self.handlers.register(name)

    # -------------------------------------------------------------------------
    # Flow handlers
    # -------------------------------------------------------------------------

    def flow_key(self, path: Any) -> str:
        return self.registry.key(path)

    def add_flow_handler(self, path: Any, handler: FlowHandler) -> FlowHandler:
        return self.registry.add(path, handler)

    def get_flow_handler(self, path: Any) -> FlowHandler:
        return self.registry.get(path)

    def compile_flow(self, flow: Any, path: Any) -> FlowHandler:
        """Compile an additional flow after construction."""
        handler = self.compiler.compile_flow(flow, path_from_flow_key(self.flow_key(path)))
        self.compiler.check_references()
        return handler

    async def start_flow(self, session: "Session", path: Any, value: Any = None) -> None:
        """Run the flow at path as if resumed by an inbound event."""
        await self.compiler.run(path, session, value)

    # -------------------------------------------------------------------------
    # Action lookup falls back to flows referenced by thenFlow
    # -------------------------------------------------------------------------

    def get_postback_handler(self, key: str) -> ResultHandler | None:
        return super().get_postback_handler(key) or self._flow_continuation(key)

    def get_payload_handler(self, key: str) -> ResultHandler | None:
        return super().get_payload_handler(key) or self._flow_continuation(key)

    def _flow_continuation(self, key: str) -> ResultHandler | None:
        if key in self.registry:
            return self.compiler.continuation(key)
        return None
