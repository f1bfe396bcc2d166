"""Flow authoring: command models, normalization, paths and expansion."""

from convoflow.flow.accessor import Accessor, var
from convoflow.flow.commands import Action, BaseCommand, Item, Negated, to_raw
from convoflow.flow.expansion import ParamExpander, call_handler
from convoflow.flow.normalizer import (
    normalize_actions,
    normalize_flow,
    normalize_flow_command,
    normalize_flows,
    normalize_items,
)
from convoflow.flow.path import append_flow_path_id, flow_key, path_from_flow_key

__all__ = [
    "Accessor",
    "Action",
    "BaseCommand",
    "Item",
    "Negated",
    "ParamExpander",
    "append_flow_path_id",
    "call_handler",
    "flow_key",
    "normalize_actions",
    "normalize_flow",
    "normalize_flow_command",
    "normalize_flows",
    "normalize_items",
    "path_from_flow_key",
    "to_raw",
    "var",
]
