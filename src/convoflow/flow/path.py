"""Flow paths and flow keys.

A flow path is a tuple of ids locating a compiled position in a dialog's
flow tree, e.g. ``("onStart", "if", "then")``. Its flow key,
``"Dialog:onStart.if.then"``, is the only thing that survives between
requests: handlers are stored and re-entered by key.

An id prefixed with ``#`` is absolute: appending it discards the path
accumulated so far, so shared targets can opt out of nesting under their
caller.
"""

import re
from collections.abc import Sequence
from typing import Any

from convoflow.core.errors import InvalidFlowPathError
from convoflow.core.types import FlowId, FlowPath

FLOW_ID_PATTERN = re.compile(r"^[#]?[^.#:|\r\n]+$")
ABSOLUTE_PREFIX = "#"


def validate_flow_path_id(flow_id: Any) -> FlowId:
    """Return the id if it is a valid path segment, else raise."""
    if isinstance(flow_id, bool):
        raise InvalidFlowPathError(f"Invalid flow path id: {flow_id!r}")
    if isinstance(flow_id, int):
        return flow_id
    if not isinstance(flow_id, str) or not FLOW_ID_PATTERN.match(flow_id):
        raise InvalidFlowPathError(
            f"Invalid flow path id: {flow_id!r}. Ids may not be empty or contain '.', '#', ':', "
            "'|' or line breaks (a single leading '#' marks an absolute id)"
        )
    return flow_id


def append_flow_path_id(path: Sequence[FlowId] | None, *ids: Any) -> FlowPath:
    """Append ids to a path; a ``#`` id resets the path to that id alone."""
    result: tuple[FlowId, ...] = tuple(path or ())
    for flow_id in ids:
        flow_id = validate_flow_path_id(flow_id)
        if isinstance(flow_id, str) and flow_id.startswith(ABSOLUTE_PREFIX):
            result = (flow_id[len(ABSOLUTE_PREFIX) :],)
        else:
            result = (*result, flow_id)
    return result


def _check_segments(segments: Sequence[str], source: Any) -> None:
    for segment in segments:
        if not segment or not FLOW_ID_PATTERN.match(segment) or segment.startswith(ABSOLUTE_PREFIX):
            raise InvalidFlowPathError(f"Invalid flow key {source!r}: bad segment {segment!r}")


def flow_key(dialog_name: str, path: Any) -> str:
    """Render a path to its qualified key ``Dialog:a.b.c``.

    Accepts a path sequence, an already-qualified key for this dialog, or a
    dot-joined relative string.
    """
    if isinstance(path, str):
        parts = path.split(":")
        if len(parts) > 2:
            raise InvalidFlowPathError(f"Invalid flow key {path!r}: more than one ':'")
        if len(parts) == 2:
            qualifier, relative = parts
            if qualifier != dialog_name:
                raise InvalidFlowPathError(
                    f"Flow key {path!r} does not belong to dialog {dialog_name!r}"
                )
        else:
            relative = parts[0]
        segments = relative.split(".")
        _check_segments(segments, path)
        return f"{dialog_name}:{relative}"

    if isinstance(path, Sequence) and not isinstance(path, (bytes, bytearray)):
        if not path:
            raise InvalidFlowPathError("Cannot derive a flow key from an empty path")
        resolved = append_flow_path_id((), *path)
        return f"{dialog_name}:{'.'.join(str(segment) for segment in resolved)}"

    raise InvalidFlowPathError(f"Unexpected flow path {path!r}: expecting a sequence or string")


def path_from_flow_key(key: str) -> FlowPath:
    """Inverse of flow_key; segments come back as strings."""
    if not isinstance(key, str):
        raise InvalidFlowPathError(f"Expecting a string flow key, but received {key!r}")
    parts = key.split(":")
    if len(parts) > 2:
        raise InvalidFlowPathError(f"Invalid flow key {key!r}: more than one ':'")
    segments = parts[-1].split(".")
    _check_segments(segments, key)
    return tuple(segments)
