"""
Utility Functions

Helpers for describing endpoints to an LLM caller.
"""

from typing import List

from .catalog import EndpointSpec, MessageType

INDEX_PLACEHOLDER = "<index>"


def path_template(path: str, spec: EndpointSpec) -> str:
    """
    Show where the instance index goes on a multi-path endpoint.

    Args:
        path: Address built without an index
        spec: Endpoint specification

    Returns:
        ``path/<index>`` for multi-path endpoints, ``path`` otherwise
    """
    if spec.multi_path:
        return f"{path}/{INDEX_PLACEHOLDER}"
    return path


def usage_hints(spec: EndpointSpec) -> List[str]:
    """
    Describe how to drive an endpoint, based on its message type.

    Args:
        spec: Endpoint specification

    Returns:
        Human-readable hint lines
    """
    hints: List[str] = []

    if spec.type == MessageType.FADER:
        hints += [
            "Send a float between 0.0 and 1.0 (exclusive).",
            "Example: 0.75 = ~75% fader position",
        ]
    elif spec.type == MessageType.ROTARY:
        hints += [
            "Send a float between 0.0 and 1.0 (inclusive).",
            "The float maps to the control's range (e.g. 20Hz-20kHz for frequency).",
        ]
    elif spec.type == MessageType.SWITCH:
        if spec.is_absolute:
            hints.append("Send 0 (off) or 1 (on) to set state directly.")
        else:
            hints.append("Send 1 to TOGGLE the switch. (Most switches are toggles, not absolute.)")
    elif spec.type == MessageType.STRING:
        hints.append("Send a string value (e.g. channel label).")
    elif spec.type == MessageType.METER:
        hints += [
            "READ-ONLY. Query with no arguments to get the current meter value.",
            "Returns a float between 0.0 and 1.0.",
        ]

    if spec.multi_path:
        hints += [
            f"Append /{INDEX_PLACEHOLDER} to the OSC path (0-based).",
            "Example: .../0 = first instance (input 1, channel 1, etc.)",
        ]

    return hints
