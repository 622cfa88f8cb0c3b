"""Exception types raised by the tree and grid pipeline."""

from __future__ import annotations

from typing import Any, Optional


class TreeSheetError(Exception):
    """Base class for errors raised by :mod:`treesheet`."""


class MalformedNodeError(TreeSheetError, ValueError):
    """Raised when a node is neither a leaf nor a branch."""

    def __init__(self, node: Any, reason: str = "") -> None:
        self.node = node
        detail = f": {reason}" if reason else ""
        super().__init__(f"Malformed tree node {_preview(node)}{detail}")


class RenderError(TreeSheetError):
    """Raised when a render function fails for a node during a walk."""

    def __init__(self, label: Any, depth: int, cause: Optional[BaseException] = None) -> None:
        self.label = label
        self.depth = depth
        message = f"Failed to render node {label!r} at depth {depth}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class FoldError(TreeSheetError):
    """Raised when the combining function of a fold fails."""

    def __init__(self, label: Any, key: Any, cause: Optional[BaseException] = None) -> None:
        self.label = label
        self.key = key
        message = f"Failed to fold key {key!r} under {label!r}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class ExportError(TreeSheetError):
    """Raised when a workbook cannot be written or converted."""


def _preview(node: Any, limit: int = 80) -> str:
    text = repr(node)
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


__all__ = [
    "ExportError",
    "FoldError",
    "MalformedNodeError",
    "RenderError",
    "TreeSheetError",
]
