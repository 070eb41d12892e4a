"""Decide whether a task talks to its model with native or text-emulated tool calls.

Resolution order:

1. a task-level lock (the protocol the task already committed to)
2. text emulation when the model does not declare native tool support
3. the profile's explicit preference
4. the model's default preference
5. native

Resumed tasks that lost their lock re-derive it from history.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Iterable, Optional, Sequence

from .provider_capabilities import ModelInfo, ProviderSettings
from .transcript import ToolInvocation, Turn


logger = logging.getLogger(__name__)


class ToolProtocol(str, Enum):
    NATIVE = "native"
    TEXT_EMULATED = "xml"

    @classmethod
    def parse(cls, value: Optional[object]) -> Optional["ToolProtocol"]:
        if value is None or isinstance(value, ToolProtocol):
            return value  # type: ignore[return-value]
        text = str(value).strip().lower()
        if text in ("native", "json"):
            return cls.NATIVE
        if text in ("xml", "text", "text_emulated", "textemulated"):
            return cls.TEXT_EMULATED
        return None


def is_native_protocol(protocol: Optional[object]) -> bool:
    return ToolProtocol.parse(protocol) is ToolProtocol.NATIVE


def resolve_tool_protocol(
    settings: Optional[ProviderSettings] = None,
    model_info: Optional[ModelInfo] = None,
    locked_protocol: Optional[object] = None,
) -> ToolProtocol:
    locked = ToolProtocol.parse(locked_protocol)
    if locked is not None:
        return locked

    if model_info is None or model_info.supports_native_tools is not True:
        return ToolProtocol.TEXT_EMULATED

    preferred = ToolProtocol.parse(settings.tool_protocol) if settings else None
    if preferred is not None:
        return preferred

    model_default = ToolProtocol.parse(model_info.default_tool_protocol)
    if model_default is not None:
        return model_default

    return ToolProtocol.NATIVE


def detect_tool_protocol_from_history(transcript: Sequence[Turn]) -> Optional[ToolProtocol]:
    """Infer the protocol of a past conversation from its last tool invocation.

    Native calls always carry an id; text-emulated calls are parsed out of
    plain text and never get one.
    """
    for turn in reversed(transcript):
        if turn.role != "assistant":
            continue
        invocations = [s for s in turn.segments if isinstance(s, ToolInvocation)]
        if not invocations:
            continue
        last = invocations[-1]
        return ToolProtocol.NATIVE if last.id else ToolProtocol.TEXT_EMULATED
    return None


class TaskProtocolLock:
    """Per-task protocol commitment.

    The first successful :meth:`lock` wins; later attempts with a different
    protocol are ignored.
    """

    def __init__(self, task_id: str, protocol: Optional[object] = None) -> None:
        self.task_id = task_id
        self._protocol: Optional[ToolProtocol] = ToolProtocol.parse(protocol)
        self._mutex = threading.Lock()

    @property
    def protocol(self) -> Optional[ToolProtocol]:
        return self._protocol

    def lock(self, protocol: object) -> ToolProtocol:
        wanted = ToolProtocol.parse(protocol)
        if wanted is None:
            raise ValueError(f"Unknown tool protocol: {protocol!r}")
        with self._mutex:
            if self._protocol is None:
                self._protocol = wanted
            elif self._protocol is not wanted:
                logger.warning(
                    "task %s already locked to %s, ignoring %s",
                    self.task_id,
                    self._protocol.value,
                    wanted.value,
                )
            return self._protocol

    def resolve(
        self,
        settings: Optional[ProviderSettings],
        model_info: Optional[ModelInfo],
        history: Iterable[Turn] = (),
    ) -> ToolProtocol:
        """Resolve for the next request, restoring a lost lock from history."""
        if self._protocol is None:
            detected = detect_tool_protocol_from_history(list(history))
            if detected is not None:
                logger.info("task %s: restored tool protocol %s from history", self.task_id, detected.value)
                self.lock(detected)
        return resolve_tool_protocol(settings, model_info, self._protocol)
