from __future__ import annotations

from enum import Enum

from .messages import DemoKind, Message


class Phase(str, Enum):
    PROLOGUE = "prologue"
    MATCH = "match"
    EPILOGUE = "epilogue"


_PHASE_ORDER = (Phase.PROLOGUE, Phase.MATCH, Phase.EPILOGUE)

_TRIGGERS: dict[int, Phase] = {
    DemoKind.SYNC_TICK: Phase.MATCH,
    DemoKind.STOP: Phase.EPILOGUE,
}


class PhaseTracker:
    """Buckets top-level messages by recording phase.

    A triggering message is filed under the phase it opens: the transition is
    evaluated first, then the message is appended. Phases only move forward.
    A repeated sync tick while in Match does not reopen the Match log, so the
    concatenated logs stay in capture order.
    """

    def __init__(self) -> None:
        self.phase = Phase.PROLOGUE
        self.logs: dict[Phase, list[Message]] = {Phase.PROLOGUE: []}

    def observe(self, message: Message) -> Phase | None:
        """Append a message; return the newly entered phase, if any."""
        entered = None
        target = _TRIGGERS.get(message.kind)
        if target is not None and self._can_enter(target):
            self.phase = target
            self.logs[target] = []
            entered = target
        self.logs[self.phase].append(message)
        return entered

    def _can_enter(self, target: Phase) -> bool:
        return _PHASE_ORDER.index(target) > _PHASE_ORDER.index(self.phase)

    def messages(self) -> list[Message]:
        out: list[Message] = []
        for phase in _PHASE_ORDER:
            out.extend(self.logs.get(phase, ()))
        return out
