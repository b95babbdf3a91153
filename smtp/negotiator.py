"""
STARTTLS negotiation as an explicit state machine.

A negotiator never touches a socket: it consumes chunks of plaintext server
output and answers with a Transition (next state, optional bytes to send).
The caller writes the bytes and, once the state is TLS_UP, starts the TLS
handshake on the same connection. Chunks that do not match what the current
state expects are discarded; the caller's timeout ends a stalled exchange.
"""
from dataclasses import dataclass
import enum
import logging
from typing import Optional

logger = logging.getLogger("mtce.smtp")


class State(str, enum.Enum):
    INIT = "INIT"
    GREETED = "GREETED"
    EHLO_SENT = "EHLO_SENT"
    STARTTLS_SENT = "STARTTLS_SENT"
    TLS_UP = "TLS_UP"


@dataclass(frozen=True)
class Transition:
    state: State
    outbound: Optional[bytes] = None


class Negotiator:
    """Base for protocol negotiators. Subclasses implement _step()."""

    name = "base"
    states: tuple[State, ...] = (State.INIT, State.TLS_UP)

    def __init__(self):
        self.state = State.INIT
        # States visited, in order, for logging and tests
        self.trail: list[State] = [State.INIT]

    @property
    def done(self) -> bool:
        return self.state is State.TLS_UP

    def feed(self, chunk: str) -> Transition:
        """Consume one chunk of server output."""
        if self.done:
            return Transition(self.state)
        step = self._step(self.state, chunk)
        if step is None:
            logger.debug("%s: discarding chunk in %s: %r", self.name, self.state.value, chunk[:80])
            return Transition(self.state)
        for state in step[0]:
            self._enter(state)
        return Transition(self.state, step[1])

    def _enter(self, state: State) -> None:
        if state not in self.states:
            raise ValueError(f"{self.name} has no state {state.value}")
        self.state = state
        self.trail.append(state)

    def _step(self, state: State, chunk: str) -> Optional[tuple[tuple[State, ...], Optional[bytes]]]:
        """Return (states entered, outbound) or None to discard the chunk."""
        raise NotImplementedError


def command(line: str) -> bytes:
    """Encode one protocol command terminated by CRLF."""
    return (line + "\r\n").encode("utf-8")
