"""
IMAP STARTTLS negotiation (RFC 2595): banner advertises STARTTLS -> ". STARTTLS" -> tagged OK -> TLS.
"""
from typing import Optional

from core.constants import IMAP_TAG
from smtp.negotiator import Negotiator, State, command


class ImapNegotiator(Negotiator):
    name = "IMAP"
    states = (State.INIT, State.STARTTLS_SENT, State.TLS_UP)

    def __init__(self, tag: str = IMAP_TAG):
        super().__init__()
        self.tag = tag

    def _tagged_ok(self, chunk: str) -> bool:
        prefix = f"{self.tag} OK"
        for line in chunk.splitlines():
            line = line.strip()
            if line == prefix or line.startswith(prefix + " "):
                return True
        return False

    def _step(self, state: State, chunk: str) -> Optional[tuple[tuple[State, ...], Optional[bytes]]]:
        if state is State.INIT and "STARTTLS" in chunk:
            return (State.STARTTLS_SENT,), command(f"{self.tag} STARTTLS")
        if state is State.STARTTLS_SENT and self._tagged_ok(chunk):
            return (State.TLS_UP,), None
        return None
