"""
SMTP STARTTLS negotiation: greeting -> EHLO -> STARTTLS -> TLS.
Minimal substring scanner, only enough of RFC 3207 to trigger the upgrade.
"""
from typing import Optional

from core.constants import EHLO_IDENTITY
from smtp.negotiator import Negotiator, State, command


class SmtpNegotiator(Negotiator):
    """
    INIT --"220 <host> ESMTP"--> GREETED --(EHLO queued)--> EHLO_SENT
         --"250-STARTTLS"--> STARTTLS_SENT --"220 "--> TLS_UP
    """

    name = "SMTP"
    states = (State.INIT, State.GREETED, State.EHLO_SENT, State.STARTTLS_SENT, State.TLS_UP)

    def __init__(self, hostname: str, client_name: str = EHLO_IDENTITY):
        super().__init__()
        self.greeting = f"220 {hostname} ESMTP"
        self.client_name = client_name

    def _step(self, state: State, chunk: str) -> Optional[tuple[tuple[State, ...], Optional[bytes]]]:
        if state is State.INIT and chunk.startswith(self.greeting):
            return (State.GREETED, State.EHLO_SENT), command(f"EHLO {self.client_name}")
        if state is State.EHLO_SENT and "250-STARTTLS" in chunk:
            return (State.STARTTLS_SENT,), command("STARTTLS")
        if state is State.STARTTLS_SENT and chunk.startswith("220 "):
            return (State.TLS_UP,), None
        return None
