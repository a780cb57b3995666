"""Client side: frame reassembly, session state, and the HTTP transport."""

from geniesite.client.reassembler import FrameReassembler, MalformedFrame, iter_events
from geniesite.client.session import GenerationSession, Phase, SessionStateMachine
from geniesite.client.transport import GenieSiteClient

__all__ = [
    "FrameReassembler",
    "GenerationSession",
    "GenieSiteClient",
    "MalformedFrame",
    "Phase",
    "SessionStateMachine",
    "iter_events",
]
