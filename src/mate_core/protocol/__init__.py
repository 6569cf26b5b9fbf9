"""Wire protocol: escape filter, request encoder, response decoder."""

from mate_core.protocol.decoder import ResponseDecoder
from mate_core.protocol.encoder import EncoderOptions, RequestEncoder
from mate_core.protocol.escapes import EscapeFilter, EscapeState, strip_ansi_escapes

__all__ = [
    "EncoderOptions",
    "EscapeFilter",
    "EscapeState",
    "RequestEncoder",
    "ResponseDecoder",
    "strip_ansi_escapes",
]
