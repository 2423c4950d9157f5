"""Incremental byte-to-text decoding for process output channels."""

from __future__ import annotations

import codecs
import locale
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

FALLBACK_ENCODING = "utf-8"


@dataclass(frozen=True)
class DecoderState:
    """Bytes of an incomplete character carried over to the next chunk."""

    pending: bytes = b""
    flag: int = 0


def resolve_encoding(name: str = "") -> str:
    """Return the codec name to decode with; empty means the locale's encoding."""
    candidate = name or locale.getpreferredencoding(False) or FALLBACK_ENCODING
    try:
        return codecs.lookup(candidate).name
    except LookupError:
        logger.warning("Unknown encoding %r, falling back to %s", candidate, FALLBACK_ENCODING)
        return FALLBACK_ENCODING


def initial_state(encoding: str) -> DecoderState:
    """State of a fresh decoder; some codecs (UTF-16) start with a nonzero flag."""
    pending, flag = codecs.getincrementaldecoder(encoding)(errors="replace").getstate()
    return DecoderState(pending=pending, flag=flag)


def decode_chunk(
    chunk: bytes,
    state: DecoderState,
    *,
    encoding: str,
    final: bool = False,
) -> tuple[str, DecoderState]:
    """Decode ``chunk`` after the pending bytes of ``state``.

    Malformed input becomes U+FFFD. With ``final`` set, any trailing
    incomplete sequence is replaced too and nothing is left pending.
    """
    decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
    decoder.setstate((state.pending, state.flag))
    text = decoder.decode(chunk, final=final)
    pending, flag = decoder.getstate()
    return text, DecoderState(pending=pending, flag=flag)


class StreamDecoder:
    """Decoder for a single output channel."""

    def __init__(self, encoding: str = "") -> None:
        self.encoding = resolve_encoding(encoding)
        self.state = initial_state(self.encoding)

    def decode(self, chunk: bytes) -> str:
        text, self.state = decode_chunk(chunk, self.state, encoding=self.encoding)
        return text

    def flush(self) -> str:
        text, self.state = decode_chunk(b"", self.state, encoding=self.encoding, final=True)
        return text
