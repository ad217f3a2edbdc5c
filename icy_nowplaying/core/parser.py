"""
Incremental parser for ICY interleaved metadata.

An ICY body repeats ``[metaint audio bytes][1 length byte][length * 16 bytes]``.
The parser is fed whatever chunks the transport hands out and resolves as soon
as the first metadata block is complete. Audio bytes are counted and dropped;
only the metadata block itself is buffered.
"""

import re
from enum import Enum
from typing import Optional

from .result import FailureReason

STREAM_TITLE_RE = re.compile(r"StreamTitle='([^']*)'")
_METAINT_RE = re.compile(r'^\d+$')

METADATA_BLOCK_UNIT = 16


class ParserState(Enum):
    AUDIO = 'audio'
    LENGTH = 'length'
    METADATA = 'metadata'
    DONE = 'done'


def parse_metaint(value: Optional[str]) -> Optional[int]:
    """Parse an icy-metaint header value; None unless it is a positive integer"""
    if value is None:
        return None
    value = str(value).strip()
    if not _METAINT_RE.match(value):
        return None
    metaint = int(value)
    return metaint if metaint > 0 else None


def extract_stream_title(text: str) -> Optional[str]:
    """Return the first StreamTitle='...' value in a metadata block"""
    match = STREAM_TITLE_RE.search(text)
    return match.group(1) if match else None


class IcyFrameParser:
    """Three-state parser for the first metadata frame of an ICY stream"""

    def __init__(self, metaint: int, overflow_limit: int = 1024):
        if metaint <= 0:
            raise ValueError(f"metaint must be positive, got {metaint}")
        self.audio_skip = metaint
        # Bytes allowed past the audio section before we give up
        self.byte_limit = metaint + overflow_limit

        self.state = ParserState.AUDIO
        self.bytes_received = 0
        self.meta_len = 0
        self.buffer = bytearray()
        self.title: Optional[str] = None
        self.reason: Optional[FailureReason] = None
        self._audio_seen = 0

    @property
    def done(self) -> bool:
        return self.state is ParserState.DONE

    def bytes_wanted(self) -> int:
        """Bytes still needed to finish the current state"""
        if self.state is ParserState.AUDIO:
            return self.audio_skip - self._audio_seen
        if self.state is ParserState.LENGTH:
            return 1
        if self.state is ParserState.METADATA:
            return self.meta_len - len(self.buffer)
        return 0

    def feed(self, chunk: bytes) -> bool:
        """Consume a chunk; returns True once the frame has been resolved"""
        view = memoryview(chunk)
        offset = 0
        size = len(view)

        while offset < size and self.state is not ParserState.DONE:
            if self.state is ParserState.AUDIO:
                take = min(self.bytes_wanted(), size - offset)
                self._audio_seen += take
                offset += take
                if self._audio_seen == self.audio_skip:
                    self.state = ParserState.LENGTH

            elif self.state is ParserState.LENGTH:
                self.meta_len = view[offset] * METADATA_BLOCK_UNIT
                offset += 1
                if self.meta_len == 0:
                    self._resolve(None, FailureReason.EMPTY_METADATA)
                elif self.audio_skip + 1 + self.meta_len > self.byte_limit:
                    # Block can never complete inside the byte budget
                    self._resolve(None, FailureReason.BYTE_LIMIT)
                else:
                    self.state = ParserState.METADATA

            else:
                take = min(self.bytes_wanted(), size - offset)
                self.buffer.extend(view[offset:offset + take])
                offset += take
                if len(self.buffer) == self.meta_len:
                    self._decode_block()

        self.bytes_received += offset
        return self.done

    def _decode_block(self):
        text = bytes(self.buffer).decode('utf-8', errors='replace')
        title = extract_stream_title(text)
        if title is None:
            self._resolve(None, FailureReason.NO_STREAM_TITLE)
        else:
            self._resolve(title, None)

    def _resolve(self, title: Optional[str], reason: Optional[FailureReason]):
        self.title = title
        self.reason = reason
        self.state = ParserState.DONE
        self.buffer = bytearray()
