"""Newline framing for arbitrarily chunked text streams.

Generative models stream text in fragments that ignore record boundaries: a
single JSONL record may arrive split over many chunks, and one chunk may
carry several records. LineFramer reassembles complete newline-terminated
records and keeps the unterminated tail buffered until more text arrives.
"""

from collections.abc import AsyncIterable, AsyncIterator

import structlog

logger = structlog.get_logger()


class LineFramer:
    """Split a fragment stream into complete newline-delimited records.

    The framer never interprets record content. Empty records produced by
    consecutive newlines are returned as empty strings; discarding them is
    the decoder's job.

    Usage:
        >>> framer = LineFramer()
        >>> framer.feed('{"a": 1}\\n{"b"')
        ['{"a": 1}']
        >>> framer.feed(': 2}\\n')
        ['{"b": 2}']
        >>> framer.flush()
        []
    """

    def __init__(self) -> None:
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Buffered text that has not been terminated by a newline yet."""
        return self._buffer

    def feed(self, fragment: str) -> list[str]:
        """Append a fragment and return every record it completes.

        Args:
            fragment: Next chunk of stream text, of any size

        Returns:
            Complete records in stream order, without their newline
        """
        if not fragment:
            return []

        self._buffer += fragment
        if "\n" not in fragment:
            return []

        *records, self._buffer = self._buffer.split("\n")
        return records

    def flush(self) -> list[str]:
        """Drain the buffer at end of stream.

        Returns:
            The leftover partial record, if any
        """
        remainder, self._buffer = self._buffer, ""
        if not remainder:
            return []
        return [remainder]


async def iter_records(fragments: AsyncIterable[str]) -> AsyncIterator[str]:
    """Frame an async fragment source into records, flushing at the end.

    Args:
        fragments: Any async iterable of text chunks

    Yields:
        Complete records followed by the flushed remainder
    """
    framer = LineFramer()
    fragment_count = 0

    async for fragment in fragments:
        fragment_count += 1
        for record in framer.feed(fragment):
            yield record

    leftover = framer.flush()
    if leftover:
        logger.debug(
            "framer_flushed_partial_record",
            fragment_count=fragment_count,
            size=len(leftover[0]),
        )
    for record in leftover:
        yield record
