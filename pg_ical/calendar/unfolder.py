"""Line unfolding for RFC 5545 content.

Turns a raw character or byte stream into a lazy sequence of logical lines,
undoing line folding (CRLF followed by a single space or tab) and normalizing
line terminators. Bytes are decoded incrementally so that multi-byte UTF-8
sequences split across chunk boundaries decode correctly.
"""

import codecs
import logging
from collections.abc import Generator, Iterable
from typing import IO, NamedTuple, Union

from ..exceptions import MalformedInputError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 8192  # 8KB reads from file objects
DEFAULT_DECODE_ERRORS = "replace"

FOLD_CHARS = (" ", "\t")
BOM = "\ufeff"

Source = Union[str, bytes, IO[str], IO[bytes], Iterable[Union[str, bytes]]]


class LogicalLine(NamedTuple):
    """One unfolded content line and its 1-based logical position."""

    number: int
    text: str


def iter_chunks(
    source: Source,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    decode_errors: str = DEFAULT_DECODE_ERRORS,
) -> Generator[str, None, None]:
    """Yield decoded text chunks from any supported input.

    Args:
        source: String, bytes, file object, or iterable of str/bytes chunks
        chunk_size: Read size used for file objects
        decode_errors: UTF-8 decode error handling ('strict' or 'replace')
    """
    if isinstance(source, str):
        yield source
        return

    if hasattr(source, "read"):
        raw_chunks: Iterable[Union[str, bytes]] = _until_empty(source, chunk_size)  # type: ignore[arg-type]
    elif isinstance(source, (bytes, bytearray)):
        raw_chunks = [bytes(source)]
    else:
        raw_chunks = source

    decoder = codecs.getincrementaldecoder("utf-8")(errors=decode_errors)
    try:
        for chunk in raw_chunks:
            if not chunk:
                continue
            if isinstance(chunk, (bytes, bytearray)):
                text = decoder.decode(bytes(chunk), final=False)
            else:
                text = chunk
            if text:
                yield text

        tail = decoder.decode(b"", final=True)
    except UnicodeDecodeError as e:
        raise MalformedInputError(f"input is not valid UTF-8: {e.reason}") from e
    if tail:
        yield tail


def _until_empty(file_obj: IO, chunk_size: int) -> Generator[Union[str, bytes], None, None]:
    while True:
        chunk = file_obj.read(chunk_size)
        if not chunk:
            return
        yield chunk


class _PhysicalLine(NamedTuple):
    number: int
    text: str
    bare_lf: bool


def _split_physical(chunks: Iterable[str]) -> Generator[_PhysicalLine, None, None]:
    buffer = ""
    number = 0
    for chunk in chunks:
        buffer += chunk
        lines = buffer.split("\n")
        # Last piece is incomplete until the next chunk or end of input
        buffer = lines.pop()
        for line in lines:
            number += 1
            if line.endswith("\r"):
                yield _PhysicalLine(number, line[:-1], False)
            else:
                yield _PhysicalLine(number, line, True)

    if buffer:
        number += 1
        yield _PhysicalLine(number, buffer[:-1] if buffer.endswith("\r") else buffer, False)


def _bare_lf_error(physical_number: int) -> MalformedInputError:
    return MalformedInputError(
        f"bare LF line terminator on physical line {physical_number}", physical_number
    )


def iter_physical_lines(
    chunks: Iterable[str], strict: bool = False
) -> Generator[str, None, None]:
    """Split text chunks into physical lines without their terminators.

    CRLF is the canonical terminator. A bare LF is accepted in lenient mode
    and rejected in strict mode. The last line may lack a terminator.
    """
    for physical in _split_physical(chunks):
        if strict and physical.bare_lf:
            raise _bare_lf_error(physical.number)
        yield physical.text


def unfold_lines(
    physical_lines: Iterable[str],
) -> Generator[LogicalLine, None, None]:
    """Join folded continuation lines onto the line they continue.

    The single leading space or tab is removed and the remainder appended
    with no separator. Blank lines are skipped.

    Raises:
        MalformedInputError: If a continuation line has no line to continue
    """
    tagged = (
        _PhysicalLine(number, text, False) for number, text in enumerate(physical_lines, 1)
    )
    yield from _join_continuations(tagged, strict=False)


def _join_continuations(
    physical_lines: Iterable[_PhysicalLine], strict: bool
) -> Generator[LogicalLine, None, None]:
    # In strict mode a bare LF fails the logical line it belongs to, and
    # only when that line is handed out.
    pending = None
    bad_terminator = None
    number = 0

    for line in physical_lines:
        if line.text.startswith(FOLD_CHARS):
            if pending is None:
                raise MalformedInputError(
                    "continuation line with no preceding content line", number + 1
                )
            pending += line.text[1:]
            if strict and line.bare_lf and bad_terminator is None:
                bad_terminator = line.number
            continue

        if pending is not None:
            if bad_terminator is not None:
                raise _bare_lf_error(bad_terminator)
            number += 1
            yield LogicalLine(number, pending)
            pending = None

        if line.text:
            pending = line.text
            bad_terminator = line.number if strict and line.bare_lf else None

    if pending is not None:
        if bad_terminator is not None:
            raise _bare_lf_error(bad_terminator)
        number += 1
        yield LogicalLine(number, pending)


def unfold(
    source: Source,
    strict: bool = False,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    decode_errors: str = DEFAULT_DECODE_ERRORS,
) -> Generator[LogicalLine, None, None]:
    """Produce the logical lines of an iCalendar stream.

    Args:
        source: String, bytes, file object, or iterable of str/bytes chunks
        strict: Reject bare LF terminators on content lines
        chunk_size: Read size used for file objects
        decode_errors: UTF-8 decode error handling for byte input

    Yields:
        LogicalLine tuples numbered from 1
    """
    chunks = iter_chunks(source, chunk_size=chunk_size, decode_errors=decode_errors)
    physical = _split_physical(_strip_bom(chunks))
    yield from _join_continuations(physical, strict=strict)


def _strip_bom(chunks: Iterable[str]) -> Generator[str, None, None]:
    first = True
    for chunk in chunks:
        if first:
            first = False
            if chunk.startswith(BOM):
                logger.debug("Dropping UTF-8 byte order mark")
                chunk = chunk[1:]
                if not chunk:
                    continue
        yield chunk
