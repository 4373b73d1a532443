from collections import deque
from collections.abc import AsyncIterable, AsyncIterator

from loguru import logger
from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header

from ..core.exceptions import ClientInputError, PayloadTooLargeError
from .domain import MultipartField
from .upload_dispatcher import UploadDispatcher


class _RawPart:
    def __init__(self):
        self.headers: dict[bytes, bytes] = {}
        self.data = bytearray()


class _PartCollector:
    """Parser callbacks that buffer each part until its closing boundary."""

    def __init__(self, max_field_size: int | None = None):
        self.max_field_size = max_field_size
        self.completed: deque[_RawPart] = deque()
        self.current: _RawPart | None = None
        self.finished = False
        self._header_name = b""
        self._header_value = b""

    def callbacks(self) -> dict:
        return {
            "on_part_begin": self.on_part_begin,
            "on_header_field": self.on_header_field,
            "on_header_value": self.on_header_value,
            "on_header_end": self.on_header_end,
            "on_part_data": self.on_part_data,
            "on_part_end": self.on_part_end,
            "on_end": self.on_end,
        }

    def on_part_begin(self) -> None:
        self.current = _RawPart()

    def on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_name += data[start:end]

    def on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def on_header_end(self) -> None:
        self.current.headers[self._header_name.strip().lower()] = self._header_value
        self._header_name = b""
        self._header_value = b""

    def on_part_data(self, data: bytes, start: int, end: int) -> None:
        self.current.data.extend(data[start:end])
        if self.max_field_size is not None and len(self.current.data) > self.max_field_size:
            raise PayloadTooLargeError(
                f"Field exceeds the maximum size of {self.max_field_size} bytes"
            )

    def on_part_end(self) -> None:
        self.completed.append(self.current)
        self.current = None

    def on_end(self) -> None:
        self.finished = True


def parse_boundary(content_type_header: str | None) -> bytes:
    if not content_type_header:
        raise ClientInputError("Missing Content-Type header")

    media_type, params = parse_options_header(content_type_header)
    if not media_type.startswith(b"multipart/"):
        raise ClientInputError(
            f"Expected a multipart body, got {media_type.decode('latin-1')!r}"
        )

    boundary = params.get(b"boundary")
    if not boundary:
        raise ClientInputError("Couldn't parse form data boundary")

    return boundary


def _to_field(part: _RawPart) -> MultipartField:
    content_type = part.headers.get(b"content-type", b"").decode("latin-1").strip()
    if not content_type:
        raise ClientInputError("Failed to get content type of multipart field")

    _, disposition = parse_options_header(part.headers.get(b"content-disposition"))
    name = disposition.get(b"name")
    filename = disposition.get(b"filename")

    return MultipartField(
        content_type=content_type,
        data=bytes(part.data),
        name=name.decode("utf-8", "replace") if name is not None else None,
        filename=filename.decode("utf-8", "replace") if filename is not None else None,
    )


async def iter_multipart_fields(
    content_type_header: str | None,
    body: AsyncIterable[bytes],
    max_field_size: int | None = None,
) -> AsyncIterator[MultipartField]:
    """
    Lazily split a multipart body into fully-buffered fields.

    Fields are yielded as soon as their closing boundary has been parsed, so
    a consumer can act on the first field while later ones are still being
    received. The sequence can only be consumed once.

    Raises:
        ClientInputError: For a bad boundary, malformed framing, a part
            without a Content-Type, a truncated or unreadable body
        PayloadTooLargeError: If a field is larger than ``max_field_size``
    """
    boundary = parse_boundary(content_type_header)
    collector = _PartCollector(max_field_size)
    parser = MultipartParser(boundary, collector.callbacks())

    chunks = aiter(body)
    while True:
        try:
            chunk = await anext(chunks)
        except StopAsyncIteration:
            break
        except Exception as e:
            raise ClientInputError(f"Failed to read request body: {e}") from e

        if not chunk:
            continue

        try:
            parser.write(chunk)
        except MultipartParseError as e:
            raise ClientInputError(f"Malformed multipart body: {e}") from e

        while collector.completed:
            yield _to_field(collector.completed.popleft())

    parser.finalize()

    if not collector.finished:
        raise ClientInputError("Multipart body ended before the closing boundary")


async def ingest_multipart(
    content_type_header: str | None,
    body: AsyncIterable[bytes],
    dispatcher: UploadDispatcher,
    max_field_size: int | None = None,
) -> int:
    """
    Dispatch one background upload per multipart field.

    Uploads are not awaited; the return value is the number of fields handed
    to the dispatcher. On a client error the loop stops, while uploads
    already dispatched keep running.
    """
    dispatched = 0
    try:
        async for field in iter_multipart_fields(
            content_type_header, body, max_field_size=max_field_size
        ):
            dispatcher.submit(field.content_type, field.data)
            dispatched += 1
            logger.debug(
                f"Dispatched field {field.name!r} ({field.filename!r}, "
                f"{field.content_type}, {len(field.data)} bytes)"
            )
    except ClientInputError as e:
        logger.warning(f"Rejected multipart upload after {dispatched} fields: {e}")
        raise

    logger.info(f"Dispatched {dispatched} uploads")
    return dispatched
