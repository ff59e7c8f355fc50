"""Form data container and multipart/form-data conversion.

FormData is the body type for the form_data category, both for requests
(Fetcher.post_form_data) and for parsed responses.

Requests are encoded by httpx from FormData.to_files(), which keeps
interleaved fields and files in insertion order. Decoding uses the standard
library email parser, which understands MIME multipart framing.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from email import policy
from email.message import Message
from email.parser import BytesParser
from typing import Union

from api_fetcher.models import FormFile

FormValue = Union[str, FormFile]

# httpx `files=` entry: (name, (filename, content, content_type))
FileEntry = tuple[str, tuple[Union[str, None], bytes, Union[str, None]]]


class FormDataParseError(Exception):
    """Raised when a multipart body cannot be decoded."""


class FormData:
    """Ordered multi-valued mapping of form field names to values.

    Usage:
        form = FormData({"title": "Report"})
        form.append("tag", "a")
        form.append("tag", "b")
        form.append("file", FormFile(filename="r.pdf", content=b"...", content_type="application/pdf"))
        form.get("tag")       # 'a'
        form.get_all("tag")   # ['a', 'b']
    """

    def __init__(
        self,
        fields: Mapping[str, FormValue] | Iterable[tuple[str, FormValue]] | None = None,
    ) -> None:
        self._items: list[tuple[str, FormValue]] = []
        if fields is None:
            return
        pairs = fields.items() if isinstance(fields, Mapping) else fields
        for name, value in pairs:
            self.append(name, value)

    def append(self, name: str, value: FormValue) -> None:
        """Add a value without removing existing values for the name."""
        if not isinstance(name, str):
            raise TypeError(f"Form field name must be str, got {type(name).__name__}")
        if not isinstance(value, (str, FormFile)):
            raise TypeError(
                f"Form field '{name}' must be str or FormFile, got {type(value).__name__}"
            )
        self._items.append((name, value))

    def set(self, name: str, value: FormValue) -> None:
        """Replace all values for the name with a single value."""
        self.delete(name)
        self.append(name, value)

    def delete(self, name: str) -> None:
        self._items = [(key, value) for key, value in self._items if key != name]

    def get(self, name: str, default: FormValue | None = None) -> FormValue | None:
        """First value for the name, or default."""
        for key, value in self._items:
            if key == name:
                return value
        return default

    def get_all(self, name: str) -> list[FormValue]:
        return [value for key, value in self._items if key == name]

    def keys(self) -> list[str]:
        """Distinct field names in first-seen order."""
        return list(dict.fromkeys(key for key, _ in self._items))

    def items(self) -> list[tuple[str, FormValue]]:
        return list(self._items)

    def __contains__(self, name: object) -> bool:
        return any(key == name for key, _ in self._items)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FormData):
            return NotImplemented
        return self._items == other._items

    def __repr__(self) -> str:
        return f"FormData({self._items!r})"

    def to_files(self) -> list[FileEntry]:
        """Convert to an httpx `files=` list in insertion order.

        Plain fields become parts without a filename or Content-Type; FormFile
        values keep their filename and content type.
        """
        entries: list[FileEntry] = []
        for name, value in self._items:
            if isinstance(value, FormFile):
                entries.append((name, (value.filename, value.content, value.content_type)))
            else:
                entries.append((name, (None, value.encode("utf-8"), None)))
        return entries


def _part_name(part: Message) -> str:
    name = part.get_param("name", header="content-disposition")
    if not isinstance(name, str) or not name:
        raise FormDataParseError("Multipart part without a field name")
    return name


def parse_multipart(content: bytes, content_type: str) -> FormData:
    """Decode a multipart/form-data body.

    Args:
        content: Raw body bytes.
        content_type: Full Content-Type header value, including the boundary.

    Returns:
        FormData with str values for plain fields and FormFile values for
        parts carrying a filename. An empty body yields an empty FormData.

    Raises:
        FormDataParseError: If the body is not well-formed multipart data.
    """
    if not content.strip():
        return FormData()

    header = f"Content-Type: {content_type}\r\n\r\n".encode("latin-1")
    message = BytesParser(policy=policy.HTTP).parsebytes(header + content)

    if message.get_param("boundary") is None:
        raise FormDataParseError("Multipart body without a boundary parameter")
    if not message.is_multipart():
        raise FormDataParseError("Body is not multipart data")
    if message.defects:
        raise FormDataParseError(f"Malformed multipart body: {message.defects[0]!r}")

    form = FormData()
    for part in message.iter_parts():
        name = _part_name(part)
        payload = part.get_payload(decode=True) or b""
        filename = part.get_filename()
        if filename is None:
            charset = part.get_content_charset() or "utf-8"
            try:
                form.append(name, payload.decode(charset))
            except (LookupError, UnicodeDecodeError) as e:
                raise FormDataParseError(f"Cannot decode field '{name}': {e}") from e
        else:
            form.append(
                name,
                FormFile(filename=filename, content=payload, content_type=part.get_content_type()),
            )
    return form
