"""Scalar encodings used across the CCS API.

The CCS speaks three formats that plain pydantic types do not cover:

* absolute timestamps (:data:`ApiTime`) in RFC3339, where ``null`` means the
  value is unset and some servers drop the minutes of the UTC offset;
* contest-relative durations (:data:`ApiRelTime`) written as
  ``[-]H:MM:SS[.mmm]``;
* file bundles (:class:`LocalFileReference`) that travel as a base64 encoded
  ZIP archive inside a JSON string.

Each format is exposed both as standalone ``parse_*``/``format_*`` helpers and
as an ``Annotated`` alias ready to be used as a model field.
"""

from __future__ import annotations

import base64
import binascii
import io
import os
import re
import zipfile
from collections.abc import Iterable, Iterator
from datetime import UTC, datetime, timedelta, timezone
from typing import IO, Annotated, Any

from pydantic import BeforeValidator, GetCoreSchemaHandler, PlainSerializer, PlainValidator
from pydantic_core import core_schema

from .errors import DecodeError

# -- Timestamps -------------------------------------------------------------

# RFC3339, optionally without the minutes of the zone offset ("+02").
_API_TIME = re.compile(
    r'(?P<date>\d{4}-\d{2}-\d{2})[Tt](?P<clock>\d{2}:\d{2}:\d{2})(?:\.(?P<fraction>\d+))?'
    r'(?P<zone>[Zz]|(?P<sign>[+-])(?P<hours>\d{2})(?::(?P<minutes>\d{2}))?)'
)


def _nanosecond(value: datetime) -> int:
    return value.nanosecond if isinstance(value, Timestamp) else 0


class Timestamp(datetime):
    """A :class:`datetime` that also keeps the nanoseconds below its microsecond.

    Equality and ordering take the extra digits into account; the hash is
    that of the plain datetime.
    Arithmetic and ``replace()`` fall back to microsecond precision.
    """

    def __new__(cls, *args: Any, nanosecond: int = 0, **kwargs: Any) -> Timestamp:
        if not 0 <= nanosecond <= 999:
            raise ValueError(f'nanosecond must be in 0..999, got {nanosecond}')
        self = super().__new__(cls, *args, **kwargs)
        self._nanosecond = nanosecond
        return self

    @classmethod
    def from_datetime(cls, value: datetime, nanosecond: int = 0) -> Timestamp:
        return cls(
            value.year,
            value.month,
            value.day,
            value.hour,
            value.minute,
            value.second,
            value.microsecond,
            value.tzinfo,
            fold=value.fold,
            nanosecond=nanosecond,
        )

    @property
    def nanosecond(self) -> int:
        return self._nanosecond

    def as_datetime(self) -> datetime:
        """The same instant as a plain :class:`datetime`, truncated to the microsecond."""

        return datetime(
            self.year,
            self.month,
            self.day,
            self.hour,
            self.minute,
            self.second,
            self.microsecond,
            self.tzinfo,
            fold=self.fold,
        )

    def __reduce_ex__(self, protocol: Any) -> tuple[Any, ...]:
        return type(self).from_datetime, (self.as_datetime(), self._nanosecond)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, datetime):
            return NotImplemented
        return datetime.__eq__(self, other) and self._nanosecond == _nanosecond(other)

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    def __hash__(self) -> int:
        return datetime.__hash__(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, datetime):
            return NotImplemented
        if datetime.__eq__(self, other):
            return self._nanosecond < _nanosecond(other)
        return datetime.__lt__(self, other)

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, datetime):
            return NotImplemented
        if datetime.__eq__(self, other):
            return self._nanosecond > _nanosecond(other)
        return datetime.__gt__(self, other)

    def __le__(self, other: object) -> bool:
        result = self.__gt__(other)
        return result if result is NotImplemented else not result

    def __ge__(self, other: object) -> bool:
        result = self.__lt__(other)
        return result if result is NotImplemented else not result

    def __repr__(self) -> str:
        text = super().__repr__()
        if self._nanosecond:
            text = f'{text[:-1]}, nanosecond={self._nanosecond})'
        return text


def parse_api_time(text: str) -> Timestamp | None:
    """Parse a CCS timestamp, returning ``None`` for ``null``.

    Fractions are kept down to the nanosecond; further digits are dropped.
    """

    data = text.strip('"')
    if data == 'null':
        return None

    match = _API_TIME.fullmatch(data)
    if match is None:
        raise ValueError(f'can not parse date: {text}')

    try:
        moment = datetime.strptime(f'{match["date"]}T{match["clock"]}', '%Y-%m-%dT%H:%M:%S')
    except ValueError as exc:
        raise ValueError(f'can not parse date: {text}') from exc

    digits = (match['fraction'] or '')[:9].ljust(9, '0')
    moment = moment.replace(microsecond=int(digits[:6]))

    if match['sign'] is None:
        zone = UTC
    else:
        offset = timedelta(hours=int(match['hours']), minutes=int(match['minutes'] or 0))
        if offset >= timedelta(hours=24):
            raise ValueError(f'can not parse date: {text}')
        zone = timezone(-offset if match['sign'] == '-' else offset)
    return Timestamp.from_datetime(moment.replace(tzinfo=zone), int(digits[6:]))


def format_api_time(value: datetime | None) -> str | None:
    """Render ``value`` as RFC3339 with trimmed fractional seconds; ``None`` stays ``None``."""

    if value is None:
        return None
    nanosecond = _nanosecond(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)

    text = (
        f'{value.year:04d}-{value.month:02d}-{value.day:02d}'
        f'T{value.hour:02d}:{value.minute:02d}:{value.second:02d}'
    )
    if value.microsecond or nanosecond:
        text += f'.{value.microsecond:06d}{nanosecond:03d}'.rstrip('0')

    offset = value.utcoffset() or timedelta(0)
    if not offset:
        return text + 'Z'
    sign = '-' if offset < timedelta(0) else '+'
    minutes = abs(offset) // timedelta(minutes=1)
    return f'{text}{sign}{minutes // 60:02d}:{minutes % 60:02d}'


def _validate_api_time(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return parse_api_time(value)
    raise ValueError(f'can not parse date: {value!r}')


# A plain validator keeps the Timestamp instance instead of rebuilding a datetime.
ApiTime = Annotated[
    datetime | None,
    PlainValidator(_validate_api_time),
    PlainSerializer(format_api_time, return_type=str | None, when_used='json'),
]
"""Absolute timestamp; ``None`` is the unset value and encodes as JSON ``null``."""

# -- Relative times ---------------------------------------------------------

_REL_TIME = re.compile(r'(?P<sign>-?)(?P<hours>\d{1,2}):(?P<minutes>\d{2}):(?P<seconds>\d{2})(?:\.(?P<millis>\d{3}))?')
_MILLISECOND = timedelta(milliseconds=1)


def parse_rel_time(text: str) -> timedelta:
    """Parse ``[-]H:MM:SS[.mmm]``; the sign applies to the whole duration."""

    data = text.strip('"')
    if data == 'null':
        return timedelta(0)

    match = _REL_TIME.fullmatch(data)
    if match is None:
        raise ValueError(f'can not parse relative time: {text}')

    value = timedelta(
        hours=int(match['hours']),
        minutes=int(match['minutes']),
        seconds=int(match['seconds']),
        milliseconds=int(match['millis'] or 0),
    )
    return -value if match['sign'] else value


def format_rel_time(value: timedelta) -> str:
    """Render ``value`` as ``[-]H:MM:SS.mmm``, truncating below a millisecond."""

    sign = '-' if value < timedelta(0) else ''
    total = abs(value) // _MILLISECOND
    hours, rest = divmod(total, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    seconds, millis = divmod(rest, 1000)
    return f'{sign}{hours}:{minutes:02d}:{seconds:02d}.{millis:03d}'


def _validate_rel_time(value: Any) -> timedelta:
    if value is None:
        return timedelta(0)
    if isinstance(value, timedelta):
        return value
    if isinstance(value, str):
        return parse_rel_time(value)
    raise ValueError(f'can not parse relative time: {value!r}')


ApiRelTime = Annotated[
    timedelta,
    BeforeValidator(_validate_rel_time),
    PlainSerializer(format_rel_time, return_type=str, when_used='json'),
]
"""Duration relative to the contest start; JSON ``null`` decodes to zero."""

# -- Identifiers ------------------------------------------------------------


def _coerce_identifier(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str):
        return value.strip('"\'')
    return value


Identifier = Annotated[str, BeforeValidator(_coerce_identifier)]
"""Opaque object id; tolerates quote-wrapped strings and numeric ids."""

# -- File bundles -----------------------------------------------------------


class LocalFileReference:
    """Ordered set of files that is sent to the CCS as one base64 encoded ZIP.

    Contents are copied when a file is added, so closing or changing the
    source afterwards does not affect what gets submitted.
    """

    def __init__(self, files: Iterable[tuple[str, bytes]] = ()) -> None:
        self._files: list[tuple[str, bytes]] = [(name, bytes(data)) for name, data in files]

    @property
    def files(self) -> list[tuple[str, bytes]]:
        return list(self._files)

    def __len__(self) -> int:
        return len(self._files)

    def __iter__(self) -> Iterator[tuple[str, bytes]]:
        return iter(list(self._files))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LocalFileReference):
            return NotImplemented
        return self._files == other._files

    def __repr__(self) -> str:
        names = ', '.join(name for name, _ in self._files)
        return f'LocalFileReference([{names}])'

    def add_file(self, fh: IO[Any] | None) -> None:
        """Read ``fh`` to the end and store it under its base name."""

        if fh is None:
            raise ValueError('file is None')
        name = getattr(fh, 'name', None)
        if not isinstance(name, str | os.PathLike) or not os.path.basename(name):
            raise ValueError('file has no name')
        data = fh.read()
        if isinstance(data, str):
            data = data.encode('utf-8')
        self._files.append((os.path.basename(name), data))

    def add_path(self, path: str | os.PathLike[str]) -> None:
        with open(path, 'rb') as fh:
            self.add_file(fh)

    def add_string(self, filename: str, body: str) -> None:
        self.add_bytes(filename, body.encode('utf-8'))

    def add_bytes(self, filename: str, data: bytes) -> None:
        self._files.append((filename, bytes(data)))

    def to_base64_zip(self) -> str:
        buffer = io.BytesIO()
        try:
            with zipfile.ZipFile(buffer, 'w', compression=zipfile.ZIP_DEFLATED) as archive:
                for filename, contents in self._files:
                    archive.writestr(filename, contents)
        except (OSError, ValueError, zipfile.LargeZipFile) as exc:
            raise DecodeError(f'could not write ZIP archive: {exc}') from exc
        return base64.b64encode(buffer.getvalue()).decode('ascii')

    @classmethod
    def from_base64_zip(cls, text: str) -> LocalFileReference:
        try:
            raw = base64.b64decode(text, validate=True)
            with zipfile.ZipFile(io.BytesIO(raw)) as archive:
                files = [(info.filename, archive.read(info)) for info in archive.infolist() if not info.is_dir()]
        except (binascii.Error, zipfile.BadZipFile, ValueError) as exc:
            raise DecodeError(f'could not read ZIP archive: {exc}') from exc
        return cls(files)

    # -- pydantic integration -------------------------------------------

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: GetCoreSchemaHandler) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.plain_serializer_function_ser_schema(
                cls._serialize,
                when_used='json',
            ),
        )

    @classmethod
    def _validate(cls, value: Any) -> LocalFileReference:
        if isinstance(value, LocalFileReference):
            return value
        if isinstance(value, str):
            try:
                return cls.from_base64_zip(value)
            except DecodeError as exc:
                raise ValueError(str(exc)) from exc
        raise ValueError(f'expected a base64 encoded ZIP archive, got {type(value).__name__}')

    @staticmethod
    def _serialize(value: LocalFileReference) -> str:
        return value.to_base64_zip()


__all__ = [
    'ApiRelTime',
    'ApiTime',
    'Identifier',
    'LocalFileReference',
    'Timestamp',
    'format_api_time',
    'format_rel_time',
    'parse_api_time',
    'parse_rel_time',
]
