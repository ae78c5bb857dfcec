"""Reader for the ``batch/issues`` response: a stream of delimited protobuf messages.

The body is a sequence of ``ServerIssue`` messages, each preceded by its
length as a base-128 varint (the protobuf "writeDelimitedTo" framing).
Only the wire format is decoded here; there is no generated code. Field
numbers follow the scanner protocol definition:

    1 key              6 line             11 status
    2 module_key       7 msg              12 checksum
    3 path             8 severity (enum)  13 assignee_login
    4 rule_repository  9 manual_severity  14 creation_date
    5 rule_key        10 resolution       15 type

Unknown fields are skipped, as protobuf readers do.
"""

from __future__ import annotations

from typing import Any, Iterator

from sonarqube_client.models import ServerIssue


class ProtobufDecodeError(ValueError):
    """Raised when the body is not a valid delimited protobuf stream."""


# Wire types
_VARINT = 0
_FIXED64 = 1
_LENGTH_DELIMITED = 2
_FIXED32 = 5

SEVERITIES = {0: "INFO", 1: "MINOR", 2: "MAJOR", 3: "CRITICAL", 4: "BLOCKER"}

_STRING_FIELDS = {
    1: "key",
    2: "module_key",
    3: "path",
    4: "rule_repository",
    5: "rule_key",
    7: "msg",
    10: "resolution",
    11: "status",
    12: "checksum",
    13: "assignee_login",
    15: "type",
}
_LINE = 6
_SEVERITY = 8
_MANUAL_SEVERITY = 9
_CREATION_DATE = 14


def read_varint(data: bytes, position: int) -> tuple[int, int]:
    """Read a base-128 varint starting at ``position``.

    Returns:
        Tuple of (value, position after the varint).

    Raises:
        ProtobufDecodeError: If the data ends inside the varint or the
            varint is longer than 10 bytes.
    """
    result = 0
    shift = 0
    while True:
        if position >= len(data):
            raise ProtobufDecodeError("Truncated varint")
        byte = data[position]
        position += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result, position
        shift += 7
        if shift >= 70:
            raise ProtobufDecodeError("Varint is too long")


def _to_signed(value: int, bits: int) -> int:
    if value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


def _iter_fields(message: bytes) -> Iterator[tuple[int, int, Any]]:
    """Yield (field_number, wire_type, value) for each field of a message."""
    position = 0
    while position < len(message):
        tag, position = read_varint(message, position)
        field_number, wire_type = tag >> 3, tag & 0x07
        if field_number == 0:
            raise ProtobufDecodeError("Invalid field number 0")

        if wire_type == _VARINT:
            value, position = read_varint(message, position)
        elif wire_type == _LENGTH_DELIMITED:
            length, position = read_varint(message, position)
            end = position + length
            if end > len(message):
                raise ProtobufDecodeError(f"Field {field_number} overruns the message")
            value = message[position:end]
            position = end
        elif wire_type == _FIXED64:
            value = message[position:position + 8]
            position += 8
        elif wire_type == _FIXED32:
            value = message[position:position + 4]
            position += 4
        else:
            raise ProtobufDecodeError(f"Unsupported wire type {wire_type}")

        if position > len(message):
            raise ProtobufDecodeError(f"Field {field_number} overruns the message")
        yield field_number, wire_type, value


def parse_server_issue(message: bytes) -> ServerIssue:
    """Decode one ``ServerIssue`` message body (without its length prefix)."""
    fields: dict[str, Any] = {}
    for field_number, wire_type, value in _iter_fields(message):
        if field_number in _STRING_FIELDS and wire_type == _LENGTH_DELIMITED:
            try:
                fields[_STRING_FIELDS[field_number]] = value.decode("utf-8")
            except UnicodeDecodeError as e:
                raise ProtobufDecodeError(f"Field {field_number} is not valid UTF-8") from e
        elif field_number == _LINE and wire_type == _VARINT:
            fields["line"] = _to_signed(value & 0xFFFFFFFF, 32)
        elif field_number == _SEVERITY and wire_type == _VARINT:
            fields["severity"] = SEVERITIES.get(value, str(value))
        elif field_number == _MANUAL_SEVERITY and wire_type == _VARINT:
            fields["manual_severity"] = value != 0
        elif field_number == _CREATION_DATE and wire_type == _VARINT:
            fields["creation_date"] = _to_signed(value, 64)
    return ServerIssue(**fields)


def parse_server_issues(body: bytes) -> list[ServerIssue]:
    """Decode every length-prefixed ``ServerIssue`` in ``body``.

    An empty body is a valid stream with no issues.
    """
    issues: list[ServerIssue] = []
    position = 0
    while position < len(body):
        length, position = read_varint(body, position)
        end = position + length
        if end > len(body):
            raise ProtobufDecodeError(
                f"Message at offset {position} declares {length} bytes, "
                f"only {len(body) - position} available"
            )
        issues.append(parse_server_issue(body[position:end]))
        position = end
    return issues
