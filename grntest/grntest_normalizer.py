"""
Turns a ResultLog into the byte string that is compared with `.expected` files.

JSON responses carry start and elapsed times in their status header; these are
zeroed so results are reproducible between runs.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Iterable, List, Optional

from grntest.grntest_datatypes import ResultEntry, ResultTag

LOGGER = logging.getLogger(__name__)

MAX_N_COLUMNS = 79
ENCODING = "utf-8"


def normalize_status(status: List[Any]) -> List[Any]:
    return_code, _started_time, _elapsed_time, *rest = status
    if return_code == 0:
        return [0, 0.0, 0.0]
    message = rest[0] if rest else None
    return [[return_code, 0.0, 0.0], message]


def _parse_response(content: bytes) -> Optional[List[Any]]:
    try:
        response = json.loads(content)
    except ValueError:
        return None
    if not isinstance(response, list) or not response:
        return None
    status = response[0]
    if not isinstance(status, list) or not status:
        return None
    if len(status) < 3 and not isinstance(status[0], list):
        return None
    return response


def response_return_code(content: bytes) -> Optional[int]:
    """Return code of a JSON response, or None if `content` is not one."""
    response = _parse_response(content)
    if response is None:
        return None
    return_code = response[0][0]
    # Already normalized error status: [[rc, 0.0, 0.0], message]
    if isinstance(return_code, list):
        return_code = return_code[0] if return_code else None
    return return_code if isinstance(return_code, int) else None


def _dump_compact(value: Any) -> bytes:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":")).encode(ENCODING)


def _dump_pretty(value: Any) -> bytes:
    return json.dumps(value, ensure_ascii=False, indent=2).encode(ENCODING)


def normalize_json_output(content: bytes, max_n_columns: int = MAX_N_COLUMNS) -> bytes:
    response = _parse_response(content)
    if response is None:
        LOGGER.warning("response is not a groonga JSON response; keeping it verbatim: %r", content[:80])
        return content + b"\n"
    status, *values = response
    # A status that was normalized already is [[rc, 0.0, 0.0], message].
    if isinstance(status[0], list):
        normalized_status = status
    else:
        normalized_status = normalize_status(status)
    normalized = [normalized_status, *values]
    output = _dump_compact(normalized)
    if len(output) > max_n_columns:
        output = _dump_pretty(normalized)
    return output + b"\n"


def normalize_entry(entry: ResultEntry, max_n_columns: int = MAX_N_COLUMNS) -> bytes:
    match entry.tag:
        case ResultTag.INPUT:
            # Input lines keep the terminator they had in the script.
            return entry.content
        case ResultTag.OUTPUT:
            match entry.format:
                case "json":
                    return normalize_json_output(entry.content, max_n_columns)
                case _:
                    return entry.content + b"\n"
        case ResultTag.ERROR:
            return entry.content + b"\n"
    raise ValueError(f"unknown result tag: {entry.tag!r}")


def normalize_result(result: Iterable[ResultEntry], max_n_columns: int = MAX_N_COLUMNS) -> bytes:
    return b"".join(normalize_entry(entry, max_n_columns) for entry in result)
