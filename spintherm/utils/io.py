"""Trace files and JSON rendering of simulation entities."""

import json
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, Union

from ..core.exceptions import EncodingError

# Sink names that suppress writing
NULL_SINKS = ("", "none", "nofile")


def is_null_sink(sink: Optional[Union[str, Path]]) -> bool:
    """Whether ``sink`` means "do not write a trace"."""
    if sink is None:
        return True
    return str(sink).strip().lower() in NULL_SINKS


def format_trace_line(time: float, values: Iterable[float]) -> str:
    """
    Render one trace row: the time followed by the values, space separated.

    Floats are written with repr precision so that rows can be read back
    without loss.
    """
    return " ".join(repr(float(v)) for v in (time, *values))


class TraceWriter:
    """
    Line-oriented trace buffered in memory and written once at run end.

    Args:
        sink: Output filename; a null sink keeps the lines in memory only
    """

    def __init__(self, sink: Optional[Union[str, Path]] = None):
        self.sink = sink
        self._lines: List[str] = []

    @property
    def enabled(self) -> bool:
        return not is_null_sink(self.sink)

    @property
    def lines(self) -> List[str]:
        return list(self._lines)

    def append(self, line: str):
        self._lines.append(line)

    def flush(self) -> Optional[Path]:
        """
        Write the buffered lines to the sink.

        Returns:
            Path of the written file, or None for a null sink
        """
        if not self.enabled:
            return None

        path = Path(self.sink)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            for line in self._lines:
                f.write(line + "\n")
        return path

    def __len__(self) -> int:
        return len(self._lines)


def to_json(payload: Any) -> str:
    """
    Render a dict/list payload as JSON.

    Non-finite floats are rejected rather than written as NaN/Infinity.

    Raises:
        EncodingError: If the payload cannot be rendered
    """
    try:
        return json.dumps(payload, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise EncodingError(f"Cannot encode payload as JSON: {e}") from e


def save_sites(filename: Union[str, Path], sites: Sequence[Any]):
    """
    Save sites as a JSON array of their dictionaries.

    Args:
        filename: Output filename
        sites: Objects providing ``to_dict()``
    """
    text = to_json([site.to_dict() for site in sites])
    with open(filename, 'w') as f:
        f.write(text)
