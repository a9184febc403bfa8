from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

DEFAULT_MIN_ALIGNMENT_LENGTH = 10_000
DEFAULT_GLOBAL_MIN_ALIGNMENT_LENGTH = 100_000
DEFAULT_MIN_TELOMERE_LENGTH = 100
DEFAULT_AXIS_PADDING = 5_000
DEFAULT_TELOMERE_MARKER_POS = -1_000
DEFAULT_READ_CHUNK_SIZE = 1024 * 1024
DEFAULT_SEQUENCE_WRAP = 80


@dataclass(frozen=True)
class ExplorerParams:
    min_alignment_length: int = DEFAULT_MIN_ALIGNMENT_LENGTH
    global_min_alignment_length: int = DEFAULT_GLOBAL_MIN_ALIGNMENT_LENGTH
    min_telomere_length: int = DEFAULT_MIN_TELOMERE_LENGTH
    axis_padding: int = DEFAULT_AXIS_PADDING
    telomere_marker_pos: int = DEFAULT_TELOMERE_MARKER_POS
    read_chunk_size: int = DEFAULT_READ_CHUNK_SIZE
    sequence_wrap: int = DEFAULT_SEQUENCE_WRAP
    figure_width: float = 8.0
    figure_height: float = 8.0
    dpi: int = 150

    @classmethod
    def from_cli_args(cls, args: Any) -> "ExplorerParams":
        return cls(
            min_alignment_length=int(args.min_alignment_length),
            global_min_alignment_length=int(args.global_min_alignment_length),
            min_telomere_length=int(args.min_telomere_length),
            figure_width=float(args.width),
            figure_height=float(args.height),
            dpi=int(args.dpi),
        )

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]]) -> "ExplorerParams":
        payload = payload or {}
        if not isinstance(payload, dict):
            raise ValueError("params must be an object")

        def value(name: str, default: Any) -> Any:
            return payload.get(name, default)

        return cls(
            min_alignment_length=to_int(value("min_alignment_length", DEFAULT_MIN_ALIGNMENT_LENGTH), min_value=1, name="min_alignment_length"),
            global_min_alignment_length=to_int(value("global_min_alignment_length", DEFAULT_GLOBAL_MIN_ALIGNMENT_LENGTH), min_value=1, name="global_min_alignment_length"),
            min_telomere_length=to_int(value("min_telomere_length", DEFAULT_MIN_TELOMERE_LENGTH), min_value=0, name="min_telomere_length"),
            axis_padding=to_int(value("axis_padding", DEFAULT_AXIS_PADDING), min_value=0, name="axis_padding"),
            telomere_marker_pos=to_int(value("telomere_marker_pos", DEFAULT_TELOMERE_MARKER_POS), name="telomere_marker_pos"),
            read_chunk_size=to_int(value("read_chunk_size", DEFAULT_READ_CHUNK_SIZE), positive=True, name="read_chunk_size"),
            sequence_wrap=to_int(value("sequence_wrap", DEFAULT_SEQUENCE_WRAP), positive=True, name="sequence_wrap"),
            figure_width=to_float(value("width", 8.0), positive=True, name="width"),
            figure_height=to_float(value("height", 8.0), positive=True, name="height"),
            dpi=to_int(value("dpi", 150), positive=True, name="dpi"),
        )


def to_float(
    value: Any,
    *,
    name: str,
    positive: bool = False,
) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be a floating-point number") from exc
    if positive and parsed <= 0:
        raise ValueError(f"{name} must be positive")
    return parsed


def to_int(
    value: Any,
    *,
    name: str,
    positive: bool = False,
    min_value: Optional[int] = None,
) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer")
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if positive and parsed <= 0:
        raise ValueError(f"{name} must be positive")
    if min_value is not None and parsed < min_value:
        raise ValueError(f"{name} must be >= {min_value}")
    return parsed

