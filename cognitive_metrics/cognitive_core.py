from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any, TypeAlias

from .errors import ValidationError
from .stats_core import mean, stddev

# domain -> metric -> value
DomainScores: TypeAlias = dict[str, dict[str, float]]
MetricScores: TypeAlias = dict[str, float]


def clamp(x: float, lo: float = 0.0, hi: float = 100.0) -> float:
    return lo if x <= lo else hi if x >= hi else float(x)


def round_half_up(x: float) -> int:
    # Matches JavaScript Math.round, which the stored history was produced with.
    return int(math.floor(x + 0.5))


def percent(part: float, whole: float) -> float:
    """``part / whole * 100``; 0.0 when there is nothing to divide by."""

    if whole == 0:
        return 0.0
    return (float(part) / float(whole)) * 100.0


def safe_ratio(num: float, den: float, *, default: float) -> float:
    if den == 0:
        return default
    return float(num) / float(den)


def accuracy_of(flags: Sequence[bool]) -> float:
    """Fraction of True flags in [0, 1]; 0.0 for an empty sequence."""

    if not flags:
        return 0.0
    return sum(1 for f in flags if f) / float(len(flags))


def cv_score(values: Sequence[float]) -> float:
    """Coefficient-of-variation consistency: ``100 - (stddev/mean)*100``, >= 0.

    Lower dispersion scores higher. A zero mean carries no dispersion signal
    and scores 100. Callers apply their own minimum-length fallback.
    """

    m = mean(values)
    if m == 0:
        return 100.0
    return max(0.0, 100.0 - (stddev(values) / m) * 100.0)


def quarter_slices(items: Sequence[Any]) -> tuple[Sequence[Any], Sequence[Any]]:
    """First and last quarter of a sequence (quarter = len // 4, at least 1)."""

    q = max(1, len(items) // 4)
    return items[:q], items[-q:]


def rolling_accuracies(flags: Sequence[bool], window: int = 4) -> list[float]:
    return [accuracy_of(flags[i : i + window]) for i in range(0, len(flags) - window + 1)]


def is_metric_value(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def read_field(data: Mapping[str, Any], name: str, default: Any = ...) -> Any:
    """Read ``name`` from browser telemetry, accepting snake_case or camelCase keys."""

    if name in data:
        return data[name]
    camel = _camel(name)
    if camel in data:
        return data[camel]
    if default is ...:
        raise ValidationError(f"raw telemetry is missing field '{name}'")
    return default


def as_number(raw: object, what: str) -> float:
    try:
        value = float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"raw telemetry field '{what}' must be numeric") from exc
    if not math.isfinite(value):
        raise ValidationError(f"raw telemetry field '{what}' must be finite")
    return value


def read_number(data: Mapping[str, Any], name: str, default: float | None = None) -> float:
    return as_number(read_field(data, name, ... if default is None else default), name)


def read_list(data: Mapping[str, Any], name: str) -> list[Any]:
    raw = read_field(data, name, [])
    if not isinstance(raw, list):
        raise ValidationError(f"raw telemetry field '{name}' must be a list")
    return raw


def read_number_list(data: Mapping[str, Any], name: str) -> tuple[float, ...]:
    return tuple(as_number(v, f"{name}[{i}]") for i, v in enumerate(read_list(data, name)))


def read_mapping(item: object, what: str) -> Mapping[str, Any]:
    if not isinstance(item, Mapping):
        raise ValidationError(f"{what} must be an object")
    return item
