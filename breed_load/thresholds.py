"""Threshold expressions evaluated once at run end

A threshold is a pass/fail condition over an aggregated metric, written the
same way the run profiles declare them:

    {"http_req_failed": ["rate<0.05"], "http_req_duration": ["p(95)<5700"]}

Supported aggregations: avg, min, max, med, count, rate, p(N).
Supported operators: <, <=, >, >=, ==, !=
"""

import logging
import operator
import re
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from breed_load.exceptions import ThresholdSyntaxError

logger = logging.getLogger(__name__)

_EXPRESSION = re.compile(
    r"^\s*(?P<agg>avg|min|max|med|count|rate|p\(\s*(?P<pct>\d+(?:\.\d+)?)\s*\))"
    r"\s*(?P<op><=|>=|==|!=|<|>)\s*"
    r"(?P<value>-?\d+(?:\.\d+)?)\s*$"
)

_OPERATORS: dict[str, Callable[[float, float], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
    "!=": operator.ne,
}


@dataclass(frozen=True)
class Threshold:
    """One parsed threshold expression"""

    expression: str
    aggregation: str  # 'avg', 'rate', 'p(95)', ...
    op: str
    value: float

    def check(self, observed: float) -> bool:
        return _OPERATORS[self.op](observed, self.value)


@dataclass(frozen=True)
class ThresholdResult:
    """Outcome of one threshold at run end"""

    metric: str
    expression: str
    ok: bool
    observed: Optional[float]


def parse_threshold(expression: str) -> Threshold:
    """
    Parse a threshold expression such as 'p(95)<5700'.

    Raises:
        ThresholdSyntaxError: if the expression is malformed or the
            percentile is outside 0-100
    """
    match = _EXPRESSION.match(expression)
    if not match:
        raise ThresholdSyntaxError(
            f"Invalid threshold expression: {expression!r}",
            expression=expression,
        )

    aggregation = match.group("agg")
    pct = match.group("pct")
    if pct is not None:
        pct_value = float(pct)
        if pct_value > 100:
            raise ThresholdSyntaxError(
                f"Percentile out of range in {expression!r}",
                expression=expression,
            )
        aggregation = f"p({pct})"

    return Threshold(
        expression=expression,
        aggregation=aggregation,
        op=match.group("op"),
        value=float(match.group("value")),
    )


def evaluate_thresholds(
    thresholds: Mapping[str, list[str]],
    snapshot: Mapping[str, Mapping[str, Any]],
) -> list[ThresholdResult]:
    """
    Evaluate every threshold against a metrics snapshot.

    Args:
        thresholds: metric name -> list of expressions
        snapshot: metric name -> {"type": ..., "values": {aggregation: value}}

    Returns:
        One ThresholdResult per expression, in declaration order. A threshold
        whose metric or aggregation is missing from the snapshot fails.
    """
    results: list[ThresholdResult] = []

    for metric_name, expressions in thresholds.items():
        values = snapshot.get(metric_name, {}).get("values", {})
        for expression in expressions:
            threshold = parse_threshold(expression)
            observed = values.get(threshold.aggregation)

            if observed is None:
                logger.warning(
                    f"[THRESHOLD] {metric_name} has no '{threshold.aggregation}' value; "
                    f"treating '{expression}' as failed"
                )
                results.append(ThresholdResult(metric_name, expression, False, None))
                continue

            ok = threshold.check(observed)
            log = logger.info if ok else logger.warning
            log(f"[THRESHOLD] {metric_name} {expression}: {'ok' if ok else 'FAILED'} (observed {observed:.4g})")
            results.append(ThresholdResult(metric_name, expression, ok, observed))

    return results


def requested_percentiles(thresholds: Mapping[str, list[str]]) -> set[str]:
    """Percentile labels ('95', '99.9', ...) referenced by any threshold"""
    labels = set()
    for expressions in thresholds.values():
        for expression in expressions:
            aggregation = parse_threshold(expression).aggregation
            if aggregation.startswith("p("):
                labels.add(aggregation[2:-1])
    return labels


def all_passed(results: list[ThresholdResult]) -> bool:
    """True when no threshold failed"""
    return all(r.ok for r in results)
