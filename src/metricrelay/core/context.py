"""Explicit state shared by the sample processor and the pipeline."""

from dataclasses import dataclass, field
from enum import Enum

from metricrelay.core.cache import NormalizationCache
from metricrelay.core.types_db import TypeCatalog


class CounterResetPolicy(Enum):
    """What to do when a cumulative series goes backwards.

    EMIT passes the negative rate through unchanged. SUPPRESS drops the
    point; the new raw value still becomes the baseline.
    """

    EMIT = "emit"
    SUPPRESS = "suppress"


@dataclass
class RelayContext:
    """Catalog, cache and normalization options for one relay instance.

    Attributes:
        catalog: Type definitions used to label values.
        cache: Last observations of cumulative series.
        normalize: Convert COUNTER and DERIVE values to per-second rates.
        counter_reset: Handling of decreasing cumulative values.
    """

    catalog: TypeCatalog
    cache: NormalizationCache = field(default_factory=NormalizationCache)
    normalize: bool = True
    counter_reset: CounterResetPolicy = CounterResetPolicy.EMIT
