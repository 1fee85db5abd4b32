from __future__ import annotations


class CatvizError(Exception):
    """Base class for errors raised by the aggregation and layout core."""


class InvalidAggregationRequest(CatvizError, ValueError):
    """A category key is missing or unknown, or does not fit the aggregation mode."""


class EmptyPartition(CatvizError, ValueError):
    """A normalisation denominator is zero."""


class IncompatibleArrangement(CatvizError, ValueError):
    """Stacked or dodged arrangement requested for a table without a secondary category."""
