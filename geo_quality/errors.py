"""Exception hierarchy for dataset quality analysis."""


class GeoQualityError(Exception):
    """Base class for every error raised by geo_quality."""


class ConfigurationError(GeoQualityError):
    """A dataset, its schema, a task or a static file is missing or malformed.

    Aborts the analysis of one dataset; batch runs record it and move on.
    """


class MetricComputationError(GeoQualityError):
    """A single metric could not be computed. Recorded as undefined."""


class UnsupportedTypePredicate(MetricComputationError):
    """The store cannot evaluate a type predicate for a declared type."""


class GeometryParseError(GeoQualityError):
    """A value could not be read as a geometry. Counted as invalid."""


class StoreUnavailable(GeoQualityError):
    """The backing document store cannot be reached. Fatal for the run."""


class StoreQueryError(GeoQualityError):
    """The store rejected a lookup the analysis cannot do without.

    Aborts the analysis of one dataset; batch runs record it and move on.
    """
