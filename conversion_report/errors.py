class ConversionReportError(Exception):
    """Base class for failures the report knows how to describe."""


class DataLoadError(ConversionReportError, OSError):
    """Input file missing, unreadable or not parseable as CSV."""


class SchemaError(ConversionReportError, ValueError):
    """Columns, values or step parameters don't match what the pipeline expects."""


class ModelFitError(ConversionReportError, RuntimeError):
    """A classifier failed to fit; the original exception is chained."""
