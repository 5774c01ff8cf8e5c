"""Exceptions raised while resolving sensor values."""


class RecordNotFoundError(LookupError):
    """A column, sensor type or stored value could not be found."""

    pass


class SensorValuesListError(Exception):
    """Output values for a SensorValuesList could not be built.

    The original failure is available as __cause__.
    """

    pass


class RoutineError(Exception):
    """An automatic QC routine failed or was misconfigured."""

    pass
