class DashboardError(Exception):
    status_code = 500


class NotFound(DashboardError):
    """Indicator missing or inactive."""

    status_code = 404


class ValidationError(DashboardError):
    """Bad request parameters; raised before the store is touched."""

    status_code = 400


class UpstreamFailure(DashboardError):
    """A store query failed."""

    status_code = 500
