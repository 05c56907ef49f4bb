"""Domain exceptions raised outside the pure analytics engines."""

from __future__ import annotations


class PortfolioError(Exception):
    """Base class for service-level failures."""


class DataSourceUnavailableError(PortfolioError):
    """The persistence collaborator could not be reached or queried."""

    public_message = "Unable to connect to the data source."
