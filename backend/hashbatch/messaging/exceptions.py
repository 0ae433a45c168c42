"""Custom exceptions for the event transport."""

from hashbatch.exceptions import HashBatchError


class EventBusError(HashBatchError):
    """Transport failure: bus not running or an undecodable message."""

    pass
