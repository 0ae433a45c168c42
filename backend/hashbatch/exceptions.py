"""Custom exceptions for the batching saga."""

from pydantic import ValidationError


class HashBatchError(Exception):
    """Base exception for hashbatch errors."""

    pass


class MalformedPayloadError(HashBatchError):
    """Inbound event payload does not match its channel schema."""

    def __init__(self, channel: str, errors: ValidationError | str):
        if isinstance(errors, ValidationError):
            detail = "; ".join(
                f"{'.'.join(str(x) for x in err['loc']) or '<root>'}: {err['msg']}"
                for err in errors.errors()
            )
        else:
            detail = errors
        super().__init__(f"Malformed payload on {channel}: {detail}")
        self.channel = channel
        self.detail = detail
