"""
Errors raised by the ping ingest handler.
Every one of them is terminal for the request and reaches the Lambda runtime as-is.
"""


class PingIngestError(Exception):
    """Base class for ping ingest failures."""


class ConfigError(PingIngestError):
    pass


class MissingDeviceID(PingIngestError, ValueError):
    def __init__(self, message="error device id required"):
        super().__init__(message)


class SessionSetupFailed(PingIngestError):
    def __init__(self, message="failed to create aws session"):
        super().__init__(message)


class StorageEncodingFailed(PingIngestError):
    def __init__(self, message="dynamodb encountered an error marshalling data"):
        super().__init__(message)


class WriteFailed(PingIngestError):
    def __init__(self, message="dynamodb put_item failed"):
        super().__init__(message)


class ResponseEncodingFailed(PingIngestError):
    def __init__(self, message="encountered an error marshalling json data"):
        super().__init__(message)
