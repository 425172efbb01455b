"""Application configuration.

AppConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass

from switchyard.http.response import check_header


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, body_timeout=5.0)
    """

    # Include tracebacks in default error responses
    debug: bool = False

    # Body decoding
    body_timeout: float = 30.0  # seconds; decode resolves with what was buffered
    max_content_length: int = 16 * 1024 * 1024  # 16 MB

    # Supervisory timeout for the whole chain. None disables it, so a
    # handler that never continues and never responds hangs the request.
    handler_timeout: float | None = None

    # Content type used by res.json() and the synthesized error responses
    json_content_type: str = "application/json; charset=utf-8"

    def __post_init__(self) -> None:
        if self.body_timeout <= 0:
            msg = f"body_timeout must be positive, got {self.body_timeout}"
            raise ValueError(msg)
        if self.handler_timeout is not None and self.handler_timeout <= 0:
            msg = f"handler_timeout must be positive or None, got {self.handler_timeout}"
            raise ValueError(msg)
        if self.max_content_length < 0:
            msg = f"max_content_length must be >= 0, got {self.max_content_length}"
            raise ValueError(msg)
        check_header("Content-Type", self.json_content_type)
