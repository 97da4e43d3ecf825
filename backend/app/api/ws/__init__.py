"""WebSocket API layer."""

from app.api.ws.transcribe import transcribe_stream_endpoint

__all__ = [
    "transcribe_stream_endpoint",
]
