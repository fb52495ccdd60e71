# Infrastructure Serialization Package
from .codec import (
    decode_analytics,
    decode_history,
    decode_quiz_session,
    decode_review,
    decode_session,
    dumps,
    encode,
    loads,
)

__all__ = [
    "encode",
    "dumps",
    "loads",
    "decode_analytics",
    "decode_session",
    "decode_quiz_session",
    "decode_review",
    "decode_history",
]
