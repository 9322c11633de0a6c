"""Line framing and JSON codec for the stdio transport."""

from .codec import DecodeError, decode, dumps_pretty, encode_line
from .framer import LineFramer

__all__ = ["LineFramer", "DecodeError", "decode", "encode_line", "dumps_pretty"]
