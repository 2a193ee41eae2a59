"""Protocol layer: frame decoding, payload decoding, and command encoding."""

from .decoder import FrameDecoder
from .encoder import encode_command
from .payload import decode_device_info, decode_message
