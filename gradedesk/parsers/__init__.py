from gradedesk.parsers.vision_response import (
    VisionResponseError,
    parse_text_fallback,
    parse_vision_response,
)

__all__ = [
    "VisionResponseError",
    "parse_text_fallback",
    "parse_vision_response",
]
