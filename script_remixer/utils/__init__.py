from .text import detect_language, parse_json_response, resolve_language

__all__ = ["detect_language", "parse_json_response", "resolve_language"]
