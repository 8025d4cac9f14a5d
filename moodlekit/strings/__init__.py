"""String lookups against the site's language packs."""

from moodlekit.strings.resolver import StringRequest, StringResolver, encode_string_params

__all__ = ["StringRequest", "StringResolver", "encode_string_params"]
