"""
Default extension to media type lookup.
"""
import mimetypes

# Built from the interpreter's defaults only, so results do not depend on
# the host's mime.types files.
_registry = mimetypes.MimeTypes()


def lookup(extension: str) -> str | None:
    """
    Returns the media type registered for a file extension ("json",
    ".html"), or None if the extension is unknown.
    """
    extension = extension.strip().lstrip(".").lower()
    if not extension:
        return None
    media_type, _ = _registry.guess_type(f"file.{extension}", strict=False)
    return media_type
