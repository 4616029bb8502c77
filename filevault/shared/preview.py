"""Map a file name and MIME type to the viewer the preview page should use."""

from enum import Enum
from pathlib import PurePosixPath


class PreviewKind(str, Enum):
    image = "image"
    pdf = "pdf"
    office = "office"
    spreadsheet = "spreadsheet"
    text = "text"
    audio = "audio"
    video = "video"
    unsupported = "unsupported"


EXTENSION_KINDS: dict[str, PreviewKind] = {
    **dict.fromkeys(
        ["jpg", "jpeg", "png", "gif", "webp", "bmp", "svg", "ico", "avif"], PreviewKind.image
    ),
    "pdf": PreviewKind.pdf,
    **dict.fromkeys(["doc", "docx", "ppt", "pptx", "odt", "odp", "rtf"], PreviewKind.office),
    **dict.fromkeys(["xls", "xlsx", "ods", "csv"], PreviewKind.spreadsheet),
    **dict.fromkeys(
        ["txt", "md", "json", "xml", "log", "yaml", "yml", "ini", "html", "css", "js", "py"],
        PreviewKind.text,
    ),
    **dict.fromkeys(["mp3", "wav", "ogg", "oga", "m4a", "aac", "flac"], PreviewKind.audio),
    **dict.fromkeys(["mp4", "webm", "mov", "mkv", "avi", "m4v", "ogv"], PreviewKind.video),
}

MIME_FAMILY_KINDS: dict[str, PreviewKind] = {
    "image": PreviewKind.image,
    "audio": PreviewKind.audio,
    "video": PreviewKind.video,
    "text": PreviewKind.text,
}


def file_extension(file_name: str | None) -> str:
    """Lower-case extension without the dot, or "" when there is none."""
    return PurePosixPath(file_name or "").suffix[1:].lower()


def preview_kind(file_name: str | None, mime_type: str | None = None) -> PreviewKind:
    """Extension wins; the MIME family is the fallback; anything else is unsupported."""
    kind = EXTENSION_KINDS.get(file_extension(file_name))
    if kind is not None:
        return kind

    mime = (mime_type or "").lower()
    if mime == "application/pdf":
        return PreviewKind.pdf
    return MIME_FAMILY_KINDS.get(mime.split("/", 1)[0], PreviewKind.unsupported)
