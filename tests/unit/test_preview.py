"""Unit tests for preview kind dispatch."""

import pytest

from filevault.shared.preview import PreviewKind, file_extension, preview_kind


class TestFileExtension:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("report.pdf", "pdf"),
            ("Photo.JPEG", "jpeg"),
            ("archive.tar.gz", "gz"),
            ("README", ""),
            ("", ""),
            (None, ""),
        ],
    )
    def test_extension(self, name, expected):
        assert file_extension(name) == expected


class TestPreviewKind:
    @pytest.mark.parametrize(
        ("name", "kind"),
        [
            ("photo.png", PreviewKind.image),
            ("report.pdf", PreviewKind.pdf),
            ("slides.pptx", PreviewKind.office),
            ("letter.docx", PreviewKind.office),
            ("budget.xlsx", PreviewKind.spreadsheet),
            ("data.csv", PreviewKind.spreadsheet),
            ("notes.md", PreviewKind.text),
            ("song.mp3", PreviewKind.audio),
            ("clip.mp4", PreviewKind.video),
            ("binary.exe", PreviewKind.unsupported),
        ],
    )
    def test_kind_from_extension(self, name, kind):
        assert preview_kind(name) == kind

    def test_extension_wins_over_mime(self):
        assert preview_kind("table.csv", "text/csv") == PreviewKind.spreadsheet

    def test_mime_family_fallback(self):
        assert preview_kind("capture", "image/heic") == PreviewKind.image
        assert preview_kind("recording.xyz", "audio/x-custom") == PreviewKind.audio
        assert preview_kind("document", "application/pdf") == PreviewKind.pdf

    def test_unknown_everything_is_unsupported(self):
        assert preview_kind("blob.bin", "application/octet-stream") == PreviewKind.unsupported
        assert preview_kind(None, None) == PreviewKind.unsupported

    def test_kinds_serialize_as_strings(self):
        assert PreviewKind.spreadsheet.value == "spreadsheet"
