import pytest

from gemdesk.entities.source_file import InMemoryFile, LocalFile, SourceFile


@pytest.mark.unit
class TestLocalFile:
    @pytest.mark.asyncio
    async def test_reads_bytes_and_guesses_mime(self, tmp_path):
        path = tmp_path / "photo.png"
        path.write_bytes(b"png-bytes")

        file = LocalFile(path)

        assert isinstance(file, SourceFile)
        assert file.name == "photo.png"
        assert file.mime_type == "image/png"
        assert file.size == 9
        assert await file.read() == b"png-bytes"

    def test_unknown_extension_falls_back_to_octet_stream(self, tmp_path):
        path = tmp_path / "blob.unknownext"
        path.write_bytes(b"x")
        assert LocalFile(path).mime_type == "application/octet-stream"

    def test_explicit_mime_type_wins(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("hi")
        assert LocalFile(path, mime_type="image/gif").mime_type == "image/gif"

    @pytest.mark.asyncio
    async def test_missing_file_fails_on_read(self, tmp_path):
        file = LocalFile(tmp_path / "gone.jpg")
        assert file.size == 0
        with pytest.raises(OSError):
            await file.read()


@pytest.mark.unit
class TestInMemoryFile:
    @pytest.mark.asyncio
    async def test_from_data_url(self):
        file = InMemoryFile.from_data_url(
            "data:image/png;base64,aGVsbG8=", name="pasted-image"
        )

        assert file.mime_type == "image/png"
        assert file.name == "pasted-image"
        assert file.size == 5
        assert await file.read() == b"hello"

    def test_from_data_url_rejects_plain_text(self):
        with pytest.raises(ValueError):
            InMemoryFile.from_data_url("hello there")
