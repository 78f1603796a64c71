"""
Unit Tests for local storage of guides and images
"""
import pytest

from app.core.exceptions import InvalidFileTypeError, FileTooLargeError, StorageError
from app.services.storage_service import StorageService, file_extension


@pytest.fixture
def local_storage(tmp_path):
    return StorageService(mode='local', root=str(tmp_path))


class TestValidateUpload:
    def test_accepts_pdf(self):
        assert StorageService.validate_upload('Guia.PDF', 1024, ['.pdf']) == '.pdf'

    def test_rejects_extension(self):
        with pytest.raises(InvalidFileTypeError):
            StorageService.validate_upload('guia.exe', 1024, ['.pdf'])

    def test_rejects_large_file(self):
        with pytest.raises(FileTooLargeError):
            StorageService.validate_upload('guia.pdf', 2048, ['.pdf'], max_size=1024)

    def test_file_extension_without_suffix(self):
        assert file_extension('README') == ''


class TestLocalStorage:
    @pytest.mark.asyncio
    async def test_save_read_delete(self, local_storage):
        key = local_storage.generate_key('guides', 'guia.pdf')

        await local_storage.save(key, b'%PDF-1.4', 'application/pdf')

        assert key.startswith('guides/') and key.endswith('.pdf')
        assert await local_storage.read(key) == b'%PDF-1.4'
        assert await local_storage.delete(key) is True
        assert await local_storage.delete(key) is False

    @pytest.mark.asyncio
    async def test_read_missing(self, local_storage):
        with pytest.raises(StorageError):
            await local_storage.read('guides/missing.pdf')

    @pytest.mark.asyncio
    async def test_key_outside_root(self, local_storage):
        with pytest.raises(StorageError):
            await local_storage.save('../escape.pdf', b'x')

    def test_local_urls(self, local_storage):
        assert local_storage.get_url('images/a.png') == '/uploads/images/a.png'
        assert local_storage.public_url('images/a.png') == '/uploads/images/a.png'
