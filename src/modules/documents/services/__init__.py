from .document_service import DocumentService
from .encryption import DocumentCipher, EncryptionMetadata, build_cipher
from .pdf_renderer import PdfRenderer

__all__ = ['DocumentService', 'DocumentCipher', 'EncryptionMetadata', 'build_cipher', 'PdfRenderer']
