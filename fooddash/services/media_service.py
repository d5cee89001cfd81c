# Media upload service (Cloudinary)
from typing import Iterable, Optional

import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from flask import current_app
from fooddash.errors import MediaUploadError, ValidationError


class MediaUploader:
    """Uploads image buffers to the media host and returns their public URL.

    Built once per application from the config object; credentials are
    passed with every upload call rather than through the SDK's global
    configuration.
    """

    def __init__(self, cloud_name: Optional[str], api_key: Optional[str], api_secret: Optional[str],
                 allowed_extensions: Iterable[str] = ('jpeg', 'jpg', 'png', 'gif'), timeout: int = 30):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.allowed_extensions = {ext.lower() for ext in allowed_extensions}
        self.timeout = timeout

    @classmethod
    def from_config(cls, config):
        return cls(
            cloud_name=config.get('CLOUDINARY_CLOUD_NAME'),
            api_key=config.get('CLOUDINARY_API_KEY'),
            api_secret=config.get('CLOUDINARY_API_SECRET'),
            allowed_extensions=config.get('ALLOWED_IMAGE_EXTENSIONS', ('jpeg', 'jpg', 'png', 'gif')),
            timeout=config.get('MEDIA_UPLOAD_TIMEOUT', 30),
        )

    @property
    def configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    def is_allowed(self, filename: str) -> bool:
        if not filename or '.' not in filename:
            return False
        return filename.rsplit('.', 1)[1].lower() in self.allowed_extensions

    def upload(self, file_storage, folder: str = 'uploads') -> str:
        if not self.is_allowed(file_storage.filename):
            raise ValidationError('Invalid file type',
                                  f"Allowed types: {', '.join(sorted(self.allowed_extensions))}")

        if not self.configured:
            raise MediaUploadError('Failed to upload image', 'Media storage is not configured')

        # The whole file is buffered in memory before forwarding
        buffer = file_storage.read()
        if not buffer:
            raise ValidationError('Uploaded file is empty')

        try:
            result = cloudinary.uploader.upload(
                buffer,
                folder=folder,
                resource_type='auto',
                quality='auto',
                fetch_format='auto',
                cloud_name=self.cloud_name,
                api_key=self.api_key,
                api_secret=self.api_secret,
                timeout=self.timeout
            )
        except CloudinaryError as e:
            current_app.logger.error(f"Media upload error: {e}")
            raise MediaUploadError('Failed to upload image', str(e))

        secure_url = result.get('secure_url')
        if not secure_url:
            raise MediaUploadError('Failed to upload image', 'Media host returned no URL')

        current_app.logger.info(f"Uploaded {file_storage.filename} to folder {folder}")
        return secure_url

    def resolve_image(self, file_storage, image_url: Optional[str], folder: str) -> Optional[str]:
        """An uploaded file wins over an image URL sent in the body."""
        if file_storage is not None and file_storage.filename:
            return self.upload(file_storage, folder)
        return image_url
