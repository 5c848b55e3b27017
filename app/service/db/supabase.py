from typing import Optional
from supabase import create_client, Client

from app.config.setting import settings


class SupabaseClientSingleton:
    _client: Client = None

    @classmethod
    def get_client(cls) -> Client:
        if cls._client is None:
            url = settings.SUPABASE_URL
            key = settings.SUPABASE_KEY
            if not url or not key:
                raise ValueError("SUPABASE_URL or SUPABASE_KEY is missing in environment.")
            cls._client = create_client(url, key)
        return cls._client


class SupabaseBucketService:
    """
    A service class for interacting with a Supabase storage bucket. Objects
    are written once and then served from their public URL.
    """
    def __init__(self, bucket_name: str, client: Optional[Client] = None):
        self.bucket_name = bucket_name
        if client is None:
            client = SupabaseClientSingleton.get_client()
        self.bucket = client.storage.from_(bucket_name)

    def upload_file_from_bytes(self, data: bytes, dest_name: str, content_type: str = "application/octet-stream") -> dict:
        """
        Store *data* at *dest_name*. Raises whatever the storage client raises
        when the upload is refused.
        """
        response = self.bucket.upload(dest_name, data, {"content-type": content_type})
        return response

    def get_public_url(self, file_path: str) -> str:
        """Publicly readable URL of an object; no access control applies."""
        return self.bucket.get_public_url(file_path)
