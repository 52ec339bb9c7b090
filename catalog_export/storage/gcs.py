from __future__ import annotations

from pathlib import Path

from google.cloud import storage as gcs_storage

from catalog_export.storage.base import StorageBackend


class GCSStorage(StorageBackend):
    """Google Cloud Storage backend.

    Requires ``google-cloud-storage``.  Install via::

        pip install "catalog-export[gcs]"

    The client is created on first use and cached for the lifetime of
    the backend.
    """

    def __init__(
        self, bucket: str, prefix: str = "", project: str | None = None
    ) -> None:
        self._bucket_name = bucket
        self._project = project
        self._prefix = prefix.rstrip("/") + "/" if prefix else ""
        self._client: gcs_storage.Client | None = None
        self._bucket: gcs_storage.Bucket | None = None

    @property
    def client(self) -> gcs_storage.Client:
        if self._client is None:
            self._client = gcs_storage.Client(project=self._project)
        return self._client

    @property
    def bucket(self) -> gcs_storage.Bucket:
        if self._bucket is None:
            self._bucket = self.client.bucket(self._bucket_name)
        return self._bucket

    def _full_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def upload_file(self, key: str, path: Path) -> None:
        self.bucket.blob(self._full_key(key)).upload_from_filename(str(path))

    def resolve_uri(self, key: str) -> str:
        return f"gs://{self._bucket_name}/{self._full_key(key)}"
