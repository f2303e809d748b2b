import os
from pathlib import Path

from learnit.quiz.domain.errors import BackendError
from learnit.quiz.domain.ports import IBlobStore
from learnit.shared.telemetry import Telemetry, measure_time
from supabase import Client


class LocalBlobStore(IBlobStore):
    """Writes blobs under a directory; URLs are file:// URIs."""

    def __init__(self, root_dir: str = "data/uploads") -> None:
        self.root = Path(root_dir)
        self.telemetry = Telemetry("LocalBlobStore")

    @measure_time("local_upload")
    def upload(self, path: str, data: bytes, content_type: str) -> str:
        target = (self.root / path).resolve()
        if self.root.resolve() not in target.parents:
            raise BackendError("upload", ValueError(f"Path escapes blob root: {path}"))
        try:
            os.makedirs(target.parent, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            self.telemetry.log_error(f"upload {path} failed", e)
            raise BackendError("upload", e) from e
        return target.as_uri()


class SupabaseBlobStore(IBlobStore):
    def __init__(self, client: Client, bucket: str) -> None:
        self.client = client
        self.bucket = bucket
        self.telemetry = Telemetry("SupabaseBlobStore")

    @measure_time("sb_upload")
    def upload(self, path: str, data: bytes, content_type: str) -> str:
        storage = self.client.storage.from_(self.bucket)
        try:
            storage.upload(
                path, data, {"content-type": content_type, "upsert": "true"}
            )
            return str(storage.get_public_url(path))
        except Exception as e:
            self.telemetry.log_error(f"upload {path} failed", e)
            raise BackendError("upload", e) from e
