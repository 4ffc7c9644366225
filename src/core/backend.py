"""
Hosted backend access: table client, edge functions and object storage.
"""

from typing import Any

from supabase import Client, create_client

from core.config import SIGNED_URL_EXPIRY_SECONDS, SUPABASE_SERVICE_KEY, SUPABASE_URL

_backend_client: Client | None = None


def get_backend_client() -> Client:
    """Get or create the backend client (lazy initialization)."""
    global _backend_client
    if _backend_client is None:
        if not SUPABASE_URL or not SUPABASE_SERVICE_KEY:
            raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set")
        _backend_client = create_client(SUPABASE_URL, SUPABASE_SERVICE_KEY)
    return _backend_client


def set_backend_client(client: Any) -> None:
    """Replace the shared client (used by scripts that build their own)."""
    global _backend_client
    _backend_client = client


def backend_configured() -> bool:
    return bool(SUPABASE_URL and SUPABASE_SERVICE_KEY) or _backend_client is not None


# =============================================================================
# EDGE FUNCTIONS
# =============================================================================


def invoke_function(name: str, body: dict, client: Any = None) -> dict:
    """
    Invoke a named edge function with a JSON body.

    Returns:
        {"data": ..., "error": None} on success, {"data": None, "error": message} on failure
    """
    client = client or get_backend_client()
    try:
        data = client.functions.invoke(
            name, invoke_options={"body": body, "responseType": "json"}
        )
        return {"data": data, "error": None}
    except Exception as e:
        print(f"  Error invoking function {name}: {e}")
        return {"data": None, "error": str(e)}


# =============================================================================
# OBJECT STORAGE
# =============================================================================


def upload_file(
    bucket: str, path: str, content: bytes, content_type: str, client: Any = None
) -> str:
    """Upload bytes to a bucket and return the stored path."""
    client = client or get_backend_client()
    client.storage.from_(bucket).upload(
        path=path,
        file=content,
        file_options={"content-type": content_type, "upsert": "false"},
    )
    return path


def download_file(bucket: str, path: str, client: Any = None) -> bytes:
    client = client or get_backend_client()
    return client.storage.from_(bucket).download(path)


def list_files(bucket: str, folder: str = "", client: Any = None) -> list[dict]:
    client = client or get_backend_client()
    return client.storage.from_(bucket).list(folder) or []


def remove_files(bucket: str, paths: list[str], client: Any = None) -> list[dict]:
    client = client or get_backend_client()
    return client.storage.from_(bucket).remove(paths) or []


def create_signed_url(
    bucket: str,
    path: str,
    expires_in: int = SIGNED_URL_EXPIRY_SECONDS,
    client: Any = None,
) -> str:
    """Time-limited URL for reading a private object."""
    client = client or get_backend_client()
    result = client.storage.from_(bucket).create_signed_url(path, expires_in)
    # Key casing differs between client versions
    url = result.get("signedURL") or result.get("signedUrl")
    if not url:
        raise ValueError(f"No signed URL returned for {bucket}/{path}")
    return url
