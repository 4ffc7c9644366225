"""
MS Graph client for outgoing report email, lazily initialized.
"""

from azure.identity import ClientSecretCredential
from msgraph import GraphServiceClient

from core.config import GRAPH_APP_ID, GRAPH_CLIENT_SECRET, GRAPH_TENANT_ID

_graph_client: GraphServiceClient | None = None


def graph_configured() -> bool:
    return bool(GRAPH_TENANT_ID and GRAPH_APP_ID and GRAPH_CLIENT_SECRET)


def get_graph_client() -> GraphServiceClient:
    """Get or create the MS Graph client; fails fast without credentials."""
    global _graph_client
    if _graph_client is None:
        if not graph_configured():
            raise RuntimeError("Microsoft Graph credentials are not configured")
        credential = ClientSecretCredential(
            tenant_id=GRAPH_TENANT_ID,
            client_id=GRAPH_APP_ID,
            client_secret=GRAPH_CLIENT_SECRET,
        )
        _graph_client = GraphServiceClient(
            credentials=credential, scopes=["https://graph.microsoft.com/.default"]
        )
    return _graph_client
