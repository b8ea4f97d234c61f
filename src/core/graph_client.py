"""
MS Graph client setup with lazy initialization.

Either wraps an already issued access token (the OAuth handshake happens
elsewhere) or falls back to the app's client-secret credential.
"""

import time

from azure.core.credentials import AccessToken
from azure.identity import ClientSecretCredential
from msgraph import GraphServiceClient

from core.config import GRAPH_ACCESS_TOKEN, GRAPH_APP_ID, GRAPH_CLIENT_SECRET, GRAPH_TENANT_ID

_graph_client: GraphServiceClient | None = None


class StaticTokenCredential:
    """TokenCredential over a bearer token obtained by an external OAuth flow."""

    def __init__(self, token: str, expires_on: int | None = None):
        self._token = token
        self._expires_on = expires_on or int(time.time()) + 3600

    def get_token(self, *scopes, **kwargs) -> AccessToken:
        return AccessToken(self._token, self._expires_on)


def has_graph_credentials() -> bool:
    return bool(GRAPH_ACCESS_TOKEN or (GRAPH_TENANT_ID and GRAPH_APP_ID and GRAPH_CLIENT_SECRET))


def get_graph_client(access_token: str | None = None) -> GraphServiceClient:
    """
    Get the MS Graph client.

    A client for an explicit access_token is built fresh; otherwise the
    shared client is created on first use.
    """
    if access_token:
        return GraphServiceClient(credentials=StaticTokenCredential(access_token))

    global _graph_client
    if _graph_client is None:
        if GRAPH_ACCESS_TOKEN:
            credential = StaticTokenCredential(GRAPH_ACCESS_TOKEN)
        else:
            credential = ClientSecretCredential(
                tenant_id=GRAPH_TENANT_ID,
                client_id=GRAPH_APP_ID,
                client_secret=GRAPH_CLIENT_SECRET,
            )
        _graph_client = GraphServiceClient(credentials=credential)
    return _graph_client
