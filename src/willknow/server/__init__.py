"""HTTP (Server-Sent Events) surface for willknow."""

from willknow.server.app import ChatRequestBody, create_app

__all__ = ["ChatRequestBody", "create_app"]
