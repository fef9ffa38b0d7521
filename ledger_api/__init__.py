"""HTTP surface (FastAPI) for producer systems posting to the ledger."""

from ledger_api.app import create_app

__all__ = ["create_app"]
