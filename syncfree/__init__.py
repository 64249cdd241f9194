"""SyncFree: back up a document vault to Cloudflare R2."""

__version__ = "0.3.0"
