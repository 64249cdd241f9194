"""Browser-delegated token exchange for Cloudflare accounts."""
