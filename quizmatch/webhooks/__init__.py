"""
Webhook notifications.

Responsibilities:
- Look up per-shop webhook URLs and secrets.
- Deliver HMAC-signed event payloads with retry and backoff.
- Schedule delivery after the response is sent.
"""
