import logging

import httpx

logger = logging.getLogger("bookapi.vault")


def fetch_vault_secret(*, addr: str, token: str, mount: str, path: str, timeout: float = 5.0) -> dict[str, str]:
    """Read a KV v2 secret and return its inner ``data`` mapping."""
    url = f"{addr.rstrip('/')}/v1/{mount}/data/{path.lstrip('/')}"
    with httpx.Client(timeout=timeout) as client:
        resp = client.get(url, headers={"X-Vault-Token": token})
        resp.raise_for_status()
        payload = resp.json()
    secret = payload.get("data", {}).get("data", {}) or {}
    logger.info("vault.secret_loaded", extra={"path": path, "keys": sorted(secret)})
    return secret
