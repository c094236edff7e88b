import secrets


def rid(prefix: str = "") -> str:
    """Random id: optional prefix + 16 hex chars (e.g. job_1f2e3d4c5b6a7980)."""
    return f"{prefix}{secrets.token_hex(8)}"
