from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Board configuration loaded from environment variables."""

    gateway_url: str  # RPC endpoint, e.g. https://example.com/wp-admin/admin-ajax.php
    auth_token: str  # Sent as `nonce` with every gateway call
    debug: bool = False
    action_prefix: str = "admin_notes_"  # Prepended to every action name on the wire
    order_debounce: float = 0.25  # Seconds; coalesces bursts of reorders
    title_debounce: float = 0.35  # Seconds; per note, only the settled title is saved
    checklist_debounce: float = 0.3  # Seconds; per note, full checklist is saved
    request_timeout: float = 10.0
    reconcile_interval: float = 30.0  # Seconds between retries of failed saves, 0 disables

    model_config = {
        "env_file": [".env"],
        "env_prefix": "STICKYBOARD_",
        "extra": "ignore",
    }
