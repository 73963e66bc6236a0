from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .project_constants import DEFAULT_STATE_FILE


@dataclass(frozen=True)
class Settings:
    state_file: str
    rpc_url: Optional[str] = None

    @staticmethod
    def from_env(
        rpc_url_override: str | None = None,
        state_file_override: str | None = None,
    ) -> "Settings":
        load_dotenv()

        state_file = (
            state_file_override
            or os.getenv("ACCUMULATOR_STATE_FILE", "").strip()
            or DEFAULT_STATE_FILE
        )

        # If user provides --rpc-url, trust it.
        if rpc_url_override:
            return Settings(state_file=state_file, rpc_url=rpc_url_override)

        env_rpc = os.getenv("RPC_URL", "").strip()
        if env_rpc:
            return Settings(state_file=state_file, rpc_url=env_rpc)

        # No RPC is fine as long as every deposit brings its own height and hash.
        helius_key = os.getenv("HELIUS_API_KEY", "").strip()
        if not helius_key:
            return Settings(state_file=state_file)

        return Settings(
            state_file=state_file,
            rpc_url=f"https://mainnet.helius-rpc.com/?api-key={helius_key}",
        )

    def require_rpc_url(self) -> str:
        if not self.rpc_url:
            raise RuntimeError(
                "Missing HELIUS_API_KEY (or RPC_URL). Put it in .env, export it, "
                "or pass --height and --block-hash explicitly."
            )
        return self.rpc_url
