from __future__ import annotations

import json
from typing import Any, Dict, Mapping, Optional

import base58
import httpx


class RpcClient:
    def __init__(self, rpc_url: str, timeout_s: float = 60.0) -> None:
        self.rpc_url = rpc_url
        self.client = httpx.Client(timeout=timeout_s)

    def close(self) -> None:
        self.client.close()

    def get_slot(self, commitment: str = "finalized") -> int:
        """Returns the current slot."""
        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "getSlot",
            "params": [{"commitment": commitment}],
        }
        data = self._post(payload)
        return int(data["result"])

    def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        resp = self.client.post(self.rpc_url, json=payload)
        resp.raise_for_status()
        data = resp.json()
        if "error" in data:
            raise RuntimeError(f"RPC error: {data['error']}")
        return data

    def get_blockhash_for_slot(self, slot: int) -> str:
        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "getBlock",
            "params": [
                slot,
                {"encoding": "json", "transactionDetails": "none", "rewards": False},
            ],
        }
        data = self._post(payload)
        result = data.get("result")
        if not result or "blockhash" not in result:
            raise RuntimeError(f"Slot {slot}: getBlock returned no blockhash.")
        return result["blockhash"]


def decode_blockhash(value: str) -> bytes:
    """Block hashes are base58 (Solana) or 0x-prefixed hex."""
    value = value.strip()
    if value.startswith(("0x", "0X")):
        try:
            return bytes.fromhex(value[2:])
        except ValueError as e:
            raise RuntimeError(f"Invalid hex blockhash {value!r}: {e}")
    try:
        raw = base58.b58decode(value)
    except ValueError as e:
        raise RuntimeError(f"Invalid base58 blockhash {value!r}: {e}")
    if not raw:
        raise RuntimeError("Empty blockhash.")
    return raw


class RpcBlockHashSource:
    """Reads the hash of block `height - 1` from a Solana-style RPC node."""

    def __init__(self, client: RpcClient) -> None:
        self.client = client

    def previous_unpredictable_value(self, height: int) -> bytes:
        return decode_blockhash(self.client.get_blockhash_for_slot(height - 1))


class StaticBlockHashSource:
    """Block hashes keyed by the height whose *previous* block they belong to."""

    def __init__(self, hashes: Optional[Mapping[int, bytes]] = None) -> None:
        self.hashes: Dict[int, bytes] = dict(hashes or {})

    def previous_unpredictable_value(self, height: int) -> bytes:
        try:
            return self.hashes[height]
        except KeyError:
            raise RuntimeError(f"No previous block hash known for height {height}")


class FeedFileBlockHashSource:
    def __init__(self, path: str) -> None:
        self.path = path

    def previous_unpredictable_value(self, height: int) -> bytes:
        return decode_blockhash(
            load_seed_from_block_feed_file(self.path, slot_hint=height - 1)
        )


def load_seed_from_block_feed_file(path: str, slot_hint: Optional[int] = None) -> str:
    """
    Supports:
    1) Raw blockhash string in file
    2) JSON object containing:
       - {"blockhash": "..."}
       - {"result": {"blockhash": "..."}}
       - {"slot": 123, "blockhash": "..."}   (optionally verified against slot_hint)
       - {"blocks": {"123": {"blockhash": "..."}}}  (optionally with slot_hint)
    """
    with open(path, "r", encoding="utf-8") as f:
        raw = f.read().strip()

    # If it's just a blockhash string
    if raw and raw[0] != "{":
        return raw

    try:
        j = json.loads(raw)
    except ValueError as e:
        raise RuntimeError(f"Block feed file is not valid JSON or raw string: {e}")

    if isinstance(j, dict):
        if "blockhash" in j and isinstance(j["blockhash"], str):
            if (
                slot_hint is not None
                and "slot" in j
                and int(j["slot"]) != int(slot_hint)
            ):
                raise RuntimeError(
                    f"Block feed slot mismatch: file slot={j['slot']} vs expected slot={slot_hint}"
                )
            return j["blockhash"]

        if (
            "result" in j
            and isinstance(j["result"], dict)
            and isinstance(j["result"].get("blockhash"), str)
        ):
            return j["result"]["blockhash"]

        # A feed of many blocks
        if slot_hint is not None and "blocks" in j and isinstance(j["blocks"], dict):
            key = str(int(slot_hint))
            block_obj = j["blocks"].get(key)
            if isinstance(block_obj, dict) and isinstance(
                block_obj.get("blockhash"), str
            ):
                return block_obj["blockhash"]

    raise RuntimeError(
        "Could not find a blockhash in block feed file. "
        "Expected raw string or JSON with blockhash/result.blockhash/(blocks[slot].blockhash)."
    )
